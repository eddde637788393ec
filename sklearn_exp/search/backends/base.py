"""SearchBackend: Abstract base class for ask/tell optimization backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from sklearn_exp.search.space import SearchSpace


class SearchBackend(ABC):
    """
    Abstract base class for hyperparameter optimization backends.

    Backends propose candidate points in batches (``ask``) and receive the
    objective values of a batch (``tell``). The caller evaluates a batch in
    parallel before telling, so a backend never evaluates anything itself.
    """

    def __init__(
        self,
        search_space: SearchSpace,
        direction: str = "minimize",
        random_state: Optional[int] = None,
    ) -> None:
        """
        Initialize the search backend.

        Args:
            search_space: Search space to propose points from.
            direction: Optimization direction ("minimize" or "maximize").
            random_state: Random seed for reproducibility.
        """
        if direction not in ("minimize", "maximize"):
            raise ValueError(f"direction must be 'minimize' or 'maximize', got {direction}")
        self.search_space = search_space
        self.direction = direction
        self.random_state = random_state

    @abstractmethod
    def ask(self, n: int) -> List[Dict[str, Any]]:
        """
        Propose up to ``n`` points on the search scale.

        Returns an empty list once the backend has nothing left to propose.
        """
        pass

    @abstractmethod
    def tell(self, values: Sequence[float]) -> None:
        """
        Report the objective values of the last batch, in the order asked.

        NaN marks a failed evaluation.
        """
        pass

    @property
    def n_total(self) -> Optional[int]:
        """Total number of points the backend will propose, if known."""
        return None
