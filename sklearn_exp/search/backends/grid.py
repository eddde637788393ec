"""GridBackend: Exhaustive grid search over a search space."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, TYPE_CHECKING

from sklearn_exp.search.backends.base import SearchBackend

if TYPE_CHECKING:
    from sklearn_exp.search.space import SearchSpace


class GridBackend(SearchBackend):
    """Proposes every point of the grid of a search space, in grid order."""

    def __init__(
        self,
        search_space: SearchSpace,
        direction: str = "minimize",
        resolution: int = 10,
    ) -> None:
        super().__init__(search_space, direction=direction)
        self.resolution = resolution
        self._points = search_space.grid(resolution)
        self._next = 0

    def ask(self, n: int) -> List[Dict[str, Any]]:
        batch = self._points[self._next:self._next + n]
        self._next += len(batch)
        return [dict(p) for p in batch]

    def tell(self, values: Sequence[float]) -> None:
        # grid order does not depend on results
        pass

    @property
    def n_total(self) -> Optional[int]:
        return len(self._points)

    def __repr__(self) -> str:
        return f"GridBackend(points={len(self._points)}, resolution={self.resolution})"
