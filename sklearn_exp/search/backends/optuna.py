"""OptunaBackend: Optuna-based hyperparameter optimization."""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional, Sequence, TYPE_CHECKING

import optuna
from optuna.samplers import TPESampler
from optuna.trial import TrialState

from sklearn_exp.search.backends.base import SearchBackend

if TYPE_CHECKING:
    from sklearn_exp.search.space import SearchSpace

logger = logging.getLogger(__name__)


class OptunaBackend(SearchBackend):
    """
    Optuna-based hyperparameter optimization backend.

    Uses Tree-structured Parzen Estimator (TPE) by default. Points are
    proposed through Optuna's ask/tell interface, so a batch of trials can
    be evaluated in parallel by the caller.
    """

    def __init__(
        self,
        search_space: SearchSpace,
        direction: str = "minimize",
        random_state: Optional[int] = None,
        sampler: Optional[optuna.samplers.BaseSampler] = None,
        n_trials: Optional[int] = None,
        verbosity: Optional[int] = None,
    ) -> None:
        """
        Initialize the Optuna backend.

        Args:
            search_space: Search space to sample from.
            direction: Optimization direction ("minimize" or "maximize").
            random_state: Random seed for reproducibility.
            sampler: Optional custom Optuna sampler.
            n_trials: Number of trials to propose in total. Unlimited if None.
            verbosity: Optuna logging verbosity level. Defaults to WARNING.
        """
        super().__init__(search_space, direction=direction, random_state=random_state)

        self.sampler = sampler or TPESampler(seed=random_state)
        self._n_trials = n_trials
        self._n_asked = 0
        self._pending: List[optuna.trial.Trial] = []

        optuna.logging.set_verbosity(
            verbosity if verbosity is not None else optuna.logging.WARNING
        )
        self._study = optuna.create_study(direction=direction, sampler=self.sampler)

    def ask(self, n: int) -> List[Dict[str, Any]]:
        if self._pending:
            raise RuntimeError("Must tell the results of the previous batch before asking again")
        if self._n_trials is not None:
            n = min(n, self._n_trials - self._n_asked)
        points = []
        for _ in range(max(n, 0)):
            trial = self._study.ask()
            self._pending.append(trial)
            points.append(self.search_space.sample_optuna(trial))
        self._n_asked += len(points)
        return points

    def tell(self, values: Sequence[float]) -> None:
        if len(values) != len(self._pending):
            raise ValueError(f"Expected {len(self._pending)} values, got {len(values)}")
        for trial, value in zip(self._pending, values):
            if value is None or math.isnan(value):
                self._study.tell(trial, state=TrialState.FAIL)
            else:
                self._study.tell(trial, float(value))
        self._pending = []

    @property
    def n_total(self) -> Optional[int]:
        return self._n_trials

    @property
    def study(self) -> optuna.Study:
        """Access the underlying Optuna study."""
        return self._study

    def __repr__(self) -> str:
        return (
            f"OptunaBackend(direction={self.direction}, sampler={type(self.sampler).__name__}, "
            f"n_trials={len(self._study.trials)})"
        )
