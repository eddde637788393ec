"""Tuning controls: Which search strategy proposes hyperparameter points."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING

import optuna
from optuna.samplers import RandomSampler, TPESampler

from sklearn_exp.search.backends.grid import GridBackend
from sklearn_exp.search.backends.optuna import OptunaBackend

if TYPE_CHECKING:
    from sklearn_exp.search.backends.base import SearchBackend
    from sklearn_exp.search.space import SearchSpace


@dataclass
class TuneControl:
    """
    Base class for tuning controls.

    Attributes:
        random_state: Seed for the search strategy.
        batch_size: Points evaluated per batch. Default: the number of
            parallel workers.
    """

    random_state: Optional[int] = None
    batch_size: Optional[int] = None

    def __post_init__(self) -> None:
        if self.batch_size is not None and self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")

    def make_backend(self, space: SearchSpace, direction: str) -> SearchBackend:
        """Create the ask/tell backend for a search."""
        raise NotImplementedError


@dataclass
class TuneControlGrid(TuneControl):
    """
    Exhaustive search over a grid.

    Attributes:
        resolution: Number of values per numeric parameter.
    """

    resolution: int = 10

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.resolution < 1:
            raise ValueError(f"resolution must be >= 1, got {self.resolution}")

    def make_backend(self, space: SearchSpace, direction: str) -> SearchBackend:
        return GridBackend(space, direction=direction, resolution=self.resolution)


@dataclass
class TuneControlRandom(TuneControl):
    """
    Random search.

    Attributes:
        maxit: Number of points to evaluate.
    """

    maxit: int = 100

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.maxit < 1:
            raise ValueError(f"maxit must be >= 1, got {self.maxit}")

    def make_backend(self, space: SearchSpace, direction: str) -> SearchBackend:
        return OptunaBackend(
            space,
            direction=direction,
            random_state=self.random_state,
            sampler=RandomSampler(seed=self.random_state),
            n_trials=self.maxit,
        )


@dataclass
class TuneControlOptuna(TuneControl):
    """
    Model-based search with an Optuna sampler (TPE unless given).

    Attributes:
        n_trials: Number of points to evaluate.
        sampler: Optuna sampler. Default: ``TPESampler(seed=random_state)``.
    """

    n_trials: int = 100
    sampler: Optional[optuna.samplers.BaseSampler] = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.n_trials < 1:
            raise ValueError(f"n_trials must be >= 1, got {self.n_trials}")

    def make_backend(self, space: SearchSpace, direction: str) -> SearchBackend:
        return OptunaBackend(
            space,
            direction=direction,
            random_state=self.random_state,
            sampler=self.sampler or TPESampler(seed=self.random_state),
            n_trials=self.n_trials,
        )
