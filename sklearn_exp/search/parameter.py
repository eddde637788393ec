"""Search parameters: One searchable learner hyperparameter each."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

import numpy as np


class SearchParameter(ABC):
    """
    A learner hyperparameter together with the values a search may try.

    Subclasses propose values through an Optuna trial (``sample_optuna``)
    or as a finite list for grid search (``grid_values``).
    """

    def __init__(self, name: str) -> None:
        self.name = name

    @abstractmethod
    def sample_optuna(self, trial) -> Any:
        """Draw a value from an Optuna trial."""

    @abstractmethod
    def grid_values(self, resolution: int) -> List[Any]:
        """Values of this parameter on a grid with ``resolution`` points."""

    def transform(self, value: Any) -> Any:
        """Map a value from the search scale to the value set on the learner."""
        trafo = getattr(self, "trafo", None)
        return trafo(value) if trafo is not None else value

    @abstractmethod
    def __repr__(self) -> str:
        pass


def _check_bounds(low: float, high: float, log: bool) -> None:
    if low >= high:
        raise ValueError(f"low ({low}) must be less than high ({high})")
    if log and low <= 0:
        raise ValueError(f"log scale requires positive low bound, got {low}")


def _flags(log: bool, step: Optional[float], trafo: Optional[Callable]) -> str:
    flags = ", log" if log else ""
    if step:
        flags += f", step={step}"
    if trafo is not None:
        flags += ", trafo"
    return flags


@dataclass
class FloatParameter(SearchParameter):
    """
    Numeric parameter on a closed interval.

    Attributes:
        name: Hyperparameter name.
        low: Lower bound on the search scale.
        high: Upper bound on the search scale.
        log: Search on a log scale.
        step: Discretisation step, if any.
        trafo: Function applied to a searched value before it is set on the
            learner, e.g. ``lambda x: 2 ** x``.
    """

    name: str
    low: float
    high: float
    log: bool = False
    step: Optional[float] = None
    trafo: Optional[Callable[[float], Any]] = None

    def __post_init__(self) -> None:
        _check_bounds(self.low, self.high, self.log)

    def sample_optuna(self, trial) -> float:
        return trial.suggest_float(self.name, self.low, self.high, step=self.step, log=self.log)

    def grid_values(self, resolution: int) -> List[float]:
        if self.step is not None:
            values = np.arange(self.low, self.high + self.step / 2, self.step)
        elif self.log:
            values = np.geomspace(self.low, self.high, resolution)
        else:
            values = np.linspace(self.low, self.high, resolution)
        return [float(v) for v in values]

    def __repr__(self) -> str:
        return f"Float({self.name}: [{self.low}, {self.high}]{_flags(self.log, self.step, self.trafo)})"


@dataclass
class IntParameter(SearchParameter):
    """
    Integer parameter with inclusive bounds.

    Attributes:
        name: Hyperparameter name.
        low: Lower bound.
        high: Upper bound.
        log: Search on a log scale.
        step: Distance between admissible values.
        trafo: Function applied before the value is set on the learner.
    """

    name: str
    low: int
    high: int
    log: bool = False
    step: int = 1
    trafo: Optional[Callable[[int], Any]] = None

    def __post_init__(self) -> None:
        _check_bounds(self.low, self.high, self.log)

    def sample_optuna(self, trial) -> int:
        return trial.suggest_int(self.name, self.low, self.high, step=self.step, log=self.log)

    def grid_values(self, resolution: int) -> List[int]:
        candidates = np.arange(self.low, self.high + 1, self.step)
        if len(candidates) <= resolution:
            return [int(v) for v in candidates]
        if self.log:
            points = np.geomspace(self.low, self.high, resolution)
        else:
            points = np.linspace(self.low, self.high, resolution)
        # snap to the step lattice
        snapped = self.low + np.round((points - self.low) / self.step) * self.step
        return [int(v) for v in np.unique(snapped)]

    def __repr__(self) -> str:
        step = self.step if self.step > 1 else None
        return f"Int({self.name}: [{self.low}, {self.high}]{_flags(self.log, step, self.trafo)})"


@dataclass
class CategoricalParameter(SearchParameter):
    """
    Discrete parameter taking one of a list of values.

    Attributes:
        name: Hyperparameter name.
        choices: Admissible values.
    """

    name: str
    choices: List[Any]

    def __post_init__(self) -> None:
        if not self.choices:
            raise ValueError("choices cannot be empty")

    def sample_optuna(self, trial) -> Any:
        return trial.suggest_categorical(self.name, self.choices)

    def grid_values(self, resolution: int) -> List[Any]:
        return list(self.choices)

    def __repr__(self) -> str:
        shown = ", ".join(str(c) for c in self.choices[:3])
        if len(self.choices) > 3:
            shown += ", ..."
        return f"Cat({self.name}: [{shown}])"


class BoolParameter(CategoricalParameter):
    """Logical parameter: a categorical with the choices True and False."""

    def __init__(self, name: str) -> None:
        super().__init__(name=name, choices=[True, False])

    def __repr__(self) -> str:
        return f"Bool({self.name})"


@dataclass
class ConditionalParameter(SearchParameter):
    """
    Parameter that is only searched while its parent takes ``parent_value``.

    Attributes:
        name: Hyperparameter name.
        parent_name: Name of the parent parameter.
        parent_value: Parent value that activates this parameter.
        parameter: Definition used while active.
    """

    name: str
    parent_name: str
    parent_value: Any
    parameter: SearchParameter

    def sample_optuna(self, trial) -> Any:
        # the caller checks is_active first
        return self.parameter.sample_optuna(trial)

    def grid_values(self, resolution: int) -> List[Any]:
        return self.parameter.grid_values(resolution)

    def transform(self, value: Any) -> Any:
        return self.parameter.transform(value)

    def is_active(self, values: dict) -> bool:
        """Whether the parent currently takes the activating value."""
        return self.parent_name in values and values[self.parent_name] == self.parent_value

    def __repr__(self) -> str:
        return f"Conditional({self.name} if {self.parent_name}={self.parent_value}: {self.parameter})"
