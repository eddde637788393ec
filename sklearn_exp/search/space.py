"""SearchSpace: Hyperparameter set searched by tune_params."""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterator, List, Optional

from sklearn.model_selection import ParameterGrid

from sklearn_exp.search.parameter import (
    BoolParameter,
    CategoricalParameter,
    ConditionalParameter,
    FloatParameter,
    IntParameter,
    SearchParameter,
)


class SearchSpace:
    """
    Set of learner hyperparameters to search over.

    Points are proposed on each parameter's own scale. ``transform`` turns a
    point into the values set on the learner by applying the parameters'
    ``trafo`` functions, so ``C`` can be searched on [-5, 5] and handed to
    the learner as ``2 ** C``.

    Example:
        space = (
            SearchSpace()
            .add_float("C", -5, 5, trafo=lambda x: 2 ** x)
            .add_categorical("kernel", ["rbf", "linear"])
        )
        space.add_conditional("gamma", "kernel", "rbf", FloatParameter("gamma", 1e-3, 1, log=True))
        space.grid(resolution=3)
    """

    def __init__(self) -> None:
        self._parameters: Dict[str, SearchParameter] = {}

    def add_float(
        self,
        name: str,
        low: float,
        high: float,
        log: bool = False,
        step: Optional[float] = None,
        trafo: Optional[Callable[[float], Any]] = None,
    ) -> SearchSpace:
        """
        Add a numeric parameter.

        Args:
            name: Hyperparameter name on the learner.
            low: Lower bound on the search scale.
            high: Upper bound on the search scale.
            log: Search on a log scale.
            step: Discretisation step, if any.
            trafo: Function mapping the searched value to the learner value.

        Returns:
            Self for chaining.
        """
        return self.add_parameter(FloatParameter(name, low, high, log=log, step=step, trafo=trafo))

    def add_int(
        self,
        name: str,
        low: int,
        high: int,
        log: bool = False,
        step: int = 1,
        trafo: Optional[Callable[[int], Any]] = None,
    ) -> SearchSpace:
        """Add an integer parameter with inclusive bounds."""
        return self.add_parameter(IntParameter(name, low, high, log=log, step=step, trafo=trafo))

    def add_categorical(self, name: str, choices: List[Any]) -> SearchSpace:
        """Add a discrete parameter taking one of ``choices``."""
        return self.add_parameter(CategoricalParameter(name, list(choices)))

    def add_bool(self, name: str) -> SearchSpace:
        """Add a logical parameter."""
        return self.add_parameter(BoolParameter(name))

    def add_conditional(
        self,
        name: str,
        parent_name: str,
        parent_value: Any,
        parameter: SearchParameter,
    ) -> SearchSpace:
        """
        Add a parameter that is only searched while another one takes a value.

        The parent has to be in the space already, so points can be completed
        in insertion order.
        """
        if parent_name not in self._parameters:
            raise ValueError(f"Parent parameter '{parent_name}' of '{name}' is not in the search space")
        return self.add_parameter(ConditionalParameter(name, parent_name, parent_value, parameter))

    def add_parameter(self, param: SearchParameter) -> SearchSpace:
        """Add a constructed parameter, replacing one with the same name."""
        self._parameters[param.name] = param
        return self

    # -- proposing points -----------------------------------------------------

    def sample_optuna(self, trial) -> Dict[str, Any]:
        """Draw a point from an Optuna trial, skipping inactive conditional parameters."""
        point: Dict[str, Any] = {}
        for name, param in self._parameters.items():
            if isinstance(param, ConditionalParameter) and not param.is_active(point):
                continue
            point[name] = param.sample_optuna(trial)
        return point

    def drop_inactive(self, values: Dict[str, Any]) -> Dict[str, Any]:
        """Remove conditional parameters whose condition does not hold."""
        active: Dict[str, Any] = {}
        for name, param in self._parameters.items():
            if name not in values:
                continue
            if isinstance(param, ConditionalParameter) and not param.is_active(active):
                continue
            active[name] = values[name]
        return active

    def grid(self, resolution: int = 10) -> List[Dict[str, Any]]:
        """
        Expand the space to all points of a grid.

        Numeric parameters get ``resolution`` evenly spaced values (log
        spaced for log parameters); discrete parameters get all their
        choices. Points differing only in inactive conditional parameters
        are merged.

        Args:
            resolution: Number of values per numeric parameter.

        Returns:
            Points in ``ParameterGrid`` order.
        """
        if resolution < 1:
            raise ValueError(f"resolution must be >= 1, got {resolution}")
        if not self._parameters:
            return [{}]
        grid = ParameterGrid({name: p.grid_values(resolution) for name, p in self._parameters.items()})
        points: List[Dict[str, Any]] = []
        seen = set()
        for point in grid:
            active = self.drop_inactive(point)
            key = tuple(sorted((k, repr(v)) for k, v in active.items()))
            if key not in seen:
                seen.add(key)
                points.append(active)
        return points

    def transform(self, values: Dict[str, Any]) -> Dict[str, Any]:
        """Map a point to the values set on the learner."""
        result = {}
        for name, value in values.items():
            param = self._parameters.get(name)
            result[name] = param.transform(value) if param is not None else value
        return result

    # -- access ---------------------------------------------------------------

    def get_parameter(self, name: str) -> Optional[SearchParameter]:
        return self._parameters.get(name)

    @property
    def parameter_names(self) -> List[str]:
        return list(self._parameters)

    def __len__(self) -> int:
        return len(self._parameters)

    def __contains__(self, name: str) -> bool:
        return name in self._parameters

    def __iter__(self) -> Iterator[SearchParameter]:
        return iter(self._parameters.values())

    def __repr__(self) -> str:
        return f"SearchSpace([{', '.join(repr(p) for p in self._parameters.values())}])"
