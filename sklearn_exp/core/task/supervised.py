"""Supervised task types: classification, regression, survival, cost-sensitive."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from pandas.api.types import is_bool_dtype, is_numeric_dtype

from sklearn_exp.core.task.base import Task
from sklearn_exp.exceptions import DataContentError, DataShapeError


def _check_numeric_target(col: pd.Series, name: str) -> np.ndarray:
    if not is_numeric_dtype(col.dtype) or is_bool_dtype(col.dtype):
        raise DataContentError(f"Target column '{name}' must be numeric, got {col.dtype}")
    if col.isna().any():
        raise DataContentError(f"Target column '{name}' contains missing values")
    values = col.to_numpy(dtype=float)
    if not np.isfinite(values).all():
        raise DataContentError(f"Target column '{name}' contains infinite values")
    return values


class ClassifTask(Task):
    """
    Classification task.

    The target column is stored as a pandas categorical. Its categories are
    the class levels of the task. For binary problems one level is the
    positive class (default: the first level).

    Example:
        task = ClassifTask(iris, target="Species")
        task = ClassifTask(sonar, target="Class", positive="M", blocking=blocks)
    """

    type = "classif"

    def __init__(
        self,
        data: pd.DataFrame,
        target: str,
        id: Optional[str] = None,
        weights: Optional[Sequence[float]] = None,
        blocking: Optional[Sequence[Any]] = None,
        positive: Optional[Any] = None,
        fixup_data: str = "warn",
        check_data: bool = True,
    ) -> None:
        if not isinstance(target, str):
            raise DataShapeError(f"ClassifTask needs exactly one target column, got {target!r}")
        self._positive_arg = positive
        super().__init__(
            data,
            target=(target,),
            id=id,
            weights=weights,
            blocking=blocking,
            fixup_data=fixup_data,
            check_data=check_data,
        )

    def _prepare_target(self, data: pd.DataFrame) -> pd.DataFrame:
        name = self._target[0]
        if not isinstance(data[name].dtype, pd.CategoricalDtype):
            data[name] = data[name].astype("category")
        return data

    def _check_target(self, data: pd.DataFrame) -> None:
        name = self._target[0]
        if data[name].isna().any():
            raise DataContentError(f"Target column '{name}' contains missing values")

    def _desc_extra(self) -> Dict[str, Any]:
        levels = tuple(self._data[self._target[0]].cat.categories)
        positive = negative = None
        if len(levels) == 2:
            positive = levels[0] if self._positive_arg is None else self._positive_arg
            if positive not in levels:
                raise DataContentError(
                    f"Trying to set a positive class '{positive}' which is not a "
                    f"valid value for the target column: {list(levels)}"
                )
            negative = levels[1] if positive == levels[0] else levels[0]
        return {"class_levels": levels, "positive": positive, "negative": negative}

    def _describe_extra(self) -> List[str]:
        td = self.task_desc
        counts = self._data[self._target[0]].value_counts(sort=False)
        table = counts.to_frame().T.to_string(index=False)
        positive = "NA" if td.positive is None else td.positive
        return [f"Classes: {len(td.class_levels)}", table, f"Positive class: {positive}"]


class RegrTask(Task):
    """
    Regression task with one numeric target.

    Example:
        task = RegrTask(housing, target="medv")
    """

    type = "regr"

    def __init__(
        self,
        data: pd.DataFrame,
        target: str,
        id: Optional[str] = None,
        weights: Optional[Sequence[float]] = None,
        blocking: Optional[Sequence[Any]] = None,
        fixup_data: str = "warn",
        check_data: bool = True,
    ) -> None:
        if not isinstance(target, str):
            raise DataShapeError(f"RegrTask needs exactly one target column, got {target!r}")
        super().__init__(
            data,
            target=(target,),
            id=id,
            weights=weights,
            blocking=blocking,
            fixup_data=fixup_data,
            check_data=check_data,
        )

    def _check_target(self, data: pd.DataFrame) -> None:
        _check_numeric_target(data[self._target[0]], self._target[0])


class SurvTask(Task):
    """
    Survival task.

    The target is a pair of columns: survival time and event indicator.
    Event columns holding only 0/1 are converted to booleans.

    Example:
        task = SurvTask(lung, target=("time", "status"))
    """

    type = "surv"

    def __init__(
        self,
        data: pd.DataFrame,
        target: Sequence[str],
        id: Optional[str] = None,
        weights: Optional[Sequence[float]] = None,
        blocking: Optional[Sequence[Any]] = None,
        fixup_data: str = "warn",
        check_data: bool = True,
    ) -> None:
        target = tuple(target) if not isinstance(target, str) else (target,)
        if len(target) != 2:
            raise DataShapeError(
                f"SurvTask needs two target columns (time, event), got {list(target)}"
            )
        super().__init__(
            data,
            target=target,
            id=id,
            weights=weights,
            blocking=blocking,
            fixup_data=fixup_data,
            check_data=check_data,
        )

    def _prepare_target(self, data: pd.DataFrame) -> pd.DataFrame:
        event = self._target[1]
        col = data[event]
        if (
            is_numeric_dtype(col.dtype)
            and not is_bool_dtype(col.dtype)
            and not col.isna().any()
            and set(np.unique(col.to_numpy())) <= {0, 1}
        ):
            data[event] = col.astype(bool)
        return data

    def _check_target(self, data: pd.DataFrame) -> None:
        time_name, event_name = self._target
        times = _check_numeric_target(data[time_name], time_name)
        if (times < 0).any():
            raise DataContentError(f"Survival times in '{time_name}' must be non-negative")
        event = data[event_name]
        if not is_bool_dtype(event.dtype) or event.isna().any():
            raise DataContentError(
                f"Event column '{event_name}' must be boolean or 0/1 without missing values"
            )

    def _formula_lhs(self) -> str:
        return f"Surv({self._target[0]}, {self._target[1]})"


class CostSensTask(Task):
    """
    Cost-sensitive classification task.

    Instead of a target column the task holds an n x k cost matrix. Entry
    (i, j) is the cost of predicting class j for observation i. The column
    names of the matrix are the class labels (``y1..yk`` if unnamed).
    Case weights are not supported.
    """

    type = "costsens"

    def __init__(
        self,
        data: pd.DataFrame,
        costs: Any,
        id: Optional[str] = None,
        blocking: Optional[Sequence[Any]] = None,
        fixup_data: str = "warn",
        check_data: bool = True,
    ) -> None:
        costs = pd.DataFrame(costs).reset_index(drop=True)
        if isinstance(costs.columns, pd.RangeIndex):
            costs.columns = [f"y{j + 1}" for j in range(costs.shape[1])]
        if costs.shape[1] < 2:
            raise DataShapeError("Cost matrix must have at least 2 columns (classes)")
        if len(costs) != len(data):
            raise DataShapeError(
                f"Cost matrix must have one row per observation: got {len(costs)} "
                f"rows for {len(data)} observations"
            )
        self._costs = costs
        super().__init__(
            data,
            target=(),
            id=id,
            blocking=blocking,
            fixup_data=fixup_data,
            check_data=check_data,
        )

    def _check_target(self, data: pd.DataFrame) -> None:
        for name in self._costs.columns:
            col = self._costs[name]
            if not is_numeric_dtype(col.dtype) or is_bool_dtype(col.dtype):
                raise DataContentError(f"Costs for class '{name}' must be numeric")
            values = col.to_numpy(dtype=float)
            if not np.isfinite(values).all():
                raise DataContentError(f"Costs for class '{name}' contain missing or infinite values")
            if (values < 0).any():
                raise DataContentError(f"Costs for class '{name}' must be non-negative")

    def _desc_extra(self) -> Dict[str, Any]:
        return {"class_levels": tuple(self._costs.columns)}

    def _subset_extra(self, idx: np.ndarray) -> None:
        self._costs = self._costs.iloc[idx].reset_index(drop=True)

    @property
    def costs(self) -> pd.DataFrame:
        """Copy of the cost matrix."""
        return self._costs.copy()
