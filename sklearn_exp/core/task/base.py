"""Task: Container for a dataset and its learning target."""

from __future__ import annotations

import copy
import inspect
import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from pandas.api.types import is_bool_dtype, is_numeric_dtype

from sklearn_exp.exceptions import DataContentError, DataShapeError, TaskIdError

FIXUP_CHOICES = ("no", "warn", "quiet")

_PACKAGE = __name__.split(".")[0]

SubsetLike = Union[None, Sequence[int], np.ndarray, pd.Series]


@dataclass(frozen=True)
class TaskDesc:
    """
    Summary of a task, computed once at construction.

    Attributes:
        id: Task id.
        type: Task type ("classif", "regr", "cluster", "surv", "costsens").
        target: Names of the target columns (empty for unsupervised tasks).
        size: Number of observations.
        n_feat: Number of features per kind ("numerics", "factors").
        has_missings: Whether any feature column contains missing values.
        has_weights: Whether case weights are attached.
        has_blocking: Whether a blocking factor is attached.
        class_levels: Class labels for classification-like tasks.
        positive: Positive class for binary classification.
        negative: Negative class for binary classification.
    """

    id: str
    type: str
    target: Tuple[str, ...]
    size: int
    n_feat: Dict[str, int] = field(default_factory=dict)
    has_missings: bool = False
    has_weights: bool = False
    has_blocking: bool = False
    class_levels: Tuple[Any, ...] = ()
    positive: Optional[Any] = None
    negative: Optional[Any] = None

    @property
    def n_features(self) -> int:
        """Total number of features."""
        return sum(self.n_feat.values())


def guess_task_id(data: pd.DataFrame) -> str:
    """
    Infer a task id for a data frame.

    Uses ``data.attrs["name"]`` when set. Otherwise looks up the name of the
    variable the caller bound the frame to.

    Raises:
        TaskIdError: If neither source yields a name.
    """
    name = data.attrs.get("name")
    if isinstance(name, str) and name:
        return name

    frame = inspect.currentframe()
    try:
        frame = frame.f_back if frame is not None else None
        while frame is not None and frame.f_globals.get("__name__", "").split(".")[0] == _PACKAGE:
            frame = frame.f_back
        if frame is not None:
            for scope in (frame.f_locals, frame.f_globals):
                for var_name, value in scope.items():
                    if value is data and not var_name.startswith("_"):
                        return var_name
    finally:
        del frame

    raise TaskIdError("Cannot infer id for task automatically. Please set it manually!")


def _numeric_values(col: pd.Series) -> np.ndarray:
    # pandas missing markers in nullable columns count as missing, not as NaN
    if isinstance(col.dtype, pd.api.extensions.ExtensionDtype):
        col = col.dropna()
    return col.to_numpy(dtype=float)


def check_feature_column(col: pd.Series, name: str) -> None:
    """
    Check that a feature column is usable for learning.

    Raises:
        DataContentError: On infinite or NaN values, empty factor levels
            or an unsupported column type.
    """
    dtype = col.dtype
    if isinstance(dtype, pd.CategoricalDtype):
        counts = col.value_counts(dropna=True, sort=False)
        if (counts == 0).any():
            raise DataContentError(f"Data contains empty factor levels in: {name}")
    elif is_numeric_dtype(dtype) and not is_bool_dtype(dtype):
        values = _numeric_values(col)
        if np.isinf(values).any():
            raise DataContentError(f"Data contains infinite values in: {name}")
        if np.isnan(values).any():
            raise DataContentError(f"Data contains NaN values in: {name}")
    else:
        raise DataContentError(f"Unsupported feature type in: {name}, {dtype}")


def check_column_names(data: pd.DataFrame) -> None:
    """Column names must be unique, non-empty strings."""
    bad = [c for c in data.columns if not isinstance(c, str) or not c]
    if bad:
        raise DataShapeError(f"Column names must be non-empty strings, got: {bad}")
    duplicated = data.columns[data.columns.duplicated()].unique().tolist()
    if duplicated:
        raise DataShapeError(
            f"Duplicated column names in data are not allowed: {', '.join(duplicated)}"
        )


class Task:
    """
    A dataset together with the metadata learners need.

    The task owns a private copy of the data frame (re-indexed 0..n-1) and
    never mutates it after construction. Query methods return new frames and
    ``subset`` returns a new task.

    Subclasses define the target semantics:
    ClassifTask, RegrTask, SurvTask, CostSensTask and ClusterTask.
    """

    type: str = ""

    def __init__(
        self,
        data: pd.DataFrame,
        target: Sequence[str] = (),
        id: Optional[str] = None,
        weights: Optional[Sequence[float]] = None,
        blocking: Optional[Sequence[Any]] = None,
        fixup_data: str = "warn",
        check_data: bool = True,
    ) -> None:
        """
        Create a task.

        Args:
            data: Features and target column(s).
            target: Target column names.
            id: Task id. Inferred from the data variable name if omitted.
            weights: Optional non-negative case weights, one per row.
            blocking: Optional grouping of rows that must stay together in
                resampling, one label per row.
            fixup_data: "no", "warn" or "quiet". Whether to drop empty factor
                levels, and whether to warn about it.
            check_data: Whether to validate the feature columns.
        """
        if not isinstance(data, pd.DataFrame):
            raise TypeError(f"data must be a pandas DataFrame, got {type(data).__name__}")
        if fixup_data not in FIXUP_CHOICES:
            raise ValueError(f"fixup_data must be one of {FIXUP_CHOICES}, got {fixup_data!r}")

        if id is None:
            id = guess_task_id(data)
        elif not isinstance(id, str) or not id:
            raise TaskIdError(f"Task id must be a non-empty string, got {id!r}")

        check_column_names(data)
        self._target: Tuple[str, ...] = tuple(target)
        missing = [t for t in self._target if t not in data.columns]
        if missing:
            raise DataShapeError(f"Target column(s) not found in data: {', '.join(missing)}")

        n = len(data)
        self._weights = self._convert_weights(weights, n)
        self._blocking = self._convert_blocking(blocking, n)

        data = data.reset_index(drop=True)
        data = self._prepare_target(data)
        data = self._fixup_data(data, fixup_data)
        if check_data:
            for name in self._feature_columns(data):
                check_feature_column(data[name], name)
            self._check_target(data)

        self._data = data
        self.task_desc = self._make_desc(id)

    # -- construction helpers -------------------------------------------------

    @staticmethod
    def _convert_weights(weights, n: int) -> Optional[np.ndarray]:
        if weights is None:
            return None
        w = np.asarray(weights)
        if w.ndim != 1 or len(w) != n:
            raise DataShapeError(
                "Weights have to be of the same length as number of rows in data! "
                f"Got {w.size} weights for {n} rows."
            )
        if not np.issubdtype(w.dtype, np.number) or w.dtype == np.bool_:
            raise DataContentError(f"Weights must be numeric, got dtype {w.dtype}")
        w = w.astype(float)
        if np.isnan(w).any():
            raise DataContentError("Weights must not contain missing values")
        if (w < 0).any():
            raise DataContentError("Weights must be non-negative")
        return w

    @staticmethod
    def _convert_blocking(blocking, n: int) -> Optional[pd.Categorical]:
        if blocking is None:
            return None
        if len(blocking) != n:
            raise DataShapeError(
                "Blocking has to be of the same length as number of rows in data! "
                "Or pass none at all."
            )
        blocking = pd.Categorical(blocking)
        if pd.isna(blocking).any():
            raise DataContentError("Blocking must not contain missing values")
        return blocking

    def _prepare_target(self, data: pd.DataFrame) -> pd.DataFrame:
        """Convert target columns to their canonical dtype."""
        return data

    def _check_target(self, data: pd.DataFrame) -> None:
        """Validate target columns; subclasses raise DataContentError."""

    def _fixup_data(self, data: pd.DataFrame, choice: str) -> pd.DataFrame:
        if choice == "no":
            return data
        changed = []
        for name in data.columns:
            col = data[name]
            if not isinstance(col.dtype, pd.CategoricalDtype):
                continue
            dropped = col.cat.remove_unused_categories()
            if len(dropped.cat.categories) != len(col.cat.categories):
                data[name] = dropped
                changed.append(name)
        if changed and choice == "warn":
            warnings.warn(
                f"Empty factor levels were dropped for columns: {', '.join(changed)}",
                UserWarning,
                stacklevel=4,
            )
        return data

    def _feature_columns(self, data: pd.DataFrame) -> List[str]:
        return [c for c in data.columns if c not in self._target]

    def _make_desc(self, id: str) -> TaskDesc:
        features = self._data[self._feature_columns(self._data)]
        n_factors = sum(isinstance(dt, pd.CategoricalDtype) for dt in features.dtypes)
        return TaskDesc(
            id=id,
            type=self.type,
            target=self._target,
            size=len(self._data),
            n_feat={"numerics": features.shape[1] - n_factors, "factors": n_factors},
            has_missings=bool(features.isna().any().any()),
            has_weights=self._weights is not None,
            has_blocking=self._blocking is not None,
            **self._desc_extra(),
        )

    def _desc_extra(self) -> Dict[str, Any]:
        return {}

    # -- queries --------------------------------------------------------------

    @property
    def id(self) -> str:
        """Task id."""
        return self.task_desc.id

    @property
    def size(self) -> int:
        """Number of observations."""
        return self.task_desc.size

    @property
    def target(self) -> Tuple[str, ...]:
        """Target column names."""
        return self._target

    @property
    def feature_names(self) -> List[str]:
        """Names of all feature columns, in data order."""
        return self._feature_columns(self._data)

    @property
    def class_levels(self) -> Tuple[Any, ...]:
        """Class labels (empty for non-classification tasks)."""
        return self.task_desc.class_levels

    @property
    def weights(self) -> Optional[np.ndarray]:
        """Copy of the case weights, or None."""
        return None if self._weights is None else self._weights.copy()

    @property
    def blocking(self) -> Optional[pd.Categorical]:
        """Copy of the blocking factor, or None."""
        return None if self._blocking is None else self._blocking.copy()

    def get_positions(self, subset: SubsetLike) -> np.ndarray:
        n = self.size
        if subset is None:
            return np.arange(n)
        idx = np.asarray(subset)
        if idx.dtype == np.bool_:
            if len(idx) != n:
                raise ValueError(f"Boolean subset must have length {n}, got {len(idx)}")
            return np.flatnonzero(idx)
        if idx.size and not np.issubdtype(idx.dtype, np.integer):
            raise ValueError(f"subset must contain integer positions, got dtype {idx.dtype}")
        idx = idx.astype(int).ravel()
        if idx.size and (idx.min() < 0 or idx.max() >= n):
            raise ValueError(f"subset positions must lie in [0, {n}), got {idx.min()}..{idx.max()}")
        return idx

    def _resolve_features(self, features: Optional[Sequence[str]]) -> List[str]:
        all_features = self.feature_names
        if features is None:
            return all_features
        features = list(features)
        unknown = [f for f in features if f not in all_features]
        if unknown:
            raise ValueError(f"Unknown features for task '{self.id}': {unknown}")
        return features

    def get_data(
        self,
        subset: SubsetLike = None,
        features: Optional[Sequence[str]] = None,
        target_extra: bool = False,
    ) -> Union[pd.DataFrame, Tuple[pd.DataFrame, Any]]:
        """
        Get (a part of) the task data.

        Row labels are the observation ids of the task (0..n-1).

        Args:
            subset: Row positions or boolean mask. Default: all rows.
            features: Feature columns to include. Default: all features.
            target_extra: Return ``(X, y)`` instead of one frame.

        Returns:
            A new DataFrame, or a tuple of features and targets.
        """
        idx = self.get_positions(subset)
        features = self._resolve_features(features)
        if target_extra:
            X = self._data.iloc[idx][features].copy()
            y = self.get_targets(idx) if self._target else None
            return X, y
        return self._data.iloc[idx][features + list(self._target)].copy()

    def get_targets(self, subset: SubsetLike = None) -> Union[pd.Series, pd.DataFrame]:
        """Target values as a Series (one target) or DataFrame (several)."""
        if not self._target:
            raise ValueError(f"Task '{self.id}' of type {self.type} has no target")
        idx = self.get_positions(subset)
        if len(self._target) == 1:
            return self._data[self._target[0]].iloc[idx].copy()
        return self._data[list(self._target)].iloc[idx].copy()

    def get_weights(self, subset: SubsetLike = None) -> Optional[np.ndarray]:
        """Case weights for the given rows, or None."""
        if self._weights is None:
            return None
        return self._weights[self.get_positions(subset)]

    def _formula_lhs(self) -> str:
        return " + ".join(self._target)

    def get_formula(self, explicit_features: bool = False) -> str:
        """
        Formula representation of the task, e.g. ``"Species ~ ."``.

        Args:
            explicit_features: List all features instead of ``"."``.
        """
        rhs = " + ".join(self.feature_names) if explicit_features else "."
        return f"{self._formula_lhs()} ~ {rhs}".strip()

    # -- subsetting -----------------------------------------------------------

    def subset(self, subset: SubsetLike = None, features: Optional[Sequence[str]] = None) -> Task:
        """
        Create a new task restricted to some rows and/or features.

        Weights and blocking follow the selected rows. The id and the type
        specific metadata (class levels, positive class) are kept.
        """
        idx = self.get_positions(subset)
        features = self._resolve_features(features)

        new = copy.copy(self)
        new._data = (
            self._data.iloc[idx][features + list(self._target)].reset_index(drop=True)
        )
        new._weights = None if self._weights is None else self._weights[idx]
        new._blocking = None if self._blocking is None else self._blocking[idx]
        new._subset_extra(idx)
        new.task_desc = new._make_desc(self.id)
        return new

    def _subset_extra(self, idx: np.ndarray) -> None:
        """Hook for subclasses that carry additional per-row data."""

    # -- printing -------------------------------------------------------------

    def describe(self, print_weights: bool = True) -> str:
        """Human-readable summary of the task."""
        td = self.task_desc
        lines = [
            f"Task: {td.id}",
            f"Type: {td.type}",
        ]
        if td.target:
            lines.append(f"Target: {', '.join(td.target)}")
        lines.extend(
            [
                f"Observations: {td.size}",
                "Features:",
                f"  numerics: {td.n_feat.get('numerics', 0)}",
                f"  factors: {td.n_feat.get('factors', 0)}",
                f"Missings: {td.has_missings}",
            ]
        )
        if print_weights:
            lines.append(f"Has weights: {td.has_weights}")
        lines.append(f"Has blocking: {td.has_blocking}")
        lines.extend(self._describe_extra())
        return "\n".join(lines)

    def _describe_extra(self) -> List[str]:
        return []

    def __str__(self) -> str:
        return self.describe()

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(id={self.id!r}, size={self.size}, "
            f"n_features={self.task_desc.n_features})"
        )
