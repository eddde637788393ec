"""Measure: Performance measures and their aggregation over resampling iterations."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, List, Optional, Sequence, TYPE_CHECKING, Union

import numpy as np
from sklearn import metrics

from sklearn_exp.core.learner.learner import encode_features

if TYPE_CHECKING:
    from sklearn_exp.core.learner.learner import WrappedModel
    from sklearn_exp.core.learner.prediction import Prediction
    from sklearn_exp.core.task.base import Task

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Aggregation:
    """
    Combines per-iteration measure values into one number.

    Attributes:
        id: Name such as "test.mean".
        fun: Receives the per-iteration test and train values.
    """

    id: str
    fun: Callable[[np.ndarray, np.ndarray], float] = field(compare=False)

    def __call__(self, test: Sequence[float], train: Sequence[float]) -> float:
        return float(self.fun(np.asarray(test, dtype=float), np.asarray(train, dtype=float)))


def _sd(values: np.ndarray) -> float:
    return float(np.std(values, ddof=1)) if len(values) > 1 else float("nan")


AGGREGATIONS: Dict[str, Aggregation] = {
    "test.mean": Aggregation("test.mean", lambda te, tr: np.mean(te)),
    "test.sd": Aggregation("test.sd", lambda te, tr: _sd(te)),
    "test.median": Aggregation("test.median", lambda te, tr: np.median(te)),
    "test.min": Aggregation("test.min", lambda te, tr: np.min(te)),
    "test.max": Aggregation("test.max", lambda te, tr: np.max(te)),
    "train.mean": Aggregation("train.mean", lambda te, tr: np.mean(tr)),
}


def get_aggregation(id: str) -> Aggregation:
    """Look up an aggregation by name."""
    if id not in AGGREGATIONS:
        raise ValueError(f"Unknown aggregation '{id}'. Available: {', '.join(AGGREGATIONS)}")
    return AGGREGATIONS[id]


@dataclass
class Measure:
    """
    A performance measure.

    Attributes:
        id: Short name, e.g. "mmce".
        fun: Computes the value from a prediction, the fitted model and the task.
        minimize: Whether lower values are better.
        task_types: Task types the measure applies to.
        aggr: How values are aggregated across resampling iterations.
        requires_prob: Whether the measure needs probability predictions.
        requires_truth: Whether the measure compares against the true target.
        name: Human-readable name.
    """

    id: str
    fun: Callable[..., float]
    minimize: bool = True
    task_types: FrozenSet[str] = frozenset({"classif", "regr", "cluster"})
    aggr: Union[str, Aggregation] = "test.mean"
    requires_prob: bool = False
    requires_truth: bool = True
    name: str = ""

    def __post_init__(self) -> None:
        if isinstance(self.aggr, str):
            self.aggr = get_aggregation(self.aggr)
        self.task_types = frozenset(self.task_types)
        if not self.name:
            self.name = self.id

    @property
    def worst(self) -> float:
        """Worst possible value, used to rank failed evaluations."""
        return float("inf") if self.minimize else float("-inf")

    @property
    def aggr_name(self) -> str:
        """Name of the aggregated value, e.g. "mmce.test.mean"."""
        return f"{self.id}.{self.aggr.id}"

    def set_aggr(self, aggr: Union[str, Aggregation]) -> Measure:
        """Return a copy with another aggregation."""
        new = copy.copy(self)
        new.aggr = get_aggregation(aggr) if isinstance(aggr, str) else aggr
        return new

    def check(self, task_type: str, predict_type: str) -> None:
        """Raise if the measure cannot be computed for this setting."""
        if task_type not in self.task_types:
            raise ValueError(f"Measure '{self.id}' does not support task type '{task_type}'")
        if self.requires_prob and predict_type != "prob":
            raise ValueError(
                f"Measure '{self.id}' requires predict_type 'prob', learner predicts '{predict_type}'"
            )

    def evaluate(
        self,
        pred: Optional[Prediction],
        model: Optional[WrappedModel] = None,
        task: Optional[Task] = None,
    ) -> float:
        """
        Compute the measure.

        Returns NaN when there is nothing to score or when the prediction
        contains missing values, e.g. from a failed model.
        """
        if pred is not None:
            if len(pred) == 0 or pred.has_missing:
                return float("nan")
            if self.requires_truth and pred.truth is None:
                raise ValueError(f"Measure '{self.id}' needs the true target values")
        return float(self.fun(pred, model, task))

    def __repr__(self) -> str:
        direction = "minimize" if self.minimize else "maximize"
        return f"Measure({self.id}, {direction}, aggr={self.aggr.id})"


# -- measure functions ---------------------------------------------------------


def _truth(pred: Prediction) -> np.ndarray:
    return np.asarray(pred.truth, dtype=object if pred.task_desc.type == "classif" else float)


def _response(pred: Prediction) -> np.ndarray:
    return np.asarray(pred.response, dtype=object if pred.task_desc.type == "classif" else float)


def _mmce(pred, model, task) -> float:
    return float(np.mean(_truth(pred) != _response(pred)))


def _acc(pred, model, task) -> float:
    return float(np.mean(_truth(pred) == _response(pred)))


def _ber(pred, model, task) -> float:
    truth, response = _truth(pred), _response(pred)
    errors = [np.mean(response[truth == level] != level) for level in np.unique(truth)]
    return float(np.mean(errors))


def _auc(pred, model, task) -> float:
    truth = _truth(pred)
    levels = list(pred.task_desc.class_levels)
    if len(np.unique(truth)) < 2:
        return float("nan")
    prob = pred.prob
    if len(levels) == 2:
        positive = pred.task_desc.positive
        return float(metrics.roc_auc_score(truth == positive, prob[positive]))
    present = [lev for lev in levels if lev in set(truth)]
    if len(present) < len(levels):
        return float("nan")
    return float(metrics.roc_auc_score(truth, prob[levels].to_numpy(), multi_class="ovr", labels=levels))


def _logloss(pred, model, task) -> float:
    levels = list(pred.task_desc.class_levels)
    return float(metrics.log_loss(_truth(pred), pred.prob[levels].to_numpy(), labels=levels))


def _f1(pred, model, task) -> float:
    positive = pred.task_desc.positive
    if positive is None:
        raise ValueError("Measure 'f1' requires a two-class task")
    truth, response = _truth(pred), _response(pred)
    return float(metrics.f1_score(truth == positive, response == positive, zero_division=0.0))


def _mse(pred, model, task) -> float:
    return float(metrics.mean_squared_error(_truth(pred), _response(pred)))


def _rmse(pred, model, task) -> float:
    return float(np.sqrt(_mse(pred, model, task)))


def _mae(pred, model, task) -> float:
    return float(metrics.mean_absolute_error(_truth(pred), _response(pred)))


def _rsq(pred, model, task) -> float:
    return float(metrics.r2_score(_truth(pred), _response(pred)))


def _db(pred, model, task) -> float:
    if task is None or model is None:
        raise ValueError("Measure 'db' needs the task and the fitted model")
    labels = np.asarray(pred.response)
    if len(np.unique(labels)) < 2:
        return float("nan")
    X, _ = task.get_data(pred.ids, features=model.features, target_extra=True)
    X = encode_features(X)
    return float(metrics.davies_bouldin_score(X, labels))


def _timetrain(pred, model, task) -> float:
    if model is None:
        raise ValueError("Measure 'timetrain' needs the fitted model")
    return float(model.time)


_CLASSIF = frozenset({"classif"})
_REGR = frozenset({"regr"})
_ALL = frozenset({"classif", "regr", "cluster"})

mmce = Measure("mmce", _mmce, task_types=_CLASSIF, name="Mean misclassification error")
acc = Measure("acc", _acc, minimize=False, task_types=_CLASSIF, name="Accuracy")
ber = Measure("ber", _ber, task_types=_CLASSIF, name="Balanced error rate")
auc = Measure("auc", _auc, minimize=False, task_types=_CLASSIF, requires_prob=True, name="Area under the curve")
logloss = Measure("logloss", _logloss, task_types=_CLASSIF, requires_prob=True, name="Logarithmic loss")
f1 = Measure("f1", _f1, minimize=False, task_types=_CLASSIF, name="F1 score")
mse = Measure("mse", _mse, task_types=_REGR, name="Mean squared error")
rmse = Measure("rmse", _rmse, task_types=_REGR, name="Root mean squared error")
mae = Measure("mae", _mae, task_types=_REGR, name="Mean absolute error")
rsq = Measure("rsq", _rsq, minimize=False, task_types=_REGR, name="Coefficient of determination")
db = Measure("db", _db, task_types=frozenset({"cluster"}), requires_truth=False, name="Davies-Bouldin index")
timetrain = Measure("timetrain", _timetrain, task_types=_ALL, requires_truth=False, name="Time of fitting the model")

MEASURES: Dict[str, Measure] = {
    m.id: m for m in (mmce, acc, ber, auc, logloss, f1, mse, rmse, mae, rsq, db, timetrain)
}

_DEFAULTS = {"classif": mmce, "regr": mse, "cluster": db}


def get_measure(id: str) -> Measure:
    """Look up a built-in measure by id."""
    if id not in MEASURES:
        raise ValueError(f"Unknown measure '{id}'. Available: {', '.join(MEASURES)}")
    return MEASURES[id]


def default_measure(task_type: str) -> Measure:
    """Default measure for a task type."""
    if task_type not in _DEFAULTS:
        raise ValueError(f"No default measure for task type '{task_type}'")
    return _DEFAULTS[task_type]


def check_measures(
    measures: Union[None, str, Measure, Sequence[Union[str, Measure]]],
    task_type: str,
    predict_type: str = "response",
) -> List[Measure]:
    """
    Normalise a measure argument to a checked list.

    Args:
        measures: None (default measure), a measure, an id, or a list of them.
        task_type: Type of the task being evaluated.
        predict_type: Predict type of the learner.

    Returns:
        List of measures, the first being the one that is optimised.
    """
    if measures is None:
        measures = [default_measure(task_type)]
    elif isinstance(measures, (str, Measure)):
        measures = [measures]
    result = [get_measure(m) if isinstance(m, str) else m for m in measures]
    if not result:
        raise ValueError("At least one measure is required")
    ids = [m.id for m in result]
    if len(set(ids)) != len(ids):
        raise ValueError(f"Measure ids must be unique, got {ids}")
    for m in result:
        m.check(task_type, predict_type)
    return result
