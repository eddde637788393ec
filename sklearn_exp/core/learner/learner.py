"""Learner: Train/predict wrapper around sklearn-compatible estimators."""

from __future__ import annotations

import copy
import logging
import time
import warnings
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Optional, Tuple, TYPE_CHECKING

import numpy as np
import pandas as pd
from sklearn.base import clone
from sklearn.utils.validation import has_fit_parameter

from sklearn_exp.config import ExperimentConfig, get_config
from sklearn_exp.core.learner.prediction import Prediction
from sklearn_exp.core.task.base import TaskDesc
from sklearn_exp.exceptions import LearnerError

if TYPE_CHECKING:
    from sklearn_exp.core.task.base import Task

logger = logging.getLogger(__name__)

LEARNER_TYPES = ("classif", "regr", "cluster")
PREDICT_TYPES = ("response", "prob")


def encode_features(X: pd.DataFrame) -> pd.DataFrame:
    """One-hot encode categorical columns against their declared categories."""
    categorical = [c for c in X.columns if isinstance(X[c].dtype, pd.CategoricalDtype)]
    if not categorical:
        return X
    return pd.get_dummies(X, columns=categorical, dtype=float)


@dataclass
class WrappedModel:
    """
    A learner fitted on (a subset of) a task.

    Attributes:
        learner: The learner that produced this model.
        learner_model: The fitted estimator.
        task_desc: Description of the training task.
        subset: Training positions.
        features: Feature names used for training.
        time: Training time in seconds.
    """

    learner: Learner
    learner_model: Any
    task_desc: TaskDesc
    subset: np.ndarray
    features: List[str]
    time: float = 0.0

    @property
    def is_failure(self) -> bool:
        """Whether training failed."""
        return False

    def predict(self, task: Optional[Task] = None, subset=None, newdata=None, config=None) -> Prediction:
        """Shortcut for ``self.learner.predict(self, ...)``."""
        return self.learner.predict(self, task=task, subset=subset, newdata=newdata, config=config)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(learner={self.learner.id}, task={self.task_desc.id}, "
            f"n_train={len(self.subset)}, time={self.time:.2f}s)"
        )


@dataclass(repr=False)
class FailureModel(WrappedModel):
    """Placeholder model for a learner that failed to train. Predicts missing values."""

    err_msg: str = ""

    @property
    def is_failure(self) -> bool:
        return True


class Learner:
    """
    Pluggable model-fitting strategy around an sklearn estimator.

    Learners are immutable: ``set_params`` and ``set_predict_type`` return
    new learners.

    Example:
        lrn = Learner("classif.rpart", DecisionTreeClassifier, params={"max_depth": 3})
        model = lrn.train(task, subset=train_inds)
        pred = lrn.predict(model, task=task, subset=test_inds)
    """

    def __init__(
        self,
        id: str,
        estimator: Any,
        type: Optional[str] = None,
        predict_type: str = "response",
        properties: Optional[Iterable[str]] = None,
        params: Optional[Dict[str, Any]] = None,
        name: Optional[str] = None,
    ) -> None:
        """
        Initialize a learner.

        Args:
            id: Learner id, conventionally "<type>.<name>".
            estimator: sklearn estimator class or (unfitted) instance.
            type: "classif", "regr" or "cluster". Taken from the id prefix if omitted.
            predict_type: "response" or "prob".
            properties: Capabilities, e.g. "prob", "weights", "missings",
                "twoclass", "multiclass".
            params: Hyperparameters passed to the estimator.
            name: Human-readable name.
        """
        if type is None:
            type = id.split(".", 1)[0]
        if type not in LEARNER_TYPES:
            raise ValueError(f"Learner type must be one of {LEARNER_TYPES}, got {type!r}")
        self.id = id
        self.estimator = estimator
        self.type = type
        self.name = name or id
        self.properties: FrozenSet[str] = frozenset(
            properties if properties is not None else _default_properties(type)
        )
        self._params: Dict[str, Any] = dict(params or {})
        self.predict_type = self._check_predict_type(predict_type)

    def _check_predict_type(self, predict_type: str) -> str:
        if predict_type not in PREDICT_TYPES:
            raise ValueError(f"predict_type must be one of {PREDICT_TYPES}, got {predict_type!r}")
        if predict_type == "prob" and "prob" not in self.properties:
            raise ValueError(f"Learner '{self.id}' does not support probability predictions")
        return predict_type

    # -- hyperparameters ------------------------------------------------------

    @property
    def params(self) -> Dict[str, Any]:
        """Hyperparameters set on this learner."""
        return dict(self._params)

    def declared_params(self) -> List[str]:
        """Hyperparameter names the estimator declares."""
        if isinstance(self.estimator, type):
            return sorted(self.estimator._get_param_names())
        return sorted(self.estimator.get_params(deep=False))

    def set_params(self, **params: Any) -> Learner:
        """Return a copy with updated hyperparameters."""
        return self.with_params(params, get_config())

    def with_params(self, params: Dict[str, Any], config: ExperimentConfig) -> Learner:
        """Return a copy with updated hyperparameters, checked against ``config``."""
        unknown = sorted(set(params) - set(self.declared_params()))
        if unknown:
            msg = f"Learner '{self.id}' has no hyperparameter(s): {', '.join(unknown)}"
            if config.on_par_without_desc == "stop":
                raise ValueError(msg)
            if config.on_par_without_desc == "warn":
                warnings.warn(msg, UserWarning, stacklevel=3)
        new = copy.copy(self)
        new._params = {**self._params, **params}
        return new

    def set_predict_type(self, predict_type: str) -> Learner:
        """Return a copy with another predict type."""
        new = copy.copy(self)
        new.predict_type = new._check_predict_type(predict_type)
        return new

    def create_estimator(self, params: Optional[Dict[str, Any]] = None) -> Any:
        """Instantiate an unfitted estimator with the learner's hyperparameters."""
        all_params = {**self._params, **(params or {})}
        if isinstance(self.estimator, type):
            return self.estimator(**all_params)
        estimator = clone(self.estimator)
        if all_params:
            estimator.set_params(**all_params)
        return estimator

    # -- train / predict ------------------------------------------------------

    def check_task(self, task: Task) -> None:
        """Raise if the learner cannot handle the task."""
        td = task.task_desc
        if td.type != self.type:
            raise ValueError(
                f"Task '{td.id}' is of type '{td.type}' but learner '{self.id}' is for '{self.type}'"
            )
        if td.has_missings and "missings" not in self.properties:
            raise ValueError(
                f"Task '{td.id}' has missing values and learner '{self.id}' does not support that"
            )
        if self.type == "classif":
            n_classes = len(td.class_levels)
            if n_classes > 2 and "multiclass" not in self.properties:
                raise ValueError(
                    f"Task '{td.id}' is a multiclass problem and learner '{self.id}' does not support that"
                )
            if n_classes == 2 and "twoclass" not in self.properties:
                raise ValueError(
                    f"Task '{td.id}' is a two-class problem and learner '{self.id}' does not support that"
                )

    def train(self, task: Task, subset=None, config: Optional[ExperimentConfig] = None) -> WrappedModel:
        """
        Fit the learner on a task.

        Args:
            task: Training task.
            subset: Training positions or boolean mask. Default: all rows.
            config: Options for error handling. Default: the active config.

        Returns:
            A WrappedModel, or a FailureModel if fitting failed and the
            ``on_learner_error`` policy is "warn" or "quiet".
        """
        config = config or get_config()
        self.check_task(task)
        idx = task.get_positions(subset)
        features = task.feature_names

        start = time.time()
        try:
            with _learner_warnings(config):
                fitted = self._train_model(task, idx, config)
        except Exception as exc:
            msg = f"Could not train learner {self.id}: {exc}"
            self._handle_error(msg, config, "train", exc)
            return FailureModel(
                learner=self,
                learner_model=None,
                task_desc=task.task_desc,
                subset=idx,
                features=features,
                time=time.time() - start,
                err_msg=msg,
            )

        return WrappedModel(
            learner=self,
            learner_model=fitted,
            task_desc=task.task_desc,
            subset=idx,
            features=features,
            time=time.time() - start,
        )

    def _train_model(self, task: Task, idx: np.ndarray, config: ExperimentConfig) -> Any:
        X, y = task.get_data(idx, target_extra=True)
        estimator = self.create_estimator()

        fit_params: Dict[str, Any] = {}
        weights = task.get_weights(idx)
        if weights is not None:
            if "weights" in self.properties and has_fit_parameter(estimator, "sample_weight"):
                fit_params["sample_weight"] = weights
            else:
                warnings.warn(
                    f"Learner '{self.id}' does not support case weights; ignoring them",
                    UserWarning,
                    stacklevel=3,
                )

        X = encode_features(X)
        if self.type == "cluster":
            estimator.fit(X, **fit_params)
        else:
            estimator.fit(X, np.asarray(y), **fit_params)
        return estimator

    def predict(
        self,
        model: WrappedModel,
        task: Optional[Task] = None,
        subset=None,
        newdata: Optional[pd.DataFrame] = None,
        config: Optional[ExperimentConfig] = None,
    ) -> Prediction:
        """
        Predict with a fitted model.

        Pass either a task (optionally with a subset) or new data with the
        training features.
        """
        config = config or get_config()
        if (task is None) == (newdata is None):
            raise ValueError("Pass exactly one of task or newdata")

        if task is not None:
            idx = task.get_positions(subset)
            X, _ = task.get_data(idx, features=model.features, target_extra=True)
            truth = task.get_targets(idx) if len(task.target) == 1 else None
        else:
            missing = [f for f in model.features if f not in newdata.columns]
            if missing:
                raise ValueError(f"newdata is missing features: {missing}")
            X = newdata[model.features]
            idx = np.arange(len(newdata))
            truth = None

        start = time.time()
        err_msg = None
        if model.is_failure:
            response, prob = self._missing_prediction(len(idx), model.task_desc)
        else:
            try:
                with _learner_warnings(config):
                    response, prob = self._predict_model(model.learner_model, X)
            except Exception as exc:
                err_msg = f"Could not predict with learner {self.id}: {exc}"
                self._handle_error(err_msg, config, "predict", exc)
                response, prob = self._missing_prediction(len(idx), model.task_desc)

        return Prediction.build(
            task_desc=model.task_desc,
            ids=idx,
            truth=truth,
            response=response,
            prob=prob,
            predict_type=self.predict_type,
            time=time.time() - start,
            err_msg=err_msg,
        )

    def _predict_model(self, fitted: Any, X: pd.DataFrame) -> Tuple[Any, Optional[pd.DataFrame]]:
        X = encode_features(X)
        if self.predict_type == "prob":
            proba = fitted.predict_proba(X)
            prob = pd.DataFrame(proba, columns=list(fitted.classes_))
            response = np.asarray(prob.columns, dtype=object)[np.argmax(proba, axis=1)]
            return response, prob
        return fitted.predict(X), None

    def _missing_prediction(self, n: int, task_desc: TaskDesc) -> Tuple[Any, Optional[pd.DataFrame]]:
        response = np.full(n, np.nan, dtype=object if self.type == "classif" else float)
        prob = None
        if self.predict_type == "prob":
            prob = pd.DataFrame(np.nan, index=range(n), columns=list(task_desc.class_levels))
        return response, prob

    def _handle_error(self, msg: str, config: ExperimentConfig, stage: str, exc: Exception) -> None:
        if config.on_learner_error == "stop":
            raise LearnerError(msg, learner_id=self.id, stage=stage) from exc
        logger.debug(msg, exc_info=True)
        if config.on_learner_error == "warn":
            warnings.warn(msg, UserWarning, stacklevel=3)

    def __repr__(self) -> str:
        params = ", ".join(f"{k}={v!r}" for k, v in self._params.items())
        return f"Learner({self.id}, predict_type={self.predict_type}, params=[{params}])"


def _default_properties(type: str) -> FrozenSet[str]:
    if type == "classif":
        return frozenset({"numerics", "factors", "twoclass", "multiclass"})
    return frozenset({"numerics", "factors"})


@contextmanager
def _learner_warnings(config: ExperimentConfig) -> Iterator[None]:
    if config.on_learner_warning == "quiet":
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            yield
    else:
        yield
