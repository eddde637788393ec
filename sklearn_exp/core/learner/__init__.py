"""Learners wrapping scikit-learn estimators."""

from sklearn_exp.core.learner.learner import FailureModel, Learner, WrappedModel, encode_features
from sklearn_exp.core.learner.prediction import Prediction
from sklearn_exp.core.learner.registry import (
    LearnerRegistry,
    LearnerSpec,
    get_default_registry,
    list_learners,
    make_learner,
)

__all__ = [
    "Learner",
    "WrappedModel",
    "FailureModel",
    "Prediction",
    "encode_features",
    "LearnerRegistry",
    "LearnerSpec",
    "get_default_registry",
    "list_learners",
    "make_learner",
]
