"""Mock estimators that fail on request, for exercising error handling."""

from __future__ import annotations

import numpy as np
from sklearn.base import BaseEstimator, ClassifierMixin, RegressorMixin


class FailingClassifier(ClassifierMixin, BaseEstimator):
    """
    Majority-class classifier that can be told to fail.

    Args:
        fail_train: Raise in ``fit``.
        fail_predict: Raise in ``predict`` and ``predict_proba``.
    """

    def __init__(self, fail_train: bool = True, fail_predict: bool = False) -> None:
        self.fail_train = fail_train
        self.fail_predict = fail_predict

    def fit(self, X, y, sample_weight=None):
        if self.fail_train:
            raise RuntimeError("mock learner failure during training")
        self.classes_, counts = np.unique(np.asarray(y), return_counts=True)
        self.majority_ = self.classes_[np.argmax(counts)]
        self.prior_ = counts / counts.sum()
        return self

    def predict(self, X):
        if self.fail_predict:
            raise RuntimeError("mock learner failure during prediction")
        return np.full(len(X), self.majority_, dtype=object)

    def predict_proba(self, X):
        if self.fail_predict:
            raise RuntimeError("mock learner failure during prediction")
        return np.tile(self.prior_, (len(X), 1))


class FailingRegressor(RegressorMixin, BaseEstimator):
    """Mean regressor that can be told to fail."""

    def __init__(self, fail_train: bool = True, fail_predict: bool = False) -> None:
        self.fail_train = fail_train
        self.fail_predict = fail_predict

    def fit(self, X, y, sample_weight=None):
        if self.fail_train:
            raise RuntimeError("mock learner failure during training")
        self.mean_ = float(np.average(np.asarray(y, dtype=float), weights=sample_weight))
        return self

    def predict(self, X):
        if self.fail_predict:
            raise RuntimeError("mock learner failure during prediction")
        return np.full(len(X), self.mean_)
