"""LearnerRegistry: Named learners backed by scikit-learn estimators."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Type

from sklearn.cluster import KMeans
from sklearn.discriminant_analysis import (
    LinearDiscriminantAnalysis,
    QuadraticDiscriminantAnalysis,
)
from sklearn.dummy import DummyClassifier, DummyRegressor
from sklearn.ensemble import RandomForestClassifier, RandomForestRegressor
from sklearn.linear_model import LinearRegression, LogisticRegression
from sklearn.naive_bayes import GaussianNB
from sklearn.neighbors import KNeighborsClassifier, KNeighborsRegressor
from sklearn.svm import SVC, SVR
from sklearn.tree import DecisionTreeClassifier, DecisionTreeRegressor

from sklearn_exp.core.learner.learner import Learner
from sklearn_exp.core.learner.mock import FailingClassifier, FailingRegressor

logger = logging.getLogger(__name__)

_CLASSIF = frozenset({"numerics", "factors", "twoclass", "multiclass"})
_REGR = frozenset({"numerics", "factors"})


@dataclass(frozen=True)
class LearnerSpec:
    """
    Registration entry for a named learner.

    Attributes:
        estimator: sklearn estimator class.
        properties: Capabilities of the learner.
        defaults: Hyperparameters applied unless overridden.
        prob_params: Extra hyperparameters needed for probability predictions.
        name: Human-readable name.
    """

    estimator: Type
    properties: FrozenSet[str]
    defaults: Dict[str, Any] = field(default_factory=dict)
    prob_params: Dict[str, Any] = field(default_factory=dict)
    name: str = ""


class LearnerRegistry:
    """Registry mapping learner ids such as "classif.rpart" to estimators."""

    def __init__(self) -> None:
        self._specs: Dict[str, LearnerSpec] = {}

    def register(self, id: str, spec: LearnerSpec) -> None:
        """Register a learner under an id."""
        if id in self._specs:
            raise ValueError(f"Learner '{id}' is already registered")
        self._specs[id] = spec

    def unregister(self, id: str) -> Optional[LearnerSpec]:
        """Remove a learner; returns its spec or None."""
        return self._specs.pop(id, None)

    def get(self, id: str) -> Optional[LearnerSpec]:
        return self._specs.get(id)

    def make(self, id: str, predict_type: str = "response", **params: Any) -> Learner:
        """
        Create a learner from its id.

        Args:
            id: Registered learner id.
            predict_type: "response" or "prob".
            **params: Hyperparameters for the estimator.

        Returns:
            A new Learner.
        """
        spec = self._specs.get(id)
        if spec is None:
            raise ValueError(f"Unknown learner '{id}'. Available: {', '.join(self.ids())}")
        all_params = dict(spec.defaults)
        if predict_type == "prob":
            all_params.update(spec.prob_params)
        all_params.update(params)
        return Learner(
            id=id,
            estimator=spec.estimator,
            predict_type=predict_type,
            properties=spec.properties,
            params=all_params,
            name=spec.name or spec.estimator.__name__,
        )

    def ids(self, type: Optional[str] = None) -> List[str]:
        """Registered ids, optionally restricted to a learner type."""
        return sorted(i for i in self._specs if type is None or i.split(".", 1)[0] == type)

    def __len__(self) -> int:
        return len(self._specs)

    def __contains__(self, id: str) -> bool:
        return id in self._specs

    def __repr__(self) -> str:
        return f"LearnerRegistry(learners={self.ids()})"


_default_registry: Optional[LearnerRegistry] = None


def get_default_registry() -> LearnerRegistry:
    """Get the default global learner registry."""
    global _default_registry
    if _default_registry is None:
        _default_registry = LearnerRegistry()
        _register_default_learners(_default_registry)
    return _default_registry


def make_learner(id: str, predict_type: str = "response", **params: Any) -> Learner:
    """Create a learner from the default registry, e.g. ``make_learner("classif.rpart")``."""
    return get_default_registry().make(id, predict_type=predict_type, **params)


def list_learners(type: Optional[str] = None) -> List[str]:
    """Ids of all learners in the default registry."""
    return get_default_registry().ids(type)


def _register_default_learners(registry: LearnerRegistry) -> None:
    prob = _CLASSIF | {"prob"}
    weighted_prob = prob | {"weights"}

    registry.register("classif.rpart", LearnerSpec(DecisionTreeClassifier, weighted_prob, name="Decision Tree"))
    registry.register("classif.lda", LearnerSpec(LinearDiscriminantAnalysis, prob, name="Linear Discriminant Analysis"))
    registry.register("classif.qda", LearnerSpec(QuadraticDiscriminantAnalysis, prob, name="Quadratic Discriminant Analysis"))
    registry.register(
        "classif.logreg",
        LearnerSpec(LogisticRegression, weighted_prob, defaults={"max_iter": 1000}, name="Logistic Regression"),
    )
    registry.register(
        "classif.randomForest",
        LearnerSpec(RandomForestClassifier, weighted_prob, defaults={"n_estimators": 100}, name="Random Forest"),
    )
    registry.register(
        "classif.ksvm",
        LearnerSpec(SVC, weighted_prob, prob_params={"probability": True}, name="Support Vector Machine"),
    )
    registry.register("classif.kknn", LearnerSpec(KNeighborsClassifier, prob, name="k-Nearest Neighbours"))
    registry.register("classif.naiveBayes", LearnerSpec(GaussianNB, weighted_prob, name="Naive Bayes"))
    registry.register(
        "classif.featureless",
        LearnerSpec(DummyClassifier, weighted_prob, defaults={"strategy": "prior"}, name="Featureless"),
    )
    registry.register("classif.mock_fail", LearnerSpec(FailingClassifier, weighted_prob, name="Failing mock"))

    regr_weighted = _REGR | {"weights"}
    registry.register("regr.lm", LearnerSpec(LinearRegression, regr_weighted, name="Linear Regression"))
    registry.register("regr.rpart", LearnerSpec(DecisionTreeRegressor, regr_weighted, name="Decision Tree"))
    registry.register(
        "regr.randomForest",
        LearnerSpec(RandomForestRegressor, regr_weighted, defaults={"n_estimators": 100}, name="Random Forest"),
    )
    registry.register("regr.ksvm", LearnerSpec(SVR, regr_weighted, name="Support Vector Regression"))
    registry.register("regr.kknn", LearnerSpec(KNeighborsRegressor, _REGR, name="k-Nearest Neighbours"))
    registry.register("regr.featureless", LearnerSpec(DummyRegressor, regr_weighted, name="Featureless"))
    registry.register("regr.mock_fail", LearnerSpec(FailingRegressor, regr_weighted, name="Failing mock"))

    registry.register(
        "cluster.kmeans",
        LearnerSpec(KMeans, frozenset({"numerics", "factors", "weights"}), defaults={"n_init": 10}, name="k-Means"),
    )
    logger.debug(f"Registered {len(registry)} default learners")
