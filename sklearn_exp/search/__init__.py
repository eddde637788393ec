"""Search space and hyperparameter optimization components."""

from sklearn_exp.search.space import SearchSpace
from sklearn_exp.search.parameter import (
    SearchParameter,
    FloatParameter,
    IntParameter,
    CategoricalParameter,
    BoolParameter,
    ConditionalParameter,
)

__all__ = [
    "SearchSpace",
    "SearchParameter",
    "FloatParameter",
    "IntParameter",
    "CategoricalParameter",
    "BoolParameter",
    "ConditionalParameter",
]
