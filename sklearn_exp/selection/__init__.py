"""Wrapper feature selection."""

from sklearn_exp.selection.control import (
    FeatSelControl,
    FeatSelControlExhaustive,
    FeatSelControlRandom,
    FeatSelControlSequential,
)
from sklearn_exp.selection.selector import FeatSelResult, select_features

__all__ = [
    "FeatSelControl",
    "FeatSelControlExhaustive",
    "FeatSelControlRandom",
    "FeatSelControlSequential",
    "FeatSelResult",
    "select_features",
]
