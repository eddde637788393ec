"""Search backend implementations."""

from sklearn_exp.search.backends.base import SearchBackend
from sklearn_exp.search.backends.grid import GridBackend
from sklearn_exp.search.backends.optuna import OptunaBackend

__all__ = ["SearchBackend", "GridBackend", "OptunaBackend"]
