"""Hyperparameter tuning."""

from sklearn_exp.core.tuning.control import (
    TuneControl,
    TuneControlGrid,
    TuneControlOptuna,
    TuneControlRandom,
)
from sklearn_exp.core.tuning.opt_path import OptPath, OptPathEntry
from sklearn_exp.core.tuning.tune import TuneResult, tune_params
from sklearn_exp.core.tuning.wrapper import TunedEstimator, TuneWrapper, get_tune_results

__all__ = [
    "TuneControl",
    "TuneControlGrid",
    "TuneControlOptuna",
    "TuneControlRandom",
    "OptPath",
    "OptPathEntry",
    "TuneResult",
    "tune_params",
    "TunedEstimator",
    "TuneWrapper",
    "get_tune_results",
]
