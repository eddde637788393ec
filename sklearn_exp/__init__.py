"""
sklearn-exp: Machine-learning experiments on scikit-learn

Tasks wrap a data frame and its target, learners wrap scikit-learn
estimators, and the resample, tune_params and select_features drivers run
learners over tasks, optionally dispatching their iterations to parallel
workers through joblib.
"""

from sklearn_exp.config import ExperimentConfig, config_context, configure, get_config, reset_config
from sklearn_exp.core.data.resample import ResampleDesc, ResampleInstance, ResampleMethod, make_resample_instance
from sklearn_exp.core.evaluation.resample import ResamplePrediction, ResampleResult, resample
from sklearn_exp.core.learner import FailureModel, Learner, Prediction, WrappedModel, list_learners, make_learner
from sklearn_exp.core.measures import Measure, default_measure, get_measure
from sklearn_exp.core.task import ClassifTask, ClusterTask, CostSensTask, RegrTask, SurvTask, Task, TaskDesc
from sklearn_exp.core.tuning import (
    OptPath,
    TuneControlGrid,
    TuneControlOptuna,
    TuneControlRandom,
    TuneResult,
    TuneWrapper,
    tune_params,
)
from sklearn_exp.exceptions import DataContentError, DataShapeError, LearnerError, TaskError, TaskIdError
from sklearn_exp.execution import (
    LocalExecutor,
    SequentialExecutor,
    parallel_get_options,
    parallel_map,
    parallel_session,
    parallel_start,
    parallel_stop,
)
from sklearn_exp.search.space import SearchSpace
from sklearn_exp.selection import (
    FeatSelControlExhaustive,
    FeatSelControlRandom,
    FeatSelControlSequential,
    FeatSelResult,
    select_features,
)

__version__ = "0.1.0"

__all__ = [
    # Config
    "ExperimentConfig",
    "config_context",
    "configure",
    "get_config",
    "reset_config",
    # Tasks
    "Task",
    "TaskDesc",
    "ClassifTask",
    "RegrTask",
    "ClusterTask",
    "SurvTask",
    "CostSensTask",
    # Learners and measures
    "Learner",
    "WrappedModel",
    "FailureModel",
    "Prediction",
    "make_learner",
    "list_learners",
    "Measure",
    "get_measure",
    "default_measure",
    # Resampling
    "ResampleDesc",
    "ResampleInstance",
    "ResampleMethod",
    "make_resample_instance",
    "ResamplePrediction",
    "ResampleResult",
    "resample",
    # Tuning
    "SearchSpace",
    "OptPath",
    "TuneControlGrid",
    "TuneControlRandom",
    "TuneControlOptuna",
    "TuneResult",
    "TuneWrapper",
    "tune_params",
    # Feature selection
    "FeatSelControlExhaustive",
    "FeatSelControlRandom",
    "FeatSelControlSequential",
    "FeatSelResult",
    "select_features",
    # Parallel
    "LocalExecutor",
    "SequentialExecutor",
    "parallel_start",
    "parallel_stop",
    "parallel_get_options",
    "parallel_map",
    "parallel_session",
    # Errors
    "TaskError",
    "DataShapeError",
    "DataContentError",
    "TaskIdError",
    "LearnerError",
]
