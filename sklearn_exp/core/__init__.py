"""Core components: tasks, learners, measures, resampling and tuning."""

from sklearn_exp.core.data import ResampleDesc, ResampleInstance, ResampleMethod, make_resample_instance
from sklearn_exp.core.evaluation import ResampleResult, resample
from sklearn_exp.core.learner import Learner, Prediction, WrappedModel, make_learner
from sklearn_exp.core.measures import Measure, default_measure, get_measure
from sklearn_exp.core.task import ClassifTask, ClusterTask, CostSensTask, RegrTask, SurvTask, Task
from sklearn_exp.core.tuning import TuneResult, TuneWrapper, tune_params

__all__ = [
    "ResampleDesc",
    "ResampleInstance",
    "ResampleMethod",
    "make_resample_instance",
    "ResampleResult",
    "resample",
    "Learner",
    "Prediction",
    "WrappedModel",
    "make_learner",
    "Measure",
    "default_measure",
    "get_measure",
    "Task",
    "ClassifTask",
    "ClusterTask",
    "CostSensTask",
    "RegrTask",
    "SurvTask",
    "TuneResult",
    "TuneWrapper",
    "tune_params",
]
