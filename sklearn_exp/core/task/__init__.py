"""Task types."""

from sklearn_exp.core.task.base import Task, TaskDesc, guess_task_id
from sklearn_exp.core.task.cluster import ClusterTask
from sklearn_exp.core.task.supervised import ClassifTask, CostSensTask, RegrTask, SurvTask

__all__ = [
    "Task",
    "TaskDesc",
    "ClassifTask",
    "RegrTask",
    "SurvTask",
    "CostSensTask",
    "ClusterTask",
    "guess_task_id",
]
