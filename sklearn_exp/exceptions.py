"""Exceptions raised by sklearn-exp."""

from __future__ import annotations


class TaskError(ValueError):
    """Base class for errors raised while constructing a task."""


class DataShapeError(TaskError):
    """Data layout is inconsistent (column names, lengths, missing columns)."""


class DataContentError(TaskError):
    """Data values or column types are not usable for learning."""


class TaskIdError(TaskError):
    """No task id was given and none could be inferred."""


class LearnerError(RuntimeError):
    """
    A learner failed during training or prediction.

    Only raised when the configured ``on_learner_error`` policy is ``"stop"``.

    Attributes:
        learner_id: Id of the failing learner.
        stage: Either ``"train"`` or ``"predict"``.
    """

    def __init__(self, message: str, learner_id: str = "", stage: str = "train") -> None:
        super().__init__(message)
        self.learner_id = learner_id
        self.stage = stage
