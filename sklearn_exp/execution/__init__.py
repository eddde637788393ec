"""Execution backends for parallel dispatch of experiment iterations."""

from sklearn_exp.execution.base import Executor, in_worker
from sklearn_exp.execution.local import LocalExecutor, SequentialExecutor
from sklearn_exp.execution.parallel import (
    PARALLEL_LEVELS,
    ParallelOptions,
    get_executor,
    parallel_get_options,
    parallel_map,
    parallel_session,
    parallel_start,
    parallel_stop,
)

__all__ = [
    "Executor",
    "LocalExecutor",
    "SequentialExecutor",
    "in_worker",
    "PARALLEL_LEVELS",
    "ParallelOptions",
    "get_executor",
    "parallel_get_options",
    "parallel_map",
    "parallel_session",
    "parallel_start",
    "parallel_stop",
]
