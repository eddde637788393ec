"""Executor: Abstract base class for execution backends."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, TypeVar

from sklearn_exp.config import ExperimentConfig, config_context, get_config

T = TypeVar("T")
R = TypeVar("R")

_worker_state = threading.local()


def in_worker() -> bool:
    """Whether the current thread is executing a work item dispatched in parallel."""
    return getattr(_worker_state, "active", False)


def call_with_config(fn: Callable[[T, ExperimentConfig], R], item: T, config: ExperimentConfig) -> R:
    """Call ``fn(item, config)`` with ``config`` installed as the active options."""
    with config_context(**config.to_dict()):
        return fn(item, config)


def run_in_worker(fn: Callable[[T, ExperimentConfig], R], item: T, config: ExperimentConfig) -> R:
    """
    Worker entry point for parallel dispatch.

    Installs ``config`` for the duration of the call and marks the thread as a
    worker, so nested drivers run their own iterations sequentially.

    Args:
        fn: Function called as ``fn(item, config)``.
        item: Work item.
        config: Options of the dispatching process.

    Returns:
        Result of ``fn``.
    """
    previous = in_worker()
    _worker_state.active = True
    try:
        return call_with_config(fn, item, config)
    finally:
        _worker_state.active = previous


class Executor(ABC):
    """
    Abstract base class for execution backends.

    Executors apply a function to a list of work items. Every call receives the
    configuration of the dispatching process explicitly, so that workers running
    in other processes observe the same error-handling options as the caller.
    """

    @abstractmethod
    def map(
        self,
        fn: Callable[[T, ExperimentConfig], R],
        items: List[T],
        config: Optional[ExperimentConfig] = None,
    ) -> List[R]:
        """
        Apply a function to a list of items.

        Args:
            fn: Function called as ``fn(item, config)``. Must be picklable for
                process-based executors.
            items: List of items to process.
            config: Options handed to every call. Default: the active config.

        Returns:
            List of results, in the order of ``items``.
        """
        pass

    def shutdown(self, wait: bool = True) -> None:
        """
        Shutdown the executor.

        Args:
            wait: Whether to wait for pending tasks to complete.
        """
        pass

    def __enter__(self) -> Executor:
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.shutdown(wait=True)

    @property
    def n_workers(self) -> int:
        """Number of workers available."""
        return 1

    @staticmethod
    def _resolve_config(config: Optional[ExperimentConfig]) -> ExperimentConfig:
        return config if config is not None else get_config()
