"""LocalExecutor: Local execution backend using joblib."""

from __future__ import annotations

import logging
import os
from typing import Callable, List, Optional, TypeVar

from joblib import Parallel, delayed

from sklearn_exp.config import ExperimentConfig
from sklearn_exp.execution.base import Executor, call_with_config, run_in_worker

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class LocalExecutor(Executor):
    """
    Local execution backend.

    Uses joblib for parallel execution. Any backend registered with joblib can
    be named, including "loky", "multiprocessing", "threading" and backends
    registered by third-party packages (e.g. "dask", "ray").
    """

    def __init__(
        self,
        n_workers: int = 1,
        backend: str = "loky",
    ) -> None:
        """
        Initialize the local executor.

        Args:
            n_workers: Number of parallel workers.
                      Use -1 for all CPUs, 0 for sequential execution.
            backend: joblib backend name.
        """
        if n_workers == -1:
            n_workers = os.cpu_count() or 1
        elif n_workers == 0:
            n_workers = 1
        elif n_workers < -1:
            raise ValueError(f"n_workers must be >= -1, got {n_workers}")

        self._n_workers = n_workers
        self._backend = backend

    @property
    def n_workers(self) -> int:
        """Number of workers."""
        return self._n_workers

    @property
    def backend(self) -> str:
        """joblib backend name."""
        return self._backend

    def map(
        self,
        fn: Callable[[T, ExperimentConfig], R],
        items: List[T],
        config: Optional[ExperimentConfig] = None,
    ) -> List[R]:
        """
        Apply a function to a list of items in parallel.

        Args:
            fn: Function called as ``fn(item, config)``.
            items: Items to process.
            config: Options handed to every call. Default: the active config.

        Returns:
            List of results.
        """
        if not items:
            return []
        config = self._resolve_config(config)

        if self._n_workers == 1 or len(items) == 1:
            return [run_in_worker(fn, item, config) for item in items]

        logger.debug(
            f"Dispatching {len(items)} items to {self._n_workers} workers ({self._backend})"
        )
        results = Parallel(n_jobs=self._n_workers, backend=self._backend)(
            delayed(run_in_worker)(fn, item, config) for item in items
        )
        return list(results)

    def __repr__(self) -> str:
        return f"LocalExecutor(n_workers={self._n_workers}, backend={self._backend})"


class SequentialExecutor(Executor):
    """
    Sequential (non-parallel) executor.

    Useful for debugging or when parallelism is not needed.
    """

    def map(
        self,
        fn: Callable[[T, ExperimentConfig], R],
        items: List[T],
        config: Optional[ExperimentConfig] = None,
    ) -> List[R]:
        """Apply function sequentially."""
        config = self._resolve_config(config)
        return [call_with_config(fn, item, config) for item in items]

    def __repr__(self) -> str:
        return "SequentialExecutor()"
