"""Parallel experiment dispatch: process-wide parallelization settings."""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, TypeVar

from sklearn_exp.config import ExperimentConfig
from sklearn_exp.execution.base import Executor, in_worker
from sklearn_exp.execution.local import LocalExecutor, SequentialExecutor

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

PARALLEL_LEVELS = ("resample", "tune", "featsel")

# mode -> joblib backend
_MODE_BACKENDS = {
    "local": None,
    "multicore": "multiprocessing",
    "socket": "loky",
    "threading": "threading",
    "cluster": None,
}


@dataclass(frozen=True)
class ParallelOptions:
    """
    Active parallelization settings.

    Attributes:
        mode: "local", "multicore", "socket", "threading" or "cluster".
        cpus: Number of workers.
        level: Driver level that is parallelised, or None for the outermost driver.
        backend: joblib backend used for dispatch.
        show_info: Whether start/stop and dispatch are logged at INFO level.
    """

    mode: str = "local"
    cpus: int = 1
    level: Optional[str] = None
    backend: Optional[str] = None
    show_info: bool = True

    @property
    def is_parallel(self) -> bool:
        return self.mode != "local"


_DEFAULT_OPTIONS = ParallelOptions()
_options = _DEFAULT_OPTIONS


def parallel_start(
    mode: str = "socket",
    cpus: Optional[int] = None,
    level: Optional[str] = None,
    backend: Optional[str] = None,
    show_info: bool = True,
) -> ParallelOptions:
    """
    Enable parallel dispatch for subsequent driver calls.

    Example:
        parallel_start("socket", cpus=2, level="resample")
        res = resample(learner, task, ResampleDesc("CV", iters=4))
        parallel_stop()

    Args:
        mode: "local" (sequential), "multicore" (forked worker processes),
            "socket" (loky worker processes), "threading" (threads) or
            "cluster" (any joblib backend registered under ``backend``,
            e.g. "dask" or "ray").
        cpus: Number of workers. Default: number of CPUs.
        level: Only parallelise this driver level ("resample", "tune",
            "featsel"). Default: the outermost driver that is called.
        backend: joblib backend name. Required for "cluster"; overrides the
            mode's default backend otherwise.
        show_info: Log dispatch information.

    Returns:
        The new options.
    """
    global _options
    if mode not in _MODE_BACKENDS:
        raise ValueError(f"mode must be one of {tuple(_MODE_BACKENDS)}, got {mode!r}")
    if level is not None and level not in PARALLEL_LEVELS:
        raise ValueError(f"level must be one of {PARALLEL_LEVELS}, got {level!r}")
    if mode == "cluster" and backend is None:
        raise ValueError("mode 'cluster' requires the name of a registered joblib backend")
    if cpus is not None and cpus < 1:
        raise ValueError(f"cpus must be >= 1, got {cpus}")
    if _options.is_parallel:
        logger.warning("Parallelization was not stopped, doing it now.")
        parallel_stop()

    if mode == "local":
        cpus = 1
    elif cpus is None:
        cpus = os.cpu_count() or 1

    _options = ParallelOptions(
        mode=mode,
        cpus=cpus,
        level=level,
        backend=backend or _MODE_BACKENDS[mode],
        show_info=show_info,
    )
    if show_info:
        level_info = f" with level {level}" if level else ""
        logger.info(f"Starting parallelization in mode={mode} with cpus={cpus}{level_info}.")
    return _options


def parallel_stop() -> None:
    """Disable parallel dispatch."""
    global _options
    if _options.is_parallel and _options.show_info:
        logger.info(f"Stopped parallelization. All cleaned up. (mode={_options.mode})")
    _options = _DEFAULT_OPTIONS


def parallel_get_options() -> ParallelOptions:
    """Currently active parallelization options."""
    return _options


@contextmanager
def parallel_session(
    mode: str = "socket",
    cpus: Optional[int] = None,
    level: Optional[str] = None,
    backend: Optional[str] = None,
    show_info: bool = True,
) -> Iterator[ParallelOptions]:
    """
    Run a block with parallel dispatch enabled.

    Example:
        with parallel_session("threading", cpus=2):
            res = resample(learner, task, rdesc)
    """
    options = parallel_start(mode=mode, cpus=cpus, level=level, backend=backend, show_info=show_info)
    try:
        yield options
    finally:
        parallel_stop()


def get_executor(level: Optional[str] = None) -> Executor:
    """
    Executor for a driver at the given level.

    Calls made inside a parallel worker always get a sequential executor. If
    a level was set with ``parallel_start``, only drivers of that level are
    parallelised; otherwise the outermost driver is.
    """
    if level is not None and level not in PARALLEL_LEVELS:
        raise ValueError(f"level must be one of {PARALLEL_LEVELS}, got {level!r}")
    options = _options
    if not options.is_parallel or in_worker():
        return SequentialExecutor()
    if options.level is not None and level is not None and options.level != level:
        return SequentialExecutor()
    return LocalExecutor(n_workers=options.cpus, backend=options.backend)


def parallel_map(
    fn: Callable[[T, ExperimentConfig], R],
    items: List[T],
    level: Optional[str] = None,
    config: Optional[ExperimentConfig] = None,
) -> List[R]:
    """
    Apply ``fn(item, config)`` to every item using the active parallel settings.

    Args:
        fn: Function to apply. Must be picklable for process-based modes.
        items: Work items.
        level: Driver level of the call.
        config: Options handed to every call. Default: the active config.

    Returns:
        Results in the order of ``items``.
    """
    executor = get_executor(level)
    if _options.show_info and isinstance(executor, LocalExecutor):
        logger.info(
            f"Mapping in parallel: mode = {_options.mode}; cpus = {executor.n_workers}; "
            f"elements = {len(items)}."
        )
    return executor.map(fn, items, config=config)
