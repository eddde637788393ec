"""ExperimentConfig: Options that control learner error handling and output."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Iterator

LEARNER_ERROR_POLICIES = ("stop", "warn", "quiet")
LEARNER_WARNING_POLICIES = ("warn", "quiet")


@dataclass(frozen=True)
class ExperimentConfig:
    """
    Options shared by every driver and worker.

    Drivers take a snapshot of this object when they dispatch work and hand it
    to each worker call, so that a worker process applies exactly the options
    of the process that launched it.

    Attributes:
        show_info: Whether drivers log progress at INFO level.
        on_learner_error: What to do when a learner fails in train or predict.
            "stop" raises, "warn" warns and records a failure model,
            "quiet" records a failure model silently.
        on_learner_warning: Whether warnings emitted by learners are shown
            ("warn") or suppressed ("quiet").
        on_par_without_desc: What to do when a hyperparameter is set that
            the underlying estimator does not declare.
    """

    show_info: bool = True
    on_learner_error: str = "stop"
    on_learner_warning: str = "warn"
    on_par_without_desc: str = "stop"

    def __post_init__(self) -> None:
        if self.on_learner_error not in LEARNER_ERROR_POLICIES:
            raise ValueError(
                f"on_learner_error must be one of {LEARNER_ERROR_POLICIES}, "
                f"got {self.on_learner_error!r}"
            )
        if self.on_learner_warning not in LEARNER_WARNING_POLICIES:
            raise ValueError(
                f"on_learner_warning must be one of {LEARNER_WARNING_POLICIES}, "
                f"got {self.on_learner_warning!r}"
            )
        if self.on_par_without_desc not in LEARNER_ERROR_POLICIES:
            raise ValueError(
                f"on_par_without_desc must be one of {LEARNER_ERROR_POLICIES}, "
                f"got {self.on_par_without_desc!r}"
            )
        if not isinstance(self.show_info, bool):
            raise ValueError(f"show_info must be a bool, got {self.show_info!r}")

    def to_dict(self) -> Dict[str, Any]:
        """Plain dictionary of all options."""
        return asdict(self)

    def updated(self, **options: Any) -> ExperimentConfig:
        """Return a copy with the given options replaced."""
        unknown = set(options) - set(self.to_dict())
        if unknown:
            raise ValueError(f"Unknown configuration options: {sorted(unknown)}")
        return replace(self, **options)


_global_config = ExperimentConfig()
_threadlocal = threading.local()


def _get_threadlocal_config() -> ExperimentConfig:
    if not hasattr(_threadlocal, "config"):
        _threadlocal.config = _global_config
    return _threadlocal.config


def get_config() -> ExperimentConfig:
    """Snapshot of the options active in the current thread."""
    return _get_threadlocal_config()


def configure(**options: Any) -> ExperimentConfig:
    """
    Set process-wide defaults.

    Example:
        configure(on_learner_error="warn", show_info=False)

    Returns:
        The new active configuration.
    """
    global _global_config
    _global_config = _global_config.updated(**options)
    _threadlocal.config = _global_config
    return _global_config


def reset_config() -> ExperimentConfig:
    """Restore the default options."""
    global _global_config
    _global_config = ExperimentConfig()
    _threadlocal.config = _global_config
    return _global_config


@contextmanager
def config_context(**options: Any) -> Iterator[ExperimentConfig]:
    """
    Temporarily override options for the current thread.

    Example:
        with config_context(on_learner_error="quiet"):
            result = resample(learner, task, rdesc)
    """
    old = _get_threadlocal_config()
    _threadlocal.config = old.updated(**options)
    try:
        yield _threadlocal.config
    finally:
        _threadlocal.config = old
