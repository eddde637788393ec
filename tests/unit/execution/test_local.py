"""Tests for LocalExecutor and SequentialExecutor."""

import os

import pytest

from sklearn_exp.config import ExperimentConfig, config_context, get_config
from sklearn_exp.execution.base import in_worker
from sklearn_exp.execution.local import LocalExecutor, SequentialExecutor


def _square(x, config):
    return x * x


def _policy(x, config):
    return x, config.on_learner_error, get_config().on_learner_error


def _worker_flag(x, config):
    return in_worker()


class TestLocalExecutorInit:
    """Tests for LocalExecutor initialization."""

    def test_defaults(self):
        """Verify one worker on the loky backend by default."""
        executor = LocalExecutor()

        assert executor.n_workers == 1
        assert executor.backend == "loky"

    def test_custom_n_workers(self):
        """Verify custom n_workers setting."""
        assert LocalExecutor(n_workers=4).n_workers == 4

    def test_n_workers_minus_one_uses_cpu_count(self):
        """Verify -1 uses all CPUs."""
        assert LocalExecutor(n_workers=-1).n_workers == (os.cpu_count() or 1)

    def test_n_workers_zero_is_sequential(self):
        """Verify 0 workers means a single worker."""
        assert LocalExecutor(n_workers=0).n_workers == 1

    def test_invalid_n_workers(self):
        """Verify values below -1 are rejected."""
        with pytest.raises(ValueError, match="n_workers"):
            LocalExecutor(n_workers=-2)

    def test_repr(self):
        """Verify repr shows workers and backend."""
        assert repr(LocalExecutor(2, "threading")) == "LocalExecutor(n_workers=2, backend=threading)"


class TestLocalExecutorMap:
    """Tests for LocalExecutor.map."""

    def test_empty_items(self):
        """Verify an empty list gives an empty result."""
        assert LocalExecutor(2, "threading").map(_square, []) == []

    def test_preserves_order(self):
        """Verify results follow the order of the items."""
        assert LocalExecutor(3, "threading").map(_square, list(range(10))) == [x * x for x in range(10)]

    def test_single_worker_inline(self):
        """Verify a single worker runs in the calling thread as a worker."""
        assert LocalExecutor(1).map(_worker_flag, [1, 2]) == [True, True]
        assert not in_worker()

    def test_config_reaches_threads(self):
        """Verify worker threads see the caller's options."""
        config = ExperimentConfig(on_learner_error="quiet")

        results = LocalExecutor(2, "threading").map(_policy, [1, 2, 3], config=config)

        assert results == [(i, "quiet", "quiet") for i in (1, 2, 3)]

    def test_default_config_is_callers(self):
        """Verify the calling thread's options are used when none are given."""
        with config_context(on_learner_error="warn"):
            results = LocalExecutor(2, "threading").map(_policy, [1, 2])

        assert [r[2] for r in results] == ["warn", "warn"]

    def test_threads_marked_as_workers(self):
        """Verify dispatched calls run as workers."""
        assert LocalExecutor(2, "threading").map(_worker_flag, [1, 2, 3, 4]) == [True] * 4

    def test_errors_propagate(self):
        """Verify exceptions raised by the function reach the caller."""

        def fail(x, config):
            raise RuntimeError(f"item {x}")

        with pytest.raises(RuntimeError, match="item"):
            LocalExecutor(2, "threading").map(fail, [1, 2])


class TestSequentialExecutor:
    """Tests for SequentialExecutor."""

    def test_map(self):
        """Verify items are processed in order."""
        assert SequentialExecutor().map(_square, [1, 2, 3]) == [1, 4, 9]

    def test_not_a_worker(self):
        """Verify sequential calls are not marked as worker calls."""
        assert SequentialExecutor().map(_worker_flag, [1]) == [False]

    def test_config_installed(self):
        """Verify the given options are active during the call."""
        config = ExperimentConfig(on_learner_error="warn")

        assert SequentialExecutor().map(_policy, [1], config=config) == [(1, "warn", "warn")]
        assert get_config().on_learner_error == "stop"

    def test_context_manager(self):
        """Verify executors work as context managers."""
        with SequentialExecutor() as executor:
            assert executor.n_workers == 1
