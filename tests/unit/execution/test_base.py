"""Tests for the Executor base class and worker entry points."""

import pytest

from sklearn_exp.config import ExperimentConfig, get_config
from sklearn_exp.execution.base import Executor, call_with_config, in_worker, run_in_worker


class ListExecutor(Executor):
    """Minimal concrete implementation for testing."""

    def __init__(self):
        self.shutdown_called = False

    def map(self, fn, items, config=None):
        config = self._resolve_config(config)
        return [fn(item, config) for item in items]

    def shutdown(self, wait=True):
        self.shutdown_called = True


class TestExecutorAbstract:
    """Tests for the Executor base class."""

    def test_cannot_instantiate(self):
        """Verify map must be implemented."""
        with pytest.raises(TypeError):
            Executor()

    def test_default_n_workers(self):
        """Verify the default is a single worker."""
        assert ListExecutor().n_workers == 1

    def test_context_manager_shuts_down(self):
        """Verify leaving the context shuts the executor down."""
        with ListExecutor() as executor:
            pass

        assert executor.shutdown_called

    def test_resolve_config(self):
        """Verify missing options default to the active config."""
        assert ListExecutor().map(lambda x, c: c, [1]) == [get_config()]


class TestWorkerEntryPoints:
    """Tests for run_in_worker and call_with_config."""

    def test_run_in_worker_marks_thread(self):
        """Verify the worker flag is set only during the call."""
        assert not in_worker()

        assert run_in_worker(lambda x, c: in_worker(), 1, ExperimentConfig())
        assert not in_worker()

    def test_run_in_worker_nested(self):
        """Verify the flag survives nested worker calls."""

        def outer(x, config):
            run_in_worker(lambda y, c: None, x, config)
            return in_worker()

        assert run_in_worker(outer, 1, ExperimentConfig())

    def test_run_in_worker_installs_config(self):
        """Verify the dispatching options are active inside the call."""
        config = ExperimentConfig(on_learner_error="quiet", show_info=False)

        seen = run_in_worker(lambda x, c: get_config(), 1, config)

        assert seen == config
        assert get_config() == ExperimentConfig()

    def test_run_in_worker_resets_on_error(self):
        """Verify the flag and options are restored when the call raises."""

        def fail(x, config):
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            run_in_worker(fail, 1, ExperimentConfig(on_learner_error="warn"))

        assert not in_worker()
        assert get_config().on_learner_error == "stop"

    def test_call_with_config(self):
        """Verify options are installed without marking a worker."""
        config = ExperimentConfig(on_learner_warning="quiet")

        assert call_with_config(lambda x, c: (in_worker(), get_config()), 1, config) == (False, config)
