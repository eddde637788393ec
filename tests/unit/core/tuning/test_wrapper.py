"""Tests for TuneWrapper."""

import numpy as np
import pytest

from sklearn_exp.config import config_context
from sklearn_exp.core.data.resample import ResampleDesc, make_resample_instance
from sklearn_exp.core.evaluation.resample import resample
from sklearn_exp.core.learner import make_learner
from sklearn_exp.core.tuning import TuneControlGrid, TuneResult, TuneWrapper
from sklearn_exp.core.tuning.wrapper import TunedEstimator, get_tune_results
from sklearn_exp.search.space import SearchSpace


@pytest.fixture
def tuned_rpart():
    space = SearchSpace().add_int("max_depth", 1, 3)
    return TuneWrapper("classif.rpart", ResampleDesc("Holdout", random_state=0), space, TuneControlGrid(resolution=3))


class TestTuneWrapperInit:
    """Tests for wrapper construction."""

    def test_id_and_type(self, tuned_rpart):
        """Verify the wrapper mirrors the base learner."""
        assert tuned_rpart.id == "classif.rpart.tuned"
        assert tuned_rpart.type == "classif"
        assert tuned_rpart.base_learner.id == "classif.rpart"

    def test_accepts_learner_object(self):
        """Verify a Learner instance can be wrapped."""
        base = make_learner("classif.rpart", min_samples_leaf=3)
        space = SearchSpace().add_int("max_depth", 1, 2)

        wrapper = TuneWrapper(base, ResampleDesc("Holdout"), space, TuneControlGrid())

        assert wrapper.params == {"min_samples_leaf": 3}

    def test_rejects_resample_instance(self, iris_task):
        """Verify fixed instances are rejected."""
        instance = make_resample_instance(ResampleDesc("Holdout"), iris_task)
        space = SearchSpace().add_int("max_depth", 1, 2)

        with pytest.raises(TypeError, match="ResampleDesc"):
            TuneWrapper("classif.rpart", instance, space, TuneControlGrid())

    def test_set_predict_type(self, tuned_rpart):
        """Verify the predict type reaches the base learner."""
        prob = tuned_rpart.set_predict_type("prob")

        assert prob.predict_type == "prob"
        assert prob.base_learner.predict_type == "prob"
        assert tuned_rpart.predict_type == "response"


class TestTuneWrapperTrain:
    """Tests for training and predicting with the wrapper."""

    def test_train_tunes_on_training_data(self, tuned_rpart, iris_task):
        """Verify training runs an inner search and fits the best point."""
        with config_context(show_info=False):
            model = tuned_rpart.train(iris_task, np.arange(0, 150, 2))

        fitted = model.learner_model
        assert isinstance(fitted, TunedEstimator)
        assert len(fitted.tune_result.opt_path) == 3
        assert fitted.estimator.get_depth() <= fitted.tune_result.x["max_depth"]
        assert fitted.learner.params["max_depth"] == fitted.tune_result.x["max_depth"]

    def test_predict(self, tuned_rpart, iris_task):
        """Verify predictions come from the tuned estimator."""
        with config_context(show_info=False):
            model = tuned_rpart.train(iris_task)
            pred = model.predict(task=iris_task)

        assert len(pred.data) == 150
        assert set(pred.data["response"]) <= set(iris_task.task_desc.class_levels)

    def test_predict_prob(self, tuned_rpart, iris_task):
        """Verify probability predictions are supported."""
        with config_context(show_info=False):
            model = tuned_rpart.set_predict_type("prob").train(iris_task)
            pred = model.predict(task=iris_task)

        assert pred.predict_type == "prob"


class TestNestedResampling:
    """Tests for resampling a tuned learner."""

    def test_resample_with_models(self, tuned_rpart, iris_task):
        """Verify one inner tuning result per outer iteration."""
        with config_context(show_info=False):
            res = resample(tuned_rpart, iris_task, ResampleDesc("CV", iters=2, random_state=1), models=True)

        results = get_tune_results(res.models)
        assert len(results) == 2
        assert all(isinstance(r, TuneResult) for r in results)
        assert all(len(r.opt_path) == 3 for r in results)
        assert res.learner_id == "classif.rpart.tuned"
        assert 0 <= res.aggr["mmce.test.mean"] < 0.3

    def test_tune_results_of_plain_models(self, iris_task):
        """Verify models of other learners have no tuning result."""
        with config_context(show_info=False):
            res = resample("classif.rpart", iris_task, ResampleDesc("Holdout"), models=True)

        assert get_tune_results(res.models) == [None]
