"""Tests for the resample driver."""

import logging
import math

import numpy as np
import pytest

from sklearn_exp.audit.logger import AuditLogger
from sklearn_exp.config import ExperimentConfig, config_context
from sklearn_exp.core.data.resample import ResampleDesc, ResampleInstance, make_resample_instance
from sklearn_exp.core.evaluation import ResampleResult, evaluate_candidate, CandidateJob, resample
from sklearn_exp.core.learner import make_learner
from sklearn_exp.core.measures import get_measure
from sklearn_exp.exceptions import LearnerError


class TestResample:
    """Tests for resampling a learner."""

    def test_cv_result(self, iris_task):
        """Verify a CV run returns one row per fold and an aggregate."""
        res = resample("classif.rpart", iris_task, ResampleDesc("CV", iters=3, random_state=1))

        assert isinstance(res, ResampleResult)
        assert res.learner_id == "classif.rpart"
        assert res.task_id == "iris"
        assert list(res.measures_test.columns) == ["iter", "mmce"]
        assert list(res.measures_test["iter"]) == [1, 2, 3]
        assert 0 <= res.aggr["mmce.test.mean"] < 0.2
        assert res.aggr["mmce.test.mean"] == pytest.approx(res.measures_test["mmce"].mean())
        assert not res.has_errors
        assert res.runtime > 0

    def test_predictions_cover_test_sets(self, iris_task):
        """Verify CV predictions contain every observation once."""
        res = resample("classif.lda", iris_task, ResampleDesc("CV", iters=3, random_state=1))

        assert len(res.pred) == 150
        assert sorted(res.pred.data["id"]) == list(range(150))
        assert set(res.pred.data["set"]) == {"test"}
        assert len(res.pred.iteration(2)) == 50

    def test_keep_pred_false(self, iris_task):
        """Verify predictions can be dropped."""
        res = resample("classif.lda", iris_task, ResampleDesc("CV", iters=3), keep_pred=False)

        assert res.pred is None

    def test_several_measures(self, regr_task):
        """Verify every measure is aggregated."""
        res = resample("regr.lm", regr_task, ResampleDesc("CV", iters=4, random_state=0), measures=["mse", "rsq"])

        assert set(res.aggr) == {"mse.test.mean", "rsq.test.mean"}
        assert res.aggr["rsq.test.mean"] > 0.9

    def test_custom_aggregation(self, iris_task):
        """Verify a measure with another aggregation."""
        sd = get_measure("mmce").set_aggr("test.sd")

        res = resample("classif.rpart", iris_task, ResampleDesc("CV", iters=3, random_state=0), measures=sd)

        assert "mmce.test.sd" in res.aggr

    def test_predict_both(self, iris_task):
        """Verify training predictions are scored when requested."""
        res = resample(
            "classif.rpart",
            iris_task,
            ResampleDesc("Holdout", predict="both", random_state=0),
            measures=[get_measure("mmce").set_aggr("train.mean")],
        )

        assert res.measures_train["mmce"].notna().all()
        assert set(res.pred.data["set"]) == {"train", "test"}
        assert res.aggr["mmce.train.mean"] < 0.05

    def test_test_only_leaves_train_missing(self, iris_task):
        """Verify training measures are missing unless requested."""
        res = resample("classif.rpart", iris_task, ResampleDesc("Holdout", random_state=0))

        assert res.measures_train["mmce"].isna().all()

    def test_models_and_extract(self, iris_task):
        """Verify fitted models and extracted values are kept."""
        res = resample(
            "classif.rpart",
            iris_task,
            ResampleDesc("CV", iters=3),
            models=True,
            extract=lambda model: model.learner_model.get_depth(),
        )

        assert len(res.models) == 3
        assert all(d >= 1 for d in res.extract)

    def test_fixed_instance(self, iris_task):
        """Verify a resample instance is used as given."""
        inst = ResampleInstance.fixed_holdout(np.arange(0, 150, 2), np.arange(1, 150, 2), size=150)

        res = resample("classif.lda", iris_task, inst)

        assert sorted(res.pred.data["id"]) == list(range(1, 150, 2))

    def test_instance_size_mismatch(self, iris_task):
        """Verify an instance for another data size is rejected."""
        inst = ResampleInstance.fixed_holdout([0, 1], [2], size=3)

        with pytest.raises(ValueError, match="differ"):
            resample("classif.lda", iris_task, inst)

    def test_measure_for_wrong_task_type(self, iris_task):
        """Verify measures are checked before running."""
        with pytest.raises(ValueError, match="does not support task type"):
            resample("classif.lda", iris_task, ResampleDesc("CV", iters=2), measures="mse")

    def test_clustering(self, cluster_task):
        """Verify clustering learners are resampled with the db measure."""
        lrn = make_learner("cluster.kmeans", n_clusters=3, random_state=0)

        res = resample(lrn, cluster_task, ResampleDesc("Holdout", random_state=0))

        assert "db.test.mean" in res.aggr
        assert res.aggr["db.test.mean"] > 0


class TestResampleErrors:
    """Tests for learner failures during resampling."""

    def test_stop_policy_raises(self, binary_task):
        """Verify a failing learner aborts the run by default."""
        with pytest.raises(LearnerError):
            resample("classif.mock_fail", binary_task, ResampleDesc("CV", iters=2))

    def test_quiet_policy_gives_nan(self, binary_task):
        """Verify failures give missing measures and are recorded."""
        config = ExperimentConfig(on_learner_error="quiet")

        res = resample("classif.mock_fail", binary_task, ResampleDesc("CV", iters=2), config=config)

        assert math.isnan(res.aggr["mmce.test.mean"])
        assert res.has_errors
        assert res.err_msgs["train"].str.contains("mock learner failure").all()
        assert res.err_msgs["predict"].isna().all()

    def test_policy_from_context(self, binary_task):
        """Verify the active config is captured when none is passed."""
        with config_context(on_learner_error="warn"):
            with pytest.warns(UserWarning, match="Could not train"):
                res = resample("classif.mock_fail", binary_task, ResampleDesc("CV", iters=2))

        assert math.isnan(res.aggr["mmce.test.mean"])

    def test_single_failing_iteration(self, binary_task, one_class_first_fold):
        """Verify only the iteration whose training fails gets missing values."""
        config = ExperimentConfig(on_learner_error="quiet")

        res = resample("classif.logreg", binary_task, one_class_first_fold, config=config)

        mmce = res.measures_test["mmce"]
        assert math.isnan(mmce.iloc[0])
        assert np.isfinite(mmce.iloc[1:]).all()
        assert list(res.err_msgs["train"].notna()) == [True, False, False]
        assert res.err_msgs["predict"].isna().all()

    def test_warn_policy_healthy_learner(self, iris_task, recwarn):
        """Verify a working learner under "warn" gives finite results without warnings."""
        with config_context(on_learner_error="warn"):
            res = resample("classif.rpart", iris_task, ResampleDesc("CV", iters=3, random_state=0))

        assert np.isfinite(res.aggr["mmce.test.mean"])
        assert np.isfinite(res.measures_test["mmce"]).all()
        assert not res.has_errors
        assert not [w for w in recwarn if "Could not" in str(w.message)]

    def test_predict_errors_recorded(self, binary_task):
        """Verify prediction failures are recorded per iteration."""
        lrn = make_learner("classif.mock_fail", fail_train=False, fail_predict=True)

        res = resample(lrn, binary_task, ResampleDesc("CV", iters=2), config=ExperimentConfig(on_learner_error="quiet"))

        assert res.err_msgs["train"].isna().all()
        assert res.err_msgs["predict"].notna().all()
        assert res.has_errors


class TestResampleLogging:
    """Tests for progress output and auditing."""

    def test_progress_lines(self, iris_task, caplog):
        """Verify iteration and aggregate lines are logged at INFO."""
        caplog.set_level(logging.INFO, logger="sklearn_exp")

        resample("classif.rpart", iris_task, ResampleDesc("CV", iters=2, random_state=0))

        assert "[Resample] iter 1: mmce=" in caplog.text
        assert "[Resample] iter 2: mmce=" in caplog.text
        assert "[Resample] Aggr. Result: mmce.test.mean=" in caplog.text

    def test_show_info_false_is_silent(self, iris_task, caplog):
        """Verify progress lines are suppressed with show_info=False."""
        caplog.set_level(logging.INFO, logger="sklearn_exp")

        resample(
            "classif.rpart",
            iris_task,
            ResampleDesc("CV", iters=2),
            config=ExperimentConfig(show_info=False),
        )

        assert "[Resample]" not in caplog.text

    def test_audit_logger_records_iterations(self, iris_task):
        """Verify every iteration reaches the audit logger."""
        audit = AuditLogger(console_level=logging.CRITICAL)

        resample("classif.rpart", iris_task, ResampleDesc("CV", iters=3), audit_logger=audit)

        summary = audit.get_iteration_summary("iris/classif.rpart")
        assert summary["n_iterations"] == 3
        assert summary["n_failed"] == 0


class TestEvaluateCandidate:
    """Tests for the candidate evaluation used by the search drivers."""

    def test_feature_subset(self, binary_task):
        """Verify a candidate can be restricted to some features."""
        inst = make_resample_instance(ResampleDesc("Holdout", random_state=0), binary_task)
        job = CandidateJob(
            learner=make_learner("classif.lda"),
            task=binary_task,
            instance=inst,
            measures=[get_measure("mmce")],
            features=["x1"],
        )

        result = evaluate_candidate(job, ExperimentConfig())

        assert result.y["mmce.test.mean"] == pytest.approx(0.0)
        assert result.error_message is None

    def test_error_message(self, binary_task):
        """Verify the first error message is reported."""
        inst = make_resample_instance(ResampleDesc("CV", iters=2, random_state=0), binary_task)
        job = CandidateJob(
            learner=make_learner("classif.mock_fail"),
            task=binary_task,
            instance=inst,
            measures=[get_measure("mmce")],
        )

        result = evaluate_candidate(job, ExperimentConfig(on_learner_error="quiet"))

        assert math.isnan(result.y["mmce.test.mean"])
        assert "mock learner failure" in result.error_message
