"""resample: Estimate learner performance over resampling iterations."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Union, TYPE_CHECKING

import numpy as np
import pandas as pd

from sklearn_exp.config import ExperimentConfig, get_config
from sklearn_exp.core.data.resample import ResampleDesc, ResampleInstance, make_resample_instance
from sklearn_exp.core.learner.learner import Learner, WrappedModel
from sklearn_exp.core.learner.prediction import Prediction
from sklearn_exp.core.learner.registry import make_learner
from sklearn_exp.core.measures import Measure, check_measures
from sklearn_exp.core.task.base import Task, TaskDesc
from sklearn_exp.execution.parallel import get_executor

if TYPE_CHECKING:
    from sklearn_exp.audit.logger import AuditLogger
    from sklearn_exp.execution.base import Executor

logger = logging.getLogger(__name__)


@dataclass
class ResamplePrediction:
    """
    Predictions of all resampling iterations.

    ``data`` holds the columns of the single predictions plus ``iter``
    (1-based iteration) and ``set`` ("train" or "test").

    Attributes:
        task_desc: Description of the resampled task.
        data: Combined prediction table.
        predict_type: "response" or "prob".
        instance: The resample instance used.
    """

    task_desc: TaskDesc
    data: pd.DataFrame
    predict_type: str
    instance: ResampleInstance

    @classmethod
    def combine(
        cls,
        task_desc: TaskDesc,
        predict_type: str,
        instance: ResampleInstance,
        preds: Sequence[tuple],
    ) -> ResamplePrediction:
        """Stack ``(iteration, set, Prediction)`` triples into one table."""
        frames = []
        for iteration, which, pred in preds:
            frame = pred.data.copy()
            frame["iter"] = iteration
            frame["set"] = which
            frames.append(frame)
        data = pd.concat(frames, ignore_index=True) if frames else pd.DataFrame()
        return cls(task_desc=task_desc, data=data, predict_type=predict_type, instance=instance)

    def iteration(self, i: int, which: str = "test") -> pd.DataFrame:
        """Prediction rows of iteration ``i`` (1-based)."""
        rows = (self.data["iter"] == i) & (self.data["set"] == which)
        return self.data.loc[rows].reset_index(drop=True)

    def __len__(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:
        return (
            f"ResamplePrediction(task={self.task_desc.id}, iters={self.instance.iters}, "
            f"type={self.predict_type}, n={len(self.data)})"
        )


@dataclass
class ResampleResult:
    """
    Result of a resampling run.

    Attributes:
        learner_id: Id of the resampled learner.
        task_id: Id of the task.
        task_desc: Description of the task.
        measures: Measures that were computed.
        measures_test: One row per iteration with the test measure values.
        measures_train: One row per iteration with the training measure values
            (missing unless training predictions were requested).
        aggr: Aggregated values, keyed like "mmce.test.mean".
        pred: Predictions of all iterations, or None if not kept.
        models: Fitted models per iteration, if requested.
        extract: Values returned by the ``extract`` function per iteration.
        err_msgs: One row per iteration with train and predict error messages.
        runtime: Total time of the run in seconds.
    """

    learner_id: str
    task_id: str
    task_desc: TaskDesc
    measures: List[Measure]
    measures_test: pd.DataFrame
    measures_train: pd.DataFrame
    aggr: Dict[str, float]
    pred: Optional[ResamplePrediction] = None
    models: Optional[List[WrappedModel]] = None
    extract: List[Any] = field(default_factory=list)
    err_msgs: Optional[pd.DataFrame] = None
    runtime: float = 0.0

    @property
    def has_errors(self) -> bool:
        """Whether the learner failed in any iteration."""
        if self.err_msgs is None:
            return False
        return bool(self.err_msgs[["train", "predict"]].notna().to_numpy().any())

    def __repr__(self) -> str:
        aggr = ", ".join(f"{k}={v:.4f}" for k, v in self.aggr.items())
        return f"ResampleResult(learner={self.learner_id}, task={self.task_id}, {aggr})"


@dataclass
class IterationResult:
    """Outcome of a single resampling iteration, returned by a worker."""

    iteration: int
    measures_test: Dict[str, float]
    measures_train: Dict[str, float]
    pred_test: Optional[Prediction]
    pred_train: Optional[Prediction]
    model: Optional[WrappedModel]
    extract: Any
    train_error: Optional[str]
    predict_error: Optional[str]
    train_time: float


@dataclass
class _IterationJob:
    learner: Learner
    task: Task
    iteration: int
    train_inds: np.ndarray
    test_inds: np.ndarray
    measures: List[Measure]
    predict: str
    keep_model: bool
    extract: Optional[Callable[[WrappedModel], Any]]


def _run_iteration(job: _IterationJob, config: ExperimentConfig) -> IterationResult:
    """Train, predict and score one iteration. Runs inside a worker."""
    model = job.learner.train(job.task, job.train_inds, config=config)

    pred_test = pred_train = None
    if job.predict in ("test", "both"):
        pred_test = job.learner.predict(model, task=job.task, subset=job.test_inds, config=config)
    if job.predict in ("train", "both"):
        pred_train = job.learner.predict(model, task=job.task, subset=job.train_inds, config=config)

    measures_test = {m.id: _score(m, pred_test, model, job.task) for m in job.measures}
    measures_train = {m.id: _score(m, pred_train, model, job.task) for m in job.measures}

    train_error = model.err_msg if model.is_failure else None
    predict_error = next(
        (p.err_msg for p in (pred_test, pred_train) if p is not None and p.err_msg), None
    )
    return IterationResult(
        iteration=job.iteration,
        measures_test=measures_test,
        measures_train=measures_train,
        pred_test=pred_test,
        pred_train=pred_train,
        model=model if job.keep_model else None,
        extract=job.extract(model) if job.extract is not None else None,
        train_error=train_error,
        predict_error=predict_error,
        train_time=model.time,
    )


def _score(measure: Measure, pred: Optional[Prediction], model: WrappedModel, task: Task) -> float:
    if pred is None:
        return float("nan")
    return measure.evaluate(pred, model, task)


def resample(
    learner: Union[str, Learner],
    task: Task,
    resampling: Union[ResampleDesc, ResampleInstance],
    measures: Union[None, str, Measure, Sequence[Union[str, Measure]]] = None,
    models: bool = False,
    extract: Optional[Callable[[WrappedModel], Any]] = None,
    keep_pred: bool = True,
    executor: Optional[Executor] = None,
    config: Optional[ExperimentConfig] = None,
    audit_logger: Optional[AuditLogger] = None,
) -> ResampleResult:
    """
    Fit and evaluate a learner over the iterations of a resampling strategy.

    Iterations are dispatched through the "resample" parallel level. Each
    worker receives ``config`` explicitly, so a learner failure in a worker is
    handled with the caller's ``on_learner_error`` policy: with "warn" or
    "quiet" the iteration yields missing measure values instead of aborting
    the run.

    Example:
        task = ClassifTask(iris, target="Species")
        res = resample("classif.rpart", task, ResampleDesc("CV", iters=3))
        res.aggr  # {"mmce.test.mean": 0.06}

    Args:
        learner: Learner or registered learner id.
        task: Task to evaluate on.
        resampling: Resample description or a fixed instance.
        measures: Measures to compute. Default: the task type's default measure.
        models: Keep the fitted model of every iteration.
        extract: Function applied to every fitted model; results are kept.
        keep_pred: Keep the predictions of all iterations.
        executor: Executor to dispatch iterations. Default: from the active
            parallel settings.
        config: Options for the run. Default: the active config.
        audit_logger: Optional logger for auditing.

    Returns:
        ResampleResult.
    """
    start = time.time()
    config = config or get_config()
    if isinstance(learner, str):
        learner = make_learner(learner)
    learner.check_task(task)
    measures = check_measures(measures, task.type, learner.predict_type)

    if isinstance(resampling, ResampleDesc):
        instance = make_resample_instance(resampling, task)
    else:
        instance = resampling
        if instance.size != task.size:
            raise ValueError(
                f"Size of data set: {task.size} and resampling instance: {instance.size} differ!"
            )

    jobs = [
        _IterationJob(
            learner=learner,
            task=task,
            iteration=i + 1,
            train_inds=instance.train_inds[i],
            test_inds=instance.test_inds[i],
            measures=measures,
            predict=instance.desc.predict,
            keep_model=models,
            extract=extract,
        )
        for i in range(instance.iters)
    ]

    if config.show_info:
        logger.info(f"Resampling: {instance.desc.method.value}")
        logger.info(f"Measures: {' '.join(m.id for m in measures)}")

    executor = executor or get_executor("resample")
    results: List[IterationResult] = executor.map(_run_iteration, jobs, config=config)

    experiment = f"{task.id}/{learner.id}"
    for res in results:
        if config.show_info:
            values = " ".join(f"{k}={v:.4f}" for k, v in res.measures_test.items())
            logger.info(f"[Resample] iter {res.iteration}: {values}")
        if audit_logger is not None:
            audit_logger.log_iteration(
                experiment=experiment,
                iteration=res.iteration,
                measures=res.measures_test,
                train_time=res.train_time,
                err_msg=res.train_error or res.predict_error,
            )

    ids = [m.id for m in measures]
    iters = [r.iteration for r in results]
    measures_test = pd.DataFrame([r.measures_test for r in results], columns=ids)
    measures_test.insert(0, "iter", iters)
    measures_train = pd.DataFrame([r.measures_train for r in results], columns=ids)
    measures_train.insert(0, "iter", iters)

    aggr = {
        m.aggr_name: m.aggr(measures_test[m.id].to_numpy(), measures_train[m.id].to_numpy())
        for m in measures
    }
    if config.show_info:
        logger.info(
            "[Resample] Aggr. Result: " + " ".join(f"{k}={v:.4f}" for k, v in aggr.items())
        )

    err_msgs = pd.DataFrame(
        {
            "iter": iters,
            "train": [r.train_error for r in results],
            "predict": [r.predict_error for r in results],
        }
    )
    n_failed = int(err_msgs["train"].notna().sum())
    if n_failed:
        logger.debug(f"Learner {learner.id} failed in {n_failed} of {len(results)} iterations")

    pred = None
    if keep_pred:
        triples = []
        for r in results:
            if r.pred_test is not None:
                triples.append((r.iteration, "test", r.pred_test))
            if r.pred_train is not None:
                triples.append((r.iteration, "train", r.pred_train))
        pred = ResamplePrediction.combine(task.task_desc, learner.predict_type, instance, triples)

    return ResampleResult(
        learner_id=learner.id,
        task_id=task.id,
        task_desc=task.task_desc,
        measures=measures,
        measures_test=measures_test,
        measures_train=measures_train,
        aggr=aggr,
        pred=pred,
        models=[r.model for r in results] if models else None,
        extract=[r.extract for r in results] if extract is not None else [],
        err_msgs=err_msgs,
        runtime=time.time() - start,
    )

