"""tune_params: Hyperparameter tuning by resampling candidate points."""

from __future__ import annotations

import logging
import time
import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union, TYPE_CHECKING

from sklearn_exp.config import ExperimentConfig, get_config
from sklearn_exp.core.data.resample import ResampleDesc, ResampleInstance, make_resample_instance
from sklearn_exp.core.evaluation.candidate import CandidateJob, CandidateResult, evaluate_candidate
from sklearn_exp.core.learner.learner import Learner
from sklearn_exp.core.learner.registry import make_learner
from sklearn_exp.core.measures import Measure, check_measures
from sklearn_exp.core.task.base import Task
from sklearn_exp.core.tuning.control import TuneControl
from sklearn_exp.core.tuning.opt_path import OptPath
from sklearn_exp.execution.parallel import get_executor

if TYPE_CHECKING:
    from sklearn_exp.audit.logger import AuditLogger
    from sklearn_exp.execution.base import Executor
    from sklearn_exp.search.space import SearchSpace

logger = logging.getLogger(__name__)


@dataclass
class TuneResult:
    """
    Result of a tuning run.

    Attributes:
        learner_id: Id of the tuned learner.
        x: Best hyperparameters, transformed, ready to set on the learner.
        y: Aggregated measure values of the best point.
        opt_path: All evaluated points, on the search scale.
        control: Control used for the search.
        x_search: Best point on the search scale.
    """

    learner_id: str
    x: Dict[str, Any]
    y: Dict[str, float]
    opt_path: OptPath
    control: TuneControl
    x_search: Dict[str, Any] = field(default_factory=dict)

    def __repr__(self) -> str:
        return f"TuneResult(learner={self.learner_id}, x={format_point(self.x)}, y={format_point(self.y)})"


def format_point(values: Dict[str, Any]) -> str:
    """Compact ``name=value`` rendering used in progress output."""
    parts = []
    for name, value in values.items():
        if isinstance(value, float):
            parts.append(f"{name}={value:.4g}")
        else:
            parts.append(f"{name}={value}")
    return "; ".join(parts)


def check_search_space(learner: Learner, par_set: SearchSpace, config: ExperimentConfig) -> None:
    """Apply the ``on_par_without_desc`` policy to parameters the learner does not declare."""
    unknown = sorted(set(par_set.parameter_names) - set(learner.declared_params()))
    if not unknown:
        return
    msg = f"Learner '{learner.id}' has no hyperparameter(s): {', '.join(unknown)}"
    if config.on_par_without_desc == "stop":
        raise ValueError(msg)
    if config.on_par_without_desc == "warn":
        warnings.warn(msg, UserWarning, stacklevel=3)


def tune_params(
    learner: Union[str, Learner],
    task: Task,
    resampling: Union[ResampleDesc, ResampleInstance],
    par_set: SearchSpace,
    control: TuneControl,
    measures: Union[None, str, Measure, Sequence[Union[str, Measure]]] = None,
    executor: Optional[Executor] = None,
    config: Optional[ExperimentConfig] = None,
    audit_logger: Optional[AuditLogger] = None,
) -> TuneResult:
    """
    Tune the hyperparameters of a learner.

    Every candidate is evaluated by resampling on one shared resample
    instance. Candidates are proposed in batches and each batch is
    dispatched through the "tune" parallel level. The first measure is
    optimised.

    Example:
        space = SearchSpace().add_float("C", -5, 5, trafo=lambda x: 2 ** x)
        res = tune_params("classif.ksvm", task, ResampleDesc("CV", iters=3),
                          space, TuneControlRandom(maxit=20))
        tuned = make_learner("classif.ksvm", **res.x)

    Args:
        learner: Learner or registered learner id.
        task: Task to tune on.
        resampling: Resample description or instance.
        par_set: Search space of the hyperparameters.
        control: Search strategy.
        measures: Measures; the first one is optimised. Default: the task
            type's default measure.
        executor: Executor to dispatch batches. Default: from the active
            parallel settings.
        config: Options for the run. Default: the active config.
        audit_logger: Optional logger for auditing.

    Returns:
        TuneResult with the best point.
    """
    config = config or get_config()
    if isinstance(learner, str):
        learner = make_learner(learner)
    learner.check_task(task)
    measures = check_measures(measures, task.type, learner.predict_type)
    check_search_space(learner, par_set, config)
    if isinstance(resampling, ResampleDesc):
        instance = make_resample_instance(resampling, task)
    else:
        instance = resampling

    target = measures[0]
    opt_path = OptPath([m.aggr_name for m in measures], [m.minimize for m in measures])
    backend = control.make_backend(par_set, "minimize" if target.minimize else "maximize")
    executor = executor or get_executor("tune")
    batch_size = control.batch_size or max(executor.n_workers, 1)
    # parameters outside the declared set were accepted by check_search_space
    quiet = config.updated(on_par_without_desc="quiet")
    experiment = f"tune/{task.id}/{learner.id}"

    if config.show_info:
        logger.info(f"[Tune] Started tuning learner {learner.id} for parameter set: {par_set}")
        logger.info(f"With control class: {type(control).__name__}")

    start = time.time()
    dob = 0
    while True:
        points = backend.ask(batch_size)
        if not points:
            break
        dob += 1
        transformed = [par_set.transform(x) for x in points]
        jobs = [
            CandidateJob(
                learner=learner.with_params(x_trafo, quiet),
                task=task,
                instance=instance,
                measures=measures,
            )
            for x_trafo in transformed
        ]
        results: List[CandidateResult] = executor.map(evaluate_candidate, jobs, config=config)

        for x, x_trafo, res in zip(points, transformed, results):
            entry = opt_path.add(
                x,
                res.y,
                dob=dob,
                error_message=res.error_message,
                exec_time=res.exec_time,
                extra={"trafo": x_trafo},
            )
            n = len(opt_path)
            if config.show_info:
                logger.info(f"[Tune-x] {n}: {format_point(x_trafo)}")
                logger.info(f"[Tune-y] {n}: {format_point(entry.y)}; time: {res.exec_time / 60:.1f} min")
            if audit_logger is not None:
                audit_logger.log_evaluation(
                    experiment=experiment,
                    dob=dob,
                    x=x,
                    y=entry.y,
                    exec_time=res.exec_time,
                    err_msg=res.error_message,
                    extra={"trafo": x_trafo},
                )
        backend.tell([res.y[target.aggr_name] for res in results])

    if not len(opt_path):
        raise ValueError("The search did not propose any point")

    best = opt_path.best()
    x_best = par_set.transform(best.x)
    if config.show_info:
        logger.info(f"[Tune] Result: {format_point(x_best)} : {format_point(best.y)}")
    logger.debug(f"Tuning {learner.id} on {task.id} took {time.time() - start:.1f}s")

    return TuneResult(
        learner_id=learner.id,
        x=x_best,
        y=dict(best.y),
        opt_path=opt_path,
        control=control,
        x_search=dict(best.x),
    )
