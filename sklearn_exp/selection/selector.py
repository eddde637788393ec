"""select_features: Wrapper feature selection by resampling candidate subsets."""

from __future__ import annotations

import itertools
import logging
import math
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Union, TYPE_CHECKING

import numpy as np
from sklearn.utils import check_random_state

from sklearn_exp.config import ExperimentConfig, get_config
from sklearn_exp.core.data.resample import ResampleDesc, ResampleInstance, make_resample_instance
from sklearn_exp.core.evaluation.candidate import CandidateJob, CandidateResult, evaluate_candidate
from sklearn_exp.core.learner.learner import Learner
from sklearn_exp.core.learner.registry import make_learner
from sklearn_exp.core.measures import Measure, check_measures
from sklearn_exp.core.task.base import Task
from sklearn_exp.core.tuning.opt_path import OptPath, OptPathEntry
from sklearn_exp.execution.parallel import get_executor
from sklearn_exp.selection.control import (
    FeatSelControl,
    FeatSelControlExhaustive,
    FeatSelControlRandom,
    FeatSelControlSequential,
)

if TYPE_CHECKING:
    from sklearn_exp.audit.logger import AuditLogger
    from sklearn_exp.execution.base import Executor

logger = logging.getLogger(__name__)


@dataclass
class FeatSelResult:
    """
    Result of a feature selection run.

    Attributes:
        learner_id: Id of the learner.
        x: Selected features, in task order.
        y: Aggregated measure values of the selected subset.
        opt_path: All evaluated subsets; x values are 0/1 inclusion bits.
        control: Control used for the search.
    """

    learner_id: str
    x: List[str]
    y: Dict[str, float]
    opt_path: OptPath
    control: FeatSelControl

    def __repr__(self) -> str:
        y = ", ".join(f"{k}={v:.4f}" for k, v in self.y.items())
        return f"FeatSelResult(learner={self.learner_id}, n_features={len(self.x)}, {y})"


class _SubsetSearch:
    """Evaluates batches of feature subsets and records them in an opt path."""

    def __init__(
        self,
        learner: Learner,
        task: Task,
        instance: ResampleInstance,
        measures: List[Measure],
        executor: Executor,
        config: ExperimentConfig,
        audit_logger: Optional[AuditLogger],
    ) -> None:
        self.learner = learner
        self.task = task
        self.instance = instance
        self.measures = measures
        self.executor = executor
        self.config = config
        self.audit_logger = audit_logger
        self.features = task.feature_names
        self.target = measures[0]
        self.opt_path = OptPath([m.aggr_name for m in measures], [m.minimize for m in measures])
        self.dob = 0
        self.experiment = f"featsel/{task.id}/{learner.id}"

    def to_bits(self, subset: Sequence[str]) -> Dict[str, int]:
        chosen = set(subset)
        return {f: int(f in chosen) for f in self.features}

    def evaluate(self, subsets: List[List[str]]) -> List[OptPathEntry]:
        """Resample every subset of a batch."""
        self.dob += 1
        jobs = [
            CandidateJob(
                learner=self.learner,
                task=self.task,
                instance=self.instance,
                measures=self.measures,
                features=subset,
            )
            for subset in subsets
        ]
        results: List[CandidateResult] = self.executor.map(evaluate_candidate, jobs, config=self.config)

        entries = []
        for subset, res in zip(subsets, results):
            bits = self.to_bits(subset)
            entry = self.opt_path.add(
                bits,
                res.y,
                dob=self.dob,
                error_message=res.error_message,
                exec_time=res.exec_time,
            )
            entries.append(entry)
            n = len(self.opt_path)
            if self.config.show_info:
                logger.info(f"[FeatSel-x] {n}: {len(subset)} bits: {', '.join(subset)}")
                values = "; ".join(f"{k}={v:.4g}" for k, v in entry.y.items())
                logger.info(f"[FeatSel-y] {n}: {values}")
            if self.audit_logger is not None:
                self.audit_logger.log_evaluation(
                    experiment=self.experiment,
                    dob=self.dob,
                    x=bits,
                    y=entry.y,
                    exec_time=res.exec_time,
                    err_msg=res.error_message,
                )
        return entries

    def score(self, entry: OptPathEntry) -> float:
        """Optimised value as a loss (lower is better); missing values are worst."""
        value = entry.y[self.target.aggr_name]
        if math.isnan(value):
            return math.inf
        return value if self.target.minimize else -value


def _batches(items: Iterator[List[str]], size: int) -> Iterator[List[List[str]]]:
    while True:
        batch = list(itertools.islice(items, size))
        if not batch:
            return
        yield batch


def _run_random(search: _SubsetSearch, control: FeatSelControlRandom, batch_size: int) -> int:
    rng = check_random_state(control.random_state)
    max_features = control.max_features or len(search.features)

    def draw() -> List[str]:
        while True:
            mask = rng.random_sample(len(search.features)) < control.prob
            if mask.any():
                break
        chosen = np.flatnonzero(mask)
        if len(chosen) > max_features:
            # too many drawn: keep a random subset of the allowed size
            chosen = np.sort(rng.choice(chosen, size=max_features, replace=False))
        return [search.features[i] for i in chosen]

    subsets = (draw() for _ in range(control.maxit))
    for batch in _batches(subsets, batch_size):
        search.evaluate(batch)
    return search.opt_path.best_index()


def _run_exhaustive(search: _SubsetSearch, control: FeatSelControlExhaustive, batch_size: int) -> int:
    max_features = control.max_features or len(search.features)
    subsets = (
        list(combo)
        for k in range(1, min(max_features, len(search.features)) + 1)
        for combo in itertools.combinations(search.features, k)
    )
    for batch in _batches(subsets, batch_size):
        search.evaluate(batch)
    return search.opt_path.best_index()


def _run_sequential(search: _SubsetSearch, control: FeatSelControlSequential, batch_size: int) -> int:
    features = search.features
    max_features = control.max_features or len(features)

    if control.method == "sfs":
        state: List[str] = []
        state_score = math.inf
        state_index = -1
        threshold = control.alpha
    else:
        state = list(features)
        (entry,) = search.evaluate([state])
        state_score = search.score(entry)
        state_index = len(search.opt_path) - 1
        threshold = control.beta

    while True:
        if control.method == "sfs":
            if len(state) >= max_features:
                break
            candidates = [[f for f in features if f in state or f == add] for add in features if add not in state]
        else:
            if len(state) <= 1:
                break
            candidates = [[f for f in state if f != drop] for drop in state]
        if not candidates:
            break

        first_index = len(search.opt_path)
        entries: List[OptPathEntry] = []
        for batch in _batches(iter(candidates), batch_size):
            entries.extend(search.evaluate(batch))
        scores = [search.score(e) for e in entries]
        best = min(range(len(scores)), key=scores.__getitem__)

        # the first forward step is always taken
        accept = state_index < 0 or state_score - scores[best] >= threshold
        if not accept or math.isinf(scores[best]):
            if state_index < 0:
                state_index = first_index + best
            break
        state = candidates[best]
        state_score = scores[best]
        state_index = first_index + best
        logger.debug(f"{control.method}: moved to {len(state)} features, loss={state_score:.4g}")

    return state_index


def select_features(
    learner: Union[str, Learner],
    task: Task,
    resampling: Union[ResampleDesc, ResampleInstance],
    control: FeatSelControl,
    measures: Union[None, str, Measure, Sequence[Union[str, Measure]]] = None,
    executor: Optional[Executor] = None,
    config: Optional[ExperimentConfig] = None,
    audit_logger: Optional[AuditLogger] = None,
) -> FeatSelResult:
    """
    Select a feature subset for a learner by resampling candidate subsets.

    All candidates are evaluated on one shared resample instance. Subsets are
    evaluated in batches, each dispatched through the "featsel" parallel level.

    Example:
        res = select_features("classif.lda", task, ResampleDesc("CV", iters=3),
                              FeatSelControlSequential(method="sfs"))
        task2 = task.subset(features=res.x)

    Args:
        learner: Learner or registered learner id.
        task: Task to select features for.
        resampling: Resample description or instance.
        control: Search strategy.
        measures: Measures; the first one is optimised. Default: the task
            type's default measure.
        executor: Executor to dispatch batches. Default: from the active
            parallel settings.
        config: Options for the run. Default: the active config.
        audit_logger: Optional logger for auditing.

    Returns:
        FeatSelResult with the selected features.
    """
    config = config or get_config()
    if isinstance(learner, str):
        learner = make_learner(learner)
    learner.check_task(task)
    measures = check_measures(measures, task.type, learner.predict_type)
    if not task.feature_names:
        raise ValueError(f"Task '{task.id}' has no features to select from")
    if isinstance(resampling, ResampleDesc):
        instance = make_resample_instance(resampling, task)
    else:
        instance = resampling

    executor = executor or get_executor("featsel")
    batch_size = control.batch_size or max(executor.n_workers, 1)
    search = _SubsetSearch(learner, task, instance, measures, executor, config, audit_logger)

    if config.show_info:
        logger.info(
            f"[FeatSel] Started selecting features for learner {learner.id} "
            f"with control class: {type(control).__name__}"
        )

    if isinstance(control, FeatSelControlRandom):
        index = _run_random(search, control, batch_size)
    elif isinstance(control, FeatSelControlExhaustive):
        index = _run_exhaustive(search, control, batch_size)
    elif isinstance(control, FeatSelControlSequential):
        index = _run_sequential(search, control, batch_size)
    else:
        raise ValueError(f"Unsupported feature selection control: {type(control).__name__}")

    entry = search.opt_path[index]
    selected = [f for f, bit in entry.x.items() if bit]
    if config.show_info:
        values = "; ".join(f"{k}={v:.4g}" for k, v in entry.y.items())
        logger.info(f"[FeatSel] Result: {', '.join(selected)} ({len(selected)} bits) : {values}")

    return FeatSelResult(
        learner_id=learner.id,
        x=selected,
        y=dict(entry.y),
        opt_path=search.opt_path,
        control=control,
    )
