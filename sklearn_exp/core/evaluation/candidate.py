"""Evaluation of a single candidate (hyperparameter point or feature subset)."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Dict, List, Optional

from sklearn_exp.config import ExperimentConfig
from sklearn_exp.core.data.resample import ResampleInstance
from sklearn_exp.core.evaluation.resample import resample
from sklearn_exp.core.learner.learner import Learner
from sklearn_exp.core.measures import Measure
from sklearn_exp.core.task.base import Task


@dataclass
class CandidateJob:
    """
    Work item for a search driver.

    Attributes:
        learner: Learner with the candidate hyperparameters already set.
        task: Task to evaluate on.
        instance: Resample instance shared by all candidates of a search.
        measures: Measures to aggregate.
        features: Feature subset to restrict the task to, if any.
    """

    learner: Learner
    task: Task
    instance: ResampleInstance
    measures: List[Measure]
    features: Optional[List[str]] = None


@dataclass
class CandidateResult:
    """Aggregated performance of one candidate, returned by a worker."""

    y: Dict[str, float]
    error_message: Optional[str]
    exec_time: float


def evaluate_candidate(job: CandidateJob, config: ExperimentConfig) -> CandidateResult:
    """Resample one candidate. Runs inside a worker."""
    start = time.time()
    task = job.task if job.features is None else job.task.subset(features=job.features)
    res = resample(
        job.learner,
        task,
        job.instance,
        measures=job.measures,
        keep_pred=False,
        config=config.updated(show_info=False),
    )
    messages = [
        m for col in ("train", "predict") for m in res.err_msgs[col] if isinstance(m, str) and m
    ]
    return CandidateResult(
        y=dict(res.aggr),
        error_message=messages[0] if messages else None,
        exec_time=time.time() - start,
    )
