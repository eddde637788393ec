"""Resampling-based performance estimation."""

from sklearn_exp.core.evaluation.resample import (
    IterationResult,
    ResamplePrediction,
    ResampleResult,
    resample,
)
from sklearn_exp.core.evaluation.candidate import CandidateJob, CandidateResult, evaluate_candidate

__all__ = [
    "IterationResult",
    "ResamplePrediction",
    "ResampleResult",
    "resample",
    "CandidateJob",
    "CandidateResult",
    "evaluate_candidate",
]
