"""Resampling descriptions and instances."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Tuple

import numpy as np
from sklearn.model_selection import (
    KFold,
    LeaveOneOut,
    RepeatedKFold,
    RepeatedStratifiedKFold,
    ShuffleSplit,
    StratifiedKFold,
    StratifiedShuffleSplit,
)
from sklearn.utils import check_random_state, resample as sk_resample

if TYPE_CHECKING:
    from sklearn_exp.core.task.base import Task


class ResampleMethod(Enum):
    """Resampling strategies."""

    CV = "CV"
    LOO = "LOO"
    REPCV = "RepCV"
    SUBSAMPLE = "Subsample"
    BOOTSTRAP = "Bootstrap"
    HOLDOUT = "Holdout"


PREDICT_CHOICES = ("test", "train", "both")

_DEFAULT_ITERS = {
    ResampleMethod.CV: 10,
    ResampleMethod.SUBSAMPLE: 30,
    ResampleMethod.BOOTSTRAP: 30,
    ResampleMethod.HOLDOUT: 1,
}


@dataclass
class ResampleDesc:
    """
    Description of a resampling strategy, independent of any data.

    Attributes:
        method: Resampling strategy.
        iters: Number of iterations (folds for CV, draws for Subsample and
            Bootstrap). Ignored for LOO and Holdout; RepCV uses folds * reps.
        split: Proportion of training observations for Holdout and Subsample.
        folds: Number of folds per repetition for RepCV.
        reps: Number of repetitions for RepCV.
        stratify: Keep class proportions in every split (classification only).
        predict: Which sets to predict on: "test", "train" or "both".
        random_state: Seed for reproducible splits.
    """

    method: ResampleMethod = ResampleMethod.CV
    iters: Optional[int] = None
    split: float = 2 / 3
    folds: int = 10
    reps: int = 10
    stratify: bool = False
    predict: str = "test"
    random_state: Optional[int] = None

    def __post_init__(self) -> None:
        if isinstance(self.method, str):
            self.method = ResampleMethod(self.method)
        if self.iters is None:
            self.iters = _DEFAULT_ITERS.get(self.method)
        if self.method == ResampleMethod.REPCV:
            if self.folds < 2:
                raise ValueError(f"folds must be >= 2, got {self.folds}")
            if self.reps < 1:
                raise ValueError(f"reps must be >= 1, got {self.reps}")
            self.iters = self.folds * self.reps
        elif self.method == ResampleMethod.HOLDOUT:
            self.iters = 1
        elif self.method == ResampleMethod.CV and self.iters < 2:
            raise ValueError(f"CV needs iters >= 2, got {self.iters}")
        elif self.iters is not None and self.iters < 1:
            raise ValueError(f"iters must be >= 1, got {self.iters}")
        if not 0 < self.split < 1:
            raise ValueError(f"split must be in (0, 1), got {self.split}")
        if self.predict not in PREDICT_CHOICES:
            raise ValueError(f"predict must be one of {PREDICT_CHOICES}, got {self.predict!r}")
        if self.stratify and self.method == ResampleMethod.LOO:
            raise ValueError("Stratification is not supported for LOO")

    def __repr__(self) -> str:
        strat = ", stratify" if self.stratify else ""
        return f"ResampleDesc({self.method.value}, iters={self.iters}{strat})"


@dataclass
class ResampleInstance:
    """
    Concrete train/test splits for a data set of a given size.

    Attributes:
        desc: Description the instance was generated from.
        size: Number of observations.
        train_inds: Training positions per iteration.
        test_inds: Test positions per iteration.
        group: Repetition index per iteration (RepCV), else zeros.
    """

    desc: ResampleDesc
    size: int
    train_inds: List[np.ndarray]
    test_inds: List[np.ndarray]
    group: List[int] = field(default_factory=list)

    def __post_init__(self) -> None:
        if len(self.train_inds) != len(self.test_inds):
            raise ValueError("train_inds and test_inds must have the same length")
        if not self.group:
            self.group = [0] * len(self.train_inds)

    @property
    def iters(self) -> int:
        """Number of iterations."""
        return len(self.train_inds)

    @classmethod
    def from_task(cls, desc: ResampleDesc, task: Task) -> ResampleInstance:
        """
        Generate splits for a task.

        Observations sharing a blocking level always end up on the same side
        of every split. Stratification uses the classification target.
        """
        blocking = task.blocking
        if desc.stratify:
            if blocking is not None:
                raise ValueError("Blocking can currently not be mixed with stratification")
            if task.type != "classif":
                raise ValueError(f"Stratification requires a classification task, got {task.type}")
            strata = np.asarray(task.get_targets().cat.codes)
            train, test, group = _split(desc, task.size, strata)
            return cls(desc=desc, size=task.size, train_inds=train, test_inds=test, group=group)

        if blocking is None:
            train, test, group = _split(desc, task.size, None)
            return cls(desc=desc, size=task.size, train_inds=train, test_inds=test, group=group)

        # resample over block levels, then expand every level to its rows
        codes = np.asarray(blocking.codes)
        levels = np.unique(codes)
        members = [np.flatnonzero(codes == lev) for lev in levels]
        block_train, block_test, group = _split(desc, len(levels), None)
        train = [np.concatenate([members[b] for b in blocks]) for blocks in block_train]
        test = [
            np.concatenate([members[b] for b in blocks]) if len(blocks) else np.array([], dtype=int)
            for blocks in block_test
        ]
        return cls(desc=desc, size=task.size, train_inds=train, test_inds=test, group=group)

    @classmethod
    def fixed_holdout(
        cls,
        train_inds: np.ndarray,
        test_inds: np.ndarray,
        size: int,
    ) -> ResampleInstance:
        """Instance with a single fixed train/test split."""
        train_inds = np.asarray(train_inds, dtype=int)
        test_inds = np.asarray(test_inds, dtype=int)
        for inds in (train_inds, test_inds):
            if inds.size and (inds.min() < 0 or inds.max() >= size):
                raise ValueError(f"Indices must lie in [0, {size})")
        return cls(
            desc=ResampleDesc(ResampleMethod.HOLDOUT),
            size=size,
            train_inds=[train_inds],
            test_inds=[test_inds],
        )

    def __repr__(self) -> str:
        return (
            f"ResampleInstance({self.desc.method.value}, iters={self.iters}, "
            f"size={self.size})"
        )


def make_resample_instance(desc: ResampleDesc, task: Task) -> ResampleInstance:
    """Generate a resample instance for a task."""
    return ResampleInstance.from_task(desc, task)


def _split(
    desc: ResampleDesc,
    n: int,
    strata: Optional[np.ndarray],
) -> Tuple[List[np.ndarray], List[np.ndarray], List[int]]:
    """Produce train/test position lists for n units."""
    rng = check_random_state(desc.random_state)
    X = np.zeros((n, 1))
    method = desc.method
    group: List[int] = []

    if method == ResampleMethod.CV:
        if desc.iters > n:
            raise ValueError(f"Cannot create {desc.iters} folds from {n} units")
        splitter = (
            StratifiedKFold(n_splits=desc.iters, shuffle=True, random_state=rng)
            if strata is not None
            else KFold(n_splits=desc.iters, shuffle=True, random_state=rng)
        )
        splits = list(splitter.split(X, strata))
    elif method == ResampleMethod.LOO:
        splits = list(LeaveOneOut().split(X))
    elif method == ResampleMethod.REPCV:
        if desc.folds > n:
            raise ValueError(f"Cannot create {desc.folds} folds from {n} units")
        splitter = (
            RepeatedStratifiedKFold(n_splits=desc.folds, n_repeats=desc.reps, random_state=rng)
            if strata is not None
            else RepeatedKFold(n_splits=desc.folds, n_repeats=desc.reps, random_state=rng)
        )
        splits = list(splitter.split(X, strata))
        group = [i // desc.folds for i in range(len(splits))]
    elif method in (ResampleMethod.SUBSAMPLE, ResampleMethod.HOLDOUT):
        splitter = (
            StratifiedShuffleSplit(n_splits=desc.iters, train_size=desc.split, random_state=rng)
            if strata is not None
            else ShuffleSplit(n_splits=desc.iters, train_size=desc.split, random_state=rng)
        )
        splits = list(splitter.split(X, strata))
    elif method == ResampleMethod.BOOTSTRAP:
        positions = np.arange(n)
        splits = []
        for _ in range(desc.iters):
            train = sk_resample(positions, replace=True, n_samples=n, stratify=strata, random_state=rng)
            test = np.setdiff1d(positions, train)
            splits.append((train, test))
    else:
        raise ValueError(f"Unsupported resampling method: {method}")

    train = [np.sort(np.asarray(tr)) for tr, _ in splits]
    test = [np.sort(np.asarray(te)) for _, te in splits]
    return train, test, group
