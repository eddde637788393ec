"""Feature selection controls: How candidate feature subsets are generated."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

SEQUENTIAL_METHODS = ("sfs", "sbs")


@dataclass
class FeatSelControl:
    """
    Base class for feature selection controls.

    Attributes:
        max_features: Largest subset size to consider. Default: all features.
        batch_size: Subsets evaluated per batch. Default: the number of
            parallel workers.
        random_state: Seed for randomized strategies.
    """

    max_features: Optional[int] = None
    batch_size: Optional[int] = None
    random_state: Optional[int] = None

    def __post_init__(self) -> None:
        if self.max_features is not None and self.max_features < 1:
            raise ValueError(f"max_features must be >= 1, got {self.max_features}")
        if self.batch_size is not None and self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")


@dataclass
class FeatSelControlRandom(FeatSelControl):
    """
    Random subsets: every feature is included with probability ``prob``.

    Attributes:
        maxit: Number of subsets to evaluate.
        prob: Inclusion probability per feature. A draw with more than
            ``max_features`` features keeps a random subset of that size.
    """

    maxit: int = 100
    prob: float = 0.5

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.maxit < 1:
            raise ValueError(f"maxit must be >= 1, got {self.maxit}")
        if not 0 < self.prob <= 1:
            raise ValueError(f"prob must be in (0, 1], got {self.prob}")


@dataclass
class FeatSelControlExhaustive(FeatSelControl):
    """All non-empty subsets with at most ``max_features`` features."""


@dataclass
class FeatSelControlSequential(FeatSelControl):
    """
    Greedy sequential search.

    "sfs" starts from the empty set and adds the best feature while the
    improvement is at least ``alpha``. "sbs" starts from all features and
    removes the least useful one while the improvement is at least ``beta``
    (a negative ``beta`` tolerates a small loss for a smaller subset).

    Attributes:
        method: "sfs" (forward) or "sbs" (backward).
        alpha: Minimal improvement to accept an added feature.
        beta: Minimal improvement to accept a removed feature.
    """

    method: str = "sfs"
    alpha: float = 0.01
    beta: float = -0.001

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.method not in SEQUENTIAL_METHODS:
            raise ValueError(f"method must be one of {SEQUENTIAL_METHODS}, got {self.method!r}")
