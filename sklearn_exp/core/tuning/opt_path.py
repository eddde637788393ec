"""OptPath: Ordered log of evaluated points of a search."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


@dataclass
class OptPathEntry:
    """
    One evaluated point.

    Attributes:
        x: Point on the search scale (hyperparameters, or feature bits).
        y: Aggregated measure values, keyed like "mmce.test.mean".
        dob: Batch in which the point was proposed ("date of birth").
        eol: Batch after which the point was discarded, if any.
        error_message: Error message if the learner failed.
        exec_time: Evaluation time in seconds.
        extra: Additional values, e.g. the transformed hyperparameters.
    """

    x: Dict[str, Any]
    y: Dict[str, float]
    dob: int
    eol: Optional[int] = None
    error_message: Optional[str] = None
    exec_time: float = 0.0
    extra: Dict[str, Any] = field(default_factory=dict)


class OptPath:
    """
    Ordered log of the points evaluated by a tuning or feature selection run.

    Example:
        path = OptPath(["mmce.test.mean"], minimize=[True])
        path.add({"cp": 0.01}, {"mmce.test.mean": 0.05}, dob=1)
        path.best_index()
    """

    def __init__(self, y_names: Sequence[str], minimize: Sequence[bool]) -> None:
        """
        Initialize an empty path.

        Args:
            y_names: Names of the measured values; the first one is optimised.
            minimize: Per y name, whether lower values are better.
        """
        if len(y_names) != len(minimize):
            raise ValueError("y_names and minimize must have the same length")
        if not y_names:
            raise ValueError("At least one y name is required")
        self.y_names = list(y_names)
        self.minimize = list(minimize)
        self._entries: List[OptPathEntry] = []

    def add(
        self,
        x: Dict[str, Any],
        y: Dict[str, float],
        dob: int,
        eol: Optional[int] = None,
        error_message: Optional[str] = None,
        exec_time: float = 0.0,
        extra: Optional[Dict[str, Any]] = None,
    ) -> OptPathEntry:
        """Append an evaluated point."""
        missing = [n for n in self.y_names if n not in y]
        if missing:
            raise ValueError(f"y is missing values for: {missing}")
        entry = OptPathEntry(
            x=dict(x),
            y={n: float(y[n]) for n in self.y_names},
            dob=dob,
            eol=eol,
            error_message=error_message,
            exec_time=exec_time,
            extra=dict(extra or {}),
        )
        self._entries.append(entry)
        return entry

    def best_index(self, measure: Optional[str] = None, ties: str = "first") -> int:
        """
        Index of the best point.

        Points with a missing value are never preferred over evaluated ones.
        If every point is missing, the first one is returned.

        Args:
            measure: y name to rank by. Default: the optimised one.
            ties: "first", "last" or "random".
        """
        if not self._entries:
            raise ValueError("Optimization path is empty")
        if ties not in ("first", "last", "random"):
            raise ValueError(f"ties must be 'first', 'last' or 'random', got {ties!r}")
        measure = measure or self.y_names[0]
        minimize = self.minimize[self.y_names.index(measure)]

        values = np.array([e.y[measure] for e in self._entries], dtype=float)
        valid = ~np.isnan(values)
        if not valid.any():
            logger.warning(f"All {len(values)} evaluations of {measure} are missing")
            return 0
        best = np.nanmin(values) if minimize else np.nanmax(values)
        candidates = np.flatnonzero(valid & (values == best))
        if ties == "last":
            return int(candidates[-1])
        if ties == "random":
            return int(np.random.choice(candidates))
        return int(candidates[0])

    def best(self, measure: Optional[str] = None) -> OptPathEntry:
        """Best entry, see ``best_index``."""
        return self._entries[self.best_index(measure)]

    def get_x(self, i: int) -> Dict[str, Any]:
        return dict(self._entries[i].x)

    def get_y(self, i: int) -> Dict[str, float]:
        return dict(self._entries[i].y)

    @property
    def n_errors(self) -> int:
        """Number of points whose evaluation reported an error."""
        return sum(1 for e in self._entries if e.error_message)

    def to_dataframe(self, include_extra: bool = False) -> pd.DataFrame:
        """
        One row per point with the x values, y values, ``dob``, ``eol``,
        ``error_message`` and ``exec_time``.
        """
        x_names: List[str] = []
        for e in self._entries:
            x_names.extend(k for k in e.x if k not in x_names)
        rows = []
        for e in self._entries:
            row: Dict[str, Any] = {name: e.x.get(name, math.nan) for name in x_names}
            row.update(e.y)
            row.update(dob=e.dob, eol=e.eol, error_message=e.error_message, exec_time=e.exec_time)
            if include_extra:
                row.update({f"extra.{k}": v for k, v in e.extra.items()})
            rows.append(row)
        columns = x_names + self.y_names + ["dob", "eol", "error_message", "exec_time"]
        df = pd.DataFrame(rows)
        if df.empty:
            return pd.DataFrame(columns=columns)
        return df[columns + [c for c in df.columns if c not in columns]]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[OptPathEntry]:
        return iter(self._entries)

    def __getitem__(self, i: int) -> OptPathEntry:
        return self._entries[i]

    def __repr__(self) -> str:
        return f"OptPath(n={len(self._entries)}, y={self.y_names})"
