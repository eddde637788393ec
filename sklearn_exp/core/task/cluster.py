"""ClusterTask: Task without a target."""

from __future__ import annotations

from typing import Any, Optional, Sequence

import pandas as pd

from sklearn_exp.core.task.base import Task


class ClusterTask(Task):
    """
    Unsupervised clustering task. All columns are features.

    Example:
        task = ClusterTask(iris.drop(columns="Species"), id="iris")
    """

    type = "cluster"

    def __init__(
        self,
        data: pd.DataFrame,
        id: Optional[str] = None,
        weights: Optional[Sequence[float]] = None,
        blocking: Optional[Sequence[Any]] = None,
        fixup_data: str = "warn",
        check_data: bool = True,
    ) -> None:
        super().__init__(
            data,
            target=(),
            id=id,
            weights=weights,
            blocking=blocking,
            fixup_data=fixup_data,
            check_data=check_data,
        )
