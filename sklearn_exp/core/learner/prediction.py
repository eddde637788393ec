"""Prediction: Predictions of a fitted learner, aligned with the true values."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import numpy as np
import pandas as pd

from sklearn_exp.core.task.base import TaskDesc

PROB_PREFIX = "prob."


@dataclass
class Prediction:
    """
    Predictions for a set of observations.

    ``data`` holds one row per observation with columns ``id`` (position in
    the task), ``truth`` (if known), ``response`` and, for probability
    predictions, one ``prob.<class>`` column per class level.

    Attributes:
        task_desc: Description of the task the model was trained on.
        data: Prediction table.
        predict_type: "response" or "prob".
        time: Time to predict in seconds.
        err_msg: Error message if the learner failed to predict.
    """

    task_desc: TaskDesc
    data: pd.DataFrame
    predict_type: str = "response"
    time: float = 0.0
    err_msg: Optional[str] = None

    @classmethod
    def build(
        cls,
        task_desc: TaskDesc,
        ids: np.ndarray,
        truth: Optional[Any],
        response: Any,
        prob: Optional[pd.DataFrame],
        predict_type: str,
        time: float = 0.0,
        err_msg: Optional[str] = None,
    ) -> Prediction:
        """Assemble a prediction table, aligning classes with the task levels."""
        frame = pd.DataFrame({"id": np.asarray(ids, dtype=int)})
        levels = list(task_desc.class_levels)
        if truth is not None:
            frame["truth"] = np.asarray(truth)
            if task_desc.type == "classif":
                frame["truth"] = pd.Categorical(frame["truth"], categories=levels)
        if task_desc.type == "classif":
            frame["response"] = pd.Categorical(np.asarray(response, dtype=object), categories=levels)
        else:
            frame["response"] = np.asarray(response)
        if prob is not None:
            prob = prob.reindex(columns=levels, fill_value=0.0)
            for level in levels:
                frame[f"{PROB_PREFIX}{level}"] = prob[level].to_numpy(dtype=float)
        return cls(task_desc=task_desc, data=frame, predict_type=predict_type, time=time, err_msg=err_msg)

    @property
    def ids(self) -> np.ndarray:
        """Observation positions."""
        return self.data["id"].to_numpy()

    @property
    def truth(self) -> Optional[pd.Series]:
        """True target values, or None if unknown."""
        return self.data["truth"] if "truth" in self.data else None

    @property
    def response(self) -> pd.Series:
        """Predicted responses."""
        return self.data["response"]

    @property
    def prob(self) -> Optional[pd.DataFrame]:
        """Predicted class probabilities with class labels as columns."""
        cols = [c for c in self.data.columns if isinstance(c, str) and c.startswith(PROB_PREFIX)]
        if not cols:
            return None
        prob = self.data[cols].copy()
        prob.columns = list(self.task_desc.class_levels)
        return prob

    @property
    def has_missing(self) -> bool:
        """Whether any response is missing (e.g. from a failed model)."""
        return bool(self.data["response"].isna().any())

    def __len__(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:
        return (
            f"Prediction(task={self.task_desc.id}, type={self.predict_type}, "
            f"n={len(self.data)})"
        )
