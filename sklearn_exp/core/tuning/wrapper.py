"""TuneWrapper: A learner that tunes itself on its training data."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple, Union, TYPE_CHECKING

import numpy as np
import pandas as pd

from sklearn_exp.config import ExperimentConfig
from sklearn_exp.core.data.resample import ResampleDesc
from sklearn_exp.core.learner.learner import Learner
from sklearn_exp.core.learner.registry import make_learner
from sklearn_exp.core.measures import Measure
from sklearn_exp.core.tuning.control import TuneControl
from sklearn_exp.core.tuning.tune import TuneResult, tune_params

if TYPE_CHECKING:
    from sklearn_exp.core.task.base import Task
    from sklearn_exp.search.space import SearchSpace

logger = logging.getLogger(__name__)


@dataclass
class TunedEstimator:
    """
    Fitted estimator of a TuneWrapper.

    Attributes:
        learner: Base learner with the tuned hyperparameters set.
        estimator: Estimator fitted with the tuned hyperparameters.
        tune_result: Result of the inner tuning run.
    """

    learner: Learner
    estimator: Any
    tune_result: TuneResult


class TuneWrapper(Learner):
    """
    Learner that runs ``tune_params`` on its training data and then fits the
    base learner with the best hyperparameters.

    Resampling a TuneWrapper gives a nested resampling estimate of the tuned
    learner's performance.

    Example:
        lrn = TuneWrapper("classif.rpart", ResampleDesc("Holdout"), space, TuneControlGrid(resolution=3))
        res = resample(lrn, task, ResampleDesc("CV", iters=3))
    """

    def __init__(
        self,
        learner: Union[str, Learner],
        resampling: ResampleDesc,
        par_set: SearchSpace,
        control: TuneControl,
        measures: Union[None, str, Measure, Sequence[Union[str, Measure]]] = None,
    ) -> None:
        """
        Initialize the wrapper.

        Args:
            learner: Base learner or registered learner id.
            resampling: Inner resampling description.
            par_set: Search space of the base learner's hyperparameters.
            control: Search strategy.
            measures: Inner measures; the first one is optimised.
        """
        if isinstance(learner, str):
            learner = make_learner(learner)
        if not isinstance(resampling, ResampleDesc):
            raise TypeError("TuneWrapper needs a ResampleDesc, instances depend on the training data")
        super().__init__(
            id=f"{learner.id}.tuned",
            estimator=learner.estimator,
            type=learner.type,
            predict_type=learner.predict_type,
            properties=learner.properties,
            params=learner.params,
            name=f"{learner.name} (tuned)",
        )
        self.base_learner = learner
        self.resampling = resampling
        self.par_set = par_set
        self.control = control
        self.measures = measures

    def set_predict_type(self, predict_type: str) -> TuneWrapper:
        new = super().set_predict_type(predict_type)
        new.base_learner = self.base_learner.set_predict_type(predict_type)
        return new

    def _base_with_params(self, config: ExperimentConfig) -> Learner:
        return self.base_learner.with_params(self._params, config)

    def _train_model(self, task: Task, idx: np.ndarray, config: ExperimentConfig) -> TunedEstimator:
        train_task = task.subset(idx)
        base = self._base_with_params(config)
        result = tune_params(
            base,
            train_task,
            self.resampling,
            self.par_set,
            self.control,
            measures=self.measures,
            config=config,
        )
        final = base.with_params(result.x, config.updated(on_par_without_desc="quiet"))
        logger.debug(f"Fitting {final.id} with tuned hyperparameters {result.x}")
        estimator = final._train_model(train_task, np.arange(train_task.size), config)
        return TunedEstimator(learner=final, estimator=estimator, tune_result=result)

    def _predict_model(self, fitted: TunedEstimator, X: pd.DataFrame) -> Tuple[Any, Optional[pd.DataFrame]]:
        return fitted.learner._predict_model(fitted.estimator, X)

    def __repr__(self) -> str:
        return f"TuneWrapper({self.base_learner!r}, control={type(self.control).__name__})"


def get_tune_results(models: List[Any]) -> List[Optional[TuneResult]]:
    """Inner tuning results of the models of a resampled TuneWrapper."""
    return [
        m.learner_model.tune_result if isinstance(m.learner_model, TunedEstimator) else None
        for m in models
    ]
