"""AuditLogger: Logging of resampling iterations and search evaluations."""

from __future__ import annotations

import json
import logging
import math
import sys
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional


@dataclass
class IterationLog:
    """Log entry for a single resampling iteration."""

    experiment: str
    iteration: int
    measures: Dict[str, float]
    train_time: float
    timestamp: str
    err_msg: Optional[str] = None


@dataclass
class EvaluationLog:
    """Log entry for one evaluated point of a tuning or feature selection run."""

    experiment: str
    dob: int
    x: Dict[str, Any]
    y: Dict[str, float]
    exec_time: float
    timestamp: str
    err_msg: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)


class AuditLogger:
    """
    Logger for tracking experiment progress.

    Records:
    - Per-iteration measures and training times of resampling runs
    - Every evaluated point of tuning and feature selection runs
    - Warnings and errors

    Entries are recorded in the dispatching process, after the results of
    parallel workers have been collected.
    """

    def __init__(
        self,
        log_file: Optional[str] = None,
        console_level: int = logging.INFO,
        file_level: int = logging.DEBUG,
        name: str = "sklearn_exp.audit",
    ) -> None:
        """
        Initialize the audit logger.

        Args:
            log_file: Path to log file (optional).
            console_level: Logging level for console output.
            file_level: Logging level for file output.
            name: Logger name.
        """
        self.name = name
        self._iteration_logs: List[IterationLog] = []
        self._evaluation_logs: List[EvaluationLog] = []

        # Set up Python logger
        self._logger = logging.getLogger(name)
        self._logger.setLevel(logging.DEBUG)
        self._logger.handlers.clear()
        self._logger.propagate = False

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(console_level)
        console_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
        )
        self._logger.addHandler(console_handler)

        if log_file:
            self.log_file = Path(log_file)
            self.log_file.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(file_level)
            file_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
                )
            )
            self._logger.addHandler(file_handler)
        else:
            self.log_file = None

    def log_iteration(
        self,
        experiment: str,
        iteration: int,
        measures: Dict[str, float],
        train_time: float,
        err_msg: Optional[str] = None,
    ) -> None:
        """
        Log results from a resampling iteration.

        Args:
            experiment: Name of the run, e.g. "<task>/<learner>".
            iteration: 1-based iteration number.
            measures: Test measure values.
            train_time: Time to train in seconds.
            err_msg: Error message if the learner failed.
        """
        self._iteration_logs.append(
            IterationLog(
                experiment=experiment,
                iteration=iteration,
                measures=dict(measures),
                train_time=train_time,
                timestamp=datetime.now().isoformat(),
                err_msg=err_msg,
            )
        )
        values = ", ".join(f"{k}={v:.4f}" for k, v in measures.items())
        self._logger.debug(f"[{experiment}] iter {iteration}: {values}, time={train_time:.2f}s")
        if err_msg:
            self._logger.warning(f"[{experiment}] iter {iteration} failed: {err_msg}")

    def log_evaluation(
        self,
        experiment: str,
        dob: int,
        x: Dict[str, Any],
        y: Dict[str, float],
        exec_time: float,
        err_msg: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Log an evaluated point of a search.

        Args:
            experiment: Name of the run.
            dob: Batch ("date of birth") the point was proposed in.
            x: Evaluated point.
            y: Aggregated measure values.
            exec_time: Evaluation time in seconds.
            err_msg: Error message if an iteration failed.
            extra: Additional metadata.
        """
        self._evaluation_logs.append(
            EvaluationLog(
                experiment=experiment,
                dob=dob,
                x=dict(x),
                y=dict(y),
                exec_time=exec_time,
                timestamp=datetime.now().isoformat(),
                err_msg=err_msg,
                extra=extra or {},
            )
        )
        self._logger.debug(f"[{experiment}] dob {dob}: x={x}, y={y}, time={exec_time:.2f}s")

    def log_warning(self, message: str) -> None:
        """Log a warning."""
        self._logger.warning(message)

    def log_error(self, message: str, exc: Optional[Exception] = None) -> None:
        """Log an error."""
        if exc:
            self._logger.error(f"{message}: {exc}", exc_info=True)
        else:
            self._logger.error(message)

    def get_iteration_summary(self, experiment: Optional[str] = None) -> Dict[str, Any]:
        """
        Get summary statistics for iteration logs.

        Args:
            experiment: Filter by run name (optional).

        Returns:
            Dictionary with the number of iterations, failures, total time and
            the mean of every measure over iterations without missing values.
        """
        logs = self._iteration_logs
        if experiment:
            logs = [l for l in logs if l.experiment == experiment]

        if not logs:
            return {}

        means: Dict[str, float] = {}
        for key in logs[0].measures:
            values = [l.measures[key] for l in logs if not math.isnan(l.measures.get(key, math.nan))]
            means[key] = sum(values) / len(values) if values else math.nan

        return {
            "n_iterations": len(logs),
            "n_failed": sum(1 for l in logs if l.err_msg),
            "total_time": sum(l.train_time for l in logs),
            "mean_measures": means,
        }

    def get_evaluation_summary(
        self, experiment: Optional[str] = None, measure: Optional[str] = None, minimize: bool = True
    ) -> Dict[str, Any]:
        """
        Get summary statistics for evaluation logs.

        Args:
            experiment: Filter by run name (optional).
            measure: Aggregated measure to rank by. Default: the first one logged.
            minimize: Whether lower values are better.

        Returns:
            Dictionary with summary statistics.
        """
        logs = self._evaluation_logs
        if experiment:
            logs = [l for l in logs if l.experiment == experiment]

        if not logs:
            return {}

        measure = measure or next(iter(logs[0].y), None)
        scores = [l.y[measure] for l in logs if measure in l.y and not math.isnan(l.y[measure])]
        best = (min if minimize else max)(scores) if scores else math.nan

        return {
            "n_evaluations": len(logs),
            "n_failed": sum(1 for l in logs if l.err_msg),
            "best_score": best,
            "total_duration": sum(l.exec_time for l in logs),
        }

    def export_logs(self, path: str) -> None:
        """
        Export all logs to a JSON file.

        Args:
            path: Output file path.
        """
        export_data = {
            "iteration_logs": [asdict(l) for l in self._iteration_logs],
            "evaluation_logs": [asdict(l) for l in self._evaluation_logs],
        }

        with open(path, "w") as f:
            json.dump(export_data, f, indent=2, default=str)

    def clear(self) -> None:
        """Clear all stored logs."""
        self._iteration_logs.clear()
        self._evaluation_logs.clear()

    def __repr__(self) -> str:
        return (
            f"AuditLogger(name={self.name}, iterations={len(self._iteration_logs)}, "
            f"evaluations={len(self._evaluation_logs)})"
        )
