"""Audit logging of experiment runs."""

from sklearn_exp.audit.logger import AuditLogger, EvaluationLog, IterationLog

__all__ = ["AuditLogger", "EvaluationLog", "IterationLog"]
