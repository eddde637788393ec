"""Data handling components."""

from sklearn_exp.core.data.resample import (
    ResampleDesc,
    ResampleInstance,
    ResampleMethod,
    make_resample_instance,
)

__all__ = ["ResampleDesc", "ResampleInstance", "ResampleMethod", "make_resample_instance"]
