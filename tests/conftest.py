"""Shared fixtures for sklearn-exp tests."""

import numpy as np
import pandas as pd
import pytest
from sklearn.datasets import load_iris

from sklearn_exp.config import reset_config
from sklearn_exp.core.data.resample import ResampleDesc, ResampleInstance
from sklearn_exp.core.task import ClassifTask, ClusterTask, RegrTask
from sklearn_exp.execution.parallel import parallel_stop


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: tests that dispatch work to parallel workers")
    config.addinivalue_line("markers", "slow: tests that take more than a few seconds")


@pytest.fixture(autouse=True)
def clean_state():
    """Every test starts with default options and parallelization stopped."""
    reset_config()
    parallel_stop()
    yield
    reset_config()
    parallel_stop()


@pytest.fixture
def iris_df():
    """Iris data with short column names and a string class column."""
    iris = load_iris(as_frame=True)
    df = iris.data.copy()
    df.columns = ["sepal_length", "sepal_width", "petal_length", "petal_width"]
    df["Species"] = np.asarray(iris.target_names)[iris.target.to_numpy()]
    return df


@pytest.fixture
def iris_task(iris_df):
    """Three-class classification task."""
    return ClassifTask(iris_df, target="Species", id="iris")


@pytest.fixture
def binary_df():
    """Two-class data where only x1 carries signal."""
    rng = np.random.RandomState(0)
    n = 120
    y = np.repeat(["a", "b"], n // 2)
    df = pd.DataFrame(
        {
            "x1": (y == "b") * 10.0 + rng.normal(size=n),
            "x2": rng.normal(size=n),
            "x3": rng.normal(size=n),
            "x4": rng.normal(size=n),
            "y": y,
        }
    )
    return df


@pytest.fixture
def binary_task(binary_df):
    """Two-class classification task, positive class "a"."""
    return ClassifTask(binary_df, target="y", id="binary")


@pytest.fixture
def regr_df():
    """Linear regression data with a little noise."""
    rng = np.random.RandomState(1)
    n = 100
    X = rng.normal(size=(n, 3))
    y = 2.0 * X[:, 0] - X[:, 1] + 0.1 * rng.normal(size=n)
    df = pd.DataFrame(X, columns=["a", "b", "c"])
    df["target"] = y
    return df


@pytest.fixture
def regr_task(regr_df):
    """Regression task."""
    return RegrTask(regr_df, target="target", id="linear")


@pytest.fixture
def cluster_task(iris_df):
    """Clustering task on the iris measurements."""
    return ClusterTask(iris_df.drop(columns="Species"), id="iris_cluster")


@pytest.fixture
def one_class_first_fold(binary_task):
    """Three folds on binary_task; the first trains on class "a" only."""
    n = binary_task.size
    positions = np.arange(n)
    return ResampleInstance(
        desc=ResampleDesc("CV", iters=3),
        size=n,
        train_inds=[positions[: n // 2], positions[0::2], positions[1::2]],
        test_inds=[positions[n // 2 :], positions[1::2], positions[0::2]],
    )
