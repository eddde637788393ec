"""Tests for Task construction, validation and queries."""

import warnings

import numpy as np
import pandas as pd
import pytest

from sklearn_exp.core.task import ClassifTask, ClusterTask, RegrTask, guess_task_id
from sklearn_exp.exceptions import DataContentError, DataShapeError, TaskError, TaskIdError


@pytest.fixture
def small_df():
    """Four rows, one numeric feature, one factor feature, string target."""
    return pd.DataFrame(
        {
            "x": [1.0, 2.0, 3.0, 4.0],
            "c": pd.Categorical(["a", "b", "a", "b"]),
            "y": ["u", "v", "u", "v"],
        }
    )


class TestTaskConstruction:
    """Tests for basic task construction."""

    def test_creates_task_desc(self, small_df):
        """Verify the description summarises the data."""
        task = ClassifTask(small_df, target="y", id="small")

        td = task.task_desc
        assert td.id == "small"
        assert td.type == "classif"
        assert td.target == ("y",)
        assert td.size == 4
        assert td.n_feat == {"numerics": 1, "factors": 1}
        assert td.n_features == 2
        assert td.has_missings is False
        assert td.has_weights is False
        assert td.has_blocking is False

    def test_data_must_be_dataframe(self):
        """Verify non-DataFrame input is rejected."""
        with pytest.raises(TypeError, match="DataFrame"):
            ClassifTask(np.zeros((3, 2)), target="y", id="arr")

    def test_missing_target_raises(self, small_df):
        """Verify an unknown target column is a shape error."""
        with pytest.raises(DataShapeError, match="not found"):
            ClassifTask(small_df, target="label", id="small")

    def test_duplicated_column_names_raise(self):
        """Verify duplicated column names are rejected."""
        df = pd.DataFrame([[1.0, 2.0, "u"]], columns=["a", "a", "y"])

        with pytest.raises(DataShapeError, match="Duplicated column names"):
            ClassifTask(df, target="y", id="dup")

    def test_non_string_column_names_raise(self):
        """Verify integer column names are rejected."""
        df = pd.DataFrame({0: [1.0, 2.0], "y": ["u", "v"]})

        with pytest.raises(DataShapeError, match="non-empty strings"):
            ClassifTask(df, target="y", id="ints")

    def test_errors_share_base_class(self, small_df):
        """Verify task errors are ValueErrors."""
        with pytest.raises(ValueError):
            ClassifTask(small_df, target="label", id="small")
        assert issubclass(DataContentError, TaskError)

    def test_data_is_copied(self, small_df):
        """Verify later changes to the input do not reach the task."""
        task = ClassifTask(small_df, target="y", id="small")

        small_df.loc[0, "x"] = 100.0

        assert task.get_data()["x"].iloc[0] == 1.0

    def test_index_is_reset(self, small_df):
        """Verify rows are re-indexed from zero."""
        small_df.index = [10, 11, 12, 13]

        task = ClassifTask(small_df, target="y", id="small")

        assert list(task.get_data().index) == [0, 1, 2, 3]


class TestFeatureChecks:
    """Tests for feature column validation."""

    def test_infinite_value_names_column(self, small_df):
        """Verify an infinite value fails construction naming the column."""
        small_df.loc[2, "x"] = np.inf

        with pytest.raises(DataContentError, match="infinite values in: x"):
            ClassifTask(small_df, target="y", id="small")

    def test_nan_value_names_column(self, small_df):
        """Verify a NaN value fails construction naming the column."""
        small_df.loc[1, "x"] = np.nan

        with pytest.raises(DataContentError, match="NaN values in: x"):
            ClassifTask(small_df, target="y", id="small")

    def test_unsupported_type_names_column(self, small_df):
        """Verify object columns are rejected."""
        small_df["s"] = ["p", "q", "r", "s"]

        with pytest.raises(DataContentError, match="Unsupported feature type in: s"):
            ClassifTask(small_df, target="y", id="small")

    def test_check_data_false_skips_content_checks(self, small_df):
        """Verify content checks can be disabled."""
        small_df.loc[2, "x"] = np.inf

        task = ClassifTask(small_df, target="y", id="small", check_data=False)

        assert np.isinf(task.get_data()["x"].iloc[2])

    def test_nullable_missing_values_are_missings(self, small_df):
        """Verify pandas missing markers set has_missings instead of failing."""
        small_df["n"] = pd.array([1, None, 3, 4], dtype="Int64")

        task = ClassifTask(small_df, target="y", id="small")

        assert task.task_desc.has_missings is True

    def test_missing_factor_value_is_missing(self, small_df):
        """Verify a missing categorical value sets has_missings."""
        small_df["c"] = pd.Categorical(["a", None, "a", "b"])

        task = ClassifTask(small_df, target="y", id="small")

        assert task.task_desc.has_missings is True


class TestFixup:
    """Tests for dropping empty factor levels."""

    @pytest.fixture
    def unused_level_df(self, small_df):
        small_df["c"] = pd.Categorical(["a", "b", "a", "b"], categories=["a", "b", "z"])
        return small_df

    def test_warn_drops_level_and_names_column(self, unused_level_df):
        """Verify "warn" removes the unused level and names the column."""
        with pytest.warns(UserWarning, match="Empty factor levels were dropped for columns: c"):
            task = ClassifTask(unused_level_df, target="y", id="small")

        assert list(task.get_data()["c"].cat.categories) == ["a", "b"]

    def test_warn_names_every_changed_column(self, unused_level_df):
        """Verify the warning lists all columns whose levels changed."""
        unused_level_df["d"] = pd.Categorical(["k", "k", "k", "k"], categories=["k", "m"])

        with pytest.warns(UserWarning) as record:
            ClassifTask(unused_level_df, target="y", id="small")

        messages = [str(w.message) for w in record]
        assert any("columns: c, d" in m for m in messages)

    def test_quiet_drops_silently(self, unused_level_df):
        """Verify "quiet" removes the level without warning."""
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            task = ClassifTask(unused_level_df, target="y", id="small", fixup_data="quiet")

        assert list(task.get_data()["c"].cat.categories) == ["a", "b"]

    def test_no_fixup_fails_check(self, unused_level_df):
        """Verify "no" keeps the level, which the data check then rejects."""
        with pytest.raises(DataContentError, match="empty factor levels in: c"):
            ClassifTask(unused_level_df, target="y", id="small", fixup_data="no")

    def test_no_fixup_without_check_keeps_level(self, unused_level_df):
        """Verify the level survives with fixup and checks disabled."""
        task = ClassifTask(unused_level_df, target="y", id="small", fixup_data="no", check_data=False)

        assert list(task.get_data()["c"].cat.categories) == ["a", "b", "z"]

    def test_invalid_choice_raises(self, small_df):
        """Verify unknown fixup choices are rejected."""
        with pytest.raises(ValueError, match="fixup_data"):
            ClassifTask(small_df, target="y", id="small", fixup_data="always")


class TestWeightsAndBlocking:
    """Tests for case weights and blocking."""

    def test_weights_stored(self, small_df):
        """Verify weights are stored as floats."""
        task = ClassifTask(small_df, target="y", id="small", weights=[1, 2, 3, 4])

        np.testing.assert_array_equal(task.weights, [1.0, 2.0, 3.0, 4.0])
        assert task.task_desc.has_weights is True

    def test_weights_length_mismatch_raises(self, small_df):
        """Verify wrong weight length fails even without data checks."""
        with pytest.raises(DataShapeError, match="Weights have to be of the same length"):
            ClassifTask(small_df, target="y", id="small", weights=[1.0, 2.0], check_data=False)

    def test_negative_weights_raise(self, small_df):
        """Verify negative weights are rejected."""
        with pytest.raises(DataContentError, match="non-negative"):
            ClassifTask(small_df, target="y", id="small", weights=[1.0, -1.0, 1.0, 1.0])

    def test_missing_weights_raise(self, small_df):
        """Verify NaN weights are rejected."""
        with pytest.raises(DataContentError, match="missing"):
            ClassifTask(small_df, target="y", id="small", weights=[1.0, np.nan, 1.0, 1.0])

    def test_blocking_length_mismatch_raises(self, small_df):
        """Verify wrong blocking length fails even without data checks."""
        with pytest.raises(DataShapeError, match="Blocking has to be of the same length"):
            ClassifTask(small_df, target="y", id="small", blocking=[1, 2, 3], check_data=False)

    def test_blocking_is_categorical(self, small_df):
        """Verify blocking is stored as a categorical."""
        task = ClassifTask(small_df, target="y", id="small", blocking=[1, 1, 2, 2])

        assert isinstance(task.blocking, pd.Categorical)
        assert task.task_desc.has_blocking is True

    def test_weights_property_returns_copy(self, small_df):
        """Verify the stored weights cannot be changed from outside."""
        task = ClassifTask(small_df, target="y", id="small", weights=[1, 2, 3, 4])

        task.weights[0] = 99.0

        assert task.weights[0] == 1.0


class TestTaskId:
    """Tests for task id inference."""

    def test_id_from_variable_name(self, small_df):
        """Verify the caller's variable name becomes the id."""
        wine_data = small_df.copy()

        task = ClassifTask(wine_data, target="y")

        assert task.id == "wine_data"

    def test_id_from_attrs(self, small_df):
        """Verify data.attrs["name"] takes precedence."""
        small_df.attrs["name"] = "named"

        assert guess_task_id(small_df) == "named"

    def test_id_cannot_be_inferred(self):
        """Verify an anonymous frame raises TaskIdError."""
        with pytest.raises(TaskIdError, match="Cannot infer id for task automatically"):
            ClassifTask(pd.DataFrame({"x": [1.0, 2.0], "y": ["u", "v"]}), target="y")

    def test_empty_id_raises(self, small_df):
        """Verify an empty id is rejected."""
        with pytest.raises(TaskIdError):
            ClassifTask(small_df, target="y", id="")


class TestTaskQueries:
    """Tests for data queries and formulas."""

    def test_get_data_subset_and_features(self, small_df):
        """Verify rows and feature columns can be selected."""
        task = ClassifTask(small_df, target="y", id="small")

        data = task.get_data(subset=[1, 3], features=["x"])

        assert list(data.columns) == ["x", "y"]
        assert list(data["x"]) == [2.0, 4.0]

    def test_get_data_target_extra(self, small_df):
        """Verify features and target can be returned separately."""
        task = ClassifTask(small_df, target="y", id="small")

        X, y = task.get_data(target_extra=True)

        assert list(X.columns) == ["x", "c"]
        assert list(y) == ["u", "v", "u", "v"]

    def test_boolean_subset(self, small_df):
        """Verify a boolean mask selects rows."""
        task = ClassifTask(small_df, target="y", id="small")

        data = task.get_data(subset=np.array([True, False, False, True]))

        assert list(data["x"]) == [1.0, 4.0]

    def test_out_of_range_subset_raises(self, small_df):
        """Verify positions outside the task are rejected."""
        task = ClassifTask(small_df, target="y", id="small")

        with pytest.raises(ValueError, match="subset positions"):
            task.get_data(subset=[0, 4])

    def test_unknown_feature_raises(self, small_df):
        """Verify unknown feature names are rejected."""
        task = ClassifTask(small_df, target="y", id="small")

        with pytest.raises(ValueError, match="Unknown features"):
            task.get_data(features=["nope"])

    def test_formula(self, small_df):
        """Verify the formula representation."""
        task = ClassifTask(small_df, target="y", id="small")

        assert task.get_formula() == "y ~ ."
        assert task.get_formula(explicit_features=True) == "y ~ x + c"

    def test_cluster_formula_has_no_lhs(self):
        """Verify a cluster task formula has an empty left hand side."""
        task = ClusterTask(pd.DataFrame({"a": [1.0, 2.0]}), id="cl")

        assert task.get_formula() == "~ ."

    def test_get_targets_without_target_raises(self):
        """Verify unsupervised tasks have no targets."""
        task = ClusterTask(pd.DataFrame({"a": [1.0, 2.0]}), id="cl")

        with pytest.raises(ValueError, match="has no target"):
            task.get_targets()


class TestSubset:
    """Tests for task subsetting."""

    def test_subset_rows(self, small_df):
        """Verify subsetting returns a new task with the selected rows."""
        task = ClassifTask(small_df, target="y", id="small", weights=[1, 2, 3, 4], blocking=["p", "p", "q", "q"])

        sub = task.subset([2, 3])

        assert isinstance(sub, ClassifTask)
        assert sub.size == 2
        assert sub.id == "small"
        np.testing.assert_array_equal(sub.weights, [3.0, 4.0])
        assert list(sub.blocking) == ["q", "q"]
        assert task.size == 4

    def test_subset_keeps_class_levels(self, small_df):
        """Verify class levels survive a subset containing one class."""
        task = ClassifTask(small_df, target="y", id="small")

        sub = task.subset([0, 2])

        assert sub.class_levels == ("u", "v")

    def test_subset_features(self, small_df):
        """Verify feature subsetting keeps the target."""
        task = ClassifTask(small_df, target="y", id="small")

        sub = task.subset(features=["c"])

        assert sub.feature_names == ["c"]
        assert sub.task_desc.n_feat == {"numerics": 0, "factors": 1}
        assert list(sub.get_data().columns) == ["c", "y"]

    def test_subset_shares_no_data(self, small_df):
        """Verify the subset does not share its frame with the parent."""
        task = ClassifTask(small_df, target="y", id="small")
        sub = task.subset([0, 1])

        sub._data.loc[0, "x"] = -1.0

        assert task.get_data()["x"].iloc[0] == 1.0


class TestDescribe:
    """Tests for the printed summary."""

    def test_describe_contents(self, small_df):
        """Verify describe lists the main properties."""
        task = ClassifTask(small_df, target="y", id="small", weights=[1, 1, 1, 1])

        text = task.describe()

        assert "Task: small" in text
        assert "Type: classif" in text
        assert "Observations: 4" in text
        assert "numerics: 1" in text
        assert "factors: 1" in text
        assert "Has weights: True" in text
        assert "Has blocking: False" in text
        assert "Classes: 2" in text
        assert "Positive class: u" in text

    def test_describe_without_weights(self, small_df):
        """Verify the weights line can be omitted."""
        task = ClassifTask(small_df, target="y", id="small")

        assert "Has weights" not in task.describe(print_weights=False)

    def test_str_and_repr(self, small_df):
        """Verify str is the description and repr is compact."""
        task = RegrTask(small_df.assign(y=[1.0, 2.0, 3.0, 4.0]), target="y", id="r")

        assert str(task) == task.describe()
        assert repr(task) == "RegrTask(id='r', size=4, n_features=2)"
