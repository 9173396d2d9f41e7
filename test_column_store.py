from datetime import datetime

import pandas as pd
import pytest

from column_store import Column, Table, build_table, dedupe_headers
from type_inference import ColumnKind
from utils.errors import ColumnNotFound, EmptyWorksheet, InvalidInput, OutOfRange


@pytest.fixture
def numeric_table():
    """
    Fixture providing the two-column numeric table used across these tests.

    Returns:
        Table: columns a=[2,3,4], b=[5,6,7]
    """
    return build_table(["a", "b"], [[2, 5], [3, 6], [4, 7]])


class TestDedupeHeaders:
    """
    Tests for dedupe_headers.
    """

    @pytest.mark.parametrize(
        "headers, expected",
        [
            (["a", "a"], ["a", "a_1"]),
            (["a", "a", "a"], ["a", "a_1", "a_2"]),
            (["a", "a_1", "a"], ["a", "a_1", "a_2"]),
            (["x", None, ""], ["x", "Column2", "Column3"]),
            ([" name ", 2021], ["name", "2021"]),
        ],
        ids=["pair", "triple", "existing-suffix", "blank-headers", "trim-and-number"]
    )
    def test_unique_names(self, headers, expected):
        assert dedupe_headers(headers) == expected


class TestBuildTable:
    """
    Tests for build_table.
    """

    def test_numeric_scenario(self, numeric_table):
        assert numeric_table.row_count == 3
        assert numeric_table.column_count == 2
        assert [c.kind for c in numeric_table.columns] == [ColumnKind.NUMERIC, ColumnKind.NUMERIC]
        assert numeric_table.column("a") == (2.0, 3.0, 4.0)

    def test_empty_rows_are_dropped(self):
        grid = [["1", "x"], ["", "  "], [None, None], ["2", "y"]]
        table = build_table(["n", "s"], grid)
        assert table.row_count == 2
        assert table.column("s") == ("x", "y")

    def test_row_count_matches_non_empty_rows(self):
        grid = [["a"], [""], ["b"], [None], ["c"], []]
        table = build_table(["col"], grid)
        assert table.row_count == sum(1 for row in grid if any(str(c or "").strip() for c in row))

    def test_duplicate_headers_are_suffixed(self):
        table = build_table(["a", "a"], [["1", "2"]])
        assert table.column_names == ["a", "a_1"]

    def test_short_rows_are_padded(self):
        table = build_table(["a", "b", "c"], [["1"], ["2", "x", "2024-01-01"]])
        assert table.row_count == 2
        assert table.column("b") == (None, "x")
        assert table.column_info("c").kind == ColumnKind.TEMPORAL

    def test_zero_data_rows_gives_empty_table(self):
        table = build_table(["a", "b"], [])
        assert table.row_count == 0
        assert table.column_count == 2
        assert all(c.kind == ColumnKind.TEXT for c in table.columns)

    def test_zero_columns_is_an_error(self):
        with pytest.raises(EmptyWorksheet):
            build_table([], [["1"]])

    @pytest.mark.parametrize(
        "headers, grid, sample_size",
        [(None, [], 10), (["a"], None, 10), (["a"], [], 0)],
        ids=["no-headers", "no-grid", "zero-sample"]
    )
    def test_invalid_input(self, headers, grid, sample_size):
        with pytest.raises(InvalidInput):
            build_table(headers, grid, sample_size)

    def test_late_failure_is_null_not_text(self):
        grid = [[str(i)] for i in range(10)] + [["eleven"]]
        table = build_table(["n"], grid, sample_size=10)
        column = table.column_info("n")
        assert column.kind == ColumnKind.NUMERIC
        assert column.values[-1] is None
        assert column.null_count == 1


class TestTable:
    """
    Tests for Table accessors.
    """

    def test_get_returns_typed_value(self, numeric_table):
        assert numeric_table.get(1, "b") == 6.0

    @pytest.mark.parametrize("row_index", [3, -1, 100], ids=["row-count", "negative", "far"])
    def test_get_out_of_range(self, numeric_table, row_index):
        with pytest.raises(OutOfRange):
            numeric_table.get(row_index, "a")

    def test_get_unknown_column(self, numeric_table):
        with pytest.raises(ColumnNotFound) as exc_info:
            numeric_table.get(0, "missing")
        assert exc_info.value.column_name == "missing"

    def test_rows_and_row(self, numeric_table):
        assert list(numeric_table.rows())[0] == {"a": 2.0, "b": 5.0}
        assert numeric_table.row(2) == {"a": 4.0, "b": 7.0}

    def test_take_builds_new_table(self, numeric_table):
        taken = numeric_table.take([2, 0])
        assert taken.column("a") == (4.0, 2.0)
        assert numeric_table.column("a") == (2.0, 3.0, 4.0)

    def test_columns_must_have_equal_length(self):
        with pytest.raises(InvalidInput):
            Table([Column("a", ColumnKind.TEXT, ("x",)), Column("b", ColumnKind.TEXT, ())])

    def test_duplicate_column_names_rejected(self):
        with pytest.raises(InvalidInput):
            Table([Column("a", ColumnKind.TEXT, ("x",)), Column("a", ColumnKind.TEXT, ("y",))])

    def test_columns_are_immutable(self, numeric_table):
        with pytest.raises(Exception):
            numeric_table.columns[0].values = (1.0,)

    def test_to_dataframe_dtypes(self, mixed_table):
        df = mixed_table.to_dataframe()
        assert list(df.columns) == ["name", "score", "joined"]
        assert df["score"].dtype == "float64"
        assert pd.api.types.is_datetime64_any_dtype(df["joined"])
        assert df["score"].isna().sum() == 1
        assert df["joined"].iloc[0] == pd.Timestamp(datetime(2024, 1, 5))

    def test_out_of_range_dates_keep_object_dtype(self):
        table = build_table(["end"], [["2024-01-01"], ["9999-12-31"]])
        series = table.column_info("end").to_series()
        assert series.dtype == object
        assert series.iloc[1] == datetime(9999, 12, 31)

    def test_equality(self, numeric_table):
        assert numeric_table == build_table(["a", "b"], [[2, 5], [3, 6], [4, 7]])
        assert numeric_table != build_table(["a", "b"], [[2, 5]])
