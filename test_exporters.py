import io
from datetime import datetime
from unittest.mock import patch

import pytest
from openpyxl import load_workbook

import exporters
from column_store import build_table
from exporters import (
    escape_field,
    export_csv,
    export_csv_bytes,
    export_spreadsheet,
    parse_csv,
    safe_sheet_name,
)
from utils.errors import ExportFailure, InvalidInput


class TestExportCsv:
    """
    Tests for export_csv.
    """

    def test_numeric_scenario(self):
        table = build_table(["a", "b"], [[2, 5], [3, 6], [4, 7]])
        assert export_csv(table) == "a,b\n2,5\n3,6\n4,7\n"

    def test_field_with_delimiter_is_quoted(self):
        table = build_table(["v"], [["x"], ["y,z"], ["x"]])
        assert export_csv(table) == 'v\nx\n"y,z"\nx\n'

    @pytest.mark.parametrize(
        "field, delimiter, expected",
        [
            ("plain", ",", "plain"),
            ("a,b", ",", '"a,b"'),
            ('say "hi"', ",", '"say ""hi"""'),
            ("a;b", ",", "a;b"),
            ("a;b", ";", '"a;b"'),
            ("two\nlines", ",", '"two\nlines"'),
        ],
        ids=["plain", "comma", "quotes", "other-delimiter", "custom-delimiter", "newline"]
    )
    def test_escape_field(self, field, delimiter, expected):
        assert escape_field(field, delimiter) == expected

    def test_nulls_and_dates(self, mixed_table):
        text = export_csv(mixed_table)
        lines = text.split("\n")
        assert lines[0] == "name,score,joined"
        assert lines[1] == "alice,10,2024-01-05 00:00:00"
        assert lines[2] == "bob,,2023-12-31 00:00:00"
        assert lines[3] == "carol,7.5,"
        assert text.endswith("2024-02-29 00:00:00\n")
        assert not text.endswith("\n\n")

    def test_custom_delimiter(self):
        table = build_table(["a", "b"], [["1", "x;y"]])
        assert export_csv(table, delimiter=";") == 'a;b\n1;"x;y"\n'

    @pytest.mark.parametrize("delimiter", ["", '"', "\n"], ids=["empty", "quote", "newline"])
    def test_invalid_delimiter(self, mixed_table, delimiter):
        with pytest.raises(InvalidInput):
            export_csv(mixed_table, delimiter=delimiter)

    def test_header_only_table(self):
        table = build_table(["a", "b"], [])
        assert export_csv(table) == "a,b\n"

    def test_bytes_are_utf8(self):
        table = build_table(["name"], [["café"]])
        assert export_csv_bytes(table) == "name\ncafé\n".encode("utf-8")

    def test_round_trip_text_columns(self):
        """
        Parsing the exported document gives back the headers and text values.
        """
        values = ["plain", "with,comma", 'with "quotes"', "multi\nline", "  padded  "]
        table = build_table(["text", "other, header"], [[v, v.upper()] for v in values])

        headers, rows = parse_csv(export_csv(table))

        assert headers == ["text", "other, header"]
        assert [row[0] for row in rows] == values
        assert [row[1] for row in rows] == [v.upper() for v in values]


class TestExportSpreadsheet:
    """
    Tests for export_spreadsheet.
    """

    def _load(self, content):
        return load_workbook(io.BytesIO(content))

    def test_header_is_bold_and_types_are_native(self, mixed_table):
        workbook = self._load(export_spreadsheet(mixed_table, "People"))
        sheet = workbook.active

        assert sheet.title == "People"
        assert [cell.value for cell in sheet[1]] == ["name", "score", "joined"]
        assert all(cell.font.bold for cell in sheet[1])
        assert sheet["B2"].value == 10
        assert isinstance(sheet["B2"].value, (int, float))
        assert sheet["B3"].value is None
        assert sheet["C2"].value == datetime(2024, 1, 5)
        assert sheet["A5"].value == "dave"
        assert sheet.max_row == 5

    def test_columns_are_auto_sized(self):
        table = build_table(["id", "description"], [["1", "a fairly long piece of text"]])
        sheet = self._load(export_spreadsheet(table)).active
        assert sheet.column_dimensions["B"].width > sheet.column_dimensions["A"].width
        assert sheet.column_dimensions["B"].width == len("a fairly long piece of text") + 2

    def test_width_is_capped(self):
        table = build_table(["t"], [["x" * 500]])
        sheet = self._load(export_spreadsheet(table)).active
        assert sheet.column_dimensions["A"].width == 60

    def test_formula_like_text_stays_text(self):
        table = build_table(["f"], [["=1+1"]])
        sheet = self._load(export_spreadsheet(table)).active
        assert sheet["A2"].value == "=1+1"
        assert sheet["A2"].data_type == "s"

    @pytest.mark.parametrize(
        "name, expected",
        [("Data", "Data"), ("a/b:c", "a_b_c"), ("", "Data"), ("x" * 40, "x" * 31)],
        ids=["plain", "invalid-chars", "empty", "too-long"]
    )
    def test_safe_sheet_name(self, name, expected):
        assert safe_sheet_name(name) == expected

    def test_write_failure_raises_export_failure(self, mixed_table):
        with patch.object(exporters.Workbook, "save", side_effect=OSError("disk full")), \
             patch.object(exporters.logger, "exception"):
            with pytest.raises(ExportFailure) as exc_info:
                export_spreadsheet(mixed_table)
        assert "disk full" in exc_info.value.message
