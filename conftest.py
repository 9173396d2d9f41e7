"""
Pytest configuration file.

This file is automatically loaded by pytest and provides global test configuration.
It ensures the project's source directory is added to the Python path so that
modules can be imported properly during test execution, and provides fixtures
shared by several test modules.
"""
import io
import os
import sys
from datetime import datetime

import pytest

# Add the current directory to the Python path
# This ensures imports work correctly when running tests
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

from openpyxl import Workbook  # noqa: E402

from column_store import build_table  # noqa: E402


def make_workbook_bytes(rows, sheet_name="Sheet1"):
    """
    Build an in-memory .xlsx file.

    Args:
        rows: Rows to append, the first one being the header row
        sheet_name: Title of the only worksheet

    Returns:
        bytes: The workbook content
    """
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = sheet_name
    for row in rows:
        sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def workbook_bytes():
    """Factory fixture returning make_workbook_bytes."""
    return make_workbook_bytes


@pytest.fixture
def mixed_table():
    """
    Fixture providing a table with one column of each kind and some nulls.

    Returns:
        Table: 4 rows; score is numeric, joined is temporal, name is text
    """
    headers = ["name", "score", "joined"]
    grid = [
        ["alice", "10", "2024-01-05"],
        ["bob", "", "2023-12-31"],
        ["carol", "7.5", ""],
        ["dave", "12", "2024-02-29"],
    ]
    return build_table(headers, grid)


@pytest.fixture
def people_rows():
    """
    Fixture providing worksheet rows with native Excel types.

    Returns:
        list: Header row followed by 3 data rows
    """
    return [
        ["first_name", "age", "joined", "email"],
        ["John", 30, datetime(2020, 1, 15), "john@example.com"],
        ["Jane", 25, datetime(2021, 6, 1), "jane@example.com"],
        ["Bob", 45, datetime(2019, 3, 20), "bob@example.com"],
    ]
