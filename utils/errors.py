"""
Error taxonomy for the analysis core.

Every error carries the HTTP status the API layer should answer with, so the
service can turn it into a Result without a lookup table.
"""
from http import HTTPStatus
from typing import Optional


class AnalyzerError(Exception):
    """Base class for all errors raised by the analysis core."""

    status_code: HTTPStatus = HTTPStatus.BAD_REQUEST

    def __init__(self, message: str, status_code: Optional[HTTPStatus] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidInput(AnalyzerError):
    """Null or empty input rejected before any processing."""


class EmptyWorksheet(AnalyzerError):
    """The worksheet has no columns to analyze."""

    status_code = HTTPStatus.UNPROCESSABLE_ENTITY


class ColumnNotFound(AnalyzerError):
    """Lookup by a column name the table does not contain."""

    status_code = HTTPStatus.NOT_FOUND

    def __init__(self, column_name: str):
        super().__init__(f"Column not found: {column_name}")
        self.column_name = column_name


class OutOfRange(AnalyzerError):
    """Row index outside the table."""

    def __init__(self, row_index: int, row_count: int):
        super().__init__(f"Row index {row_index} is out of range for {row_count} rows")
        self.row_index = row_index
        self.row_count = row_count


class EmptyColumn(AnalyzerError):
    """Numeric statistics requested on a column without non-null values."""

    status_code = HTTPStatus.UNPROCESSABLE_ENTITY

    def __init__(self, column_name: str):
        super().__init__(f"Column '{column_name}' has no numeric values")
        self.column_name = column_name


class ExportFailure(AnalyzerError):
    """A renderer could not produce its output."""

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR
