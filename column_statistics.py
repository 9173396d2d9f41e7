"""
Descriptive statistics over a Table.

Records are recomputed on every call and never cached; the Table is only read.
"""
import logging
from typing import Dict, Literal, Union

from pydantic import BaseModel

from column_store import Column, Table
from type_inference import ColumnKind
from utils.errors import EmptyColumn

logger = logging.getLogger(__name__)


class NumericStats(BaseModel):
    """
    Statistics for a numeric column, over non-null values only.

    Attributes:
        mean: Arithmetic mean
        min: Smallest value
        max: Largest value
        count: Number of non-null values
    """
    type: Literal["numeric"] = "numeric"
    mean: float
    min: float
    max: float
    count: int


class TextStats(BaseModel):
    """
    Statistics for text and temporal columns.

    Attributes:
        unique_count: Distinct non-null values (case-sensitive, "" counts as a value)
        null_count: Null slots
        total_count: Row count of the table
    """
    type: Literal["text"] = "text"
    unique_count: int
    null_count: int
    total_count: int


StatsRecord = Union[NumericStats, TextStats]


class StatisticsReport(BaseModel):
    """Statistics per column plus a note for every numeric column that had to be skipped."""
    records: Dict[str, StatsRecord]
    skipped: Dict[str, str] = {}


def numeric_stats(column: Column) -> NumericStats:
    """
    Raises:
        EmptyColumn: If the column has no non-null values
    """
    series = column.to_series().dropna()
    if series.empty:
        raise EmptyColumn(column.name)
    return NumericStats(
        mean=float(series.mean()),
        min=float(series.min()),
        max=float(series.max()),
        count=int(series.count()),
    )


def text_stats(column: Column) -> TextStats:
    return TextStats(
        unique_count=len(set(column.non_null())),
        null_count=column.null_count,
        total_count=len(column),
    )


def compute_statistics_report(table: Table) -> StatisticsReport:
    """
    Compute statistics for every column of a table.

    Numeric columns without any value are not an error for the whole call:
    they get no record and an entry in ``skipped`` instead.

    Args:
        table: Table to analyze

    Returns:
        StatisticsReport: Records keyed by column name and skip notes
    """
    records: Dict[str, StatsRecord] = {}
    skipped: Dict[str, str] = {}

    for column in table.columns:
        if column.kind is ColumnKind.NUMERIC:
            try:
                records[column.name] = numeric_stats(column)
            except EmptyColumn as exc:
                logger.info("Skipping statistics for empty numeric column", extra={"column": column.name})
                skipped[column.name] = exc.message
        else:
            # temporal columns share the text record shape
            records[column.name] = text_stats(column)

    return StatisticsReport(records=records, skipped=skipped)


def compute_statistics(table: Table) -> Dict[str, StatsRecord]:
    return compute_statistics_report(table).records
