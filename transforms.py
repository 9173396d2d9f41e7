"""
Row-level transforms. Every operation returns a new Table.
"""
import logging
from types import MappingProxyType
from typing import Any, Callable, Mapping, Tuple

from column_statistics import numeric_stats
from column_store import Table
from type_inference import ColumnKind
from utils.errors import InvalidInput

logger = logging.getLogger(__name__)

RowPredicate = Callable[[Mapping[str, Any]], bool]


def filter_rows(table: Table, predicate: RowPredicate) -> Table:
    """
    Keep the rows for which ``predicate`` returns a truthy value.

    The predicate receives a read-only mapping of column name to value. A
    predicate that raises for a row excludes that row; the error is not
    propagated.

    Args:
        table: Source table
        predicate: Callable deciding whether a row is kept

    Returns:
        Table: Matching rows in their original relative order
    """
    matched = []
    failures = 0
    for row_index, row in enumerate(table.rows()):
        try:
            keep = predicate(MappingProxyType(row))
        except Exception as e:
            failures += 1
            logger.debug(f"Predicate failed on row {row_index}: {e}", extra={"row_index": row_index})
            continue
        if keep:
            matched.append(row_index)

    if failures:
        logger.warning(
            f"Excluded {failures} rows whose predicate raised",
            extra={"failed_rows": failures, "row_count": table.row_count}
        )
    return table.take(matched)


def _sort_key(value: Any) -> Tuple:
    # nulls rank below every value
    if value is None:
        return (0,)
    return (1, value)


def sort_rows(table: Table, column_name: str, ascending: bool = True) -> Table:
    """
    Stable sort by one column using the natural order of its kind.

    Numbers compare numerically, date-times chronologically and text by code
    point (no numeric coercion of numeric-looking strings). Nulls are the
    smallest element: first when ascending, last when descending. Rows with
    equal keys keep their original relative order in both directions.

    Raises:
        ColumnNotFound: If the column does not exist
    """
    values = table.column(column_name)
    order = sorted(range(table.row_count), key=lambda i: _sort_key(values[i]), reverse=not ascending)
    logger.debug(
        f"Sorted table by '{column_name}'",
        extra={"column": column_name, "ascending": ascending, "row_count": table.row_count}
    )
    return table.take(order)


def above_mean(table: Table, column_name: str) -> Table:
    """
    Keep rows whose value in a numeric column is strictly greater than the column mean.

    Raises:
        ColumnNotFound: If the column does not exist
        InvalidInput: If the column is not numeric
        EmptyColumn: If the column has no values to average
    """
    column = table.column_info(column_name)
    if column.kind is not ColumnKind.NUMERIC:
        raise InvalidInput(f"Column '{column_name}' is not numeric")
    mean = numeric_stats(column).mean
    return filter_rows(table, lambda row: row[column_name] is not None and row[column_name] > mean)
