"""
Typed column store.

A Table is an immutable, ordered set of named columns of equal length. Each
column carries its ColumnKind and a tuple of values that are all of that
kind's native type (float, datetime or str) or None.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import pandas as pd

from type_inference import DEFAULT_SAMPLE_SIZE, ColumnKind, infer_kind, is_empty, materialize, to_text
from utils.errors import ColumnNotFound, EmptyWorksheet, InvalidInput, OutOfRange

logger = logging.getLogger(__name__)


# datetime64[ns] covers 1677-09-21 .. 2262-04-11
_NS_MIN = datetime(1677, 9, 22)
_NS_MAX = datetime(2262, 4, 11)


def _in_timestamp_range(value: datetime) -> bool:
    return _NS_MIN <= value < _NS_MAX


@dataclass(frozen=True)
class Column:
    """
    A named, type-homogeneous column.

    Attributes:
        name: Column name, unique within its table
        kind: Kind decided at construction, never re-derived from the values
        values: One slot per row; None marks a null
    """
    name: str
    kind: ColumnKind
    values: Tuple[Any, ...]

    def __len__(self) -> int:
        return len(self.values)

    @property
    def null_count(self) -> int:
        return sum(1 for value in self.values if value is None)

    def non_null(self) -> List[Any]:
        return [value for value in self.values if value is not None]

    def take(self, indices: Sequence[int]) -> "Column":
        return Column(self.name, self.kind, tuple(self.values[i] for i in indices))

    def to_series(self) -> pd.Series:
        """
        Pandas view of the column with a dtype matching its kind.

        Temporal columns holding dates outside the nanosecond range
        (e.g. 9999-12-31) come back as object dtype.
        """
        if self.kind is ColumnKind.NUMERIC:
            return pd.Series(
                [float("nan") if v is None else v for v in self.values], name=self.name, dtype="float64"
            )
        if self.kind is ColumnKind.TEMPORAL:
            if all(_in_timestamp_range(v) for v in self.non_null()):
                return pd.Series(pd.to_datetime(list(self.values)), name=self.name, dtype="datetime64[ns]")
        return pd.Series(list(self.values), name=self.name, dtype="object")


class Table:
    """
    Immutable columnar container.

    Tables are never modified after construction; filter, sort and take return
    new Table instances, so a completed Table can be shared between callers.
    """
    __slots__ = ("_columns", "_index", "_row_count")

    def __init__(self, columns: Sequence[Column] = ()):
        columns = tuple(columns)
        index: Dict[str, int] = {}
        for position, column in enumerate(columns):
            if column.name in index:
                raise InvalidInput(f"Duplicate column name: {column.name}")
            index[column.name] = position

        lengths = {len(column) for column in columns}
        if len(lengths) > 1:
            raise InvalidInput(f"Columns have different lengths: {sorted(lengths)}")

        self._columns = columns
        self._index = index
        self._row_count = lengths.pop() if lengths else 0

    @property
    def row_count(self) -> int:
        return self._row_count

    @property
    def column_count(self) -> int:
        return len(self._columns)

    @property
    def columns(self) -> Tuple[Column, ...]:
        return self._columns

    @property
    def column_names(self) -> List[str]:
        return [column.name for column in self._columns]

    def has_column(self, name: str) -> bool:
        return name in self._index

    def column_info(self, name: str) -> Column:
        """
        Get the Column object for a name.

        Raises:
            ColumnNotFound: If the table has no column with that name
        """
        try:
            return self._columns[self._index[name]]
        except KeyError:
            raise ColumnNotFound(name) from None

    def column(self, name: str) -> Tuple[Any, ...]:
        return self.column_info(name).values

    def get(self, row_index: int, column_name: str) -> Any:
        """
        Get a single value.

        Args:
            row_index: 0-based row position
            column_name: Name of the column

        Returns:
            The typed value, or None for a null slot

        Raises:
            OutOfRange: If row_index is negative or >= row_count
            ColumnNotFound: If the column name is unknown
        """
        if row_index < 0 or row_index >= self._row_count:
            raise OutOfRange(row_index, self._row_count)
        return self.column_info(column_name).values[row_index]

    def row(self, row_index: int) -> Dict[str, Any]:
        if row_index < 0 or row_index >= self._row_count:
            raise OutOfRange(row_index, self._row_count)
        return {column.name: column.values[row_index] for column in self._columns}

    def rows(self) -> Iterator[Dict[str, Any]]:
        for row_index in range(self._row_count):
            yield {column.name: column.values[row_index] for column in self._columns}

    def take(self, indices: Sequence[int]) -> "Table":
        """New table holding the given rows in the given order."""
        for i in indices:
            if i < 0 or i >= self._row_count:
                raise OutOfRange(i, self._row_count)
        return Table([column.take(indices) for column in self._columns])

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame({column.name: column.to_series() for column in self._columns},
                            columns=self.column_names)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Table):
            return NotImplemented
        return self._columns == other._columns

    def __hash__(self) -> int:
        return hash(self._columns)

    def __repr__(self) -> str:
        kinds = ", ".join(f"{c.name}:{c.kind.value}" for c in self._columns)
        return f"Table(rows={self._row_count}, columns=[{kinds}])"


def dedupe_headers(headers: Sequence[Any]) -> List[str]:
    """
    Make header names unique by suffixing _1, _2, ... in first-seen order.

    Blank headers get the positional name ``Column{n}`` (1-based) before
    deduplication, e.g. ["a", "a", None] -> ["a", "a_1", "Column3"].
    """
    seen = set()
    names = []
    for position, header in enumerate(headers, start=1):
        base = to_text(header).strip() or f"Column{position}"
        candidate = base
        suffix = 0
        while candidate in seen:
            suffix += 1
            candidate = f"{base}_{suffix}"
        seen.add(candidate)
        names.append(candidate)
    return names


def _normalize_row(row: Optional[Sequence[Any]], width: int) -> List[Any]:
    cells = list(row) if row is not None else []
    if len(cells) < width:
        cells.extend([None] * (width - len(cells)))
    return cells[:width]


def build_table(
    headers: Sequence[Any],
    grid: Sequence[Sequence[Any]],
    sample_size: int = DEFAULT_SAMPLE_SIZE,
) -> Table:
    """
    Build a typed Table from a header row and a grid of raw cells.

    Rows whose cells are all empty after trimming are dropped. Every column
    is classified with infer_kind and then fully materialized.

    Args:
        headers: Header row, one entry per column
        grid: Data rows (header row excluded); short rows are padded with empty cells
        sample_size: Number of non-empty cells sampled per column for type inference

    Returns:
        Table: The typed table

    Raises:
        InvalidInput: If headers or grid is None, or sample_size is below 1
        EmptyWorksheet: If there are no columns
    """
    if headers is None or grid is None:
        raise InvalidInput("Headers and grid are required")
    if sample_size < 1:
        raise InvalidInput(f"Sample size must be at least 1, got {sample_size}")

    width = len(headers)
    if width == 0:
        raise EmptyWorksheet("Worksheet has no columns")

    names = dedupe_headers(headers)
    rows = []
    dropped = 0
    for row in grid:
        cells = _normalize_row(row, width)
        if all(is_empty(cell) for cell in cells):
            dropped += 1
            continue
        rows.append(cells)

    columns = []
    for position, name in enumerate(names):
        raw_values = [row[position] for row in rows]
        kind = infer_kind(raw_values, sample_size)
        columns.append(Column(name, kind, materialize(kind, raw_values)))

    table = Table(columns)
    logger.info(
        f"Built table with {table.row_count} rows and {table.column_count} columns",
        extra={
            "row_count": table.row_count,
            "column_count": table.column_count,
            "dropped_empty_rows": dropped,
            "column_kinds": {c.name: c.kind.value for c in columns},
        }
    )
    return table
