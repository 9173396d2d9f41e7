"""
Column type inference.

Decides, per column, whether the raw cell values are numeric, temporal or
textual, and converts every cell to the chosen kind. Parsers never raise: a
value that does not parse comes back as None, which the column store keeps as
a null slot.
"""
import logging
import numbers
import re
from datetime import date, datetime, time, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Optional, Sequence, Tuple

import pandas as pd

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_SIZE = 10

# Locale-neutral: '.' as decimal point, no thousands separators
_NUMBER_PATTERN = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")

_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M:%S",
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %I:%M %p",
    "%m/%d/%Y %I:%M:%S %p",
    "%d-%b-%Y",
    "%b %d, %Y",
    "%B %d, %Y",
)


class ColumnKind(str, Enum):
    """Classification of a column's values."""
    NUMERIC = "numeric"
    TEMPORAL = "temporal"
    TEXT = "text"


def is_missing(raw: Any) -> bool:
    """True for None and for pandas' missing markers (NaN, NaT, pd.NA)."""
    if raw is None:
        return True
    if isinstance(raw, str):
        return False
    try:
        return bool(pd.api.types.is_scalar(raw) and pd.isna(raw))
    except (TypeError, ValueError):
        return False


def format_number(value: float) -> str:
    """Render a float the way a spreadsheet shows it: integral values lose the '.0'."""
    if value.is_integer() and abs(value) < 1e16:
        return str(int(value))
    return repr(float(value))


def to_text(raw: Any) -> str:
    """
    String projection of a raw cell, used for type testing and Text columns.

    Args:
        raw: Cell value as supplied by the reader

    Returns:
        str: "" for missing cells, otherwise a locale-neutral rendering
    """
    if is_missing(raw):
        return ""
    if isinstance(raw, str):
        return raw
    if isinstance(raw, bool):
        return str(raw)
    if isinstance(raw, datetime):
        return raw.isoformat(sep=" ")
    if isinstance(raw, (date, time)):
        return raw.isoformat()
    if isinstance(raw, numbers.Integral):
        return str(int(raw))
    if isinstance(raw, (numbers.Real, Decimal)):
        return format_number(float(raw))
    return str(raw)


def is_empty(raw: Any) -> bool:
    return to_text(raw).strip() == ""


def parse_number(raw: Any) -> Optional[float]:
    """
    Parse a raw cell as a floating-point number.

    Returns:
        Optional[float]: The value, or None when the cell is empty or not a number
    """
    if is_missing(raw) or isinstance(raw, bool):
        return None
    if isinstance(raw, (numbers.Real, Decimal)):
        value = float(raw)
    elif isinstance(raw, str):
        text = raw.strip()
        if not _NUMBER_PATTERN.match(text):
            return None
        value = float(text)
    else:
        return None
    if value != value or value in (float("inf"), float("-inf")):
        return None
    return value


def parse_datetime(raw: Any) -> Optional[datetime]:
    """
    Parse a raw cell as a date-time.

    Native datetimes (including pandas Timestamps) and dates are accepted;
    timezone-aware values are converted to naive UTC. Strings must match one
    of _DATE_FORMATS. Bare numbers are never dates.

    Returns:
        Optional[datetime]: The value, or None when the cell does not parse
    """
    if is_missing(raw):
        return None
    if isinstance(raw, pd.Timestamp):
        raw = raw.to_pydatetime()
    if isinstance(raw, datetime):
        if raw.tzinfo is not None:
            return raw.astimezone(timezone.utc).replace(tzinfo=None)
        return raw
    if isinstance(raw, date):
        return datetime(raw.year, raw.month, raw.day)
    if not isinstance(raw, str):
        return None
    text = " ".join(raw.split())
    if not text or _NUMBER_PATTERN.match(text):
        return None
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def infer_kind(raw_values: Iterable[Any], sample_size: int = DEFAULT_SAMPLE_SIZE) -> ColumnKind:
    """
    Classify a column from its first ``sample_size`` non-empty values.

    Numeric wins over Temporal when both parsers accept every sampled value.
    A column with nothing to sample is Text.

    Args:
        raw_values: The column's raw cells, header excluded
        sample_size: Number of non-empty cells to inspect

    Returns:
        ColumnKind: The inferred kind
    """
    is_numeric_candidate = True
    is_date_candidate = True
    sampled = 0

    for raw in raw_values:
        if sampled >= sample_size:
            break
        if is_empty(raw):
            continue
        sampled += 1
        if is_numeric_candidate and parse_number(raw) is None:
            is_numeric_candidate = False
        if is_date_candidate and parse_datetime(raw) is None:
            is_date_candidate = False
        if not is_numeric_candidate and not is_date_candidate:
            return ColumnKind.TEXT

    if sampled == 0:
        return ColumnKind.TEXT
    if is_numeric_candidate:
        return ColumnKind.NUMERIC
    if is_date_candidate:
        return ColumnKind.TEMPORAL
    return ColumnKind.TEXT


def materialize(kind: ColumnKind, raw_values: Sequence[Any]) -> Tuple[Any, ...]:
    """
    Convert every cell of a column to the native representation of ``kind``.

    Numeric and temporal cells that fail to parse become None rather than
    falling back to text. Text cells keep their string projection; only
    missing cells become None.
    """
    if kind is ColumnKind.NUMERIC:
        values = tuple(parse_number(raw) for raw in raw_values)
    elif kind is ColumnKind.TEMPORAL:
        values = tuple(parse_datetime(raw) for raw in raw_values)
    else:
        values = tuple(None if is_missing(raw) else to_text(raw) for raw in raw_values)

    if kind is not ColumnKind.TEXT:
        nulled = sum(1 for raw, value in zip(raw_values, values) if value is None and not is_empty(raw))
        if nulled:
            logger.debug(
                f"{nulled} cells failed {kind.value} parsing and were stored as null",
                extra={"kind": kind.value, "nulled_cells": nulled}
            )
    return values
