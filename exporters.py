"""
Delimited-text and spreadsheet exports of a Table.

Each renderer only reads the Table, so a failure in one never affects the
others. Errors from these two renderers propagate to the caller; only the PDF
report (report_export.py) degrades to a text fallback.
"""
import io
import logging
import re
from datetime import datetime
from typing import Any, List, Optional, Tuple

import pandas as pd
from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from column_store import Table
from config import ExportSettings
from type_inference import ColumnKind, format_number
from utils.errors import ExportFailure, InvalidInput

logger = logging.getLogger(__name__)

DATE_NUMBER_FORMAT = "yyyy-mm-dd hh:mm:ss"
_INVALID_SHEET_CHARS = re.compile(r"[\[\]:*?/\\]")


def format_cell(value: Any) -> str:
    """Text rendering of a typed cell; nulls become the empty string."""
    if value is None:
        return ""
    if isinstance(value, float):
        return format_number(value)
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    return str(value)


def escape_field(field: str, delimiter: str = ",") -> str:
    """Quote a field when it contains the delimiter, a double quote or a line break."""
    if delimiter in field or '"' in field or "\n" in field or "\r" in field:
        return '"' + field.replace('"', '""') + '"'
    return field


def export_csv(table: Table, delimiter: str = ",") -> str:
    """
    Render a table as delimited text.

    One header line plus one line per row, each terminated by a single "\\n".

    Args:
        table: Table to export
        delimiter: Field separator

    Returns:
        str: The document

    Raises:
        InvalidInput: If the delimiter is empty or contains a quote or line break
    """
    if not delimiter or '"' in delimiter or "\n" in delimiter or "\r" in delimiter:
        raise InvalidInput(f"Invalid CSV delimiter: {delimiter!r}")

    lines = [delimiter.join(escape_field(name, delimiter) for name in table.column_names)]
    for row in table.rows():
        lines.append(delimiter.join(escape_field(format_cell(value), delimiter) for value in row.values()))

    logger.debug("Exported CSV", extra={"row_count": table.row_count, "delimiter": delimiter})
    return "".join(line + "\n" for line in lines)


def export_csv_bytes(table: Table, delimiter: str = ",") -> bytes:
    return export_csv(table, delimiter).encode("utf-8")


def parse_csv(text: str, delimiter: str = ",") -> Tuple[List[str], List[List[str]]]:
    """
    Read a delimited document back into headers and string rows.

    Returns:
        Tuple[List[str], List[List[str]]]: Header names and rows of raw strings
    """
    df = pd.read_csv(
        io.StringIO(text),
        sep=delimiter,
        dtype=str,
        keep_default_na=False,
        na_filter=False,
        skip_blank_lines=False,
        engine="python",
    )
    return [str(c) for c in df.columns], df.values.tolist()


def safe_sheet_name(name: Optional[str]) -> str:
    """Worksheet names are limited to 31 characters and may not contain []:*?/\\."""
    cleaned = _INVALID_SHEET_CHARS.sub("_", name or "").strip().strip("'")
    return (cleaned or "Data")[:31]


def _excel_value(kind: ColumnKind, value: Any) -> Any:
    if value is None:
        return None
    if kind is ColumnKind.TEXT:
        return ILLEGAL_CHARACTERS_RE.sub("", value)
    return value


def _autofit_columns(sheet, max_width: float) -> None:
    for column_cells in sheet.iter_cols():
        best = 0
        for cell in column_cells:
            if cell.value is None:
                continue
            if isinstance(cell.value, datetime):
                length = len(DATE_NUMBER_FORMAT)
            else:
                length = len(format_cell(cell.value))
            best = max(best, length)
        letter = get_column_letter(column_cells[0].column)
        sheet.column_dimensions[letter].width = min(max_width, best + 2)


def export_spreadsheet(table: Table, sheet_name: str = "Data", settings: Optional[ExportSettings] = None) -> bytes:
    """
    Render a table as an .xlsx workbook with a single sheet.

    Row 1 holds the bold column names, the data follows with native types
    (numbers as numbers, date-times as dates). Column widths are fitted to the
    content once all data is written.

    Args:
        table: Table to export
        sheet_name: Worksheet title, sanitized to Excel's rules
        settings: Export configuration; defaults are used when omitted

    Returns:
        bytes: The workbook file content

    Raises:
        ExportFailure: If the workbook cannot be written
    """
    settings = settings or ExportSettings()
    try:
        workbook = Workbook()
        workbook.properties.creator = settings.creator
        sheet = workbook.active
        sheet.title = safe_sheet_name(sheet_name)

        sheet.append([ILLEGAL_CHARACTERS_RE.sub("", name) for name in table.column_names])
        header_font = Font(bold=True)
        for cell in sheet[1]:
            cell.font = header_font
            if cell.data_type == "f":
                cell.data_type = "s"

        kinds = [column.kind for column in table.columns]
        for row in table.rows():
            sheet.append([_excel_value(kind, value) for kind, value in zip(kinds, row.values())])

        for position, column in enumerate(table.columns, start=1):
            if table.row_count == 0:
                break
            for (cell,) in sheet.iter_rows(min_row=2, min_col=position, max_col=position):
                if column.kind is ColumnKind.TEMPORAL:
                    cell.number_format = DATE_NUMBER_FORMAT
                elif column.kind is ColumnKind.TEXT and cell.data_type == "f":
                    # text that looks like a formula stays text
                    cell.data_type = "s"

        _autofit_columns(sheet, settings.max_column_width)

        buffer = io.BytesIO()
        workbook.save(buffer)
    except Exception as e:
        logger.exception("Spreadsheet export failed", extra={"sheet_name": sheet_name})
        raise ExportFailure(f"Spreadsheet export failed: {str(e)}") from e

    logger.debug("Exported spreadsheet", extra={"row_count": table.row_count, "sheet_name": sheet.title})
    return buffer.getvalue()
