"""
Paginated PDF report of a Table.

The report contains, in order: a title block, a column inventory, numeric
statistics and a data preview sized to the space left on the page. Building
the document never raises; on failure a short plain-text explanation is
returned instead so the caller can still offer the CSV and XLSX exports.
"""
import io
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

from reportlab.lib import colors
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from column_statistics import NumericStats, compute_statistics_report
from column_store import Table
from config import ExportSettings
from exporters import format_cell
from type_inference import ColumnKind

logger = logging.getLogger(__name__)

ELLIPSIS = "…"
FONT = "Helvetica"
BOLD_FONT = "Helvetica-Bold"
TITLE_SIZE = 16
HEADING_SIZE = 12
BODY_SIZE = 9
LEADING = 13


@dataclass(frozen=True)
class PreviewPlan:
    """
    What the data-preview section will show.

    Attributes:
        headers: Column headers, truncated for display
        rows: Formatted cell text of the rows that fit
        total_rows: Row count of the whole table
    """
    headers: List[str]
    rows: List[List[str]]
    total_rows: int

    @property
    def shown_rows(self) -> int:
        return len(self.rows)

    @property
    def truncated(self) -> bool:
        return self.shown_rows < self.total_rows

    @property
    def notice(self) -> Optional[str]:
        if not self.truncated:
            return None
        return f"Showing first {self.shown_rows} of {self.total_rows} rows"


def truncate_header(name: str, max_chars: int = 10) -> str:
    """Keep the first ``max_chars`` characters and mark the cut with an ellipsis."""
    if len(name) <= max_chars:
        return name
    return name[:max_chars] + ELLIPSIS


def plan_preview(table: Table, available_height: float, settings: ExportSettings) -> PreviewPlan:
    """
    Decide how many rows of the preview fit in ``available_height`` points.

    One row height is taken by the header line; when not every row fits,
    another one is reserved for the "showing first K of N rows" notice.
    """
    row_height = settings.preview_row_height
    capacity = int((available_height - row_height) // row_height)
    if capacity < table.row_count:
        capacity = int((available_height - 2 * row_height) // row_height)
    shown = max(0, min(capacity, table.row_count))

    rows = []
    for row_index in range(shown):
        rows.append([format_cell(value) for value in table.row(row_index).values()])

    return PreviewPlan(
        headers=[truncate_header(name, settings.header_max_chars) for name in table.column_names],
        rows=rows,
        total_rows=table.row_count,
    )


def _fit_text(text: str, width: float, font: str, size: float) -> str:
    if stringWidth(text, font, size) <= width:
        return text
    while text and stringWidth(text + ELLIPSIS, font, size) > width:
        text = text[:-1]
    return text + ELLIPSIS if text else ""


class _PageWriter:
    """Top-down cursor over the pages of a canvas."""

    def __init__(self, pdf: canvas.Canvas, settings: ExportSettings):
        self.pdf = pdf
        self.settings = settings
        self.page_width, self.page_height = settings.page_size
        self.margin = settings.page_margin
        self.usable_width = self.page_width - 2 * self.margin
        self.y = self.page_height - self.margin

    @property
    def remaining(self) -> float:
        return self.y - self.margin

    def new_page(self) -> None:
        self.pdf.showPage()
        self.y = self.page_height - self.margin

    def ensure(self, height: float) -> None:
        if self.remaining < height:
            self.new_page()

    def gap(self, height: float) -> None:
        self.y -= min(height, self.remaining)

    def line(self, text: str, font: str = FONT, size: float = BODY_SIZE, leading: float = LEADING,
             centered: bool = False) -> None:
        self.ensure(leading)
        self.pdf.setFont(font, size)
        baseline = self.y - size
        if centered:
            self.pdf.drawCentredString(self.page_width / 2, baseline, text)
        else:
            self.pdf.drawString(self.margin, baseline, text)
        self.y -= leading

    def cells(self, texts: Sequence[str], offsets: Sequence[float], font: str = FONT,
              size: float = BODY_SIZE, leading: float = LEADING) -> None:
        self.ensure(leading)
        self.pdf.setFont(font, size)
        baseline = self.y - size
        for text, offset in zip(texts, offsets):
            self.pdf.drawString(self.margin + offset, baseline, text)
        self.y -= leading


def _draw_title_block(writer: _PageWriter, table: Table, title: str, source_file_name: str,
                      generated_at: datetime) -> None:
    writer.line(title, font=BOLD_FONT, size=TITLE_SIZE, leading=TITLE_SIZE + 8, centered=True)
    writer.line(f"Source file: {source_file_name}")
    writer.line(f"Generated on: {generated_at:%Y-%m-%d %H:%M:%S}")
    writer.line(f"Rows: {table.row_count} | Columns: {table.column_count}")
    writer.gap(LEADING)


def _draw_inventory(writer: _PageWriter, table: Table) -> None:
    offsets = (0, 260, 360)
    writer.line("Column Inventory", font=BOLD_FONT, size=HEADING_SIZE, leading=HEADING_SIZE + 6)
    writer.cells(["Name", "Type", "Null count"], offsets, font=BOLD_FONT)
    for column in table.columns:
        name = _fit_text(column.name, offsets[1] - 10, FONT, BODY_SIZE)
        writer.cells([name, column.kind.value, str(column.null_count)], offsets)
    writer.gap(LEADING)


def _draw_statistics(writer: _PageWriter, table: Table) -> None:
    offsets = (0, 260, 360, 460)
    report = compute_statistics_report(table)
    numeric = [(name, record) for name, record in report.records.items() if isinstance(record, NumericStats)]

    writer.line("Numeric Statistics", font=BOLD_FONT, size=HEADING_SIZE, leading=HEADING_SIZE + 6)
    if not numeric and not report.skipped:
        writer.line("No numeric columns.")
    if numeric:
        writer.cells(["Column", "Mean", "Min", "Max"], offsets, font=BOLD_FONT)
        for name, record in numeric:
            writer.cells(
                [_fit_text(name, offsets[1] - 10, FONT, BODY_SIZE),
                 f"{record.mean:.2f}", f"{record.min:.2f}", f"{record.max:.2f}"],
                offsets,
            )
    for name, note in report.skipped.items():
        writer.line(f"Skipped {name}: {note}")
    writer.gap(LEADING)


def _draw_preview(writer: _PageWriter, table: Table) -> PreviewPlan:
    settings = writer.settings
    row_height = settings.preview_row_height

    writer.line("Data Preview", font=BOLD_FONT, size=HEADING_SIZE, leading=HEADING_SIZE + 6)
    if table.column_count == 0:
        writer.line("No columns.")
        return PreviewPlan(headers=[], rows=[], total_rows=table.row_count)

    # header, at least one data row and the notice
    if writer.remaining < 3 * row_height:
        writer.new_page()

    plan = plan_preview(table, writer.remaining, settings)
    pdf = writer.pdf
    column_width = writer.usable_width / table.column_count
    numeric = [column.kind is ColumnKind.NUMERIC for column in table.columns]

    pdf.setFillColor(colors.Color(230 / 255, 230 / 255, 230 / 255))
    pdf.rect(writer.margin, writer.y - row_height, writer.usable_width, row_height, stroke=0, fill=1)
    pdf.setFillColor(colors.black)
    pdf.setFont(BOLD_FONT, BODY_SIZE)
    baseline = writer.y - row_height + 4
    for position, header in enumerate(plan.headers):
        text = _fit_text(header, column_width - 4, BOLD_FONT, BODY_SIZE)
        pdf.drawCentredString(writer.margin + column_width * (position + 0.5), baseline, text)
    writer.y -= row_height

    pdf.setFont(FONT, BODY_SIZE)
    for row in plan.rows:
        baseline = writer.y - row_height + 4
        for position, value in enumerate(row):
            text = _fit_text(value, column_width - 4, FONT, BODY_SIZE)
            left = writer.margin + column_width * position
            if numeric[position]:
                pdf.drawRightString(left + column_width - 2, baseline, text)
            else:
                pdf.drawString(left + 2, baseline, text)
        writer.y -= row_height

    if plan.notice:
        pdf.setFont(FONT, BODY_SIZE)
        pdf.drawString(writer.margin, writer.y - row_height + 4, plan.notice)
        writer.y -= row_height
    return plan


def fallback_report(title: str, source_file_name: str, error: Exception) -> bytes:
    """Plain-text document returned when the PDF cannot be built."""
    return (
        f"{title}\n"
        f"Source file: {source_file_name}\n"
        f"The PDF report could not be generated: {type(error).__name__}: {error}\n"
        "Use the CSV or XLSX export to get the data.\n"
    ).encode("utf-8")


def export_report(
    table: Table,
    title: str = "Data Analysis Report",
    source_file_name: str = "",
    settings: Optional[ExportSettings] = None,
    generated_at: Optional[datetime] = None,
) -> bytes:
    """
    Render the paginated PDF report.

    Args:
        table: Table to report on
        title: Report title shown on the first page
        source_file_name: Name of the uploaded file
        settings: Export configuration; defaults are used when omitted
        generated_at: Timestamp printed in the title block, now by default

    Returns:
        bytes: The PDF, or a UTF-8 text explanation if rendering failed
    """
    settings = settings or ExportSettings()
    generated_at = generated_at or datetime.now()
    try:
        buffer = io.BytesIO()
        pdf = canvas.Canvas(
            buffer,
            pagesize=settings.page_size,
            pageCompression=1 if settings.compress_pages else 0,
        )
        pdf.setTitle(title)
        pdf.setAuthor(settings.creator)
        pdf.setCreator(settings.creator)
        pdf.setSubject(source_file_name)

        writer = _PageWriter(pdf, settings)
        _draw_title_block(writer, table, title, source_file_name, generated_at)
        _draw_inventory(writer, table)
        _draw_statistics(writer, table)
        plan = _draw_preview(writer, table)
        pdf.save()
    except Exception as e:
        logger.exception("Report export failed, returning text fallback",
                         extra={"source_file": source_file_name, "error": str(e)})
        return fallback_report(title, source_file_name, e)

    logger.info(
        "Exported PDF report",
        extra={"source_file": source_file_name, "preview_rows": plan.shown_rows, "row_count": table.row_count}
    )
    return buffer.getvalue()
