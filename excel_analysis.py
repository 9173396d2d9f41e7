import io
import os
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional, Tuple
from http import HTTPStatus

import pandas as pd
from pydantic import BaseModel

from column_statistics import StatsRecord, compute_statistics_report
from column_store import Table, build_table
from config import AnalyzerSettings, get_settings
from exporters import export_csv_bytes, export_spreadsheet
from report_export import export_report
from transforms import sort_rows
from type_inference import ColumnKind
from utils.errors import AnalyzerError
from utils.log_context import LogContext, new_request_id
from utils.result import Result

logger = logging.getLogger(__name__)


# Response models
class ColumnInfo(BaseModel):
    """
    Inventory entry for one column.

    Attributes:
        name: Column name after deduplication
        type: Inferred kind (numeric, temporal or text)
        null_count: Number of null slots
        length: Number of rows
    """
    name: str
    type: str
    null_count: int
    length: int


class DataSummary(BaseModel):
    total_rows: int
    total_columns: int
    numeric_columns: int
    text_columns: int
    date_columns: int
    memory_usage: str


class AnalysisResponse(BaseModel):
    """
    Standardized response schema for an analyzed worksheet.

    Attributes:
        success: Whether the operation was successful
        status_code: HTTP status code of the response
        status: HTTP status description
        file_name: Name of the uploaded file
        worksheet_name: Name of the analyzed (first) worksheet
        row_count: Rows kept after dropping empty ones
        column_count: Number of columns
        columns: Column inventory
        statistics: Statistics per column
        skipped_statistics: Numeric columns without values, with the reason
        data_types: Inferred kind per column
        preview: First rows as name -> value mappings, nulls as ""
        summary: Column counts per kind and an estimated memory footprint
        error: Error message if unsuccessful
    """
    success: bool
    status_code: Optional[int] = 200
    status: Optional[str] = "OK"
    file_name: Optional[str] = None
    worksheet_name: Optional[str] = None
    row_count: Optional[int] = None
    column_count: Optional[int] = None
    columns: Optional[List[ColumnInfo]] = None
    statistics: Optional[Dict[str, StatsRecord]] = None
    skipped_statistics: Optional[Dict[str, str]] = None
    data_types: Optional[Dict[str, str]] = None
    preview: Optional[List[Dict[str, Any]]] = None
    summary: Optional[DataSummary] = None
    error: Optional[str] = None


# Request models
class AnalysisRequest(BaseModel):
    """
    Schema for a worksheet analysis request.

    Either ``content`` (uploaded bytes) or ``file_path`` must be given.

    Attributes:
        file_name: Original file name, used for the extension check and in reports
        content: Raw bytes of the uploaded workbook
        file_path: Path of a workbook on disk
        sample_size: Overrides the configured type-inference sample size
    """
    file_name: Optional[str] = None
    content: Optional[bytes] = None
    file_path: Optional[str] = None
    sample_size: Optional[int] = None


class ExportRequest(BaseModel):
    """
    Options for exporting an analyzed worksheet.

    Attributes:
        format: csv, xlsx or pdf
        delimiter: Field separator for csv
        sort_by: Optional column to sort by before exporting
        descending: Sort direction when sort_by is set
        title: Report title for pdf
    """
    format: Literal["csv", "xlsx", "pdf"]
    delimiter: Optional[str] = None
    sort_by: Optional[str] = None
    descending: bool = False
    title: Optional[str] = None


@dataclass(frozen=True)
class LoadedWorksheet:
    file_name: str
    worksheet_name: str
    table: Table


@dataclass(frozen=True)
class ExportedFile:
    content: bytes
    media_type: str
    file_name: str


MEDIA_TYPES = {
    "csv": "text/csv; charset=utf-8",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "pdf": "application/pdf",
}


class ExcelAnalyzer:
    """
    Reads the first worksheet of an Excel file into a typed Table and analyzes it.

    This class contains methods to:
    - Validate the uploaded file (name, extension, size)
    - Read the worksheet into headers and a raw cell grid
    - Build the typed table and compute column statistics
    - Export the table as CSV, XLSX or a PDF report
    """

    @staticmethod
    def analyze_file(request: AnalysisRequest, settings: Optional[AnalyzerSettings] = None) -> Result[AnalysisResponse]:
        """
        Analyze an Excel file: schema, statistics, preview and summary.

        Args:
            request: AnalysisRequest with the file content or path

        Returns:
            Result[AnalysisResponse]: Result object containing either the analysis or an error
        """
        settings = settings or get_settings()
        request_id = new_request_id()
        log_context = {"request_id": request_id, "file_name": request.file_name}

        logger.info("Analyzing Excel file", extra=log_context)
        try:
            result = ExcelAnalyzer.load_table(request, settings, request_id=request_id)
            return result.and_then(lambda loaded: Result.ok(ExcelAnalyzer._build_response(loaded, settings)))
        except Exception as e:
            logger.exception("Unexpected error during analysis", extra={**log_context, "error": str(e)})
            return Result.server_error(f"Error processing Excel file: {str(e)}")

    @staticmethod
    def export_file(
        request: AnalysisRequest,
        export_request: ExportRequest,
        settings: Optional[AnalyzerSettings] = None,
    ) -> Result[ExportedFile]:
        """
        Load a workbook, optionally sort it, and render one export format.

        A failed PDF report comes back as a text/plain fallback document with
        a 200 status; CSV and XLSX failures are returned as failed Results.
        """
        settings = settings or get_settings()
        request_id = new_request_id()
        log_context = {"request_id": request_id, "file_name": request.file_name, "format": export_request.format}

        try:
            result = ExcelAnalyzer.load_table(request, settings, request_id=request_id)
            if result.is_failure():
                return Result.fail(result.error or "", status_code=result.status_code)
            loaded = result.data

            table = loaded.table
            if export_request.sort_by:
                table = sort_rows(table, export_request.sort_by, ascending=not export_request.descending)

            with LogContext(f"{export_request.format} export", **log_context):
                exported = ExcelAnalyzer._render(loaded, table, export_request, settings)
            return Result.ok(exported)
        except AnalyzerError as e:
            logger.warning(f"Export failed: {e.message}", extra=log_context)
            return Result.from_error(e)
        except Exception as e:
            logger.exception("Unexpected error during export", extra={**log_context, "error": str(e)})
            return Result.server_error(f"Error exporting Excel file: {str(e)}")

    @staticmethod
    def load_table(
        request: AnalysisRequest,
        settings: Optional[AnalyzerSettings] = None,
        request_id: Optional[str] = None,
    ) -> Result[LoadedWorksheet]:
        """
        Validate the request, read the worksheet and build the typed table.

        Returns:
            Result[LoadedWorksheet]: The table with its file and worksheet names, or an error
        """
        settings = settings or get_settings()
        log_context = {"request_id": request_id or new_request_id(), "file_name": request.file_name}

        validation_result = ExcelAnalyzer._validate_request(request, settings)
        if validation_result.is_failure():
            logger.warning(f"Request validation failed: {validation_result.error}", extra=log_context)
            return Result.fail(validation_result.error or "", status_code=validation_result.status_code)

        try:
            with LogContext("workbook read", **log_context):
                worksheet_name, headers, grid = ExcelAnalyzer.read_workbook(request.content, request.file_path)
        except Exception as e:
            logger.error(
                "Failed to read Excel file",
                extra={**log_context, "error": str(e), "error_type": type(e).__name__}
            )
            return Result.fail(f"Failed to read Excel file: {str(e)}", status_code=HTTPStatus.BAD_REQUEST)

        try:
            with LogContext("table build", **log_context):
                table = build_table(headers, grid, request.sample_size or settings.sample_size)
        except AnalyzerError as e:
            logger.warning(f"Table build failed: {e.message}", extra=log_context)
            return Result.from_error(e)

        file_name = request.file_name or os.path.basename(request.file_path or "")
        return Result.ok(LoadedWorksheet(file_name=file_name, worksheet_name=worksheet_name, table=table))

    @staticmethod
    def read_workbook(content: Optional[bytes] = None, file_path: Optional[str] = None) -> Tuple[str, List[Any], List[List[Any]]]:
        """
        Read the first worksheet into a header row and a grid of raw cells.

        Empty cells come back as None; numbers and dates keep their native types.

        Args:
            content: Workbook bytes
            file_path: Workbook path, used when content is None

        Returns:
            Tuple of worksheet name, header row and data rows
        """
        source = io.BytesIO(content) if content is not None else file_path
        with pd.ExcelFile(source) as workbook:
            worksheet_name = str(workbook.sheet_names[0])
            df = workbook.parse(worksheet_name, header=None, dtype=object)

        if df.empty:
            logger.warning("Worksheet is empty", extra={"worksheet": worksheet_name})
            return worksheet_name, [], []

        records = df.astype(object).where(pd.notna(df), None).values.tolist()
        logger.debug(
            "Read worksheet",
            extra={"worksheet": worksheet_name, "raw_rows": len(records), "raw_columns": len(df.columns)}
        )
        return worksheet_name, records[0], records[1:]

    @staticmethod
    def _validate_request(request: AnalysisRequest, settings: AnalyzerSettings) -> Result[bool]:
        if request.content is None and request.file_path is None:
            return Result.invalid_input("No file uploaded")

        file_name = request.file_name or os.path.basename(request.file_path or "")
        extension = os.path.splitext(file_name)[1].lower()
        if extension not in settings.allowed_extensions:
            allowed = " or ".join(settings.allowed_extensions)
            return Result.invalid_input(f"Please upload an Excel file ({allowed})")

        if request.content is not None:
            if len(request.content) == 0:
                return Result.invalid_input("No file uploaded")
            if len(request.content) > settings.max_upload_bytes:
                return Result.too_large(
                    f"File is larger than the {settings.max_upload_bytes} byte limit"
                )
        elif not os.path.exists(request.file_path):
            logger.error("File not found", extra={"file_path": request.file_path})
            return Result.not_found(f"File does not exist at path: {request.file_path}")

        if request.sample_size is not None and request.sample_size < 1:
            return Result.invalid_input("Sample size must be at least 1")
        return Result.ok(True)

    @staticmethod
    def describe_columns(table: Table) -> List[ColumnInfo]:
        return [
            ColumnInfo(name=c.name, type=c.kind.value, null_count=c.null_count, length=len(c))
            for c in table.columns
        ]

    @staticmethod
    def data_preview(table: Table, rows: int) -> List[Dict[str, Any]]:
        preview = []
        for row_index in range(min(rows, table.row_count)):
            row = table.row(row_index)
            preview.append({name: "" if value is None else value for name, value in row.items()})
        return preview

    @staticmethod
    def summarize(table: Table) -> DataSummary:
        kinds = [c.kind for c in table.columns]
        return DataSummary(
            total_rows=table.row_count,
            total_columns=table.column_count,
            numeric_columns=kinds.count(ColumnKind.NUMERIC),
            text_columns=kinds.count(ColumnKind.TEXT),
            date_columns=kinds.count(ColumnKind.TEMPORAL),
            memory_usage=f"{sum(len(c) * 8 for c in table.columns)} bytes (estimated)",
        )

    @staticmethod
    def _build_response(loaded: LoadedWorksheet, settings: AnalyzerSettings) -> AnalysisResponse:
        table = loaded.table
        report = compute_statistics_report(table)
        logger.info(
            f"Successfully analyzed Excel file with {table.row_count} rows and {table.column_count} columns",
            extra={"file_name": loaded.file_name, "worksheet": loaded.worksheet_name}
        )
        return AnalysisResponse(
            success=True,
            status_code=HTTPStatus.OK.value,
            status=HTTPStatus.OK.phrase,
            file_name=loaded.file_name,
            worksheet_name=loaded.worksheet_name,
            row_count=table.row_count,
            column_count=table.column_count,
            columns=ExcelAnalyzer.describe_columns(table),
            statistics=report.records,
            skipped_statistics=report.skipped,
            data_types={c.name: c.kind.value for c in table.columns},
            preview=ExcelAnalyzer.data_preview(table, settings.preview_rows),
            summary=ExcelAnalyzer.summarize(table),
        )

    @staticmethod
    def _render(loaded: LoadedWorksheet, table: Table, export_request: ExportRequest,
                settings: AnalyzerSettings) -> ExportedFile:
        stem = os.path.splitext(loaded.file_name)[0] or "export"
        fmt = export_request.format

        if fmt == "csv":
            content = export_csv_bytes(table, export_request.delimiter or settings.delimiter)
        elif fmt == "xlsx":
            content = export_spreadsheet(table, loaded.worksheet_name, settings.export)
        else:
            content = export_report(
                table,
                title=export_request.title or "Data Analysis Report",
                source_file_name=loaded.file_name,
                settings=settings.export,
            )
            if not content.startswith(b"%PDF"):
                return ExportedFile(content=content, media_type="text/plain; charset=utf-8",
                                    file_name=f"{stem}.report.txt")

        return ExportedFile(content=content, media_type=MEDIA_TYPES[fmt], file_name=f"{stem}.{fmt}")
