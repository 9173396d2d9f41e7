from fastapi import FastAPI, File, Query, UploadFile, status
import os
import logging
from datetime import datetime
from typing import Optional
from fastapi.responses import JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware

from config import get_settings
from excel_analysis import AnalysisRequest, ExcelAnalyzer, ExportRequest

settings = get_settings()

# Create logs directory if it doesn't exist
log_dir = settings.log_dir or os.path.join(os.path.dirname(os.path.abspath(__file__)), "logs")
os.makedirs(log_dir, exist_ok=True)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Add file handler to write logs to file
log_file_path = os.path.join(log_dir, f"app_{datetime.now().strftime('%Y%m%d')}.log")
file_handler = logging.FileHandler(log_file_path)
file_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
logging.getLogger().addHandler(file_handler)


# Initialize FastAPI app with metadata
app = FastAPI(
    title="Excel Data Analyzer API",
    description="API for analyzing Excel worksheets and exporting them as CSV, XLSX or PDF",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def error_response(result) -> JSONResponse:
    """
    Build the JSON error response for a failed Result.

    Args:
        result: Failed Result from the analysis service

    Returns:
        JSONResponse: {"error": ...} with the Result's status code
    """
    return JSONResponse(status_code=result.status_code.value, content={"error": result.error})


async def read_upload(file: Optional[UploadFile]) -> AnalysisRequest:
    """
    Turn an uploaded file into an AnalysisRequest.

    Reads at most one byte past the configured limit so oversized uploads are
    rejected by the size check without loading the whole body.
    """
    if file is None:
        return AnalysisRequest()
    content = await file.read(settings.max_upload_bytes + 1)
    return AnalysisRequest(file_name=file.filename, content=content)


# API Endpoints
@app.get(
    "/api/excel/health",
    tags=["Health"]
)
async def health():
    """Liveness probe."""
    return {"status": "healthy", "message": "Excel API is running"}


@app.post(
    "/api/excel/upload",
    tags=["Excel Analysis"]
)
async def upload_excel(file: Optional[UploadFile] = File(None)):
    """
    Analyze an uploaded Excel file.

    The first worksheet is read, every column's type is inferred and
    statistics are computed.

    Returns:
        dict: JSON response with:
            - file_name, worksheet_name, row_count, column_count
            - columns: name, inferred type, null count and length per column
            - statistics: mean/min/max/count for numeric columns,
              unique/null/total counts for the others
            - data_types: inferred type per column
            - preview: the first rows of data
            - summary: column counts per type and estimated memory usage
    """
    request = await read_upload(file)
    logger.info(f"Received upload: {request.file_name}")

    result = ExcelAnalyzer.analyze_file(request, settings)
    if result.is_failure():
        return error_response(result)
    return result.data.model_dump(mode="json")


@app.post(
    "/api/excel/export/{fmt}",
    tags=["Excel Export"]
)
async def export_excel(
    fmt: str,
    file: Optional[UploadFile] = File(None),
    delimiter: Optional[str] = Query(None, max_length=1),
    sort_by: Optional[str] = Query(None),
    descending: bool = Query(False),
    title: Optional[str] = Query(None),
):
    """
    Export an uploaded Excel file as csv, xlsx or a pdf report.

    The table can be sorted by one column before it is written.
    """
    if fmt not in ("csv", "xlsx", "pdf"):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": f"Unsupported export format: {fmt}"}
        )

    request = await read_upload(file)
    export_request = ExportRequest(
        format=fmt, delimiter=delimiter, sort_by=sort_by, descending=descending, title=title
    )
    result = ExcelAnalyzer.export_file(request, export_request, settings)
    if result.is_failure():
        return error_response(result)

    exported = result.data
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.file_name}"'},
    )


# Run the application if executed directly
if __name__ == "__main__":
    import uvicorn
    logger.info("Starting Excel Data Analyzer API in development mode.")
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
