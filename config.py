"""
Runtime configuration for the Excel analyzer.

Defaults live on the settings models; every field can be overridden with an
``EXCEL_ANALYZER_<FIELD>`` environment variable (e.g. ``EXCEL_ANALYZER_SAMPLE_SIZE=25``),
nested export settings with a double underscore
(``EXCEL_ANALYZER_EXPORT__PAGE_MARGIN=36``). The bootstrap in main.py builds
the settings once and passes ``settings.export`` into the export adapters.
"""
from functools import lru_cache
from typing import Annotated, Any, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

ENV_PREFIX = "EXCEL_ANALYZER_"


class ExportSettings(BaseModel):
    """
    Configuration handed to the spreadsheet and report writers.

    Attributes:
        creator: Author/creator string written into workbook and PDF metadata
        page_size: Report page size as (width, height) in points, landscape A4 by default
        page_margin: Margin on every side of a report page, in points
        preview_row_height: Fixed height of one data-preview row, in points
        header_max_chars: Preview headers longer than this are truncated with an ellipsis
        max_column_width: Upper bound for auto-sized spreadsheet columns, in characters
        compress_pages: Whether report page streams are compressed
    """
    creator: str = "Excel Data Analyzer"
    page_size: Tuple[float, float] = (841.89, 595.28)
    page_margin: float = 28.0
    preview_row_height: float = 14.0
    header_max_chars: int = 10
    max_column_width: float = 60.0
    compress_pages: bool = True


def _split_list(raw_value: Any) -> Any:
    if isinstance(raw_value, str):
        return [segment.strip() for segment in raw_value.split(",") if segment.strip()]
    return raw_value


class AnalyzerSettings(BaseSettings):
    """Top level settings shared by the service and the API layer."""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    sample_size: int = Field(default=10, ge=1)
    delimiter: str = Field(default=",", min_length=1, max_length=1)
    preview_rows: int = Field(default=10, ge=0)
    max_upload_bytes: int = Field(default=20 * 1024 * 1024, ge=1)
    allowed_extensions: Annotated[List[str], NoDecode] = [".xlsx", ".xls"]
    cors_origins: Annotated[List[str], NoDecode] = [
        "http://localhost:3000",
        "http://localhost:8080",
        "http://localhost:5173",
    ]
    log_dir: Optional[str] = None
    export: ExportSettings = Field(default_factory=ExportSettings)

    @field_validator("allowed_extensions", "cors_origins", mode="before")
    @classmethod
    def _comma_separated(cls, value: Any) -> Any:
        return _split_list(value)


def load_settings() -> AnalyzerSettings:
    return AnalyzerSettings()


@lru_cache(maxsize=1)
def get_settings() -> AnalyzerSettings:
    """Settings built once per process from defaults and environment overrides."""
    return load_settings()
