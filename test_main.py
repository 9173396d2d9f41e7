import io
import pytest
from http import HTTPStatus
from unittest.mock import patch
from fastapi import status
from fastapi.testclient import TestClient
from openpyxl import load_workbook

# Import the app and its collaborators from main.py
import main
from main import app
from excel_analysis import ExcelAnalyzer
from utils.result import Result

# Create TestClient for FastAPI app testing
client = TestClient(app)

XLSX_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@pytest.fixture
def people_upload(people_rows, workbook_bytes):
    """
    Fixture providing the multipart payload for a small people workbook.

    Returns:
        dict: files argument for the TestClient
    """
    return {"file": ("people.xlsx", workbook_bytes(people_rows, "People"), XLSX_TYPE)}


class TestHealth:
    """
    Tests for the health endpoint.
    """

    def test_health(self):
        response = client.get("/api/excel/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "message": "Excel API is running"}


class TestUploadEndpoint:
    """
    Tests for the /api/excel/upload endpoint.
    """

    def test_upload_returns_analysis(self, people_upload):
        """
        Test that a valid workbook is analyzed end to end.

        Args:
            people_upload: Fixture providing the multipart payload
        """
        response = client.post("/api/excel/upload", files=people_upload)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["file_name"] == "people.xlsx"
        assert data["worksheet_name"] == "People"
        assert data["row_count"] == 3
        assert data["column_count"] == 4
        assert data["data_types"]["joined"] == "temporal"
        assert data["statistics"]["age"] == {
            "type": "numeric", "mean": pytest.approx(100 / 3), "min": 25.0, "max": 45.0, "count": 3
        }
        assert data["statistics"]["first_name"]["unique_count"] == 3
        assert data["preview"][0]["first_name"] == "John"
        assert data["preview"][0]["joined"].startswith("2020-01-15")
        assert data["summary"]["total_rows"] == 3

    def test_upload_without_file(self):
        response = client.post("/api/excel/upload")
        assert response.status_code == 400
        assert response.json() == {"error": "No file uploaded"}

    def test_upload_wrong_extension(self):
        files = {"file": ("data.txt", b"hello", "text/plain")}
        response = client.post("/api/excel/upload", files=files)
        assert response.status_code == 400
        assert "Excel file" in response.json()["error"]

    @pytest.mark.parametrize(
        "result, expected_status",
        [
            (Result.server_error("Error processing Excel file: boom"), status.HTTP_500_INTERNAL_SERVER_ERROR),
            (Result.too_large(), status.HTTP_413_REQUEST_ENTITY_TOO_LARGE),
            (Result.fail("Worksheet has no columns", status_code=HTTPStatus.UNPROCESSABLE_ENTITY), 422),
        ],
        ids=["server-error", "too-large", "empty-worksheet"]
    )
    def test_upload_failures_map_to_status(self, people_upload, result, expected_status):
        """
        Test that failed Results are returned with their status code.

        Args:
            people_upload: Fixture providing the multipart payload
            result: Failed Result returned by the mocked service
            expected_status: Expected HTTP status code
        """
        with patch.object(ExcelAnalyzer, "analyze_file", return_value=result), \
             patch.object(main.logger, "info"):
            response = client.post("/api/excel/upload", files=people_upload)

        assert response.status_code == expected_status
        assert response.json() == {"error": result.error}


class TestExportEndpoint:
    """
    Tests for the /api/excel/export/{fmt} endpoint.
    """

    def test_csv_download(self, people_upload):
        response = client.post("/api/excel/export/csv?sort_by=age", files=people_upload)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert 'filename="people.csv"' in response.headers["content-disposition"]
        lines = response.text.splitlines()
        assert lines[0] == "first_name,age,joined,email"
        assert lines[1].startswith("Jane,25,")

    def test_xlsx_download(self, people_upload):
        response = client.post("/api/excel/export/xlsx", files=people_upload)

        assert response.status_code == 200
        sheet = load_workbook(io.BytesIO(response.content)).active
        assert [cell.value for cell in sheet[1]] == ["first_name", "age", "joined", "email"]
        assert sheet["A1"].font.bold

    def test_pdf_download(self, people_upload):
        response = client.post("/api/excel/export/pdf?title=People", files=people_upload)

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")

    def test_unsupported_format(self, people_upload):
        response = client.post("/api/excel/export/json", files=people_upload)
        assert response.status_code == 400
        assert "Unsupported export format" in response.json()["error"]

    def test_unknown_sort_column(self, people_upload):
        response = client.post("/api/excel/export/csv?sort_by=salary", files=people_upload)
        assert response.status_code == 404
        assert response.json() == {"error": "Column not found: salary"}


def test_oversized_upload_is_rejected(people_upload):
    """
    Test that uploads above the configured limit get a 413.

    Args:
        people_upload: Fixture providing the multipart payload
    """
    with patch.object(main.settings, "max_upload_bytes", 100):
        response = client.post("/api/excel/upload", files=people_upload)

    assert response.status_code == 413
