"""
Excel Data Analyzer

This package provides an API for analyzing Excel worksheets and exporting them.
It infers a typed, columnar schema for the first worksheet, computes
descriptive statistics, and re-exports the data as CSV, XLSX or a PDF report.

Key modules:
- main.py: FastAPI application with API endpoints
- excel_analysis.py: Workbook reading and the analysis/export service
- type_inference.py: Numeric/temporal/text detection and cell parsing
- column_store.py: Immutable typed Table and its builder
- column_statistics.py: Per-column descriptive statistics
- transforms.py: Filter and sort operations
- exporters.py / report_export.py: CSV, spreadsheet and PDF renderers
- utils/result.py: Result pattern implementation for error handling
"""
