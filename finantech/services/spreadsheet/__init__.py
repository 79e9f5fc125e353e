"""Spreadsheet CSV import/export package."""

from finantech.services.spreadsheet.transcoder import (
    FISCAL_MONTHS,
    HEADER_MARKER,
    CsvFormatError,
    ExportFileStore,
    ExportMatrix,
    SpreadsheetTranscoder,
    fiscal_calendar,
    parse_delimited_line,
    resolve_import_year,
)

__all__ = [
    "FISCAL_MONTHS",
    "HEADER_MARKER",
    "CsvFormatError",
    "ExportFileStore",
    "ExportMatrix",
    "SpreadsheetTranscoder",
    "fiscal_calendar",
    "parse_delimited_line",
    "resolve_import_year",
]
