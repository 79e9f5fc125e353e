"""Services package."""

from finantech.services.storage import (
    DuplicateError,
    ExpenseStorageInterface,
    InMemoryExpenseStorage,
    NotFoundError,
    SQLiteExpenseStorage,
    StorageConnectionError,
    StorageError,
)
from finantech.services.spreadsheet import (
    CsvFormatError,
    ExportFileStore,
    SpreadsheetTranscoder,
)

__all__ = [
    # Storage services
    "DuplicateError",
    "ExpenseStorageInterface",
    "InMemoryExpenseStorage",
    "NotFoundError",
    "SQLiteExpenseStorage",
    "StorageConnectionError",
    "StorageError",
    # Spreadsheet services
    "CsvFormatError",
    "ExportFileStore",
    "SpreadsheetTranscoder",
]
