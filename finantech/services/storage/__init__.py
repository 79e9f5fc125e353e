"""
Storage Services Package

Provides the abstract expense storage interface and its implementations.
SQLite is the real backend; the in-memory store backs tests.
"""

from finantech.services.storage.interface import (
    DuplicateError,
    ExpenseStorageInterface,
    NotFoundError,
    StorageConnectionError,
    StorageError,
)
from finantech.services.storage.memory import InMemoryExpenseStorage
from finantech.services.storage.sqlite import SQLiteExpenseStorage

__all__ = [
    # Interface
    "ExpenseStorageInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    # Implementations
    "InMemoryExpenseStorage",
    "SQLiteExpenseStorage",
]
