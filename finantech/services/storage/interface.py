"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep SQLite as the on-device store
2. Use in-memory storage for testing
3. Hand the same store handle to the ledger and the CSV transcoder
4. Keep business logic decoupled from storage implementation

The interface is intentionally simple - we're not building a full ORM.
Just the operations the expense screens and the spreadsheet transfer need.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional

from finantech.models.expense import Expense, MonthlyStatistics


class ExpenseStorageInterface(ABC):
    """
    Abstract interface for expense storage operations.

    Any storage implementation (SQLite, in-memory, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def insert_expense(self, expense: Expense) -> int:
        """
        Insert an expense.

        Args:
            expense: The expense to save. Its id is ignored unless set.

        Returns:
            The store-assigned id

        Raises:
            StorageError: If the insert fails
        """
        pass

    @abstractmethod
    async def list_expenses(self, month: int, year: int) -> list[Expense]:
        """
        All expenses (paid and unpaid) of a month, newest first.
        """
        pass

    @abstractmethod
    async def get_expense(self, expense_id: int) -> Optional[Expense]:
        """
        Retrieve an expense by id.

        Returns:
            The expense if found, None otherwise
        """
        pass

    @abstractmethod
    async def update_paid(self, expense_id: int, paid: bool) -> int:
        """
        Set the paid flag of an expense.

        Returns:
            Number of rows affected (0 if the id is unknown)
        """
        pass

    @abstractmethod
    async def update_expense(self, expense: Expense) -> int:
        """
        Replace an existing expense. The expense must carry its id.

        Returns:
            Number of rows affected (0 if the id is unknown)
        """
        pass

    @abstractmethod
    async def delete_expense(self, expense_id: int) -> int:
        """
        Delete an expense by id.

        Returns:
            Number of rows affected (0 if the id is unknown)
        """
        pass

    @abstractmethod
    async def get_month_total(self, month: int, year: int) -> Decimal:
        """Sum of unpaid amounts for a month (0 when there are none)."""
        pass

    @abstractmethod
    async def get_totals_by_origin(self, month: int, year: int) -> dict[str, Decimal]:
        """
        Unpaid total per origin for a month, largest first.

        Example: {'Santander': Decimal('1500.00'), 'Inter': Decimal('800.50')}
        """
        pass

    @abstractmethod
    async def distinct_origins(self) -> list[str]:
        """Every origin ever recorded, paid or not, in ascending order."""
        pass

    @abstractmethod
    async def expense_exists(
        self,
        origin: str,
        month: int,
        year: int,
        exclude_id: Optional[int] = None,
    ) -> bool:
        """
        Check whether an origin already has an expense in a month.

        Args:
            origin: Origin name (compared trimmed and casefolded, so
                    "ITAÚ" matches "Itaú")
            month: Calendar month
            year: Calendar year
            exclude_id: Ignore this expense (used when editing it)

        Returns:
            True if a matching expense exists
        """
        pass

    @abstractmethod
    async def get_month_statistics(self, month: int, year: int) -> MonthlyStatistics:
        """Paid/unpaid totals and counts for a month."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class StorageConnectionError(StorageError):
    """Could not open the storage backend."""
    pass
