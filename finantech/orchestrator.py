"""
Main Orchestrator for FinanTech

This module ties together all the components and defines the
user-facing flows:
1. Month screen (record, edit, mark paid, delete, overview)
2. Spreadsheet transfer (export CSV, import CSV)

DESIGN DECISION: The orchestrator owns no global state.
The storage handle is created by create_app_components() (or by the
caller) and passed down by reference to the ledger and the transcoder.
Tests build the same objects around an in-memory store.
"""

from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Optional, Union
from uuid import UUID

import structlog

from finantech.audit import AuditLogger, configure_logging, create_correlation_id
from finantech.config import get_settings
from finantech.models.expense import Expense, MonthOverview
from finantech.services.spreadsheet import CsvFormatError, SpreadsheetTranscoder
from finantech.services.storage import (
    DuplicateError,
    ExpenseStorageInterface,
    InMemoryExpenseStorage,
    NotFoundError,
    SQLiteExpenseStorage,
    StorageError,
)

logger = structlog.get_logger(__name__)


class DuplicateExpenseError(DuplicateError):
    """The origin already has an expense in that month."""

    def __init__(self, origin: str, month: int, year: int):
        self.origin = origin
        self.month = month
        self.year = year
        super().__init__(f"'{origin}' already has an expense in {month:02d}/{year}")


class ExpenseLedger:
    """
    Orchestrates everything the user can do with expenses.

    RULES:
    - One expense per origin per month (case-insensitive)
    - New expenses start unpaid
    - Imports never overwrite existing expenses
    - Every mutation is audited
    """

    def __init__(
        self,
        storage: ExpenseStorageInterface,
        transcoder: Optional[SpreadsheetTranscoder] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._transcoder = transcoder or SpreadsheetTranscoder(storage)
        self._audit_logger = audit_logger or AuditLogger()

    @property
    def storage(self) -> ExpenseStorageInterface:
        return self._storage

    async def record_expense(
        self,
        origin: str,
        amount: Union[Decimal, str],
        month: int,
        year: int,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Record a new unpaid expense.

        Raises:
            DuplicateExpenseError: If the origin already has one that month
            pydantic.ValidationError: If a field is invalid
        """
        expense = Expense(
            origin=origin,
            amount=amount,
            paid=False,
            month=month,
            year=year,
            created_at=datetime.now(),
        )
        await self._reject_duplicate(expense, correlation_id=correlation_id)

        expense_id = await self._storage.insert_expense(expense)
        expense = expense.model_copy(update={"id": expense_id})

        await self._audit_logger.log_expense_recorded(
            expense_id=expense_id,
            origin=expense.origin,
            amount=str(expense.amount),
            correlation_id=correlation_id,
        )
        return expense

    async def edit_expense(
        self,
        expense: Expense,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Save changes to an existing expense.

        Raises:
            DuplicateExpenseError: If another expense of the same origin
                exists in the target month
            NotFoundError: If the expense is not in storage
        """
        if expense.id is None:
            raise NotFoundError("Cannot edit an expense that was never saved")
        if await self._storage.get_expense(expense.id) is None:
            raise NotFoundError(f"Expense not found: {expense.id}")
        await self._reject_duplicate(expense, correlation_id=correlation_id)

        if await self._storage.update_expense(expense) == 0:
            raise NotFoundError(f"Expense not found: {expense.id}")

        await self._audit_logger.log_expense_updated(
            expense_id=expense.id,
            origin=expense.origin,
            amount=str(expense.amount),
            correlation_id=correlation_id,
        )
        return expense

    async def set_paid(
        self,
        expense_id: int,
        paid: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Mark an expense as paid or unpaid."""
        if await self._storage.update_paid(expense_id, paid) == 0:
            raise NotFoundError(f"Expense not found: {expense_id}")
        await self._audit_logger.log_payment_status(
            expense_id=expense_id,
            paid=paid,
            correlation_id=correlation_id,
        )

    async def delete_expense(
        self,
        expense_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Delete an expense. Returns False if it did not exist."""
        deleted = await self._storage.delete_expense(expense_id) > 0
        if deleted:
            await self._audit_logger.log_expense_deleted(
                expense_id=expense_id,
                correlation_id=correlation_id,
            )
        return deleted

    async def month_overview(self, month: int, year: int) -> MonthOverview:
        """Expenses, unpaid totals and statistics of one month."""
        return MonthOverview(
            month=month,
            year=year,
            expenses=await self._storage.list_expenses(month, year),
            total_unpaid=await self._storage.get_month_total(month, year),
            totals_by_origin=await self._storage.get_totals_by_origin(month, year),
            statistics=await self._storage.get_month_statistics(month, year),
        )

    async def origin_suggestions(self, prefix: str = "") -> list[str]:
        """Known origins starting with `prefix` (case-insensitive), for autocomplete."""
        prefix = prefix.strip().lower()
        return [
            origin for origin in await self._storage.distinct_origins()
            if origin.lower().startswith(prefix)
        ]

    async def export_csv(
        self,
        year: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> str:
        """Export the fiscal year to a CSV file and return its path."""
        correlation_id = correlation_id or create_correlation_id()
        if year is None:
            year = datetime.now().year

        path = await self._transcoder.export_csv(year)

        await self._audit_logger.log_csv_exported(
            path=path,
            year=year,
            origin_count=len(await self._storage.distinct_origins()),
            correlation_id=correlation_id,
        )
        return path

    async def import_csv(
        self,
        content: str,
        year: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> int:
        """
        Import a spreadsheet CSV document.

        Returns:
            Number of expenses inserted

        Raises:
            CsvFormatError: If the document has no header line
            StorageError: If the store fails mid-import (rows already
                inserted stay inserted)
        """
        correlation_id = correlation_id or create_correlation_id()
        if year is None:
            year = datetime.now().year

        try:
            imported = await self._transcoder.import_csv(content, year)
        except CsvFormatError as e:
            await self._audit_logger.log_csv_import_rejected(
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise
        except StorageError as e:
            await self._audit_logger.log_error(
                error_type=type(e).__name__,
                error_message=str(e),
                details={"operation": "csv_import", "year": year},
                correlation_id=correlation_id,
            )
            raise

        await self._audit_logger.log_csv_imported(
            year=year,
            imported_count=imported,
            correlation_id=correlation_id,
        )
        return imported

    async def import_csv_file(
        self,
        path: Union[str, Path],
        year: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> int:
        """Import a spreadsheet CSV file from disk."""
        content = self._transcoder.file_store.read(path)
        return await self.import_csv(content, year=year, correlation_id=correlation_id)

    async def _reject_duplicate(
        self,
        expense: Expense,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        exists = await self._storage.expense_exists(
            expense.origin,
            expense.month,
            expense.year,
            exclude_id=expense.id,
        )
        if exists:
            await self._audit_logger.log_duplicate_rejected(
                origin=expense.origin,
                month=expense.month,
                year=expense.year,
                correlation_id=correlation_id,
            )
            raise DuplicateExpenseError(expense.origin, expense.month, expense.year)


def create_app_components(
    use_storage: bool = True,
) -> tuple[ExpenseLedger, ExpenseStorageInterface]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to open the SQLite database.
                    Set to False for an in-memory store.

    Returns:
        (ledger, storage)
    """
    settings = get_settings()
    configure_logging(settings.app.log_level)

    storage: ExpenseStorageInterface
    if use_storage:
        try:
            sqlite_storage = SQLiteExpenseStorage(settings.database)
            sqlite_storage.connect()
            storage = sqlite_storage
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_unavailable", error=str(e))
            storage = InMemoryExpenseStorage()
    else:
        storage = InMemoryExpenseStorage()

    transcoder = SpreadsheetTranscoder(storage)
    ledger = ExpenseLedger(
        storage=storage,
        transcoder=transcoder,
        audit_logger=AuditLogger(),
    )

    return ledger, storage
