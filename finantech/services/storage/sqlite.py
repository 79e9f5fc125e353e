"""
SQLite Storage Implementation

DESIGN DECISION: SQLite is the on-device store because:
1. No server to run - a single file next to the app
2. Month/year lookups are covered by an index
3. The file can be copied as a backup

TRADEOFFS:
- Amounts are stored as TEXT (Decimal strings) so sums are done in
  Python with Decimal instead of SQL SUM over floats
- One connection per storage object; the app is single-user

The store handle is created once by the top-level process and passed to
whoever needs it. There is no module-level database instance.
"""

import sqlite3
from decimal import Decimal
from pathlib import Path
from typing import Optional

import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from finantech.config import DatabaseSettings, get_settings
from finantech.models.expense import Expense, MonthlyStatistics
from finantech.services.storage.interface import (
    ExpenseStorageInterface,
    StorageConnectionError,
    StorageError,
)


TABLE_EXPENSES = "gastos"

SCHEMA = [
    f"""
    CREATE TABLE IF NOT EXISTS {TABLE_EXPENSES} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        origem TEXT NOT NULL,
        valor TEXT NOT NULL,
        pago INTEGER NOT NULL DEFAULT 0,
        mes INTEGER NOT NULL,
        ano INTEGER NOT NULL,
        createdAt TEXT NOT NULL
    )
    """,
    f"CREATE INDEX IF NOT EXISTS idx_gastos_mes_ano ON {TABLE_EXPENSES} (mes, ano)",
    f"CREATE INDEX IF NOT EXISTS idx_gastos_origem ON {TABLE_EXPENSES} (origem)",
]

COLUMNS = ("origem", "valor", "pago", "mes", "ano", "createdAt")

logger = structlog.get_logger(__name__)


class SQLiteExpenseStorage(ExpenseStorageInterface):
    """
    SQLite implementation of expense storage.

    The connection is opened lazily on first use and the schema is
    created if missing.
    """

    def __init__(self, settings: Optional[DatabaseSettings] = None):
        self._settings = settings or get_settings().database
        self._connection: Optional[sqlite3.Connection] = None

    @retry(
        retry=retry_if_exception_type(sqlite3.OperationalError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        reraise=True,
    )
    def _open(self) -> sqlite3.Connection:
        path = self._settings.path
        if path != ":memory:":
            Path(path).expanduser().parent.mkdir(parents=True, exist_ok=True)
        connection = sqlite3.connect(path, timeout=self._settings.timeout_seconds)
        connection.row_factory = sqlite3.Row
        with connection:
            for statement in SCHEMA:
                connection.execute(statement)
        logger.debug("sqlite_opened", path=path)
        return connection

    def connect(self) -> sqlite3.Connection:
        """Open the database (once) and return the connection."""
        if self._connection is None:
            try:
                self._connection = self._open()
            except (sqlite3.Error, OSError) as e:
                raise StorageConnectionError(
                    f"Failed to open database {self._settings.path}: {e}"
                )
        return self._connection

    def close(self) -> None:
        """Close the connection. The next call reopens it."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    def _query(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        connection = self.connect()
        try:
            return connection.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Database query failed: {e}")

    def _write(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        connection = self.connect()
        try:
            with connection:
                return connection.execute(sql, params)
        except sqlite3.Error as e:
            raise StorageError(f"Database write failed: {e}")

    async def insert_expense(self, expense: Expense) -> int:
        """Insert an expense; an existing id is replaced."""
        row = expense.to_row()
        columns = list(row)
        placeholders = ", ".join("?" for _ in columns)
        cursor = self._write(
            f"INSERT OR REPLACE INTO {TABLE_EXPENSES} ({', '.join(columns)}) "
            f"VALUES ({placeholders})",
            tuple(row[column] for column in columns),
        )
        return cursor.lastrowid

    async def list_expenses(self, month: int, year: int) -> list[Expense]:
        rows = self._query(
            f"SELECT * FROM {TABLE_EXPENSES} WHERE mes = ? AND ano = ? "
            "ORDER BY createdAt DESC",
            (month, year),
        )
        return [Expense.from_row(row) for row in rows]

    async def get_expense(self, expense_id: int) -> Optional[Expense]:
        rows = self._query(
            f"SELECT * FROM {TABLE_EXPENSES} WHERE id = ?",
            (expense_id,),
        )
        return Expense.from_row(rows[0]) if rows else None

    async def update_paid(self, expense_id: int, paid: bool) -> int:
        cursor = self._write(
            f"UPDATE {TABLE_EXPENSES} SET pago = ? WHERE id = ?",
            (1 if paid else 0, expense_id),
        )
        return cursor.rowcount

    async def update_expense(self, expense: Expense) -> int:
        if expense.id is None:
            raise StorageError("Cannot update an expense without an id")
        row = expense.to_row()
        assignments = ", ".join(f"{column} = ?" for column in COLUMNS)
        cursor = self._write(
            f"UPDATE {TABLE_EXPENSES} SET {assignments} WHERE id = ?",
            tuple(row[column] for column in COLUMNS) + (expense.id,),
        )
        return cursor.rowcount

    async def delete_expense(self, expense_id: int) -> int:
        cursor = self._write(
            f"DELETE FROM {TABLE_EXPENSES} WHERE id = ?",
            (expense_id,),
        )
        return cursor.rowcount

    async def get_month_total(self, month: int, year: int) -> Decimal:
        expenses = await self.list_expenses(month, year)
        return sum((e.amount for e in expenses if not e.paid), Decimal("0"))

    async def get_totals_by_origin(self, month: int, year: int) -> dict[str, Decimal]:
        totals: dict[str, Decimal] = {}
        for expense in await self.list_expenses(month, year):
            if expense.paid:
                continue
            totals[expense.origin] = totals.get(expense.origin, Decimal("0")) + expense.amount
        return dict(sorted(totals.items(), key=lambda item: item[1], reverse=True))

    async def distinct_origins(self) -> list[str]:
        rows = self._query(
            f"SELECT DISTINCT origem FROM {TABLE_EXPENSES} ORDER BY origem ASC"
        )
        return [row["origem"] for row in rows]

    async def expense_exists(
        self,
        origin: str,
        month: int,
        year: int,
        exclude_id: Optional[int] = None,
    ) -> bool:
        # SQLite LOWER() only folds ASCII, so compare in Python
        rows = self._query(
            f"SELECT id, origem FROM {TABLE_EXPENSES} WHERE mes = ? AND ano = ?",
            (month, year),
        )
        wanted = origin.strip().casefold()
        return any(
            row["origem"].strip().casefold() == wanted and row["id"] != exclude_id
            for row in rows
        )

    async def get_month_statistics(self, month: int, year: int) -> MonthlyStatistics:
        stats = MonthlyStatistics(month=month, year=year)
        for expense in await self.list_expenses(month, year):
            if expense.paid:
                stats.total_paid += expense.amount
                stats.paid_count += 1
            else:
                stats.total_unpaid += expense.amount
                stats.unpaid_count += 1
        return stats
