"""
In-memory storage.

Same contract as the SQLite store, kept in a dict. Used by the tests and
as the fallback when no database can be opened.
"""

from decimal import Decimal
from typing import Optional

from finantech.models.expense import Expense, MonthlyStatistics
from finantech.services.storage.interface import ExpenseStorageInterface


class InMemoryExpenseStorage(ExpenseStorageInterface):
    """Dict-backed expense storage. Ids start at 1 and are never reused."""

    def __init__(self, expenses: Optional[list[Expense]] = None):
        self._expenses: dict[int, Expense] = {}
        self._next_id = 1
        for expense in expenses or []:
            self._store(expense)

    def _store(self, expense: Expense) -> int:
        expense_id = expense.id if expense.id is not None else self._next_id
        self._next_id = max(self._next_id, expense_id + 1)
        self._expenses[expense_id] = expense.model_copy(update={"id": expense_id})
        return expense_id

    @property
    def expenses(self) -> list[Expense]:
        """Every stored expense, in id order."""
        return [self._expenses[key] for key in sorted(self._expenses)]

    async def insert_expense(self, expense: Expense) -> int:
        return self._store(expense)

    async def list_expenses(self, month: int, year: int) -> list[Expense]:
        matches = [
            e for e in self._expenses.values()
            if e.month == month and e.year == year
        ]
        matches.sort(key=lambda e: e.created_at, reverse=True)
        return matches

    async def get_expense(self, expense_id: int) -> Optional[Expense]:
        return self._expenses.get(expense_id)

    async def update_paid(self, expense_id: int, paid: bool) -> int:
        if expense_id not in self._expenses:
            return 0
        self._expenses[expense_id] = self._expenses[expense_id].model_copy(update={"paid": paid})
        return 1

    async def update_expense(self, expense: Expense) -> int:
        if expense.id is None or expense.id not in self._expenses:
            return 0
        self._expenses[expense.id] = expense.model_copy()
        return 1

    async def delete_expense(self, expense_id: int) -> int:
        return 1 if self._expenses.pop(expense_id, None) is not None else 0

    async def get_month_total(self, month: int, year: int) -> Decimal:
        expenses = await self.list_expenses(month, year)
        return sum((e.amount for e in expenses if not e.paid), Decimal("0"))

    async def get_totals_by_origin(self, month: int, year: int) -> dict[str, Decimal]:
        totals: dict[str, Decimal] = {}
        for expense in await self.list_expenses(month, year):
            if not expense.paid:
                totals[expense.origin] = totals.get(expense.origin, Decimal("0")) + expense.amount
        return dict(sorted(totals.items(), key=lambda item: item[1], reverse=True))

    async def distinct_origins(self) -> list[str]:
        return sorted({e.origin for e in self._expenses.values()})

    async def expense_exists(
        self,
        origin: str,
        month: int,
        year: int,
        exclude_id: Optional[int] = None,
    ) -> bool:
        wanted = origin.strip().casefold()
        return any(
            e.origin.strip().casefold() == wanted and e.month == month and e.year == year
            for key, e in self._expenses.items()
            if key != exclude_id
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
