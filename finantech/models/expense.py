"""
Core Data Models for FinanTech

An Expense is one debt owed to an origin (creditor) for a given
month/year. Identity is assigned by the store, so `id` is None until
the expense has been inserted.

DESIGN DECISION: Amounts are Decimal, never float.
Sums over a whole fiscal year must come out to the cent, and the CSV
format prints exactly two decimals.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Month names as they appear in the spreadsheet (pt-BR), indexed 1..12
MONTH_NAMES = (
    "",
    "Janeiro",
    "Fevereiro",
    "Março",
    "Abril",
    "Maio",
    "Junho",
    "Julho",
    "Agosto",
    "Setembro",
    "Outubro",
    "Novembro",
    "Dezembro",
)

MONTH_NUMBERS = {name: number for number, name in enumerate(MONTH_NAMES) if name}


def month_name(month: int) -> str:
    """Name of a calendar month (1-12)."""
    if not 1 <= month <= 12:
        raise ValueError(f"Month out of range: {month}")
    return MONTH_NAMES[month]


class Expense(BaseModel):
    """
    A debt owed to an origin in a specific month.

    Only unpaid expenses count towards totals and exports.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[int] = Field(
        default=None,
        description="Store-assigned identifier"
    )
    origin: str = Field(
        ...,
        min_length=1,
        description="Who the debt is owed to (e.g. 'Santander', 'Inter')"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Amount owed in BRL"
    )
    paid: bool = Field(
        default=False,
        description="True once the debt has been paid"
    )
    month: int = Field(
        ...,
        ge=1,
        le=12,
        description="Calendar month (1-12)"
    )
    year: int = Field(
        ...,
        description="Calendar year"
    )
    created_at: datetime = Field(
        default_factory=datetime.now,
        description="When the expense was recorded (used for ordering)"
    )

    @field_validator('amount', mode='before')
    @classmethod
    def coerce_amount(cls, v):
        """Floats go through str() so 1500.5 becomes Decimal('1500.5'), not its binary expansion."""
        if isinstance(v, float):
            return Decimal(str(v))
        return v

    @property
    def month_name(self) -> str:
        return month_name(self.month)

    def to_row(self) -> dict:
        """Column mapping used by the SQLite store."""
        row = {
            "origem": self.origin,
            "valor": str(self.amount),
            "pago": 1 if self.paid else 0,
            "mes": self.month,
            "ano": self.year,
            "createdAt": self.created_at.isoformat(),
        }
        if self.id is not None:
            row["id"] = self.id
        return row

    @classmethod
    def from_row(cls, row) -> "Expense":
        return cls(
            id=row["id"],
            origin=row["origem"],
            amount=Decimal(str(row["valor"])),
            paid=row["pago"] == 1,
            month=row["mes"],
            year=row["ano"],
            created_at=datetime.fromisoformat(row["createdAt"]),
        )


class MonthlyStatistics(BaseModel):
    """Paid/unpaid breakdown for one month."""

    month: int = Field(ge=1, le=12)
    year: int
    total_unpaid: Decimal = Decimal("0")
    total_paid: Decimal = Decimal("0")
    unpaid_count: int = Field(default=0, ge=0)
    paid_count: int = Field(default=0, ge=0)

    @property
    def total(self) -> Decimal:
        return self.total_unpaid + self.total_paid


class MonthOverview(BaseModel):
    """
    Everything the month screen needs in one object.

    Expenses are newest first; totals_by_origin only counts unpaid debts
    and is ordered largest first.
    """

    month: int = Field(ge=1, le=12)
    year: int
    expenses: list[Expense] = Field(default_factory=list)
    total_unpaid: Decimal = Decimal("0")
    totals_by_origin: dict[str, Decimal] = Field(default_factory=dict)
    statistics: MonthlyStatistics
