"""
Data Models Package

This package contains all Pydantic models used in FinanTech.
All data flowing through the system must conform to these schemas.
"""

from finantech.models.expense import (
    MONTH_NAMES,
    MONTH_NUMBERS,
    Expense,
    MonthlyStatistics,
    MonthOverview,
    month_name,
)
from finantech.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Expense models
    "MONTH_NAMES",
    "MONTH_NUMBERS",
    "Expense",
    "MonthlyStatistics",
    "MonthOverview",
    "month_name",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
