"""
Audit Logger

DESIGN DECISION: Every change to the expense store and every
spreadsheet transfer is logged.
This provides:
1. Traceability when an import brings in unexpected rows
2. Debugging capability
3. A history of paid/unpaid changes

The audit logger:
- Is async so it can sit in the same flows as the store
- Writes structured JSON through structlog
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from finantech.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output to stderr at the given stdlib level."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper()))
    logging.getLogger().setLevel(level.upper())


class AuditLogger:
    """
    Central audit logging service.

    Events go to the structured local log. The last events are also kept
    in memory so the UI (and tests) can show what just happened.
    """

    def __init__(self, history_size: int = 100):
        """
        Initialize audit logger.

        Args:
            history_size: How many recent events to keep in memory.
        """
        self._logger = structlog.get_logger("finantech.audit")
        self._history: list[AuditEvent] = []
        self._history_size = history_size

    @property
    def recent_events(self) -> list[AuditEvent]:
        """Most recent events, newest first."""
        return list(reversed(self._history))

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns True once the event has been written.
        """
        log_dict = event.to_log_dict()

        if event.severity == AuditSeverity.ERROR:
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        self._history.append(event)
        del self._history[:-self._history_size]
        return True

    async def log_expense_recorded(
        self,
        expense_id: int,
        origin: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a newly recorded expense."""
        await self.log(AuditEventBuilder.expense_recorded(
            expense_id=expense_id,
            origin=origin,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_expense_updated(
        self,
        expense_id: int,
        origin: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.expense_updated(
            expense_id=expense_id,
            origin=origin,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_expense_deleted(
        self,
        expense_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.expense_deleted(
            expense_id=expense_id,
            correlation_id=correlation_id,
        ))

    async def log_payment_status(
        self,
        expense_id: int,
        paid: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a paid/unpaid toggle."""
        await self.log(AuditEventBuilder.payment_status_updated(
            expense_id=expense_id,
            paid=paid,
            correlation_id=correlation_id,
        ))

    async def log_duplicate_rejected(
        self,
        origin: str,
        month: int,
        year: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.duplicate_rejected(
            origin=origin,
            month=month,
            year=year,
            correlation_id=correlation_id,
        ))

    async def log_csv_exported(
        self,
        path: str,
        year: int,
        origin_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.csv_exported(
            path=path,
            year=year,
            origin_count=origin_count,
            correlation_id=correlation_id,
        ))

    async def log_csv_imported(
        self,
        year: int,
        imported_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.csv_imported(
            year=year,
            imported_count=imported_count,
            correlation_id=correlation_id,
        ))

    async def log_csv_import_rejected(
        self,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.csv_import_rejected(
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g., one CSV import) and pass
    it through all subsequent operations.
    """
    return uuid4()
