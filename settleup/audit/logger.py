"""
Audit Logger

DESIGN DECISION: Every change to the shared ledger is logged.
When two friends disagree about a debt, the audit trail shows who added,
edited or settled what, and when.

The audit logger:
- Is async to match the storage layer
- Never lets an audit failure break the action being audited
- Supports correlation IDs to trace related events
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from settleup.models.audit import AuditEvent, AuditEventBuilder
from settleup.services.storage import AuditStorageInterface


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

# Audit severity -> structlog method
_LOG_METHODS = {
    "critical": "error",
    "error": "error",
    "warning": "warning",
    "debug": "debug",
}


class AuditLogger:
    """
    Writes audit events to the local structured log and, when a storage
    backend is given, to the audit sheet.

    Without storage (in-memory mode) events only reach the local log.
    """

    def __init__(self, storage: Optional[AuditStorageInterface] = None):
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Record one event.

        Returns False if the storage write failed, True otherwise.
        A failed write is logged locally and never raised.
        """
        method = _LOG_METHODS.get(event.severity.value, "info")
        getattr(self._logger, method)("audit_event", **event.to_log_dict())

        if self._storage is None:
            return True

        try:
            return await self._storage.append_event(event)
        except Exception as e:
            self._logger.error(
                "audit_storage_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False

    # Expenses

    async def log_expense_added(
        self,
        expense_id: UUID,
        description: str,
        amount: Decimal,
        payer_id: str,
        actor_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.expense_added(
            expense_id=expense_id,
            description=description,
            amount=str(amount),
            payer_id=payer_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
        ))

    async def log_expense_updated(
        self,
        expense_id: UUID,
        amount: Decimal,
        actor_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.expense_updated(
            expense_id=expense_id,
            amount=str(amount),
            actor_id=actor_id,
            correlation_id=correlation_id,
        ))

    async def log_expense_deleted(
        self,
        expense_id: UUID,
        actor_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.expense_deleted(
            expense_id=expense_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
        ))

    async def log_validation_failed(
        self,
        expense_id: UUID,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.validation_failed(
            expense_id=expense_id,
            issues=issues,
            correlation_id=correlation_id,
        ))

    # Settle up

    async def log_settlements_suggested(
        self,
        viewpoint_id: str,
        settlement_count: int,
        total: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.settlements_suggested(
            viewpoint_id=viewpoint_id,
            settlement_count=settlement_count,
            total=total,
            correlation_id=correlation_id,
        ))

    async def log_settlement_recorded(
        self,
        from_id: str,
        to_id: str,
        amount: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.settlement_recorded(
            from_id=from_id,
            to_id=to_id,
            amount=str(amount),
            correlation_id=correlation_id,
        ))

    async def log_settlement_completed(
        self,
        from_id: str,
        to_id: str,
        amount: Decimal,
        expense_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """The settlement and the expense recording it share a correlation id."""
        await self.log(AuditEventBuilder.settlement_completed(
            from_id=from_id,
            to_id=to_id,
            amount=str(amount),
            expense_id=expense_id,
            correlation_id=correlation_id,
        ))

    # Failures

    async def log_save_failed(
        self,
        entity_type: str,
        entity_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.save_failed(
            entity_type=entity_type,
            entity_id=entity_id,
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
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """New id to tie together the events of one user action."""
    return uuid4()
