"""
Audit Models for Settle Up

A shared ledger needs a history everybody can check:
1. Who added, edited or deleted an expense
2. Which settlements were suggested, recorded and completed
3. What went wrong when a save or an external service failed

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """What happened to the ledger."""
    # Expenses
    EXPENSE_ADDED = "expense_added"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"
    EXPENSE_VALIDATION_FAILED = "expense_validation_failed"

    # Settle up
    SETTLEMENTS_SUGGESTED = "settlements_suggested"
    SETTLEMENT_RECORDED = "settlement_recorded"
    SETTLEMENT_COMPLETED = "settlement_completed"

    # Persistence
    SAVE_FAILED = "save_failed"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


# Column order of the audit worksheet
AUDIT_SHEET_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
    "actor_id",
]


class AuditEvent(BaseModel):
    """
    One entry in the ledger history.

    entity_id is a string: expenses are identified by UUID, recorded
    settlements by their "from->to" pair. actor_id is the participant who
    made the change, when it was made by a person.
    """

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="UTC time of the change"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # The expense, settlement or participant this is about
    entity_type: Optional[str] = Field(
        default=None,
        description="'expense', 'settlement' or 'participant'"
    )
    entity_id: Optional[str] = None

    # Shared by every event of one user action (e.g. settlement + its expense)
    correlation_id: Optional[UUID] = None

    description: str = Field(
        ...,
        max_length=500,
        description="One line a person can read in the history view"
    )
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    is_user_action: bool = False
    actor_id: Optional[str] = Field(
        default=None,
        description="Participant who made the change"
    )

    def to_log_dict(self) -> dict:
        """JSON-safe fields for structured logging."""
        return self.model_dump(mode="json")

    def to_sheets_row(self) -> list:
        """Cells in AUDIT_SHEET_COLUMNS order, blank where there is no value."""
        values = self.to_log_dict()
        values["details_json"] = json.dumps(values.pop("details")) if self.details else ""
        values["is_user_action"] = str(self.is_user_action)
        return [
            "" if values[column] is None else values[column]
            for column in AUDIT_SHEET_COLUMNS
        ]


def settlement_key(from_id: str, to_id: str) -> str:
    """Entity id used for a recorded settlement."""
    return f"{from_id}->{to_id}"


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_added(expense_id, "Dinner", "90.00", "you")
        event = AuditEventBuilder.settlement_completed("alex", "you", "30.00", correlation_id)
    """

    @staticmethod
    def expense_added(
        expense_id: UUID,
        description: str,
        amount: str,
        payer_id: str,
        actor_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_ADDED,
            entity_type="expense",
            entity_id=str(expense_id),
            correlation_id=correlation_id,
            description=f"Expense added: {description} - {amount}",
            details={
                "description": description,
                "amount": amount,
                "payer_id": payer_id,
            },
            is_user_action=True,
            actor_id=actor_id,
        )

    @staticmethod
    def expense_updated(
        expense_id: UUID,
        amount: str,
        actor_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_UPDATED,
            entity_type="expense",
            entity_id=str(expense_id),
            correlation_id=correlation_id,
            description="Expense updated",
            details={"amount": amount},
            is_user_action=True,
            actor_id=actor_id,
        )

    @staticmethod
    def expense_deleted(
        expense_id: UUID,
        actor_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            entity_type="expense",
            entity_id=str(expense_id),
            correlation_id=correlation_id,
            description="Expense deleted with its splits",
            is_user_action=True,
            actor_id=actor_id,
        )

    @staticmethod
    def validation_failed(
        expense_id: UUID,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="expense",
            entity_id=str(expense_id),
            correlation_id=correlation_id,
            description=f"Expense validation failed with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def settlements_suggested(
        viewpoint_id: str,
        settlement_count: int,
        total: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENTS_SUGGESTED,
            severity=AuditSeverity.DEBUG,
            entity_type="participant",
            entity_id=viewpoint_id,
            correlation_id=correlation_id,
            description=f"{settlement_count} settlements suggested",
            details={
                "settlement_count": settlement_count,
                "total": str(total),
            },
        )

    @staticmethod
    def settlement_recorded(
        from_id: str,
        to_id: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENT_RECORDED,
            entity_type="settlement",
            entity_id=settlement_key(from_id, to_id),
            correlation_id=correlation_id,
            description=f"Settlement recorded: {from_id} pays {to_id} {amount}",
            details={"amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def settlement_completed(
        from_id: str,
        to_id: str,
        amount: str,
        expense_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENT_COMPLETED,
            entity_type="settlement",
            entity_id=settlement_key(from_id, to_id),
            correlation_id=correlation_id,
            description=f"Settlement completed: {from_id} paid {to_id} {amount}",
            details={
                "amount": amount,
                "expense_id": str(expense_id),
            },
            is_user_action=True,
        )

    @staticmethod
    def save_failed(
        entity_type: str,
        entity_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Failed to save {entity_type}",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        """Something inside Settle Up went wrong; error_type is a short slug."""
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.CRITICAL,
            description=f"Unexpected failure ({error_type})",
            error_message=error_message,
            details={"error_type": error_type, **(details or {})},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        """A backend such as Google Sheets could not be reached."""
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            entity_type="service",
            entity_id=service,
            description=f"{service} unavailable",
            error_message=error_message,
            correlation_id=correlation_id,
        )
