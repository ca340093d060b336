"""
Data Models Package

This package contains all Pydantic models used in Settle Up.
All data flowing through the system must conform to these schemas.
"""

from settleup.models.expense import (
    AppUser,
    Balance,
    BalanceSummary,
    Expense,
    ExpenseCategory,
    ExpenseInvolvement,
    ExpenseSplit,
    ExternalContact,
    Participant,
    ParticipantRef,
    Settlement,
    SettlementStatus,
    ValidationIssue,
    ValidationResult,
    participant_id,
)
from settleup.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    settlement_key,
)

__all__ = [
    # Expense models
    "AppUser",
    "Balance",
    "BalanceSummary",
    "Expense",
    "ExpenseCategory",
    "ExpenseInvolvement",
    "ExpenseSplit",
    "ExternalContact",
    "Participant",
    "ParticipantRef",
    "Settlement",
    "SettlementStatus",
    "ValidationIssue",
    "ValidationResult",
    "participant_id",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    "settlement_key",
]
