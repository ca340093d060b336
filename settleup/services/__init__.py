"""Services package."""

from settleup.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    ExpenseStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    GoogleSheetsParticipantStorage,
    GoogleSheetsSettlementStorage,
    InMemoryAuditStorage,
    InMemoryExpenseStorage,
    InMemoryParticipantStorage,
    InMemorySettlementStorage,
    NotFoundError,
    ParticipantStorageInterface,
    SettlementStorageInterface,
    StorageError,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "ExpenseStorageInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStorage",
    "GoogleSheetsParticipantStorage",
    "GoogleSheetsSettlementStorage",
    "InMemoryAuditStorage",
    "InMemoryExpenseStorage",
    "InMemoryParticipantStorage",
    "InMemorySettlementStorage",
    "NotFoundError",
    "ParticipantStorageInterface",
    "SettlementStorageInterface",
    "StorageError",
]
