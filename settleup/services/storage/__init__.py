"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the hosted backend; the in-memory backend is used in
tests and when Sheets isn't configured.
"""

from settleup.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    ExpenseStorageInterface,
    NotFoundError,
    ParticipantStorageInterface,
    SettlementStorageInterface,
    StorageError,
    expense_involves,
    filter_expenses,
)
from settleup.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryExpenseStorage,
    InMemoryParticipantStorage,
    InMemorySettlementStorage,
)
from settleup.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    GoogleSheetsParticipantStorage,
    GoogleSheetsSettlementStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "ExpenseStorageInterface",
    "ParticipantStorageInterface",
    "SettlementStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # Helpers
    "expense_involves",
    "filter_expenses",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryExpenseStorage",
    "InMemoryParticipantStorage",
    "InMemorySettlementStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStorage",
    "GoogleSheetsParticipantStorage",
    "GoogleSheetsSettlementStorage",
]
