"""
Storage Interfaces

DESIGN DECISION: Expenses, friends, settlements and the audit trail are
each behind an async ABC, so Google Sheets and the in-memory store are
interchangeable and a hosted database can be added later.

The engine never sees storage. Flows fetch snapshots from here,
hand them to the engine, and write the results back.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional, Union
from uuid import UUID

from settleup.models.expense import (
    AppUser,
    Expense,
    ExpenseCategory,
    ExternalContact,
    Settlement,
    SettlementStatus,
)
from settleup.models.audit import AuditEvent


class ExpenseStorageInterface(ABC):
    """
    Abstract interface for expense storage operations.

    Splits are stored with their expense and deleted with it.
    """

    @abstractmethod
    async def save_expense(self, expense: Expense) -> bool:
        """
        Save a new expense with its splits.

        Raises:
            DuplicateError: If an expense with this id already exists
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_expense_by_id(self, expense_id: UUID) -> Optional[Expense]:
        """Retrieve an expense by its ID, or None."""
        pass

    @abstractmethod
    async def update_expense(self, expense: Expense) -> bool:
        """
        Replace an existing expense (and all its splits).

        Raises:
            NotFoundError: If expense doesn't exist
            StorageError: If update fails
        """
        pass

    @abstractmethod
    async def delete_expense(self, expense_id: UUID) -> bool:
        """
        Delete an expense and its splits.

        Returns:
            True if deleted, False if it didn't exist
        """
        pass

    @abstractmethod
    async def list_expenses(
        self,
        participant_id: Optional[str] = None,
        category: Optional[ExpenseCategory] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = 1000,
        offset: int = 0,
    ) -> list[Expense]:
        """
        List expenses with optional filters.

        Args:
            participant_id: Only expenses this participant paid for or has a split in
            category: Filter by category
            date_from: Filter expenses on or after this date
            date_to: Filter expenses on or before this date
            limit: Maximum number of results
            offset: Number of results to skip

        Returns:
            Matching expenses, newest first
        """
        pass


class ParticipantStorageInterface(ABC):
    """Abstract interface for the friends list."""

    @abstractmethod
    async def list_participants(self) -> list[Union[AppUser, ExternalContact]]:
        """All known participants, in the order they were added."""
        pass

    @abstractmethod
    async def save_participant(self, participant: Union[AppUser, ExternalContact]) -> bool:
        """
        Add a participant, or replace one with the same id.

        Returns:
            True if saved successfully
        """
        pass

    @abstractmethod
    async def remove_participant(self, participant_id: str) -> bool:
        """
        Remove a participant by id.

        Returns:
            True if removed, False if not found
        """
        pass


class SettlementStorageInterface(ABC):
    """
    Abstract interface for recorded settlements.

    A recorded settlement is identified by its (from_id, to_id) pair.
    """

    @abstractmethod
    async def add_settlement(self, settlement: Settlement) -> bool:
        """Record a settlement (usually pending)."""
        pass

    @abstractmethod
    async def list_settlements(
        self,
        participant_id: Optional[str] = None,
    ) -> list[Settlement]:
        """Settlements where the participant pays or is paid (all if None)."""
        pass

    @abstractmethod
    async def update_settlement_status(
        self,
        from_id: str,
        to_id: str,
        status: SettlementStatus,
        proof_of_payment_url: Optional[str] = None,
    ) -> bool:
        """
        Update the status of the settlement between two participants.

        Returns:
            True if a matching settlement was updated
        """
        pass


class AuditStorageInterface(ABC):
    """
    Where audit events are kept.

    Append-only: events are never edited or removed.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Events sharing a correlation ID, in chronological order."""
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """Events for one entity (e.g. 'expense', '<uuid>'), in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """The most recent audit events, newest first."""
        pass


class StorageError(Exception):
    """A storage backend could not complete the operation."""
    pass


class NotFoundError(StorageError):
    """The expense (or other record) to change does not exist."""
    pass


class DuplicateError(StorageError):
    """A record with the same id is already stored."""
    pass


class ConnectionError(StorageError):
    """The backend could not be reached or authorized."""
    pass


def expense_involves(expense: Expense, participant_id: str) -> bool:
    """True if the participant paid for the expense or has a split in it."""
    if expense.payer_id == participant_id:
        return True
    return any(split.participant_id == participant_id for split in expense.splits)


def filter_expenses(
    expenses: list[Expense],
    participant_id: Optional[str] = None,
    category: Optional[ExpenseCategory] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    limit: int = 1000,
    offset: int = 0,
) -> list[Expense]:
    """Shared filtering for backends that filter in Python."""
    matches = []
    for expense in expenses:
        if participant_id and not expense_involves(expense, participant_id):
            continue
        if category and expense.category != category:
            continue
        if date_from and expense.date < date_from:
            continue
        if date_to and expense.date > date_to:
            continue
        matches.append(expense)

    # Newest first; stable, so same-day expenses keep insertion order
    matches.sort(key=lambda e: e.date, reverse=True)
    return matches[offset:offset + limit]
