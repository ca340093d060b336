"""
In-Memory Storage Implementation

Used by the test suite and as the fallback when Google Sheets is not
configured. Data lives only as long as the process.

Stored models are copied on the way in and on the way out, so callers
can never mutate what storage holds.
"""

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
from settleup.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    NotFoundError,
    ParticipantStorageInterface,
    SettlementStorageInterface,
    filter_expenses,
)


class InMemoryExpenseStorage(ExpenseStorageInterface):
    """Expenses keyed by id, in insertion order."""

    def __init__(self):
        self._expenses: dict[UUID, Expense] = {}

    async def save_expense(self, expense: Expense) -> bool:
        if expense.id in self._expenses:
            raise DuplicateError(f"Expense already exists: {expense.id}")
        self._expenses[expense.id] = expense.model_copy(deep=True)
        return True

    async def get_expense_by_id(self, expense_id: UUID) -> Optional[Expense]:
        expense = self._expenses.get(expense_id)
        return expense.model_copy(deep=True) if expense else None

    async def update_expense(self, expense: Expense) -> bool:
        if expense.id not in self._expenses:
            raise NotFoundError(f"Expense not found: {expense.id}")
        self._expenses[expense.id] = expense.model_copy(deep=True)
        return True

    async def delete_expense(self, expense_id: UUID) -> bool:
        return self._expenses.pop(expense_id, None) is not None

    async def list_expenses(
        self,
        participant_id: Optional[str] = None,
        category: Optional[ExpenseCategory] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = 1000,
        offset: int = 0,
    ) -> list[Expense]:
        expenses = [e.model_copy(deep=True) for e in self._expenses.values()]
        return filter_expenses(
            expenses,
            participant_id=participant_id,
            category=category,
            date_from=date_from,
            date_to=date_to,
            limit=limit,
            offset=offset,
        )


class InMemoryParticipantStorage(ParticipantStorageInterface):
    """Friends list keyed by participant id."""

    def __init__(self, participants: Optional[list[Union[AppUser, ExternalContact]]] = None):
        self._participants: dict[str, Union[AppUser, ExternalContact]] = {}
        for participant in participants or []:
            self._participants[participant.id] = participant

    async def list_participants(self) -> list[Union[AppUser, ExternalContact]]:
        return [p.model_copy() for p in self._participants.values()]

    async def save_participant(self, participant: Union[AppUser, ExternalContact]) -> bool:
        self._participants[participant.id] = participant.model_copy()
        return True

    async def remove_participant(self, participant_id: str) -> bool:
        return self._participants.pop(participant_id, None) is not None


class InMemorySettlementStorage(SettlementStorageInterface):
    """Recorded settlements in insertion order."""

    def __init__(self):
        self._settlements: list[Settlement] = []

    async def add_settlement(self, settlement: Settlement) -> bool:
        self._settlements.append(settlement.model_copy())
        return True

    async def list_settlements(
        self,
        participant_id: Optional[str] = None,
    ) -> list[Settlement]:
        return [
            s.model_copy()
            for s in self._settlements
            if participant_id is None or participant_id in (s.from_id, s.to_id)
        ]

    async def update_settlement_status(
        self,
        from_id: str,
        to_id: str,
        status: SettlementStatus,
        proof_of_payment_url: Optional[str] = None,
    ) -> bool:
        updated = False
        for idx, settlement in enumerate(self._settlements):
            if settlement.from_id == from_id and settlement.to_id == to_id:
                self._settlements[idx] = settlement.model_copy(update={
                    "status": status,
                    "proof_of_payment_url": proof_of_payment_url or settlement.proof_of_payment_url,
                })
                updated = True
        return updated


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
