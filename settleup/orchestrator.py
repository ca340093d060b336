"""
Main Orchestrator for Settle Up

This module ties storage, validation, the settlement engine and the
audit log together, and defines the end-to-end flows for:
1. Expenses (validate -> save -> audit)
2. Settling up (fetch -> balances -> settlements -> record -> audit)

DESIGN DECISION: The orchestrator enforces the boundaries:
- No expense is saved without passing validation
- The engine only ever sees snapshots fetched here
- A completed settlement is written back as an expense, so the next
  balance calculation already reflects it
- Every change is audited
"""

from decimal import Decimal
from typing import Optional, Union
from uuid import UUID

import structlog

from settleup.audit import AuditLogger, create_correlation_id
from settleup.config import get_settings
from settleup.engine import (
    calculate_balances,
    complete_settlement,
    generate_settlements,
    net_balances,
    settlement_to_expense,
    summarize_balances,
    viewpoint_settlements,
)
from settleup.models.expense import (
    AppUser,
    Balance,
    BalanceSummary,
    Expense,
    ExternalContact,
    Settlement,
    SettlementStatus,
    ValidationResult,
)
from settleup.services.storage import (
    ConnectionError as StorageConnectionError,
    ExpenseStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    GoogleSheetsParticipantStorage,
    GoogleSheetsSettlementStorage,
    InMemoryExpenseStorage,
    InMemoryParticipantStorage,
    InMemorySettlementStorage,
    ParticipantStorageInterface,
    SettlementStorageInterface,
    StorageError,
)
from settleup.validation import ExpenseValidationError, ExpenseValidator

logger = structlog.get_logger(__name__)

# Page size when reading every expense for a balance sheet
EXPENSE_PAGE_SIZE = 500


async def _fetch_all_expenses(
    storage: ExpenseStorageInterface,
    participant_id: Optional[str] = None,
) -> list[Expense]:
    expenses = []
    offset = 0
    while True:
        page = await storage.list_expenses(
            participant_id=participant_id,
            limit=EXPENSE_PAGE_SIZE,
            offset=offset,
        )
        expenses.extend(page)
        if len(page) < EXPENSE_PAGE_SIZE:
            return expenses
        offset += EXPENSE_PAGE_SIZE


class ExpenseFlow:
    """
    Orchestrates adding, editing and deleting expenses.

    Flow:
    1. Validate against the known participants
    2. Reject (and audit) if there are errors
    3. Persist
    4. Audit
    """

    def __init__(
        self,
        expense_storage: ExpenseStorageInterface,
        participant_storage: Optional[ParticipantStorageInterface] = None,
        validator: Optional[ExpenseValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        current_user_id: Optional[str] = None,
    ):
        self._expense_storage = expense_storage
        self._participant_storage = participant_storage
        self._validator = validator or ExpenseValidator()
        self._audit_logger = audit_logger
        self._current_user_id = current_user_id

    async def _known_participants(self) -> Optional[list[str]]:
        """Participant ids for validation, or None when there's no friends list."""
        if self._participant_storage is None:
            return None
        ids = [p.id for p in await self._participant_storage.list_participants()]
        if self._current_user_id and self._current_user_id not in ids:
            ids.insert(0, self._current_user_id)
        return ids

    async def _validate(
        self,
        expense: Expense,
        correlation_id: UUID,
    ) -> ValidationResult:
        result = self._validator.validate(expense, await self._known_participants())
        if not result.is_valid:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    expense_id=expense.id,
                    issues=[issue.model_dump() for issue in result.issues],
                    correlation_id=correlation_id,
                )
            raise ExpenseValidationError(result)
        return result

    async def add_expense(
        self,
        expense: Expense,
        correlation_id: Optional[UUID] = None,
    ) -> ValidationResult:
        """
        Validate and save a new expense.

        Returns:
            The validation result (may carry warnings)

        Raises:
            ExpenseValidationError: If the expense has error-level issues
            StorageError: If the save fails
        """
        correlation_id = correlation_id or create_correlation_id()
        result = await self._validate(expense, correlation_id)

        try:
            await self._expense_storage.save_expense(expense)
        except StorageConnectionError as e:
            if self._audit_logger:
                await self._audit_logger.log_external_service_error(
                    service="expense_storage",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_save_failed(
                    entity_type="expense",
                    entity_id=str(expense.id),
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_expense_added(
                expense_id=expense.id,
                description=expense.description,
                amount=expense.amount,
                payer_id=expense.payer_id,
                actor_id=self._current_user_id,
                correlation_id=correlation_id,
            )
        return result

    async def update_expense(
        self,
        expense: Expense,
        correlation_id: Optional[UUID] = None,
    ) -> ValidationResult:
        """
        Validate and replace an existing expense (same id, new version).

        Raises:
            ExpenseValidationError: If the edited expense has errors
            NotFoundError: If there is no expense with this id
        """
        correlation_id = correlation_id or create_correlation_id()
        result = await self._validate(expense, correlation_id)

        await self._expense_storage.update_expense(expense)

        if self._audit_logger:
            await self._audit_logger.log_expense_updated(
                expense_id=expense.id,
                amount=expense.amount,
                actor_id=self._current_user_id,
                correlation_id=correlation_id,
            )
        return result

    async def delete_expense(
        self,
        expense_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Delete an expense and its splits. Returns False if it didn't exist."""
        deleted = await self._expense_storage.delete_expense(expense_id)
        if deleted and self._audit_logger:
            await self._audit_logger.log_expense_deleted(
                expense_id=expense_id,
                actor_id=self._current_user_id,
                correlation_id=correlation_id,
            )
        return deleted


class SettlementFlow:
    """
    Orchestrates the settle-up flow.

    Flow:
    1. Fetch expenses and participants (snapshots)
    2. Balances from the viewpoint user's side
    3. Suggested settlements
    4. User marks one as paid -> recorded as an expense

    Step 4 closes the loop: the next time balances are calculated the
    settlement expense cancels the debt it paid off.
    """

    def __init__(
        self,
        expense_storage: ExpenseStorageInterface,
        participant_storage: ParticipantStorageInterface,
        settlement_storage: Optional[SettlementStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._expense_storage = expense_storage
        self._participant_storage = participant_storage
        self._settlement_storage = settlement_storage
        self._audit_logger = audit_logger

    async def _participant_ids(self, viewpoint_id: Optional[str] = None) -> list[str]:
        """Friends list ids, with the viewpoint user first if it isn't listed."""
        ids = [p.id for p in await self._participant_storage.list_participants()]
        if viewpoint_id and viewpoint_id not in ids:
            ids.insert(0, viewpoint_id)
        return ids

    async def get_balances(self, viewpoint_id: str) -> list[Balance]:
        """One balance per friend, relative to viewpoint_id."""
        participants = await self._participant_ids(viewpoint_id)
        expenses = await _fetch_all_expenses(self._expense_storage, viewpoint_id)
        return calculate_balances(expenses, participants, viewpoint_id)

    async def get_summary(self, viewpoint_id: str) -> BalanceSummary:
        """Totals owed to and by the viewpoint user."""
        return summarize_balances(await self.get_balances(viewpoint_id))

    async def suggest_settlements(
        self,
        viewpoint_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> list[Settlement]:
        """
        Payments that settle the viewpoint user's balance sheet.

        Every suggestion has the viewpoint user on one side, so completing
        them all clears the sheet.
        """
        participants = await self._participant_ids(viewpoint_id)
        expenses = await _fetch_all_expenses(self._expense_storage, viewpoint_id)
        balances = calculate_balances(expenses, participants, viewpoint_id)
        settlements = viewpoint_settlements(
            balances, participants, viewpoint_id, get_settings().app.settlement_epsilon
        )

        if self._audit_logger:
            await self._audit_logger.log_settlements_suggested(
                viewpoint_id=viewpoint_id,
                settlement_count=len(settlements),
                total=sum((s.amount for s in settlements), Decimal("0")),
                correlation_id=correlation_id,
            )
        return settlements

    async def suggest_group_settlements(self) -> list[Settlement]:
        """Fewest payments that settle everyone's net position in the group."""
        participants = await self._participant_ids()
        expenses = await _fetch_all_expenses(self._expense_storage)
        return generate_settlements(
            net_balances(expenses, participants),
            participants,
            get_settings().app.settlement_epsilon,
        )

    async def record_settlement(
        self,
        settlement: Settlement,
        correlation_id: Optional[UUID] = None,
    ) -> Settlement:
        """Persist a suggested settlement as pending."""
        pending = settlement.model_copy(update={"status": SettlementStatus.PENDING})
        if self._settlement_storage:
            await self._settlement_storage.add_settlement(pending)
        if self._audit_logger:
            await self._audit_logger.log_settlement_recorded(
                from_id=pending.from_id,
                to_id=pending.to_id,
                amount=pending.amount,
                correlation_id=correlation_id,
            )
        return pending

    async def mark_settlement_completed(
        self,
        settlement: Settlement,
        proof_of_payment_url: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Mark a settlement as paid and record it as an expense.

        Returns:
            The expense that records the payment
        """
        correlation_id = correlation_id or create_correlation_id()
        completed = complete_settlement(settlement, proof_of_payment_url)

        if self._settlement_storage:
            updated = await self._settlement_storage.update_settlement_status(
                completed.from_id,
                completed.to_id,
                SettlementStatus.COMPLETED,
                completed.proof_of_payment_url,
            )
            if not updated:
                await self._settlement_storage.add_settlement(completed)

        expense = settlement_to_expense(completed)
        try:
            await self._expense_storage.save_expense(expense)
        except StorageError as e:
            # Settlement is already marked completed but balances don't show it yet
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type="settlement_expense_not_saved",
                    error_message=str(e),
                    details={
                        "from_id": completed.from_id,
                        "to_id": completed.to_id,
                        "amount": str(completed.amount),
                    },
                    correlation_id=correlation_id,
                )
            raise

        logger.info(
            "settlement_completed",
            from_id=completed.from_id,
            to_id=completed.to_id,
            amount=str(completed.amount),
        )
        if self._audit_logger:
            await self._audit_logger.log_settlement_completed(
                from_id=completed.from_id,
                to_id=completed.to_id,
                amount=completed.amount,
                expense_id=expense.id,
                correlation_id=correlation_id,
            )
        return expense


def create_app_components(
    use_storage: bool = True,
    current_user_id: Optional[str] = None,
    participants: Optional[list[Union[AppUser, ExternalContact]]] = None,
) -> tuple[ExpenseFlow, SettlementFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to use Google Sheets storage.
                    Falls back to in-memory storage when False or when
                    Sheets isn't configured.
        current_user_id: The signed-in user (used when validating expenses)
        participants: Seed friends list for in-memory storage

    Returns:
        (expense_flow, settlement_flow, sheets_client)
    """
    sheets_client = None
    expense_storage = None
    participant_storage = None
    settlement_storage = None
    audit_logger = None

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            expense_storage = GoogleSheetsExpenseStorage(sheets_client)
            participant_storage = GoogleSheetsParticipantStorage(sheets_client)
            settlement_storage = GoogleSheetsSettlementStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            expense_storage = None

    if expense_storage is None:
        expense_storage = InMemoryExpenseStorage()
        participant_storage = InMemoryParticipantStorage(participants)
        settlement_storage = InMemorySettlementStorage()
        audit_logger = AuditLogger()  # Local-only logging

    expense_flow = ExpenseFlow(
        expense_storage=expense_storage,
        participant_storage=participant_storage,
        audit_logger=audit_logger,
        current_user_id=current_user_id,
    )

    settlement_flow = SettlementFlow(
        expense_storage=expense_storage,
        participant_storage=participant_storage,
        settlement_storage=settlement_storage,
        audit_logger=audit_logger,
    )

    return expense_flow, settlement_flow, sheets_client
