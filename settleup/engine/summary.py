"""Read-only helpers for balance sheets and expense lists."""

from decimal import Decimal
from typing import Iterable, Sequence, Union

from settleup.models.expense import (
    AppUser,
    Balance,
    BalanceSummary,
    Expense,
    ExpenseInvolvement,
    ExternalContact,
)


def summarize_balances(balances: Iterable[Balance]) -> BalanceSummary:
    """Total owed to the viewpoint user and total they owe."""
    owed_to_you = Decimal("0")
    you_owe = Decimal("0")
    for balance in balances:
        if balance.amount > 0:
            owed_to_you += balance.amount
        elif balance.amount < 0:
            you_owe += -balance.amount
    return BalanceSummary(total_owed_to_you=owed_to_you, total_you_owe=you_owe)


def expense_involvement(expense: Expense, viewpoint_id: str) -> ExpenseInvolvement:
    """Whether the viewpoint user lent money, owes money, or is not involved."""
    if expense.payer_id == viewpoint_id:
        return ExpenseInvolvement.LENT

    user_split = expense.split_for(viewpoint_id)
    if user_split is None or user_split.amount == 0:
        return ExpenseInvolvement.NOT_INVOLVED

    return ExpenseInvolvement.OWES


def display_name(
    participant_id: str,
    participants: Sequence[Union[AppUser, ExternalContact]],
    current_user_id: str,
    current_user_name: str,
) -> str:
    """Name to show for an id; "Unknown" when nobody matches."""
    if participant_id == current_user_id:
        return current_user_name
    for participant in participants:
        if participant.id == participant_id:
            return participant.name
    return "Unknown"
