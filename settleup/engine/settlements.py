"""
Settlement Planner

Turns net balances into the fewest payments that zero them, by greedy
matching: the participant who owes the most pays the participant who is
owed the most, until one side is settled, then repeat.

DIRECTION: a positive balance means "owes money". The settlement is
from_id (largest positive) -> to_id (most negative). Recorded as an
expense paid by from_id with a single split for to_id, it cancels the
debt it settles.

This gives at most N-1 payments for N non-zero balances. It is the usual
practical approximation; the exact minimum is NP-hard in general.

The planner is pure: it copies its input and never raises.
"""

from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from settleup.engine.money import SETTLEMENT_EPSILON, to_money
from settleup.models.expense import (
    Balance,
    Expense,
    ExpenseCategory,
    ExpenseSplit,
    ParticipantRef,
    Settlement,
    SettlementStatus,
    participant_id,
)


def _with_viewpoint_offset(
    working: list[list],
    participants: Sequence[ParticipantRef],
    epsilon: Decimal,
) -> list[list]:
    """
    Add the viewpoint user's side of a viewpoint-relative balance sheet.

    calculate_balances leaves the viewpoint user out, so its balances do
    not sum to zero. When exactly one participant has no entry, that
    participant holds the opposite of the total.
    """
    total = sum((entry[1] for entry in working), Decimal("0"))
    if abs(total) < epsilon:
        return working

    present = {entry[0] for entry in working}
    missing = []
    for pid in (participant_id(p) for p in participants):
        if pid not in present and pid not in missing:
            missing.append(pid)

    if len(missing) == 1:
        working.append([missing[0], -total])
    return working


def generate_settlements(
    balances: Sequence[Balance],
    participants: Sequence[ParticipantRef] = (),
    epsilon: Decimal = SETTLEMENT_EPSILON,
) -> list[Settlement]:
    """
    Produce the payments that settle all balances.

    Args:
        balances: Signed balances, positive = owes money
        participants: Everyone on the balance sheet; used to find the
                      viewpoint user when balances are viewpoint-relative
        epsilon: Amounts below this are treated as settled

    Returns:
        Settlements in the order they were peeled off, largest first.
        Ties keep the input order (the sort is stable).
    """
    working = [[balance.participant_id, balance.amount] for balance in balances]
    working = _with_viewpoint_offset(working, participants, epsilon)

    # Most negative (owed the most) first, most positive (owes the most) last
    working.sort(key=lambda entry: entry[1])

    settlements = []

    while len(working) > 1:
        owed = working[0]
        owes = working[-1]

        if abs(owed[1]) < epsilon and abs(owes[1]) < epsilon:
            break
        # No one left on one of the two sides
        if owed[1] > -epsilon or owes[1] < epsilon:
            break

        amount = min(abs(owed[1]), owes[1])

        # Sub-cent transfers still move both sides but are not emitted
        if to_money(amount) > 0:
            settlements.append(Settlement(
                from_id=owes[0],
                to_id=owed[0],
                amount=to_money(amount),
            ))
        owed[1] += amount
        owes[1] -= amount

        if abs(owed[1]) < epsilon:
            working.pop(0)
        if abs(owes[1]) < epsilon:
            working.pop()

    return settlements


def viewpoint_settlements(
    balances: Sequence[Balance],
    participants: Sequence[ParticipantRef],
    viewpoint_id: str,
    epsilon: Decimal = SETTLEMENT_EPSILON,
) -> list[Settlement]:
    """
    Payments the viewpoint user takes part in that settle their sheet.

    A balance from calculate_balances is a debt between one friend and
    the viewpoint user, and only expenses involving the viewpoint user
    move it. So a planned payment between two friends would never clear
    it. Those are dropped, and whatever the kept payments leave open is
    settled directly with the viewpoint user.
    """
    remaining = {}
    for balance in balances:
        if balance.participant_id != viewpoint_id:
            remaining[balance.participant_id] = (
                remaining.get(balance.participant_id, Decimal("0")) + balance.amount
            )

    settlements = []
    for settlement in generate_settlements(balances, participants, epsilon):
        if settlement.from_id == viewpoint_id and settlement.to_id in remaining:
            remaining[settlement.to_id] += settlement.amount
        elif settlement.to_id == viewpoint_id and settlement.from_id in remaining:
            remaining[settlement.from_id] -= settlement.amount
        else:
            continue
        settlements.append(settlement)

    for friend_id, amount in remaining.items():
        if abs(amount) < epsilon or to_money(amount) == 0:
            continue
        if amount > 0:
            settlements.append(Settlement(
                from_id=friend_id, to_id=viewpoint_id, amount=to_money(amount)
            ))
        else:
            settlements.append(Settlement(
                from_id=viewpoint_id, to_id=friend_id, amount=to_money(-amount)
            ))

    return settlements


def complete_settlement(
    settlement: Settlement,
    proof_of_payment_url: Optional[str] = None,
) -> Settlement:
    """A completed copy of the settlement; the original is left untouched."""
    return settlement.model_copy(update={
        "status": SettlementStatus.COMPLETED,
        "proof_of_payment_url": proof_of_payment_url or settlement.proof_of_payment_url,
    })


def settlement_to_expense(
    settlement: Settlement,
    on: Optional[date] = None,
) -> Expense:
    """
    Record a settlement as an expense so it feeds back into balances.

    from_id is the payer and to_id gets the single split, which is exactly
    the debt from_id had towards to_id, reversed.
    """
    return Expense(
        description="Settlement",
        amount=settlement.amount,
        date=on or date.today(),
        payer_id=settlement.from_id,
        splits=[
            ExpenseSplit(
                participant_id=settlement.to_id,
                amount=settlement.amount,
                percentage=Decimal("100"),
            ),
        ],
        category=ExpenseCategory.SETTLEMENT,
        notes="Debt settlement",
        proof_of_payment_url=settlement.proof_of_payment_url,
    )
