"""
Balance Calculation

DESIGN DECISION: Balances are derived, never stored.
They are recomputed from the expense list on demand, so a deleted or
edited expense can never leave a stale balance behind.

Two views are provided:
- calculate_balances: signed relative to one viewpoint user
  (positive = that participant owes the viewpoint user)
- net_balances: each participant's position against the whole group
  (positive = owes the group); always sums to zero

PairwiseLedger keeps who-owes-whom per pair, so any single viewpoint can
be projected from it and the group view is the sum over pairs.

Nothing here validates input. Unknown ids are skipped, never raised on.
"""

from decimal import Decimal
from typing import Iterable, Optional, Sequence

from settleup.models.expense import (
    Balance,
    Expense,
    ParticipantRef,
    participant_id,
)

ZERO = Decimal("0")


def calculate_balances(
    expenses: Iterable[Expense],
    participants: Sequence[ParticipantRef],
    viewpoint_id: str,
) -> list[Balance]:
    """
    Reduce expenses to one balance per participant, relative to viewpoint_id.

    If the viewpoint user paid, every other participant's split is owed to
    them. If someone else paid, only the viewpoint user's own split counts,
    as a debt to the payer. Splits among third parties do not appear on
    this balance sheet.

    Returns balances in participant order, viewpoint excluded, zeros kept.
    """
    ids = [participant_id(p) for p in participants]
    balances = {pid: ZERO for pid in ids if pid != viewpoint_id}

    for expense in expenses:
        if expense.payer_id == viewpoint_id:
            for split in expense.splits:
                if split.participant_id != viewpoint_id and split.participant_id in balances:
                    balances[split.participant_id] += split.amount
        else:
            user_split = expense.split_for(viewpoint_id)
            if user_split is not None and expense.payer_id in balances:
                balances[expense.payer_id] -= user_split.amount

    return [
        Balance(participant_id=pid, amount=balances[pid])
        for pid in ids
        if pid != viewpoint_id
    ]


def net_balances(
    expenses: Iterable[Expense],
    participants: Sequence[ParticipantRef],
) -> list[Balance]:
    """
    Each participant's net position against the group.

    Every split moves its amount from the payer to the split's participant,
    so the result sums to zero whatever the expense totals say.
    A self-share cancels out. Unknown ids are ignored.
    """
    ids = [participant_id(p) for p in participants]
    balances = {pid: ZERO for pid in ids}

    for expense in expenses:
        for split in expense.splits:
            if split.participant_id == expense.payer_id:
                continue
            if split.participant_id not in balances or expense.payer_id not in balances:
                continue
            balances[split.participant_id] += split.amount
            balances[expense.payer_id] -= split.amount

    return [Balance(participant_id=pid, amount=balances[pid]) for pid in ids]


class PairwiseLedger:
    """
    Who owes whom, per unordered pair of participants.

    Each pair is stored once under its sorted key; the value is what the
    first id owes the second (negative when the second owes the first).

    Usage:
        ledger = PairwiseLedger.from_expenses(expenses)
        ledger.amount_owed("alex", "you")
        ledger.balances_for("you", ["you", "alex", "taylor"])
    """

    def __init__(self):
        self._debts: dict[tuple[str, str], Decimal] = {}

    @classmethod
    def from_expenses(cls, expenses: Iterable[Expense]) -> "PairwiseLedger":
        ledger = cls()
        for expense in expenses:
            ledger.record_expense(expense)
        return ledger

    def record_expense(self, expense: Expense) -> None:
        """Every non-payer split becomes a debt to the payer."""
        for split in expense.splits:
            if split.participant_id == expense.payer_id:
                continue
            self._add_debt(split.participant_id, expense.payer_id, split.amount)

    def _add_debt(self, debtor: str, creditor: str, amount: Decimal) -> None:
        if debtor < creditor:
            key, signed = (debtor, creditor), amount
        else:
            key, signed = (creditor, debtor), -amount
        self._debts[key] = self._debts.get(key, ZERO) + signed

    def amount_owed(self, debtor: str, creditor: str) -> Decimal:
        """Signed amount debtor owes creditor (negative: creditor owes debtor)."""
        if debtor == creditor:
            return ZERO
        if debtor < creditor:
            return self._debts.get((debtor, creditor), ZERO)
        return -self._debts.get((creditor, debtor), ZERO)

    def pairs(self) -> list[tuple[str, str, Decimal]]:
        """Non-zero pairs as (debtor, creditor, amount), amount positive."""
        result = []
        for (first, second), amount in sorted(self._debts.items()):
            if amount > 0:
                result.append((first, second, amount))
            elif amount < 0:
                result.append((second, first, -amount))
        return result

    def balances_for(
        self,
        viewpoint_id: str,
        participants: Sequence[ParticipantRef],
    ) -> list[Balance]:
        """Project the ledger onto one viewpoint; matches calculate_balances."""
        return [
            Balance(
                participant_id=pid,
                amount=self.amount_owed(pid, viewpoint_id),
            )
            for pid in (participant_id(p) for p in participants)
            if pid != viewpoint_id
        ]

    def net_balances(
        self,
        participants: Optional[Sequence[ParticipantRef]] = None,
    ) -> list[Balance]:
        """Sum over pairs; matches net_balances() when every id is a known participant."""
        totals: dict[str, Decimal] = {}
        for (first, second), amount in self._debts.items():
            totals[first] = totals.get(first, ZERO) + amount
            totals[second] = totals.get(second, ZERO) - amount

        if participants is None:
            ids = sorted(totals)
        else:
            ids = [participant_id(p) for p in participants]
        return [Balance(participant_id=pid, amount=totals.get(pid, ZERO)) for pid in ids]
