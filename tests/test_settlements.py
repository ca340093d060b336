"""Tests for the settlement planner."""

import pytest
from datetime import date
from decimal import Decimal

from settleup.engine.balances import calculate_balances, net_balances
from settleup.engine.settlements import (
    _with_viewpoint_offset,
    complete_settlement,
    generate_settlements,
    settlement_to_expense,
    viewpoint_settlements,
)
from settleup.models.expense import (
    Balance,
    Expense,
    ExpenseCategory,
    ExpenseSplit,
    Settlement,
    SettlementStatus,
)


def make_expense(payer_id: str, shares: dict) -> Expense:
    splits = [
        ExpenseSplit(participant_id=pid, amount=Decimal(str(amount)))
        for pid, amount in shares.items()
    ]
    return Expense(
        description="Shared",
        amount=sum((s.amount for s in splits), Decimal("0")),
        payer_id=payer_id,
        splits=splits,
    )


def balances_of(**amounts) -> list[Balance]:
    return [
        Balance(participant_id=pid, amount=Decimal(str(amount)))
        for pid, amount in amounts.items()
    ]


def as_tuples(settlements: list[Settlement]) -> list[tuple]:
    return [(s.from_id, s.to_id, s.amount) for s in settlements]


@pytest.fixture
def weekend_trip():
    """Five friends, several payers."""
    return [
        make_expense("ana", {"ana": 60, "ben": 60, "cat": 60, "dan": 60, "eve": 60}),
        make_expense("ben", {"ana": 25.5, "cat": 25.5, "ben": 25.5}),
        make_expense("cat", {"dan": 40, "eve": 40}),
        make_expense("dan", {"ana": 12.34, "ben": 12.33, "cat": 12.33}),
        make_expense("eve", {"eve": 100}),
    ]


TRIP = ["ana", "ben", "cat", "dan", "eve"]


class TestGenerateSettlements:
    """Tests for generate_settlements."""

    def test_empty_balances(self):
        """Test nothing in, nothing out."""
        assert generate_settlements([]) == []

    def test_single_zero_balance(self):
        """Test a lone settled participant."""
        assert generate_settlements(balances_of(alex=0)) == []

    def test_all_within_a_cent(self):
        """Test sub-cent balances count as settled."""
        assert generate_settlements(balances_of(a="0.004", b="-0.004")) == []

    def test_viewpoint_scenario(self):
        """Test you paid 90 for three: both friends pay you 30."""
        expenses = [make_expense("you", {"you": 30, "alex": 30, "taylor": 30})]
        participants = ["you", "alex", "taylor"]
        balances = calculate_balances(expenses, participants, "you")

        settlements = generate_settlements(balances, participants)

        assert as_tuples(settlements) == [
            ("taylor", "you", Decimal("30.00")),
            ("alex", "you", Decimal("30.00")),
        ]
        assert all(s.status == SettlementStatus.PENDING for s in settlements)

    def test_one_sided_balances_without_viewpoint(self):
        """Test there is no one to pay when only debtors are listed."""
        assert generate_settlements(balances_of(alex=30, taylor=30)) == []

    def test_only_creditors_terminates(self):
        """Test a sheet with nobody owing ends without settlements."""
        assert generate_settlements(balances_of(a=-10, b=-5)) == []

    def test_largest_amounts_matched_first(self):
        """Test greedy matching order."""
        settlements = generate_settlements(balances_of(a=50, b=20, c=-40, d=-30))

        assert as_tuples(settlements) == [
            ("a", "c", Decimal("40.00")),
            ("a", "d", Decimal("10.00")),
            ("b", "d", Decimal("20.00")),
        ]

    def test_cycle_from_net_balances(self):
        """Test A->B and B->C collapse into a single A->C payment."""
        expenses = [make_expense("B", {"A": 10}), make_expense("C", {"B": 10})]
        settlements = generate_settlements(net_balances(expenses, ["A", "B", "C"]))

        assert as_tuples(settlements) == [("A", "C", Decimal("10.00"))]

    def test_cycle_from_middle_viewpoint(self):
        """Test the same cycle seen by B."""
        expenses = [make_expense("B", {"A": 10}), make_expense("C", {"B": 10})]
        participants = ["A", "B", "C"]
        balances = calculate_balances(expenses, participants, "B")

        settlements = generate_settlements(balances, participants)

        assert as_tuples(settlements) == [("A", "C", Decimal("10.00"))]

    def test_amounts_rounded_to_cents(self):
        """Test settlement amounts are whole cents."""
        settlements = generate_settlements(balances_of(a="33.335", b="-33.335"))
        assert as_tuples(settlements) == [("a", "b", Decimal("33.34"))]

    def test_at_most_n_minus_one(self, weekend_trip):
        """Test no more payments than participants minus one."""
        balances = net_balances(weekend_trip, TRIP)
        nonzero = [b for b in balances if abs(b.amount) >= Decimal("0.01")]

        settlements = generate_settlements(balances, TRIP)

        assert len(settlements) <= max(len(nonzero) - 1, 0)
        assert all(s.amount > 0 for s in settlements)

    def test_inputs_not_mutated(self):
        """Test the balance list is left untouched."""
        balances = balances_of(a=50, b=-50)
        before = [b.model_dump() for b in balances]
        generate_settlements(balances)
        assert [b.model_dump() for b in balances] == before

    def test_sub_cent_transfers_are_not_emitted(self):
        """Test a fine epsilon never yields a zero-amount settlement."""
        settlements = generate_settlements(
            balances_of(a="0.004", b="-0.004"), epsilon=Decimal("0.001")
        )
        assert settlements == []

    def test_sub_cent_remainder_after_real_transfer(self):
        """Test only the whole-cent part of a fine-epsilon sheet is paid."""
        settlements = generate_settlements(
            balances_of(a="5.004", b="-5", c="-0.004"), epsilon=Decimal("0.001")
        )
        assert as_tuples(settlements) == [("a", "b", Decimal("5.00"))]

    def test_viewpoint_offset_balances_the_sheet(self):
        """Test the added viewpoint entry brings the total to zero."""
        participants = ["you", "alex", "taylor"]
        expenses = [
            make_expense("you", {"you": 30, "alex": 30, "taylor": 30}),
            make_expense("taylor", {"you": 12.5, "taylor": 12.5}),
        ]
        balances = calculate_balances(expenses, participants, "you")
        working = [[b.participant_id, b.amount] for b in balances]

        working = _with_viewpoint_offset(working, participants, Decimal("0.01"))

        assert working[-1][0] == "you"
        assert sum(entry[1] for entry in working) == 0

    def test_viewpoint_offset_skips_balanced_sheet(self):
        """Test nothing is added when the balances already sum to zero."""
        working = [["alex", Decimal("30")], ["taylor", Decimal("-30")]]

        result = _with_viewpoint_offset(working, ["you", "alex", "taylor"], Decimal("0.01"))

        assert result == [["alex", Decimal("30")], ["taylor", Decimal("-30")]]

    def test_ties_keep_input_order(self):
        """Test equal balances are matched in a stable order."""
        settlements = generate_settlements(balances_of(a=10, b=10, c=-20))
        assert as_tuples(settlements) == [
            ("b", "c", Decimal("10.00")),
            ("a", "c", Decimal("10.00")),
        ]


class TestSettlementRoundTrip:
    """Settlements recorded as expenses should clear the balances."""

    def test_group_round_trip(self, weekend_trip):
        """Test replaying the group settlements zeroes every net balance."""
        settlements = generate_settlements(net_balances(weekend_trip, TRIP), TRIP)
        replayed = weekend_trip + [settlement_to_expense(s) for s in settlements]

        for balance in net_balances(replayed, TRIP):
            assert abs(balance.amount) < Decimal("0.01")

    def test_viewpoint_round_trip(self):
        """Test replaying the viewpoint settlements zeroes the viewpoint sheet."""
        participants = ["you", "alex", "taylor"]
        expenses = [
            make_expense("you", {"you": 30, "alex": 30, "taylor": 30}),
            make_expense("you", {"alex": 7.25}),
        ]
        settlements = generate_settlements(
            calculate_balances(expenses, participants, "you"), participants
        )
        replayed = expenses + [settlement_to_expense(s) for s in settlements]

        for balance in calculate_balances(replayed, participants, "you"):
            assert balance.amount == 0


class TestViewpointSettlements:
    """Settlements suggested to one user."""

    def test_third_party_transfer_becomes_direct_payments(self):
        """Test alex -> taylor is replaced by payments through you."""
        participants = ["you", "alex", "taylor"]
        expenses = [
            make_expense("you", {"alex": 30}),
            make_expense("taylor", {"you": 30}),
        ]
        balances = calculate_balances(expenses, participants, "you")

        settlements = viewpoint_settlements(balances, participants, "you")

        assert as_tuples(settlements) == [
            ("alex", "you", Decimal("30.00")),
            ("you", "taylor", Decimal("30.00")),
        ]
        replayed = expenses + [settlement_to_expense(s) for s in settlements]
        for balance in calculate_balances(replayed, participants, "you"):
            assert balance.amount == 0

    def test_settlements_with_you_are_kept(self):
        """Test the planner's own order when every payment involves you."""
        participants = ["you", "alex", "taylor"]
        balances = balances_of(alex=30, taylor=30)

        settlements = viewpoint_settlements(balances, participants, "you")

        assert as_tuples(settlements) == [
            ("taylor", "you", Decimal("30.00")),
            ("alex", "you", Decimal("30.00")),
        ]

    def test_middle_of_cycle_settles_both_sides(self):
        """Test B pays C and collects from A instead of A paying C."""
        expenses = [make_expense("B", {"A": 10}), make_expense("C", {"B": 10})]
        participants = ["A", "B", "C"]
        balances = calculate_balances(expenses, participants, "B")

        settlements = viewpoint_settlements(balances, participants, "B")

        assert sorted(as_tuples(settlements)) == [
            ("A", "B", Decimal("10.00")),
            ("B", "C", Decimal("10.00")),
        ]

    def test_settled_sheet(self):
        """Test nothing is suggested when every balance is zero."""
        assert viewpoint_settlements(balances_of(alex=0, taylor=0), ["you"], "you") == []


class TestSettlementRecords:
    """Tests for completing and recording settlements."""

    def test_settlement_to_expense(self):
        """Test the expense that records a payment."""
        settlement = Settlement(
            from_id="alex",
            to_id="you",
            amount=Decimal("30.00"),
            proof_of_payment_url="https://example.com/receipt.png",
        )
        expense = settlement_to_expense(settlement, on=date(2024, 5, 1))

        assert expense.description == "Settlement"
        assert expense.category == ExpenseCategory.SETTLEMENT
        assert expense.payer_id == "alex"
        assert expense.amount == Decimal("30.00")
        assert expense.date == date(2024, 5, 1)
        assert len(expense.splits) == 1
        assert expense.splits[0].participant_id == "you"
        assert expense.splits[0].amount == Decimal("30.00")
        assert expense.splits[0].percentage == Decimal("100")
        assert expense.proof_of_payment_url == "https://example.com/receipt.png"

    def test_complete_settlement_copies(self):
        """Test completing returns a new settlement."""
        settlement = Settlement(from_id="alex", to_id="you", amount=Decimal("30"))
        completed = complete_settlement(settlement, "https://example.com/proof.png")

        assert completed.status == SettlementStatus.COMPLETED
        assert completed.proof_of_payment_url == "https://example.com/proof.png"
        assert settlement.status == SettlementStatus.PENDING
        assert settlement.proof_of_payment_url is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
