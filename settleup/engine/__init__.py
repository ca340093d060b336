"""
Settlement Engine Package

Pure, synchronous functions: expenses -> balances -> settlements.
No I/O, no shared state, inputs are never mutated.
"""

from settleup.engine.balances import (
    PairwiseLedger,
    calculate_balances,
    net_balances,
)
from settleup.engine.money import (
    CENT,
    SETTLEMENT_EPSILON,
    build_splits,
    distribute_expense_evenly,
    format_currency,
    is_settled,
    split_by_percentages,
    to_money,
)
from settleup.engine.settlements import (
    complete_settlement,
    generate_settlements,
    settlement_to_expense,
    viewpoint_settlements,
)
from settleup.engine.summary import (
    display_name,
    expense_involvement,
    summarize_balances,
)

__all__ = [
    # Balances
    "PairwiseLedger",
    "calculate_balances",
    "net_balances",
    # Money
    "CENT",
    "SETTLEMENT_EPSILON",
    "build_splits",
    "distribute_expense_evenly",
    "format_currency",
    "is_settled",
    "split_by_percentages",
    "to_money",
    # Settlements
    "complete_settlement",
    "generate_settlements",
    "settlement_to_expense",
    "viewpoint_settlements",
    # Summary
    "display_name",
    "expense_involvement",
    "summarize_balances",
]
