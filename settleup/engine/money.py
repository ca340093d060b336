"""
Currency and split helpers.

All amounts are Decimal. Inputs may be int, str, float or Decimal;
floats go through str() so 0.1 stays 0.1.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping, Optional, Sequence, Union

from settleup.config import get_settings
from settleup.models.expense import ExpenseSplit

Amount = Union[Decimal, int, float, str]

CENT = Decimal("0.01")

# Anything smaller than a cent counts as settled
SETTLEMENT_EPSILON = Decimal("0.01")

HUNDRED = Decimal("100")


def as_decimal(value: Amount) -> Decimal:
    """Convert to Decimal without rounding."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def to_money(value: Amount) -> Decimal:
    """Round to cents, half up."""
    return as_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def is_settled(amount: Amount, epsilon: Decimal = SETTLEMENT_EPSILON) -> bool:
    """True when the amount is within epsilon of zero."""
    return abs(as_decimal(amount)) < epsilon


def format_currency(amount: Amount, symbol: Optional[str] = None) -> str:
    """
    Format for display: two decimals, thousands separator, sign first.

    >>> format_currency(Decimal("-1234.5"), symbol="$")
    '-$1,234.50'
    """
    if symbol is None:
        symbol = get_settings().app.currency_symbol
    value = to_money(amount)
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"


def distribute_expense_evenly(
    amount: Amount,
    participant_ids: Sequence[str],
) -> dict[str, Decimal]:
    """
    Split an amount evenly, rounding each share to cents.

    The whole rounding remainder goes to the first participant, so the
    shares always add up to exactly the amount:
    100 over three people is 33.34 / 33.33 / 33.33.
    """
    if not participant_ids:
        return {}

    total = as_decimal(amount)
    share = to_money(total / len(participant_ids))
    result = {pid: share for pid in participant_ids}

    remainder = total - sum(result.values(), Decimal("0"))
    if remainder != 0:
        first = participant_ids[0]
        result[first] = result[first] + remainder

    return result


def split_by_percentages(
    amount: Amount,
    percentages: Mapping[str, Amount],
) -> dict[str, Decimal]:
    """
    Custom split by percentage of the total.

    When the percentages add up to 100 the first participant absorbs the
    rounding remainder, as with an even split. Otherwise the shares are
    left as computed and the validator reports the mismatch.
    """
    total = as_decimal(amount)
    result = {
        pid: to_money(total * as_decimal(pct) / HUNDRED)
        for pid, pct in percentages.items()
    }

    pct_total = sum((as_decimal(pct) for pct in percentages.values()), Decimal("0"))
    if result and pct_total == HUNDRED:
        remainder = total - sum(result.values(), Decimal("0"))
        if remainder != 0:
            first = next(iter(result))
            result[first] = result[first] + remainder

    return result


def build_splits(
    shares: Mapping[str, Amount],
    total: Amount,
) -> list[ExpenseSplit]:
    """Turn a share mapping into splits, with each share's percentage."""
    total = as_decimal(total)
    splits = []
    for pid, share in shares.items():
        share = as_decimal(share)
        percentage = (share / total * HUNDRED).quantize(CENT) if total > 0 else Decimal("0")
        splits.append(ExpenseSplit(
            participant_id=pid,
            amount=share,
            percentage=percentage,
        ))
    return splits
