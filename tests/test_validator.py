"""Tests for expense validation."""

import pytest
from datetime import date, timedelta
from decimal import Decimal

from settleup.models.expense import Expense, ExpenseSplit
from settleup.validation import ExpenseValidationError, ExpenseValidator


@pytest.fixture
def validator():
    return ExpenseValidator()


def make_expense(amount="90", shares=None, **kwargs) -> Expense:
    if shares is None:
        shares = {"you": "30", "alex": "30", "taylor": "30"}
    fields = {
        "description": "Dinner",
        "amount": Decimal(amount),
        "payer_id": "you",
        "splits": [
            ExpenseSplit(participant_id=pid, amount=Decimal(share))
            for pid, share in shares.items()
        ],
    }
    fields.update(kwargs)
    return Expense(**fields)


def issue_types(result) -> list[str]:
    return [issue.issue_type for issue in result.issues]


class TestRequiredFields:
    """Tests for error-level checks."""

    def test_valid_expense(self, validator):
        """Test a clean expense has no issues."""
        result = validator.validate(make_expense(), ["you", "alex", "taylor"])
        assert result.is_valid is True
        assert result.issues == []

    def test_missing_description(self, validator):
        """Test blank description is an error."""
        result = validator.validate(make_expense(description="   "))
        assert result.is_valid is False
        assert result.issues[0].message == "Please enter a description"

    def test_zero_amount(self, validator):
        """Test zero amount is an error."""
        result = validator.validate(make_expense(amount="0", shares={"you": "0"}))
        assert result.is_valid is False
        assert "Please enter a valid amount" in [i.message for i in result.issues]

    def test_no_splits(self, validator):
        """Test nobody to split with is an error."""
        result = validator.validate(make_expense(shares={}))
        assert result.is_valid is False
        assert "Please select at least one person" in [i.message for i in result.issues]
        assert "split_mismatch" not in issue_types(result)

    def test_split_mismatch(self, validator):
        """Test splits must add up to the amount."""
        result = validator.validate(make_expense(shares={"you": "30", "alex": "30"}))
        assert result.is_valid is False
        mismatch = [i for i in result.issues if i.issue_type == "split_mismatch"][0]
        assert mismatch.message == "Split amounts must add up to the total ($90.00)"

    def test_split_within_tolerance(self, validator):
        """Test a one-cent rounding difference is accepted."""
        result = validator.validate(
            make_expense(amount="100", shares={"a": "33.33", "b": "33.33", "c": "33.33"})
        )
        assert result.is_valid is True

    def test_duplicate_participant(self, validator):
        """Test the same person can't be split twice."""
        expense = make_expense(
            amount="20",
            shares={},
            splits=[
                ExpenseSplit(participant_id="alex", amount=Decimal("10")),
                ExpenseSplit(participant_id="alex", amount=Decimal("10")),
            ],
        )
        result = validator.validate(expense)
        assert result.is_valid is False
        assert "duplicate_participant" in issue_types(result)


class TestWarnings:
    """Tests for warning-level checks."""

    def test_unknown_payer(self, validator):
        """Test a payer outside the friends list is a warning."""
        result = validator.validate(make_expense(payer_id="stranger"), ["you", "alex", "taylor"])
        assert result.is_valid is True
        assert "Payer stranger is not in your friends list" in result.warnings

    def test_unknown_split_participant(self, validator):
        """Test an unknown split participant is a warning."""
        result = validator.validate(make_expense(), ["you", "alex"])
        assert result.is_valid is True
        assert "unknown_participant" in issue_types(result)

    def test_people_not_checked_without_friends_list(self, validator):
        """Test no participants means no unknown-participant warnings."""
        result = validator.validate(make_expense(payer_id="stranger"))
        assert "unknown_participant" not in issue_types(result)

    def test_future_date(self, validator):
        """Test dates well in the future are flagged."""
        result = validator.validate(make_expense(date=date.today() + timedelta(days=30)))
        assert result.is_valid is True
        assert "future_date" in issue_types(result)

    def test_tomorrow_is_tolerated(self, validator):
        """Test the one-day tolerance."""
        result = validator.validate(make_expense(date=date.today() + timedelta(days=1)))
        assert "future_date" not in issue_types(result)

    def test_unusually_large_amount(self, validator):
        """Test very large amounts are flagged."""
        result = validator.validate(
            make_expense(amount="200000", shares={"you": "100000", "alex": "100000"})
        )
        assert result.is_valid is True
        assert "suspicious_value" in issue_types(result)

    def test_percentages_not_100(self, validator):
        """Test percentages that don't add up are flagged."""
        expense = make_expense(
            amount="100",
            shares={},
            splits=[
                ExpenseSplit(participant_id="you", amount=Decimal("50"), percentage=Decimal("50")),
                ExpenseSplit(participant_id="alex", amount=Decimal("50"), percentage=Decimal("40")),
            ],
        )
        result = validator.validate(expense)
        assert result.is_valid is True
        assert "percentage_mismatch" in issue_types(result)


class TestSummaryAndErrors:
    """Tests for user-facing output."""

    def test_summary_when_clean(self, validator):
        """Test the all-clear message."""
        result = validator.validate(make_expense())
        assert validator.get_user_friendly_summary(result) == "✅ Looks good!"

    def test_summary_lists_errors_and_warnings(self, validator):
        """Test both sections appear."""
        result = validator.validate(
            make_expense(description="", date=date.today() + timedelta(days=30))
        )
        summary = validator.get_user_friendly_summary(result)
        assert "Please enter a description" in summary
        assert "in the future" in summary

    def test_validation_error_message(self, validator):
        """Test the exception carries the result and error messages."""
        result = validator.validate(make_expense(description="", shares={}))
        error = ExpenseValidationError(result)
        assert error.result is result
        assert str(error) == "Please enter a description; Please select at least one person"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
