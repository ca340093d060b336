"""
Expense Validation

DESIGN DECISION: The settlement engine trusts its input.
Everything that can be wrong with an expense is caught here, before
the expense is saved:

ERRORS (block saving):
- Empty description
- Amount not greater than zero
- Nobody selected to split with
- Splits that don't add up to the amount
- The same person split twice

WARNINGS (shown, but don't block):
- Payer or split participant not among known friends
- Unusually large amount
- Date in the future
- Percentages that don't add up to 100

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for the user to correct.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Optional, Sequence

from settleup.config import get_settings
from settleup.engine.money import format_currency
from settleup.models.expense import (
    Expense,
    ParticipantRef,
    ValidationIssue,
    ValidationResult,
    participant_id,
)


class ExpenseValidationError(Exception):
    """Raised when an expense with error-level issues is submitted."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = [issue.message for issue in result.issues if issue.severity == "error"]
        super().__init__("; ".join(messages) or "Expense is not valid")


class ExpenseValidator:
    """Checks an expense before it reaches storage or the engine."""

    def __init__(self):
        self._settings = get_settings().app

    def _check_basics(self, expense: Expense) -> list[ValidationIssue]:
        """Description, amount and the list of people."""
        issues = []

        if not expense.description.strip():
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="Please enter a description",
                severity="error",
            ))

        if expense.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Please enter a valid amount",
                severity="error",
                suggested_fix="The amount must be greater than zero",
            ))

        if not expense.splits:
            issues.append(ValidationIssue(
                field="splits",
                issue_type="missing",
                message="Please select at least one person",
                severity="error",
            ))

        return issues

    def _check_splits(self, expense: Expense) -> list[ValidationIssue]:
        """Split totals, duplicates and percentages."""
        issues = []

        if not expense.splits:
            return issues

        tolerance = self._settings.split_tolerance
        if abs(expense.split_total - expense.amount) > tolerance:
            issues.append(ValidationIssue(
                field="splits",
                issue_type="split_mismatch",
                message=(
                    "Split amounts must add up to the total "
                    f"({format_currency(expense.amount, self._settings.currency_symbol)})"
                ),
                severity="error",
                suggested_fix=(
                    f"Splits currently add up to "
                    f"{format_currency(expense.split_total, self._settings.currency_symbol)}"
                ),
            ))

        seen = set()
        for split in expense.splits:
            if split.participant_id in seen:
                issues.append(ValidationIssue(
                    field="splits",
                    issue_type="duplicate_participant",
                    message=f"{split.participant_id} appears in the split more than once",
                    severity="error",
                    suggested_fix="Combine their shares into one",
                ))
            seen.add(split.participant_id)

        percentages = [split.percentage for split in expense.splits]
        if all(pct is not None for pct in percentages):
            pct_total = sum(percentages, Decimal("0"))
            if abs(pct_total - Decimal("100")) > Decimal("0.1"):
                issues.append(ValidationIssue(
                    field="splits",
                    issue_type="percentage_mismatch",
                    message=f"Percentages add up to {pct_total}%, not 100%",
                    severity="warning",
                    suggested_fix="Please check the percentage of each share",
                ))

        return issues

    def _check_people(
        self,
        expense: Expense,
        participants: Sequence[ParticipantRef],
    ) -> list[ValidationIssue]:
        """Payer and split participants should be known friends."""
        issues = []
        known = {participant_id(p) for p in participants}

        if expense.payer_id not in known:
            issues.append(ValidationIssue(
                field="payer_id",
                issue_type="unknown_participant",
                message=f"Payer {expense.payer_id} is not in your friends list",
                severity="warning",
                suggested_fix="Their balance will not be shown until you add them",
            ))

        for split in expense.splits:
            if split.participant_id not in known:
                issues.append(ValidationIssue(
                    field="splits",
                    issue_type="unknown_participant",
                    message=f"{split.participant_id} is not in your friends list",
                    severity="warning",
                ))

        return issues

    def _check_sanity(self, expense: Expense) -> list[ValidationIssue]:
        """Suspicious but possible values."""
        issues = []

        if expense.amount > self._settings.max_expense_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=(
                    f"Amount ({format_currency(expense.amount, self._settings.currency_symbol)}) "
                    "seems unusually high"
                ),
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        max_date = date.today() + timedelta(days=self._settings.future_date_tolerance_days)
        if expense.date > max_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Expense date ({expense.date}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        return issues

    def validate(
        self,
        expense: Expense,
        participants: Optional[Sequence[ParticipantRef]] = None,
    ) -> ValidationResult:
        """
        Run all checks on an expense.

        Args:
            expense: The expense about to be saved
            participants: Known participants. If None, the
                          unknown-participant checks are skipped.

        Returns:
            ValidationResult with all issues found
        """
        issues = []
        issues.extend(self._check_basics(expense))
        issues.extend(self._check_splits(expense))
        if participants is not None:
            issues.extend(self._check_people(expense, participants))
        issues.extend(self._check_sanity(expense))

        warnings = [issue.message for issue in issues if issue.severity == "warning"]

        return ValidationResult(
            expense_id=expense.id,
            is_valid=not any(issue.severity == "error" for issue in issues),
            issues=issues,
            warnings=warnings,
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """Short summary to show next to the expense form."""
        if result.is_valid and not result.warnings:
            return "✅ Looks good!"

        lines = []

        if result.has_errors:
            lines.append("❌ Please fix the following before saving:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
