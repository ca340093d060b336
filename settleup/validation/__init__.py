"""Expense validation package."""

from settleup.validation.validator import ExpenseValidationError, ExpenseValidator

__all__ = ["ExpenseValidationError", "ExpenseValidator"]
