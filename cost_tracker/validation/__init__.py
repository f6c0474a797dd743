"""Input validation package."""

from cost_tracker.validation.validator import ExpenseInputValidator

__all__ = ["ExpenseInputValidator"]
