"""
Expense Input Validation

Everything the user types goes through here before any remote call.

Checks:
- Amount present, numeric, finite and not negative
- Amount representable by the ledger (decimal places)
- Date present, a real calendar date, and not before 1970 (the ledger
  stores unsigned epoch seconds)
- Category present (warning only)

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the user can correct the form.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from cost_tracker.formatting import date_to_epoch
from cost_tracker.models.expense import ValidationIssue, ValidationResult


AmountInput = Union[str, int, float, Decimal, None]
DateInput = Union[str, date, None]


class ExpenseInputValidator:
    """
    Validates and parses the fields of an expense form.
    """

    def __init__(self, max_decimal_places: Optional[int] = None):
        """
        Initialize validator.

        Args:
            max_decimal_places: Precision the ledger can store.
                                If None, any precision is accepted.
        """
        self._max_decimal_places = max_decimal_places

    def _parse_amount(
        self,
        raw: AmountInput,
    ) -> tuple[Optional[Decimal], list[ValidationIssue]]:
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            return None, [ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
                severity="error",
            )]

        try:
            # float goes through str so 0.1 stays 0.1
            amount = Decimal(raw.strip() if isinstance(raw, str) else str(raw))
        except InvalidOperation:
            amount = None

        if amount is None or not amount.is_finite():
            return None, [ValidationIssue(
                field="amount",
                issue_type="invalid_format",
                message=f"Amount ({raw!r}) is not a number",
                severity="error",
                suggested_fix="Enter a number such as 12.50",
            )]

        if amount < 0:
            return None, [ValidationIssue(
                field="amount",
                issue_type="negative",
                message="Amount must be a non-negative number",
                severity="error",
            )]

        if self._max_decimal_places is not None:
            exponent = amount.normalize().as_tuple().exponent
            if isinstance(exponent, int) and -exponent > self._max_decimal_places:
                return None, [ValidationIssue(
                    field="amount",
                    issue_type="too_precise",
                    message=(
                        f"Amount can have at most {self._max_decimal_places} "
                        "decimal places"
                    ),
                    severity="error",
                    suggested_fix="Round the amount",
                )]

        return amount, []

    def _parse_date(
        self,
        raw: DateInput,
    ) -> tuple[Optional[date], list[ValidationIssue]]:
        if isinstance(raw, datetime):
            parsed = raw.date()
        elif isinstance(raw, date):
            parsed = raw
        elif raw is None or not raw.strip():
            return None, [ValidationIssue(
                field="date",
                issue_type="missing",
                message="Date is required",
                severity="error",
            )]
        else:
            try:
                parsed = date.fromisoformat(raw.strip())
            except ValueError:
                return None, [ValidationIssue(
                    field="date",
                    issue_type="invalid_format",
                    message=f"Date ({raw!r}) is not a valid calendar date",
                    severity="error",
                    suggested_fix="Use the YYYY-MM-DD format",
                )]

        # The ledger stores dates as unsigned epoch seconds
        if date_to_epoch(parsed) < 0:
            return None, [ValidationIssue(
                field="date",
                issue_type="out_of_range",
                message=f"Date ({parsed.isoformat()}) is before 1970-01-01",
                severity="error",
                suggested_fix="Use a date from 1970 onwards",
            )]

        return parsed, []

    def validate(
        self,
        amount: AmountInput,
        date: DateInput,
        category: Optional[str],
        description: Optional[str] = None,
    ) -> ValidationResult:
        """
        Validate one expense form.

        Returns:
            ValidationResult with parsed values when valid
        """
        issues = []

        parsed_amount, amount_issues = self._parse_amount(amount)
        issues.extend(amount_issues)

        parsed_date, date_issues = self._parse_date(date)
        issues.extend(date_issues)

        category = category or ""
        if not category.strip():
            issues.append(ValidationIssue(
                field="category",
                issue_type="missing",
                message="No category given; the entry will be grouped under an empty label",
                severity="warning",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)

        return ValidationResult(
            is_valid=is_valid,
            issues=issues,
            amount=parsed_amount if is_valid else None,
            occurred_on=parsed_date if is_valid else None,
            occurred_at=date_to_epoch(parsed_date) if is_valid else None,
            category=category,
            description=description or "",
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.
        """
        if result.is_valid and not result.issues:
            return "All checks passed."

        lines = []

        if result.has_errors:
            lines.append("Please fix the following:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     {issue.suggested_fix}")

        warnings = [issue for issue in result.issues if issue.severity == "warning"]
        if warnings:
            if lines:
                lines.append("")
            lines.append("Please verify:")
            for issue in warnings:
                lines.append(f"   • {issue.message}")

        return "\n".join(lines)
