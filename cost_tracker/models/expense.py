"""
Core Data Models for Cost Tracker

These models define the strict schemas for everything the client knows
about the remote ledger and about its own session state.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for logging
4. Keep the session state machine explicit

DESIGN DECISION: Entries read from the ledger are frozen.
The client never edits an entry in place; it re-fetches instead.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class SortKey(str, Enum):
    """
    Orderings the expense list can be shown in.

    NONE keeps the remote (position) order.
    """
    NONE = "none"
    AMOUNT = "amount"
    OCCURRED_AT = "occurred_at"
    CATEGORY = "category"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SortKey":
        """
        Parse a sort selection coming from a form control.

        An empty selection means NONE, and "date" is accepted for OCCURRED_AT.
        """
        if isinstance(value, cls):
            return value
        if not value:
            return cls.NONE
        normalized = value.strip().lower()
        if normalized == "date":
            return cls.OCCURRED_AT
        return cls(normalized)


class OperationKind(str, Enum):
    """Operations the sync engine runs against the remote ledger."""
    ADD = "add"
    MODIFY = "modify"
    CANCEL = "cancel"
    REFRESH = "refresh"


class OperationState(str, Enum):
    """
    Lifecycle of one operation.

    idle -> submitting -> refreshing -> idle on success;
    any step may end in failed, which returns to idle on the next operation.
    """
    IDLE = "idle"
    SUBMITTING = "submitting"
    REFRESHING = "refreshing"
    FAILED = "failed"


class FailureKind(str, Enum):
    """
    Failure taxonomy reported to the shell.

    REMOTE_FETCH is the serious one: a mutation may have landed remotely
    while the local view could not confirm it.
    """
    VALIDATION = "validation"
    REMOTE_SUBMIT = "remote_submit"
    REMOTE_FETCH = "remote_fetch"
    NOT_FOUND = "not_found"
    BUSY = "busy"
    NO_ACCOUNT = "no_account"


# =============================================================================
# LEDGER RECORDS
# =============================================================================

class LedgerRecord(BaseModel):
    """
    One expense as returned by the remote ledger.

    Position is implicit: it is the record's index in the fetched sequence.
    """
    model_config = ConfigDict(frozen=True)

    amount: Decimal = Field(
        ...,
        ge=0,
        description="Expense amount"
    )
    occurred_at: int = Field(
        ...,
        description="When the expense happened, as Unix epoch seconds"
    )
    category: str = Field(
        ...,
        description="Free-text category label"
    )
    description: str = Field(
        default="",
        description="Free-text description, may be empty"
    )
    canceled: bool = Field(
        default=False,
        description="Canceled entries stay in the ledger and keep their position"
    )


class ExpenseEntry(LedgerRecord):
    """
    A ledger record as known to the client, tagged with its position.
    """

    position: int = Field(
        ...,
        ge=0,
        description="Index of the entry within the account's ledger"
    )

    @property
    def occurred_on(self) -> date:
        """Calendar date of the expense (UTC)."""
        return datetime.fromtimestamp(self.occurred_at, tz=timezone.utc).date()


# =============================================================================
# SESSION STATE
# =============================================================================

class EditTarget(BaseModel):
    """The entry currently being modified. Absent (None) while adding."""
    model_config = ConfigDict(frozen=True)

    position: int = Field(..., ge=0)


class ExpenseForm(BaseModel):
    """
    Raw input fields as typed by the user.

    Kept unparsed so they can be handed back untouched after a failure.
    """

    amount: str = ""
    date: str = ""
    category: str = ""
    description: str = ""

    @property
    def is_empty(self) -> bool:
        return not (self.amount or self.date or self.category or self.description)


class FailureDetail(BaseModel):
    """What went wrong with the last failed or rejected operation."""

    kind: FailureKind
    operation: Optional[OperationKind] = None
    message: str
    projection_stale: bool = Field(
        default=False,
        description="True when local and remote state may disagree"
    )
    occurred_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class OperationStatus(BaseModel):
    """Status of the current (or last) operation for one account."""
    model_config = ConfigDict(frozen=True)

    kind: Optional[OperationKind] = None
    state: OperationState = OperationState.IDLE
    failure: Optional[FailureDetail] = None

    @property
    def in_flight(self) -> bool:
        return self.state in (OperationState.SUBMITTING, OperationState.REFRESHING)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single problem found while validating form input."""

    field: str = Field(
        ...,
        description="Which field has the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'negative')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of validating one expense form.

    When valid, carries the parsed values ready for the remote call.
    """

    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)

    amount: Optional[Decimal] = None
    occurred_on: Optional[date] = None
    occurred_at: Optional[int] = None
    category: str = ""
    description: str = ""

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
