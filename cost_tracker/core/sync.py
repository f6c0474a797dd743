"""
Sync Engine

Runs every add / modify / cancel against the remote ledger and keeps the
active session's projection in step with it.

Flow of a mutation:
1. Reject if another operation is in flight for the account (Busy)
2. Validate the form (never reaches the ledger if invalid)
3. Submit the mutation and wait for settlement
4. Re-fetch the whole ledger and replace the projection
5. Clear the form

DESIGN DECISION: The projection is never patched locally. The ledger assigns
positions and other clients may write to it, so after every mutation we
re-read everything. That costs one extra round trip per mutation, which is
fine for a personal expense list.

Failures are recorded on the session and then raised to the caller.
Nothing is retried here; retrying is the user's call.
"""

import datetime
from decimal import Decimal
from typing import Awaitable, Callable, Optional, Union
from uuid import UUID

from cost_tracker.audit import AuditLogger, create_correlation_id
from cost_tracker.core.errors import (
    EntryNotFoundError,
    ExpenseValidationError,
    LedgerBusyError,
    LedgerSyncError,
    NoActiveAccountError,
    RemoteFetchError,
    RemoteSubmitError,
)
from cost_tracker.core.projection import LedgerProjection
from cost_tracker.core.session import LedgerSession
from cost_tracker.formatting import epoch_to_iso_date, format_amount
from cost_tracker.models.expense import (
    EditTarget,
    ExpenseEntry,
    ExpenseForm,
    FailureDetail,
    FailureKind,
    OperationKind,
    SortKey,
    ValidationResult,
)
from cost_tracker.services.ledger import LedgerClientError, RemoteLedgerClient
from cost_tracker.validation import ExpenseInputValidator


def _as_text(value) -> str:
    """Render a raw input value the way the form field would hold it."""
    if value is None:
        return ""
    if isinstance(value, Decimal):
        return format_amount(value)
    if isinstance(value, datetime.datetime):
        return value.date().isoformat()
    if isinstance(value, datetime.date):
        return value.isoformat()
    return str(value)


class SyncEngine:
    """
    Orchestrates ledger operations for the active account.

    Holds at most one LedgerSession at a time. Operations are serialized per
    account: while one is submitting or refreshing, the next is rejected with
    LedgerBusyError and no remote call is made.
    """

    def __init__(
        self,
        client: RemoteLedgerClient,
        validator: Optional[ExpenseInputValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        default_sort_key: SortKey = SortKey.NONE,
    ):
        self._client = client
        self._validator = validator or ExpenseInputValidator()
        self._audit = audit_logger or AuditLogger()
        self._default_sort_key = default_sort_key
        self._session: Optional[LedgerSession] = None
        self._in_flight: dict[str, OperationKind] = {}

    @property
    def session(self) -> Optional[LedgerSession]:
        """The active session, or None before any account is selected."""
        return self._session

    def is_busy(self, account: Optional[str] = None) -> bool:
        """Is an operation in flight for ``account`` (default: the active one)?"""
        if account is None:
            if self._session is None:
                return False
            account = self._session.account
        return account in self._in_flight

    # -------------------------------------------------------------------------
    # Guards
    # -------------------------------------------------------------------------

    def _is_current(self, session: LedgerSession) -> bool:
        return session is self._session

    def _require_session(self, operation: OperationKind) -> LedgerSession:
        if self._session is None:
            raise NoActiveAccountError("No account is selected", operation)
        return self._session

    @staticmethod
    def _failure(error: LedgerSyncError, projection_stale: bool = False) -> FailureDetail:
        return FailureDetail(
            kind=error.kind,
            operation=error.operation,
            message=error.message,
            projection_stale=projection_stale,
        )

    def _ensure_idle(
        self,
        session: LedgerSession,
        operation: OperationKind,
        correlation_id: UUID,
    ) -> None:
        in_flight = self._in_flight.get(session.account)
        if in_flight is None:
            return

        error = LedgerBusyError(
            f"Cannot {operation.value} while {in_flight.value} is in progress",
            operation,
        )
        # The running operation owns the status
        session.reject(self._failure(error))
        self._audit.log_busy_rejected(session.account, operation, in_flight, correlation_id)
        raise error

    def _require_entry(
        self,
        session: LedgerSession,
        operation: OperationKind,
        position: int,
        correlation_id: UUID,
    ) -> ExpenseEntry:
        entry = session.projection.get(position)
        if entry is None:
            error = EntryNotFoundError(position, operation)
            session.fail(self._failure(error))
            self._audit.log_entry_not_found(session.account, operation, position, correlation_id)
            raise error
        return entry

    def _validate(
        self,
        session: LedgerSession,
        operation: OperationKind,
        amount,
        date,
        category: Optional[str],
        description: Optional[str],
        correlation_id: UUID,
    ) -> ValidationResult:
        result = self._validator.validate(amount, date, category, description)
        if not result.is_valid:
            error = ExpenseValidationError(
                self._validator.get_user_friendly_summary(result),
                result,
                operation,
            )
            session.fail(self._failure(error))
            self._audit.log_validation_failed(
                session.account,
                operation,
                [issue.model_dump() for issue in result.issues],
                correlation_id,
            )
            raise error
        return result

    # -------------------------------------------------------------------------
    # Remote round trips
    # -------------------------------------------------------------------------

    async def _refresh(
        self,
        session: LedgerSession,
        operation: OperationKind,
        correlation_id: UUID,
        after_mutation: bool,
    ) -> bool:
        """
        Re-fetch the session's ledger and replace its projection.

        Returns False if the session was replaced while the fetch was out.
        """
        ticket = session.issue_fetch()
        session.refreshing(operation)

        try:
            records = await self._client.fetch_entries(session.account)
        except LedgerClientError as e:
            if after_mutation:
                message = (
                    f"The {operation.value} was sent, but the ledger could not be "
                    f"re-read ({e}). The list may be out of date."
                )
            else:
                message = f"Could not read the ledger: {e}"
            error = RemoteFetchError(message, operation, mutation_settled=after_mutation)
            session.fail(self._failure(error, projection_stale=True))
            self._audit.log_refresh_failed(session.account, operation, str(e), correlation_id)
            raise error from e
        except Exception as e:
            session.fail(FailureDetail(
                kind=FailureKind.REMOTE_FETCH,
                operation=operation,
                message=str(e),
                projection_stale=True,
            ))
            self._audit.log_error(
                error_type=type(e).__name__,
                error_message=str(e),
                details={"operation": operation.value, "stage": "fetch"},
                correlation_id=correlation_id,
            )
            raise

        if not self._is_current(session):
            self._audit.log_stale_response(session.account, operation, correlation_id)
            return False

        projection = LedgerProjection.from_records(session.account, records)
        if session.apply_fetch(ticket, projection):
            self._audit.log_projection_refreshed(session.account, len(projection), correlation_id)
        else:
            # A fetch issued later has already been applied
            self._audit.log_stale_response(session.account, operation, correlation_id)
        session.settle(operation)
        return True

    async def _mutate(
        self,
        session: LedgerSession,
        operation: OperationKind,
        position: Optional[int],
        submit: Callable[[], Awaitable[None]],
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> bool:
        """
        Submit one mutation, then re-fetch.

        Returns False if the session was replaced before the re-fetch landed.
        """
        self._in_flight[session.account] = operation
        try:
            session.begin(operation)
            self._audit.log_mutation_submitted(
                operation, session.account, position, correlation_id, details
            )

            try:
                await submit()
            except LedgerClientError as e:
                error = RemoteSubmitError(
                    f"The ledger did not accept the {operation.value}: {e}",
                    operation,
                )
                session.fail(self._failure(error))
                self._audit.log_submit_failed(
                    session.account, operation, position, str(e), correlation_id
                )
                raise error from e
            except Exception as e:
                session.fail(FailureDetail(
                    kind=FailureKind.REMOTE_SUBMIT,
                    operation=operation,
                    message=str(e),
                ))
                self._audit.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    details={"operation": operation.value, "stage": "submit"},
                    correlation_id=correlation_id,
                )
                raise

            self._audit.log_mutation_settled(operation, session.account, position, correlation_id)
            return await self._refresh(session, operation, correlation_id, after_mutation=True)
        finally:
            self._in_flight.pop(session.account, None)

    # -------------------------------------------------------------------------
    # Session operations
    # -------------------------------------------------------------------------

    async def set_active_account(self, account: str) -> LedgerSession:
        """
        Switch to ``account`` and load its ledger.

        The previous session is discarded; any response still in flight for
        it is dropped when it arrives.
        """
        if not account:
            raise NoActiveAccountError("An account is required", OperationKind.REFRESH)

        correlation_id = create_correlation_id()
        session = LedgerSession(account, sort_key=self._default_sort_key)
        self._session = session
        self._audit.log_account_activated(account, correlation_id)

        # An operation issued by a discarded session may still hold the account
        claimed = account not in self._in_flight
        if claimed:
            self._in_flight[account] = OperationKind.REFRESH
        try:
            await self._refresh(session, OperationKind.REFRESH, correlation_id, after_mutation=False)
        finally:
            if claimed:
                self._in_flight.pop(account, None)
        return session

    async def refresh(self) -> None:
        """Re-fetch the active account's ledger."""
        operation = OperationKind.REFRESH
        session = self._require_session(operation)
        correlation_id = create_correlation_id()
        self._ensure_idle(session, operation, correlation_id)

        self._in_flight[session.account] = operation
        try:
            await self._refresh(session, operation, correlation_id, after_mutation=False)
        finally:
            self._in_flight.pop(session.account, None)

    def set_sort_key(self, sort_key: Union[SortKey, str, None]) -> SortKey:
        """Change the list ordering of the active session."""
        session = self._require_session(OperationKind.REFRESH)
        sort_key = SortKey.parse(sort_key)
        session.set_sort_key(sort_key)
        return sort_key

    def update_form(self, **fields: str) -> ExpenseForm:
        """Store what the user typed into the form."""
        session = self._require_session(OperationKind.ADD)
        unknown = set(fields) - set(ExpenseForm.model_fields)
        if unknown:
            raise TypeError(f"Unknown form fields: {', '.join(sorted(unknown))}")
        session.form = session.form.model_copy(
            update={name: _as_text(value) for name, value in fields.items()}
        )
        return session.form

    def clear_failure(self) -> None:
        """Acknowledge a failed operation and return the status to idle."""
        if self._session is not None:
            self._session.clear_failure()

    # -------------------------------------------------------------------------
    # Ledger operations
    # -------------------------------------------------------------------------

    async def add(
        self,
        amount,
        date,
        category: str,
        description: Optional[str] = "",
    ) -> None:
        """
        Add a new expense to the active account's ledger.

        Raises:
            LedgerBusyError: Another operation is in flight
            ExpenseValidationError: Amount or date is malformed
            RemoteSubmitError: The ledger did not accept the entry
            RemoteFetchError: The entry was sent but the re-fetch failed
        """
        operation = OperationKind.ADD
        session = self._require_session(operation)
        correlation_id = create_correlation_id()
        self._ensure_idle(session, operation, correlation_id)

        session.form = ExpenseForm(
            amount=_as_text(amount),
            date=_as_text(date),
            category=category or "",
            description=description or "",
        )
        result = self._validate(
            session, operation, amount, date, category, description, correlation_id
        )

        async def submit() -> None:
            await self._client.submit_add(
                session.account,
                result.amount,
                result.occurred_at,
                result.category,
                result.description,
            )

        if await self._mutate(
            session,
            operation,
            None,
            submit,
            correlation_id,
            details={"amount": str(result.amount), "category": result.category},
        ):
            session.clear_form()

    def begin_modify(self, position: int) -> ExpenseEntry:
        """
        Start editing the entry at ``position``.

        Seeds the form with the entry's current values. No remote call.

        Raises:
            EntryNotFoundError: The projection has no entry at ``position``
        """
        operation = OperationKind.MODIFY
        session = self._require_session(operation)
        correlation_id = create_correlation_id()
        self._ensure_idle(session, operation, correlation_id)

        entry = self._require_entry(session, operation, position, correlation_id)
        session.form = ExpenseForm(
            amount=format_amount(entry.amount),
            date=epoch_to_iso_date(entry.occurred_at),
            category=entry.category,
            description=entry.description,
        )
        session.edit_target = EditTarget(position=position)
        self._audit.log_modify_started(session.account, position, correlation_id)
        return entry

    def end_modify(self) -> None:
        """Leave edit mode without submitting."""
        session = self._require_session(OperationKind.MODIFY)
        self._ensure_idle(session, OperationKind.MODIFY, create_correlation_id())
        session.clear_form()

    async def submit_modify(
        self,
        position: int,
        amount,
        date,
        category: str,
        description: Optional[str] = "",
    ) -> None:
        """
        Overwrite the entry at ``position``.

        The ledger decides whether ``position`` still exists; if not, the
        rejection comes back as RemoteSubmitError.
        """
        operation = OperationKind.MODIFY
        session = self._require_session(operation)
        correlation_id = create_correlation_id()
        self._ensure_idle(session, operation, correlation_id)

        session.form = ExpenseForm(
            amount=_as_text(amount),
            date=_as_text(date),
            category=category or "",
            description=description or "",
        )
        result = self._validate(
            session, operation, amount, date, category, description, correlation_id
        )

        async def submit() -> None:
            await self._client.submit_modify(
                session.account,
                position,
                result.amount,
                result.occurred_at,
                result.category,
                result.description,
            )

        if await self._mutate(
            session,
            operation,
            position,
            submit,
            correlation_id,
            details={"amount": str(result.amount), "category": result.category},
        ):
            session.clear_form()

    async def cancel(self, position: int) -> None:
        """
        Mark the entry at ``position`` canceled. The entry stays listed.

        Canceling an already-canceled entry is accepted.

        Raises:
            EntryNotFoundError: The projection has no entry at ``position``
        """
        operation = OperationKind.CANCEL
        session = self._require_session(operation)
        correlation_id = create_correlation_id()
        self._ensure_idle(session, operation, correlation_id)
        self._require_entry(session, operation, position, correlation_id)

        async def submit() -> None:
            await self._client.submit_cancel(session.account, position)

        await self._mutate(session, operation, position, submit, correlation_id)

    async def submit_form(self) -> None:
        """
        Submit the session's form: modify when editing, add otherwise.
        """
        session = self._require_session(OperationKind.ADD)
        form = session.form
        if session.edit_target is not None:
            await self.submit_modify(
                session.edit_target.position,
                form.amount,
                form.date,
                form.category,
                form.description,
            )
        else:
            await self.add(form.amount, form.date, form.category, form.description)
