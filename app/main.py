"""
Streamlit Frontend for Cost Tracker

A thin shell over the sync engine: it renders the active session and
forwards button presses. All state lives in the engine's session.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Every failure is shown, with what the user can do about it
3. A stale list is flagged, never hidden
"""

import asyncio
from datetime import date

import streamlit as st

from cost_tracker.config import get_settings, validate_all_settings
from cost_tracker.core import LedgerSyncError, SyncEngine
from cost_tracker.formatting import format_amount, format_entry_date
from cost_tracker.models.expense import FailureKind, SortKey
from cost_tracker.orchestrator import create_app_components
from cost_tracker.services.ledger import ContractLedgerClient


# Page configuration
st.set_page_config(
    page_title="Cost Tracker",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)


SORT_LABELS = {
    SortKey.NONE: "Ledger order",
    SortKey.AMOUNT: "Amount",
    SortKey.OCCURRED_AT: "Date",
    SortKey.CATEGORY: "Category",
}


@st.cache_resource
def get_event_loop() -> asyncio.AbstractEventLoop:
    """One loop for the whole app, so client connections stay usable."""
    return asyncio.new_event_loop()


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    return get_event_loop().run_until_complete(coro)


def get_components():
    """Get or create this browser session's components."""
    if "components" not in st.session_state:
        try:
            st.session_state.components = create_app_components(use_remote=True)
        except Exception as e:
            st.error(f"Failed to initialize: {e}")
            st.session_state.components = create_app_components(use_remote=False)
    return st.session_state.components


def run_operation(coro) -> bool:
    """Run an engine call; failures are already on the session, so just report."""
    try:
        run_async(coro)
        return True
    except LedgerSyncError:
        return False


def main():
    """Main application entry point."""
    engine, client, audit_logger = get_components()

    st.sidebar.title("💰 Cost Tracker")
    st.sidebar.markdown("---")
    render_account_picker(engine, client)
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📋 Expenses", "🕑 Activity", "⚙️ Settings"],
        index=0,
    )

    if page == "📋 Expenses":
        render_expenses_page(engine)
    elif page == "🕑 Activity":
        render_activity_page(audit_logger)
    elif page == "⚙️ Settings":
        render_settings_page()


def render_account_picker(engine: SyncEngine, client):
    """Choose which account's ledger to show."""
    accounts = []
    if isinstance(client, ContractLedgerClient):
        try:
            accounts = run_async(client.list_accounts())
        except Exception as e:
            st.sidebar.error(f"Wallet unavailable: {e}")

    current = engine.session.account if engine.session else ""
    preferred = current or get_settings().app.default_account or ""
    if accounts:
        account = st.sidebar.selectbox(
            "Account",
            options=accounts,
            index=accounts.index(preferred) if preferred in accounts else 0,
        )
    else:
        account = st.sidebar.text_input("Account", value=preferred or "demo")

    if account and account != current:
        with st.spinner("Loading ledger..."):
            run_operation(engine.set_active_account(account))
        st.rerun()


def render_status(engine: SyncEngine):
    """Show the latest failure, if any."""
    session = engine.session
    failure = session.last_failure
    if session.is_stale:
        st.warning(
            "⚠️ The list below may be out of date. "
            "A change may have been saved that is not shown yet. Press Refresh."
        )
    if failure is None:
        return

    if failure.kind is FailureKind.REMOTE_FETCH:
        st.error(f"❗ {failure.message}")
    elif failure.kind is FailureKind.REMOTE_SUBMIT:
        st.error(f"❌ {failure.message} You can try again.")
    else:
        st.warning(failure.message)

    if st.button("Dismiss"):
        engine.clear_failure()
        st.rerun()


def render_form(engine: SyncEngine):
    """Add / modify form."""
    session = engine.session
    form = session.form
    editing = session.edit_target is not None

    st.subheader(
        f"✏️ Modify Expense #{session.edit_target.position}" if editing else "➕ Add Expense"
    )

    with st.form("expense_form", clear_on_submit=False):
        col1, col2 = st.columns(2)
        with col1:
            amount = st.text_input("Amount *", value=form.amount)
            category = st.text_input("Category *", value=form.category)
        with col2:
            seeded = date.fromisoformat(form.date) if form.date else date.today()
            occurred_on = st.date_input("Date *", value=seeded)
            description = st.text_input("Description", value=form.description)

        submitted = st.form_submit_button("Submit", type="primary")

    if submitted:
        engine.update_form(
            amount=amount,
            date=occurred_on,
            category=category,
            description=description,
        )
        with st.spinner("Waiting for the ledger..."):
            run_operation(engine.submit_form())
        st.rerun()

    if editing and st.button("Stop editing"):
        engine.end_modify()
        st.rerun()


def render_expenses_page(engine: SyncEngine):
    """Form, category analysis and the expense list."""
    st.title("📋 Expenses")

    session = engine.session
    if session is None:
        st.info("Select an account in the sidebar to load its expenses.")
        return

    render_status(engine)
    render_form(engine)
    st.markdown("---")

    col1, col2 = st.columns([3, 1])
    with col1:
        sort_key = st.selectbox(
            "Sort expenses by",
            options=list(SORT_LABELS),
            index=list(SORT_LABELS).index(session.sort_key),
            format_func=SORT_LABELS.get,
        )
        if sort_key is not session.sort_key:
            engine.set_sort_key(sort_key)
            st.rerun()
    with col2:
        if st.button("🔄 Refresh"):
            with st.spinner("Reading the ledger..."):
                run_operation(engine.refresh())
            st.rerun()

    view = session.view

    st.subheader("📊 Expense Analysis")
    st.markdown("Number of expenses for each category:")
    if view.category_counts:
        for category, count in view.category_counts.items():
            st.markdown(f"- **{category or '(none)'}**: {count}")
    else:
        st.markdown("*No expenses yet.*")

    st.subheader("🧾 Expenses")
    for entry in view.entries:
        with st.container(border=True):
            col1, col2 = st.columns([4, 1])
            with col1:
                st.markdown(
                    f"**#{entry.position}** · {format_entry_date(entry.occurred_at)} · "
                    f"**{format_amount(entry.amount)}** · {entry.category}"
                )
                if entry.description:
                    st.caption(entry.description)
                if entry.canceled:
                    st.markdown(":red[**CANCELED**]")
            with col2:
                if st.button("Cancel", key=f"cancel_{entry.position}"):
                    with st.spinner("Waiting for the ledger..."):
                        run_operation(engine.cancel(entry.position))
                    st.rerun()
                if st.button("Modify", key=f"modify_{entry.position}"):
                    try:
                        engine.begin_modify(entry.position)
                    except LedgerSyncError as e:
                        st.warning(f"⚠️ {e.message}")
                    else:
                        st.rerun()


def render_activity_page(audit_logger):
    """Recent ledger activity."""
    st.title("🕑 Activity")

    events = audit_logger.recent_events(limit=50)
    if not events:
        st.info("No activity yet.")
        return

    for event in events:
        line = f"`{event.timestamp:%H:%M:%S}` {event.description}"
        if event.error_message:
            line += f" - {event.error_message}"
        st.markdown(line)


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    status = validate_all_settings()

    services = [
        ("Ledger RPC (contract)", "ledger_rpc"),
        ("Application", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To connect to the ledger, create a `.env` file with the `LEDGER_RPC_` "
        "variables. See `.env.example` for the full list. Without it the app "
        "runs on an in-memory ledger."
    )


if __name__ == "__main__":
    main()
