"""
Component Factory for Cost Tracker

Wires the ledger client, validator, audit logger and sync engine together
from configuration.

DESIGN DECISION: The contract-backed ledger is used whenever it is
configured. Without it (or in demo mode) the app runs on the in-memory
ledger so the interface still works end to end.
"""

import logging
from typing import Optional

from cost_tracker.audit import AuditLogger
from cost_tracker.config import get_settings
from cost_tracker.core import SyncEngine
from cost_tracker.services.ledger import (
    ContractLedgerClient,
    InMemoryLedgerClient,
    RemoteLedgerClient,
)
from cost_tracker.validation import ExpenseInputValidator


logger = logging.getLogger(__name__)


def configure_logging(level: Optional[str] = None) -> None:
    """Set the stdlib root level that structlog filters against."""
    logging.basicConfig(
        level=level or get_settings().app.log_level,
        format="%(message)s",
    )


def create_app_components(
    use_remote: bool = True,
) -> tuple[SyncEngine, RemoteLedgerClient, AuditLogger]:
    """
    Factory function to create all application components.

    Args:
        use_remote: Whether to connect to the contract ledger.
                    Set to False to run on the in-memory ledger.

    Returns:
        (sync_engine, ledger_client, audit_logger)
    """
    settings = get_settings()
    app_settings = settings.app
    configure_logging(app_settings.log_level)

    audit_logger = AuditLogger(history_size=app_settings.audit_history_size)

    client: RemoteLedgerClient
    validator = ExpenseInputValidator()
    if use_remote and not app_settings.demo_mode:
        try:
            rpc_settings = settings.ledger_rpc
            client = ContractLedgerClient(rpc_settings)
            validator = ExpenseInputValidator(max_decimal_places=rpc_settings.amount_decimals)
        except Exception as e:
            # Ledger not configured - continue on the in-memory ledger
            logger.warning("Ledger RPC not configured, using in-memory ledger: %s", e)
            client = InMemoryLedgerClient()
    else:
        client = InMemoryLedgerClient()

    engine = SyncEngine(
        client=client,
        validator=validator,
        audit_logger=audit_logger,
        default_sort_key=app_settings.default_sort_key,
    )

    return engine, client, audit_logger
