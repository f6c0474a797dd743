"""Configuration package."""

from cost_tracker.config.settings import (
    AppSettings,
    LedgerRpcSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "LedgerRpcSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
