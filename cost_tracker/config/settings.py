"""
Configuration Management for Cost Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cost_tracker.models.expense import SortKey


class LedgerRpcSettings(BaseSettings):
    """Remote ledger (cost-tracking contract) connection configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_RPC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    provider_url: str = Field(
        ...,
        description="HTTP(S) JSON-RPC endpoint of a node or wallet bridge"
    )
    contract_address: str = Field(
        ...,
        description="Address of the deployed cost-tracking contract"
    )
    abi_path: str = Field(
        ...,
        description="Path to the compiled contract artifact (JSON with an 'abi' key)"
    )

    # On-chain amounts are unsigned integers
    amount_decimals: int = Field(
        default=0,
        ge=0,
        le=18,
        description="Decimal places folded into the on-chain integer amount"
    )
    receipt_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="How long to wait for a transaction receipt"
    )
    connect_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Connection attempts before giving up"
    )

    @field_validator('contract_address')
    @classmethod
    def validate_contract_address(cls, v: str) -> str:
        """Contract addresses are 20-byte hex strings."""
        v = v.strip()
        if not v.startswith("0x") or len(v) != 42:
            raise ValueError(f"Not a contract address: {v!r}")
        return v

    @field_validator('abi_path')
    @classmethod
    def validate_abi_path(cls, v: str) -> str:
        """Warn if the artifact doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Contract artifact not found at {v}. "
                "Make sure it exists before connecting to the ledger."
            )
        return v


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Level for the stdlib logging root"
    )

    # Ledger session defaults
    demo_mode: bool = Field(
        default=False,
        description="Use the in-memory ledger instead of the remote contract"
    )
    default_account: Optional[str] = Field(
        default=None,
        description="Account to activate on startup"
    )
    default_sort_key: SortKey = Field(
        default=SortKey.NONE,
        description="Sort order applied to a freshly opened session"
    )

    # Audit trail kept in memory for the activity panel
    audit_history_size: int = Field(
        default=200,
        ge=0,
        le=10000,
        description="How many recent audit events to keep"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def ledger_rpc(self) -> LedgerRpcSettings:
        return LedgerRpcSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.ledger_rpc
        results["ledger_rpc"] = True
    except Exception as e:
        results["ledger_rpc"] = False
        results["ledger_rpc_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
