"""Tests for configuration loading and component wiring."""

import pytest

from cost_tracker.config import (
    AppSettings,
    LedgerRpcSettings,
    get_settings,
    validate_all_settings,
)
from cost_tracker.models.expense import SortKey
from cost_tracker.orchestrator import create_app_components
from cost_tracker.services.ledger import ContractLedgerClient, InMemoryLedgerClient


LEDGER_ENV = {
    "LEDGER_RPC_PROVIDER_URL": "http://127.0.0.1:8545",
    "LEDGER_RPC_CONTRACT_ADDRESS": "0x5FbDB2315678afecb367f032d93F642f64180aa3",
}


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """No .env file and none of our variables set."""
    monkeypatch.chdir(tmp_path)
    for name in list(LEDGER_ENV) + [
        "LEDGER_RPC_ABI_PATH",
        "LEDGER_RPC_AMOUNT_DECIMALS",
        "DEMO_MODE",
        "LOG_LEVEL",
        "DEFAULT_SORT_KEY",
        "AUDIT_HISTORY_SIZE",
    ]:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def ledger_env(clean_env, tmp_path):
    abi_path = tmp_path / "CostTracking.json"
    abi_path.write_text('{"abi": []}')
    for name, value in LEDGER_ENV.items():
        clean_env.setenv(name, value)
    clean_env.setenv("LEDGER_RPC_ABI_PATH", str(abi_path))
    return clean_env


class TestLedgerRpcSettings:

    def test_loads_from_environment(self, ledger_env):
        ledger_env.setenv("LEDGER_RPC_AMOUNT_DECIMALS", "2")
        settings = LedgerRpcSettings()
        assert settings.provider_url == "http://127.0.0.1:8545"
        assert settings.amount_decimals == 2
        assert settings.connect_attempts == 3

    def test_rejects_bad_contract_address(self, ledger_env):
        ledger_env.setenv("LEDGER_RPC_CONTRACT_ADDRESS", "0x1234")
        with pytest.raises(ValueError):
            LedgerRpcSettings()

    def test_missing_artifact_only_warns(self, ledger_env, tmp_path):
        ledger_env.setenv("LEDGER_RPC_ABI_PATH", str(tmp_path / "later.json"))
        with pytest.warns(UserWarning):
            LedgerRpcSettings()


class TestAppSettings:

    def test_defaults(self, clean_env):
        settings = AppSettings()
        assert settings.demo_mode is False
        assert settings.default_sort_key is SortKey.NONE
        assert settings.log_level == "INFO"

    def test_log_level_normalized(self, clean_env):
        clean_env.setenv("LOG_LEVEL", "debug")
        assert AppSettings().log_level == "DEBUG"

    def test_unknown_log_level(self, clean_env):
        clean_env.setenv("LOG_LEVEL", "loud")
        with pytest.raises(ValueError):
            AppSettings()

    def test_default_sort_key_from_env(self, clean_env):
        clean_env.setenv("DEFAULT_SORT_KEY", "category")
        assert AppSettings().default_sort_key is SortKey.CATEGORY


class TestValidateAllSettings:

    def test_reports_missing_ledger(self, clean_env):
        results = validate_all_settings()
        assert results["ledger_rpc"] is False
        assert "ledger_rpc_error" in results
        assert results["app"] is True

    def test_all_valid(self, ledger_env):
        results = validate_all_settings()
        assert results == {"ledger_rpc": True, "app": True}

    def test_settings_cached(self, clean_env):
        assert get_settings() is get_settings()


class TestCreateAppComponents:
    """The contract ledger is used only when it is configured."""

    def test_falls_back_to_memory_ledger(self, clean_env):
        engine, client, _ = create_app_components()
        assert isinstance(client, InMemoryLedgerClient)
        assert engine.session is None

    def test_demo_mode(self, ledger_env):
        ledger_env.setenv("DEMO_MODE", "true")
        _, client, _ = create_app_components()
        assert isinstance(client, InMemoryLedgerClient)

    def test_use_remote_false(self, ledger_env):
        _, client, _ = create_app_components(use_remote=False)
        assert isinstance(client, InMemoryLedgerClient)

    def test_contract_ledger_when_configured(self, ledger_env):
        _, client, _ = create_app_components()
        assert isinstance(client, ContractLedgerClient)

    @pytest.mark.asyncio
    async def test_default_sort_key_applied(self, clean_env):
        clean_env.setenv("DEFAULT_SORT_KEY", "amount")
        engine, _, _ = create_app_components(use_remote=False)
        session = await engine.set_active_account("demo")
        assert session.sort_key is SortKey.AMOUNT

    def test_audit_history_size(self, clean_env):
        clean_env.setenv("AUDIT_HISTORY_SIZE", "5")
        _, _, audit_logger = create_app_components(use_remote=False)
        assert audit_logger.history_size == 5
