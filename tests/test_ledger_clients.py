"""
Tests for the ledger clients.

The contract client is exercised with a mocked contract object; no node
or wallet is contacted.
"""

import json
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from web3.exceptions import MismatchedABI, Web3ValidationError

from cost_tracker.config import LedgerRpcSettings
from cost_tracker.core import RemoteSubmitError, SyncEngine
from cost_tracker.models.expense import FailureKind, LedgerRecord
from cost_tracker.services.ledger import (
    AuthorizationDeclinedError,
    ContractLedgerClient,
    InMemoryLedgerClient,
    LedgerConnectionError,
    RemoteRejectedError,
)
from cost_tracker.services.ledger.contract import _rpc_error_code, load_contract_abi

from tests.conftest import ACCOUNT, OTHER_ACCOUNT


CONTRACT_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"


@pytest.fixture
def abi_file(tmp_path):
    path = tmp_path / "CostTracking.json"
    path.write_text(json.dumps({"abi": [{"type": "function", "name": "addExpense"}]}))
    return path


def rpc_settings(abi_file, **overrides) -> LedgerRpcSettings:
    values = {
        "provider_url": "http://127.0.0.1:8545",
        "contract_address": CONTRACT_ADDRESS,
        "abi_path": str(abi_file),
    }
    values.update(overrides)
    return LedgerRpcSettings(**values)


def mocked_client(settings: LedgerRpcSettings, receipt_status: int = 1):
    """A contract client whose connection is replaced by mocks."""
    client = ContractLedgerClient(settings)
    contract = MagicMock()
    function = MagicMock()
    function.transact = AsyncMock(return_value=b"\x12\x34")
    contract.functions.__getitem__.return_value = MagicMock(return_value=function)

    web3 = MagicMock()
    web3.eth.wait_for_transaction_receipt = AsyncMock(return_value={"status": receipt_status})

    client._web3 = web3
    client._contract = contract
    return client, contract, function


class TestInMemoryLedger:
    """Tests for InMemoryLedgerClient."""

    @pytest.mark.asyncio
    async def test_add_appends(self):
        client = InMemoryLedgerClient()
        await client.submit_add(ACCOUNT, Decimal("4"), 100, "auto", "fuel")
        records = await client.fetch_entries(ACCOUNT)
        assert records == [
            LedgerRecord(amount=Decimal("4"), occurred_at=100, category="auto", description="fuel")
        ]

    @pytest.mark.asyncio
    async def test_accounts_are_isolated(self, ledger):
        assert await ledger.fetch_entries(OTHER_ACCOUNT) == []
        assert len(await ledger.fetch_entries(ACCOUNT)) == 1

    @pytest.mark.asyncio
    async def test_modify_keeps_canceled_flag(self, ledger):
        await ledger.submit_cancel(ACCOUNT, 0)
        await ledger.submit_modify(ACCOUNT, 0, Decimal("1"), 5, "rent", "")
        record = (await ledger.fetch_entries(ACCOUNT))[0]
        assert record.category == "rent"
        assert record.canceled is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("position", [-1, 1, 10])
    async def test_unknown_position_rejected(self, ledger, position):
        with pytest.raises(RemoteRejectedError):
            await ledger.submit_cancel(ACCOUNT, position)
        with pytest.raises(RemoteRejectedError):
            await ledger.submit_modify(ACCOUNT, position, Decimal("1"), 0, "x", "")

    @pytest.mark.asyncio
    async def test_fetch_returns_a_copy(self, ledger):
        records = await ledger.fetch_entries(ACCOUNT)
        records.clear()
        assert len(await ledger.fetch_entries(ACCOUNT)) == 1

    def test_accounts_listed(self, ledger):
        assert ledger.accounts() == [ACCOUNT]


class TestContractHelpers:
    """Tests for ABI loading and RPC error parsing."""

    def test_load_artifact_with_abi_key(self, abi_file):
        assert load_contract_abi(str(abi_file)) == [{"type": "function", "name": "addExpense"}]

    def test_load_bare_abi(self, tmp_path):
        path = tmp_path / "abi.json"
        path.write_text("[]")
        assert load_contract_abi(str(path)) == []

    def test_missing_artifact(self, tmp_path):
        with pytest.raises(LedgerConnectionError):
            load_contract_abi(str(tmp_path / "nope.json"))

    def test_invalid_artifact(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(LedgerConnectionError):
            load_contract_abi(str(path))

    def test_artifact_without_abi(self, tmp_path):
        path = tmp_path / "artifact.json"
        path.write_text(json.dumps({"bytecode": "0x"}))
        with pytest.raises(LedgerConnectionError):
            load_contract_abi(str(path))

    def test_rpc_error_code_from_args(self):
        assert _rpc_error_code(ValueError({"code": 4001, "message": "denied"})) == 4001

    def test_rpc_error_code_absent(self):
        assert _rpc_error_code(ValueError("boom")) is None


class TestContractLedgerClient:
    """Tests for ContractLedgerClient against a mocked contract."""

    def test_amount_scaling(self, abi_file):
        client = ContractLedgerClient(rpc_settings(abi_file, amount_decimals=2))
        assert client._to_chain_amount(Decimal("12.50")) == 1250
        assert client._from_chain_amount(1250) == Decimal("12.50")

    def test_whole_units_by_default(self, abi_file):
        client = ContractLedgerClient(rpc_settings(abi_file))
        assert client._to_chain_amount(Decimal("12")) == 12
        with pytest.raises(RemoteRejectedError):
            client._to_chain_amount(Decimal("12.5"))

    @pytest.mark.asyncio
    async def test_fetch_maps_contract_tuples(self, abi_file):
        client, contract, _ = mocked_client(rpc_settings(abi_file))
        contract.functions.getUserExpenses.return_value.call = AsyncMock(return_value=[
            (12, 1700000000, "food", "lunch", False),
            (30, 1700086400, "auto", "", True),
        ])

        records = await client.fetch_entries(ACCOUNT)

        assert records[0] == LedgerRecord(
            amount=Decimal("12"),
            occurred_at=1700000000,
            category="food",
            description="lunch",
        )
        assert records[1].canceled is True

    @pytest.mark.asyncio
    async def test_add_sends_transaction(self, abi_file):
        client, contract, function = mocked_client(rpc_settings(abi_file))

        await client.submit_add(ACCOUNT, Decimal("7"), 1700000000, "auto", "parking")

        contract.functions.__getitem__.assert_called_with("addExpense")
        contract.functions.__getitem__.return_value.assert_called_with(
            7, 1700000000, "auto", "parking"
        )
        function.transact.assert_awaited_once()
        assert function.transact.await_args.args[0]["from"].lower() == ACCOUNT.lower()

    @pytest.mark.asyncio
    async def test_cancel_sends_position(self, abi_file):
        client, contract, _ = mocked_client(rpc_settings(abi_file))
        await client.submit_cancel(ACCOUNT, 3)
        contract.functions.__getitem__.assert_called_with("cancelExpense")
        contract.functions.__getitem__.return_value.assert_called_with(3)

    @pytest.mark.asyncio
    async def test_reverted_receipt(self, abi_file):
        client, _, _ = mocked_client(rpc_settings(abi_file), receipt_status=0)
        with pytest.raises(RemoteRejectedError):
            await client.submit_cancel(ACCOUNT, 0)

    @pytest.mark.asyncio
    async def test_wallet_declined(self, abi_file):
        client, _, function = mocked_client(rpc_settings(abi_file))
        function.transact.side_effect = ValueError({"code": 4001, "message": "User denied"})
        with pytest.raises(AuthorizationDeclinedError):
            await client.submit_cancel(ACCOUNT, 0)

    @pytest.mark.asyncio
    async def test_transport_failure(self, abi_file):
        client, _, function = mocked_client(rpc_settings(abi_file))
        function.transact.side_effect = ConnectionRefusedError("refused")
        with pytest.raises(LedgerConnectionError):
            await client.submit_cancel(ACCOUNT, 0)

    @pytest.mark.asyncio
    async def test_arguments_refused_by_abi(self, abi_file):
        """Encoding errors come back as a rejection, before anything is sent."""
        client, contract, function = mocked_client(rpc_settings(abi_file))
        contract.functions.__getitem__.return_value.side_effect = MismatchedABI(
            "Argument 2 value -86400 is not compatible with type uint256"
        )
        with pytest.raises(RemoteRejectedError):
            await client.submit_add(ACCOUNT, Decimal("5"), -86400, "food", "")
        function.transact.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fetch_with_malformed_account(self, abi_file):
        client, contract, _ = mocked_client(rpc_settings(abi_file))
        contract.functions.getUserExpenses.return_value.call = AsyncMock(return_value=[])
        with pytest.raises(RemoteRejectedError):
            await client.fetch_entries("not-an-address")
        contract.functions.getUserExpenses.return_value.call.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_engine_reports_refused_arguments_as_submit_failure(self, abi_file):
        client, contract, _ = mocked_client(rpc_settings(abi_file))
        contract.functions.getUserExpenses.return_value.call = AsyncMock(return_value=[])
        contract.functions.__getitem__.return_value.side_effect = Web3ValidationError(
            "Could not identify the intended function"
        )
        engine = SyncEngine(client=client)
        session = await engine.set_active_account(ACCOUNT)

        with pytest.raises(RemoteSubmitError):
            await engine.add("5", "2024-01-01", "food")
        assert session.status.failure.kind is FailureKind.REMOTE_SUBMIT
