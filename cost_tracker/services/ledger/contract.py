"""
Cost-Tracking Contract Ledger

DESIGN DECISION: The production ledger is a smart contract holding one
array of expenses per account. We reach it through web3.py's async client:
1. Reads are plain calls (getUserExpenses)
2. Writes are transactions sent from the connected account and signed by
   the wallet behind the provider; a mined receipt is the settlement
3. Nothing here manages keys or gas - the provider/wallet owns that

TRADEOFFS:
- Every write waits for a receipt, which can take a while
- On-chain amounts are unsigned integers, so amounts are scaled by
  ``10 ** amount_decimals`` on the way in and out
"""

import json
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

import aiohttp
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from web3 import AsyncWeb3
from web3.contract import AsyncContract
from web3.exceptions import (
    ContractLogicError,
    MismatchedABI,
    TimeExhausted,
    Web3Exception,
    Web3ValidationError,
)

from cost_tracker.config import LedgerRpcSettings, get_settings
from cost_tracker.models.expense import LedgerRecord
from cost_tracker.services.ledger.interface import (
    AuthorizationDeclinedError,
    LedgerClientError,
    LedgerConnectionError,
    RemoteLedgerClient,
    RemoteRejectedError,
)


# EIP-1193 "user rejected request"
USER_REJECTED_CODE = 4001


def load_contract_abi(abi_path: str) -> list[dict]:
    """
    Load a contract ABI from a compiled artifact.

    Accepts either a bare ABI list or an artifact with an ``abi`` key.
    """
    try:
        artifact = json.loads(Path(abi_path).read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise LedgerConnectionError(f"Contract artifact not found: {abi_path}")
    except json.JSONDecodeError as e:
        raise LedgerConnectionError(f"Contract artifact is not valid JSON: {e}")

    if isinstance(artifact, dict):
        artifact = artifact.get("abi")
    if not isinstance(artifact, list):
        raise LedgerConnectionError(f"No ABI found in {abi_path}")
    return artifact


def _rpc_error_code(exc: BaseException) -> Optional[int]:
    """Dig the JSON-RPC error code out of a web3 exception, if it has one."""
    response = getattr(exc, "rpc_response", None)
    if isinstance(response, dict):
        error = response.get("error")
        if isinstance(error, dict):
            return error.get("code")
    for arg in exc.args:
        if isinstance(arg, dict) and "code" in arg:
            return arg["code"]
    return None


class ContractLedgerClient(RemoteLedgerClient):
    """
    RemoteLedgerClient backed by the cost-tracking contract.
    """

    def __init__(self, settings: Optional[LedgerRpcSettings] = None):
        self._settings = settings or get_settings().ledger_rpc
        self._web3: Optional[AsyncWeb3] = None
        self._contract: Optional[AsyncContract] = None

    async def connect(self) -> AsyncContract:
        """
        Connect to the provider and bind the contract.

        Retries with exponential backoff before giving up.
        """
        if self._contract is not None:
            return self._contract

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._settings.connect_attempts),
            wait=wait_exponential(multiplier=1, min=2, max=10),
            retry=retry_if_exception_type(LedgerConnectionError),
            reraise=True,
        ):
            with attempt:
                web3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(self._settings.provider_url))
                try:
                    connected = await web3.is_connected()
                except (aiohttp.ClientError, OSError) as e:
                    raise LedgerConnectionError(f"Failed to reach ledger provider: {e}")
                if not connected:
                    raise LedgerConnectionError(
                        f"Ledger provider not reachable: {self._settings.provider_url}"
                    )
                self._web3 = web3

        abi = load_contract_abi(self._settings.abi_path)
        self._contract = self._web3.eth.contract(
            address=AsyncWeb3.to_checksum_address(self._settings.contract_address),
            abi=abi,
        )
        return self._contract

    async def list_accounts(self) -> list[str]:
        """Accounts the connected wallet exposes."""
        await self.connect()
        try:
            return list(await self._web3.eth.accounts)
        except (aiohttp.ClientError, OSError) as e:
            raise LedgerConnectionError(f"Failed to list wallet accounts: {e}")

    def _to_chain_amount(self, amount: Decimal) -> int:
        scaled = amount.scaleb(self._settings.amount_decimals)
        if scaled != scaled.to_integral_value():
            raise RemoteRejectedError(
                f"Amount {amount} has more than {self._settings.amount_decimals} decimal places"
            )
        return int(scaled)

    def _from_chain_amount(self, raw: int) -> Decimal:
        return Decimal(raw).scaleb(-self._settings.amount_decimals)

    def _to_record(self, raw: Any) -> LedgerRecord:
        amount, occurred_at, category, description, canceled = raw
        return LedgerRecord(
            amount=self._from_chain_amount(amount),
            occurred_at=int(occurred_at),
            category=category,
            description=description,
            canceled=bool(canceled),
        )

    async def fetch_entries(self, account: str) -> list[LedgerRecord]:
        contract = await self.connect()
        try:
            raw_entries = await contract.functions.getUserExpenses(
                AsyncWeb3.to_checksum_address(account)
            ).call()
        except ContractLogicError as e:
            raise RemoteRejectedError(f"Ledger read reverted: {e}")
        except (MismatchedABI, Web3ValidationError, ValueError) as e:
            raise RemoteRejectedError(f"Ledger read refused its arguments: {e}")
        except (aiohttp.ClientError, OSError) as e:
            raise LedgerConnectionError(f"Ledger read failed: {e}")
        except Web3Exception as e:
            raise LedgerClientError(f"Ledger read failed: {e}")

        return [self._to_record(raw) for raw in raw_entries]

    async def _transact(self, account: str, function_name: str, *args: Any) -> None:
        """Send a transaction from ``account`` and wait for it to be mined."""
        contract = await self.connect()
        try:
            # Arguments are encoded against the ABI here
            function = contract.functions[function_name](*args)
        except (MismatchedABI, Web3ValidationError, ValueError) as e:
            raise RemoteRejectedError(f"{function_name} refused its arguments: {e}")

        try:
            tx_hash = await function.transact(
                {"from": AsyncWeb3.to_checksum_address(account)}
            )
            receipt = await self._web3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=self._settings.receipt_timeout_seconds,
            )
        except ContractLogicError as e:
            raise RemoteRejectedError(f"{function_name} reverted: {e}")
        except TimeExhausted as e:
            raise LedgerConnectionError(f"{function_name} was not mined in time: {e}")
        except (aiohttp.ClientError, OSError) as e:
            raise LedgerConnectionError(f"{function_name} could not be sent: {e}")
        except (Web3Exception, ValueError) as e:
            if _rpc_error_code(e) == USER_REJECTED_CODE:
                raise AuthorizationDeclinedError(f"{function_name} was not authorized")
            raise RemoteRejectedError(f"{function_name} failed: {e}")

        if receipt["status"] == 0:
            raise RemoteRejectedError(
                f"{function_name} reverted in transaction {tx_hash.hex()}"
            )

    async def submit_add(
        self,
        account: str,
        amount: Decimal,
        occurred_at: int,
        category: str,
        description: str,
    ) -> None:
        await self._transact(
            account,
            "addExpense",
            self._to_chain_amount(amount),
            occurred_at,
            category,
            description,
        )

    async def submit_modify(
        self,
        account: str,
        position: int,
        amount: Decimal,
        occurred_at: int,
        category: str,
        description: str,
    ) -> None:
        await self._transact(
            account,
            "modifyExpense",
            position,
            self._to_chain_amount(amount),
            occurred_at,
            category,
            description,
        )

    async def submit_cancel(self, account: str, position: int) -> None:
        await self._transact(account, "cancelExpense", position)
