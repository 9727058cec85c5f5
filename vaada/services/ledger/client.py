from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Sequence

import aiohttp
from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception

from .abis import AUTOMATION_ABI, GOAL_STAKE_ABI, RECEIPTS_ABI
from .config import LedgerConfig
from .exceptions import (
    LedgerConfigError,
    LedgerError,
    LedgerUnavailableError,
    LedgerWriteRejected,
)
from .models import Goal, Participant, ReceiptEntry

logger = logging.getLogger(__name__)

_TRANSPORT_ERRORS = (
    Web3Exception,
    aiohttp.ClientError,
    asyncio.TimeoutError,
    OSError,
)


class LedgerClient:
    """Async client for the goal stake, automation and receipts contracts."""

    def __init__(
        self,
        config: LedgerConfig | None = None,
        private_key: str | None = None,
        max_retries: int = 3,
        time_left: Callable[[], float] | None = None,
    ):
        self.config = config or LedgerConfig()
        self.max_retries = max_retries
        self.time_left = time_left
        self._w3: AsyncWeb3 | None = None
        self._contracts: dict[str, Any] = {}

        self.account: LocalAccount | None = (
            Account.from_key(private_key) if private_key else None
        )

        logger.info(
            f"Initialized LedgerClient (chain_id={self.config.chain_id}, "
            f"signer={self.account.address if self.account else 'none'})"
        )

    async def __aenter__(self) -> LedgerClient:
        provider = AsyncHTTPProvider(
            self.config.rpc_url,
            request_kwargs={
                "timeout": aiohttp.ClientTimeout(
                    total=self.config.request_timeout_seconds
                )
            },
        )
        self._w3 = AsyncWeb3(provider)
        self._contracts = {
            "goal_stake": self._contract(self.config.goal_stake_address, GOAL_STAKE_ABI),
            "automation": self._contract(self.config.automation_address, AUTOMATION_ABI),
            "receipts": self._contract(self.config.receipts_address, RECEIPTS_ABI),
        }
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: Exception | None,
        exc_tb: Any,
    ) -> None:
        if self._w3:
            await self._w3.provider.disconnect()
            self._w3 = None
            self._contracts = {}
            logger.info("Closed LedgerClient")

    @property
    def w3(self) -> AsyncWeb3:
        if self._w3 is None:
            raise RuntimeError("LedgerClient must be used as async context manager")
        return self._w3

    def _contract(self, address: str, abi: list[dict[str, Any]]) -> Any:
        if not address:
            raise LedgerConfigError("Contract address not configured")
        return self.w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(address), abi=abi
        )

    def _receipt_timeout(self) -> float:
        """Receipt wait, shortened to what is left of the run budget."""
        timeout = self.config.receipt_timeout_seconds
        if self.time_left is not None:
            floor = min(self.config.min_receipt_timeout_seconds, timeout)
            timeout = min(timeout, max(self.time_left(), floor))
        return timeout

    def _require_account(self) -> LocalAccount:
        if self.account is None:
            raise LedgerConfigError(
                "Signing key required. Set VERIFIER_PRIVATE_KEY."
            )
        return self.account

    async def _read(self, call: Any, label: str) -> Any:
        retry_count = 0
        last_error: Exception | None = None

        while retry_count < self.max_retries:
            try:
                return await call.call()
            except ContractLogicError as e:
                raise LedgerError(f"{label} reverted: {e}")
            except _TRANSPORT_ERRORS as e:
                last_error = e
                retry_count += 1
                if retry_count < self.max_retries:
                    wait_time = 2 ** (retry_count - 1)
                    logger.warning(
                        f"Ledger read {label} failed ({e}), retrying in {wait_time}s..."
                    )
                    await asyncio.sleep(wait_time)

        raise LedgerUnavailableError(
            f"{label} failed after {retry_count} attempts: {last_error}"
        )

    async def _transact(self, call: Any, label: str) -> str:
        account = self._require_account()

        try:
            nonce = await self.w3.eth.get_transaction_count(account.address, "pending")
            tx = await call.build_transaction(
                {
                    "from": account.address,
                    "nonce": nonce,
                    "chainId": self.config.chain_id,
                }
            )
        except ContractLogicError as e:
            # Gas estimation simulates the call, so reverts surface here
            raise LedgerWriteRejected(f"{label} rejected: {e}")
        except _TRANSPORT_ERRORS as e:
            raise LedgerUnavailableError(f"{label} could not be prepared: {e}")

        signed = account.sign_transaction(tx)
        try:
            raw_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        except ContractLogicError as e:
            raise LedgerWriteRejected(f"{label} rejected: {e}")
        except _TRANSPORT_ERRORS as e:
            raise LedgerUnavailableError(f"{label} could not be sent: {e}")

        tx_hash = AsyncWeb3.to_hex(raw_hash)
        logger.info(f"Sent {label}: {tx_hash}")

        timeout = self._receipt_timeout()
        try:
            receipt = await self.w3.eth.wait_for_transaction_receipt(
                raw_hash, timeout=timeout
            )
        except TimeExhausted as e:
            # May still be mined; the next run re-reads state before acting
            raise LedgerUnavailableError(
                f"{label} not mined within {timeout:.0f}s: {e}",
                tx_hash=tx_hash,
            )
        except _TRANSPORT_ERRORS as e:
            raise LedgerUnavailableError(
                f"{label} receipt unavailable: {e}", tx_hash=tx_hash
            )

        if receipt["status"] != 1:
            raise LedgerWriteRejected(f"{label} reverted on-chain", tx_hash=tx_hash)

        logger.info(f"Confirmed {label}: {tx_hash} (block {receipt['blockNumber']})")
        return tx_hash

    async def goal_count(self) -> int:
        return await self._read(
            self._contracts["goal_stake"].functions.goalCount(), "goalCount"
        )

    async def list_goal_ids(self) -> list[int]:
        return list(range(await self.goal_count()))

    async def list_goals(self) -> list[Goal]:
        return [await self.get_goal(goal_id) for goal_id in await self.list_goal_ids()]

    async def get_goal(self, goal_id: int) -> Goal:
        functions = self._contracts["goal_stake"].functions
        data = await self._read(functions.getGoal(goal_id), f"getGoal({goal_id})")
        goal_type = await self._read(
            functions.goalTypes(goal_id), f"goalTypes({goal_id})"
        )
        return Goal.from_chain(data, goal_type)

    async def get_participants(self, goal_id: int) -> list[str]:
        addresses = await self._read(
            self._contracts["goal_stake"].functions.getGoalParticipants(goal_id),
            f"getGoalParticipants({goal_id})",
        )
        return list(addresses)

    async def get_participant(self, goal_id: int, user: str) -> Participant:
        data = await self._read(
            self._contracts["goal_stake"].functions.getParticipant(
                goal_id, AsyncWeb3.to_checksum_address(user)
            ),
            f"getParticipant({goal_id}, {user})",
        )
        return Participant.from_chain(data)

    async def has_receipt(self, goal_id: int, user: str) -> bool:
        token_id = await self._read(
            self._contracts["receipts"].functions.receiptForGoal(
                goal_id, AsyncWeb3.to_checksum_address(user)
            ),
            f"receiptForGoal({goal_id}, {user})",
        )
        return int(token_id) != 0

    async def submit_verification(
        self, goal_id: int, user: str, achieved_value: int
    ) -> str:
        logger.info(
            f"Submitting verification: goal={goal_id} user={user} value={achieved_value}"
        )
        return await self._transact(
            self._contracts["automation"].functions.manualVerify(
                goal_id, AsyncWeb3.to_checksum_address(user), achieved_value
            ),
            f"manualVerify({goal_id}, {user})",
        )

    async def submit_settlement(self, goal_id: int) -> str:
        logger.info(f"Submitting settlement: goal={goal_id}")
        return await self._transact(
            self._contracts["automation"].functions.manualSettle(goal_id),
            f"manualSettle({goal_id})",
        )

    async def submit_receipt_batch(self, entries: Sequence[ReceiptEntry]) -> str:
        if not entries:
            raise ValueError("Receipt batch must not be empty")
        logger.info(f"Minting {len(entries)} receipts")
        inputs = [entry.to_chain() for entry in entries]
        return await self._transact(
            self._contracts["receipts"].functions.batchMintReceipts(inputs),
            f"batchMintReceipts[{len(entries)}]",
        )


def create_ledger_client(
    config: LedgerConfig | None = None,
    private_key: str | None = None,
) -> LedgerClient:
    return LedgerClient(config, private_key)
