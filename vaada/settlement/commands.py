"""Precondition-checked ledger writes.

Each command carries the state it was planned from, re-reads the ledger
immediately before writing and becomes a no-op when that state is stale.
A rejected write is followed by one more read: if the ledger now shows the
command's effect, another invocation got there first and the command reports
``ALREADY_DONE`` instead of failing. No locks are taken.
"""

from __future__ import annotations

import logging
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from vaada.services.ledger.exceptions import LedgerWriteRejected
from vaada.services.ledger.models import ReceiptEntry
from vaada.services.ledger.protocol import Ledger

logger = logging.getLogger(__name__)


class CommandStatus(str, Enum):
    EXECUTED = "executed"
    ALREADY_DONE = "already_done"
    PRECONDITION_FAILED = "precondition_failed"


class CommandResult(BaseModel):
    status: CommandStatus
    tx_hash: str | None = None
    detail: str = ""
    written: list[ReceiptEntry] = Field(default_factory=list)
    pending: list[str] = Field(default_factory=list)

    @property
    def executed(self) -> bool:
        return self.status is CommandStatus.EXECUTED


class VerifyParticipant(BaseModel):
    """Record one participant's achieved value, unless already verified."""

    model_config = ConfigDict(frozen=True)

    goal_id: int
    user: str
    achieved_value: int

    async def _already_verified(self, ledger: Ledger) -> bool:
        participant = await ledger.get_participant(self.goal_id, self.user)
        return participant.verified

    async def execute(self, ledger: Ledger) -> CommandResult:
        if await self._already_verified(ledger):
            return CommandResult(status=CommandStatus.ALREADY_DONE, detail="already verified")

        try:
            tx_hash = await ledger.submit_verification(
                self.goal_id, self.user, self.achieved_value
            )
        except LedgerWriteRejected:
            if await self._already_verified(ledger):
                logger.info(
                    f"Goal {self.goal_id}: {self.user} verified concurrently"
                )
                return CommandResult(
                    status=CommandStatus.ALREADY_DONE, detail="verified concurrently"
                )
            raise

        return CommandResult(status=CommandStatus.EXECUTED, tx_hash=tx_hash)


class SettleGoal(BaseModel):
    """Finalize a goal once every participant is verified."""

    model_config = ConfigDict(frozen=True)

    goal_id: int

    async def _unverified(self, ledger: Ledger) -> list[str]:
        unverified = []
        for user in await ledger.get_participants(self.goal_id):
            participant = await ledger.get_participant(self.goal_id, user)
            if not participant.verified:
                unverified.append(user)
        return unverified

    async def execute(self, ledger: Ledger) -> CommandResult:
        goal = await ledger.get_goal(self.goal_id)
        if goal.settled:
            return CommandResult(status=CommandStatus.ALREADY_DONE, detail="already settled")

        unverified = await self._unverified(ledger)
        if unverified:
            return CommandResult(
                status=CommandStatus.PRECONDITION_FAILED,
                detail=f"{len(unverified)} participants unverified",
                pending=unverified,
            )

        try:
            tx_hash = await ledger.submit_settlement(self.goal_id)
        except LedgerWriteRejected:
            goal = await ledger.get_goal(self.goal_id)
            if goal.settled:
                logger.info(f"Goal {self.goal_id}: settled concurrently")
                return CommandResult(
                    status=CommandStatus.ALREADY_DONE, detail="settled concurrently"
                )
            raise

        return CommandResult(status=CommandStatus.EXECUTED, tx_hash=tx_hash)


class MintReceipts(BaseModel):
    """Mint planned receipts, dropping any that now already exist."""

    model_config = ConfigDict(frozen=True)

    goal_id: int
    entries: tuple[ReceiptEntry, ...]

    async def _still_missing(self, ledger: Ledger) -> list[ReceiptEntry]:
        missing = []
        for entry in self.entries:
            if not await ledger.has_receipt(entry.goal_id, entry.participant):
                missing.append(entry)
        return missing

    async def execute(self, ledger: Ledger) -> CommandResult:
        goal = await ledger.get_goal(self.goal_id)
        if not goal.settled:
            return CommandResult(
                status=CommandStatus.PRECONDITION_FAILED, detail="goal not settled"
            )

        missing = await self._still_missing(ledger)
        if not missing:
            return CommandResult(
                status=CommandStatus.ALREADY_DONE, detail="all receipts already minted"
            )
        if len(missing) < len(self.entries):
            logger.info(
                f"Goal {self.goal_id}: {len(self.entries) - len(missing)} receipts "
                "minted since planning, dropping them from the batch"
            )

        try:
            tx_hash = await ledger.submit_receipt_batch(missing)
        except LedgerWriteRejected:
            if not await self._still_missing(ledger):
                logger.info(f"Goal {self.goal_id}: receipts minted concurrently")
                return CommandResult(
                    status=CommandStatus.ALREADY_DONE, detail="minted concurrently"
                )
            raise

        return CommandResult(status=CommandStatus.EXECUTED, tx_hash=tx_hash, written=missing)
