"""In-memory stand-ins for the ledger and the verification adapter."""

from __future__ import annotations

import asyncio
import itertools
from datetime import datetime, timedelta, timezone
from typing import Sequence

from vaada.services.fitness.models import (
    Achieved,
    ProviderKind,
    Unavailable,
    VerificationResult,
)
from vaada.services.ledger.exceptions import LedgerUnavailableError, LedgerWriteRejected
from vaada.services.ledger.models import Goal, GoalKind, Participant, ReceiptEntry

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_goal(
    goal_id: int = 1,
    kind: GoalKind = GoalKind.STEPS,
    target: int = 10_000,
    deadline: datetime = NOW - timedelta(hours=1),
    **overrides,
) -> Goal:
    fields = dict(
        id=goal_id,
        name=f"Goal {goal_id}",
        kind=kind,
        target=target,
        start_time=deadline - timedelta(days=7),
        entry_deadline=deadline - timedelta(days=6),
        deadline=deadline,
    )
    fields.update(overrides)
    return Goal(**fields)


def achieved(value: float, provider: ProviderKind = ProviderKind.FITBIT) -> Achieved:
    return Achieved(value=value, provider=provider, records_counted=1)


def unavailable(reason: str = "Fitbit returned 503") -> Unavailable:
    return Unavailable(reason=reason, provider=ProviderKind.FITBIT)


def _chain_tuple(goal: Goal) -> tuple:
    return (
        goal.id,
        goal.name,
        goal.target,
        goal.min_stake,
        goal.max_stake,
        int(goal.start_time.timestamp()),
        int(goal.entry_deadline.timestamp()),
        int(goal.deadline.timestamp()),
        goal.active,
        goal.settled,
        goal.total_staked,
        goal.participant_count,
    )


class InMemoryLedger:
    """Ledger with the contract's guards: every duplicate write reverts.

    Each call yields to the event loop first so concurrent runs interleave.
    """

    def __init__(self) -> None:
        self.goals: dict[int, Goal] = {}
        self.participants: dict[int, dict[str, Participant]] = {}
        self.receipts: dict[tuple[int, str], ReceiptEntry] = {}
        self.writes: list[tuple[str, int]] = []
        self.rejected: list[tuple[str, int]] = []
        self.unavailable_goals: set[int] = set()
        self.list_unavailable = False
        # goal id -> raw on-chain goal type, decoded on every read
        self.goal_types: dict[int, int] = {}
        self._tx = itertools.count(1)

    def add_goal(self, goal: Goal, stakes: dict[str, int]) -> Goal:
        self.goals[goal.id] = goal
        self.participants[goal.id] = {
            user: Participant(user=user, stake=stake) for user, stake in stakes.items()
        }
        goal.participant_count = len(stakes)
        goal.total_staked = sum(stakes.values())
        return goal

    def writes_of(self, kind: str) -> list[int]:
        return [goal_id for name, goal_id in self.writes if name == kind]

    async def _tick(self, goal_id: int | None = None) -> None:
        await asyncio.sleep(0)
        if goal_id is not None and goal_id in self.unavailable_goals:
            raise LedgerUnavailableError(f"RPC timeout reading goal {goal_id}")

    def _tx_hash(self) -> str:
        return f"0x{next(self._tx):064x}"

    def _reject(self, kind: str, goal_id: int, reason: str) -> None:
        self.rejected.append((kind, goal_id))
        raise LedgerWriteRejected(f"execution reverted: {reason}")

    async def list_goal_ids(self) -> list[int]:
        await self._tick()
        if self.list_unavailable:
            raise LedgerUnavailableError("goalCount failed after 3 attempts")
        return list(self.goals)

    async def get_goal(self, goal_id: int) -> Goal:
        await self._tick(goal_id)
        goal = self.goals[goal_id]
        if goal_id in self.goal_types:
            return Goal.from_chain(_chain_tuple(goal), self.goal_types[goal_id])
        return goal.model_copy()

    async def get_participants(self, goal_id: int) -> list[str]:
        await self._tick(goal_id)
        return list(self.participants[goal_id])

    async def get_participant(self, goal_id: int, user: str) -> Participant:
        await self._tick(goal_id)
        return self.participants[goal_id][user].model_copy()

    async def has_receipt(self, goal_id: int, user: str) -> bool:
        await self._tick(goal_id)
        return (goal_id, user) in self.receipts

    async def submit_verification(
        self, goal_id: int, user: str, achieved_value: int
    ) -> str:
        await self._tick(goal_id)
        goal = self.goals[goal_id]
        participant = self.participants[goal_id][user]
        if goal.settled:
            self._reject("verify", goal_id, "goal settled")
        if participant.verified:
            self._reject("verify", goal_id, "already verified")
        participant.achieved = achieved_value
        participant.verified = True
        participant.succeeded = achieved_value >= goal.target
        self.writes.append(("verify", goal_id))
        return self._tx_hash()

    async def submit_settlement(self, goal_id: int) -> str:
        await self._tick(goal_id)
        goal = self.goals[goal_id]
        if goal.settled:
            self._reject("settle", goal_id, "already settled")
        if not all(p.verified for p in self.participants[goal_id].values()):
            self._reject("settle", goal_id, "participants unverified")
        goal.settled = True
        self.writes.append(("settle", goal_id))
        return self._tx_hash()

    async def submit_receipt_batch(self, entries: Sequence[ReceiptEntry]) -> str:
        await self._tick()
        for entry in entries:
            if not self.goals[entry.goal_id].settled:
                self._reject("mint", entry.goal_id, "goal not settled")
            if (entry.goal_id, entry.participant) in self.receipts:
                self._reject("mint", entry.goal_id, "receipt exists")
        for entry in entries:
            self.receipts[(entry.goal_id, entry.participant)] = entry
        self.writes.append(("mint", entries[0].goal_id))
        return self._tx_hash()


class ScriptedAdapter:
    """Returns queued results per subject; the last result repeats."""

    def __init__(self, results: dict[str, list[VerificationResult]]):
        self.results = {user: list(queue) for user, queue in results.items()}
        self.calls: list[tuple[str, datetime, datetime, GoalKind]] = []

    async def verify(
        self,
        subject: str,
        window_start: datetime,
        window_end: datetime,
        kind: GoalKind,
    ) -> VerificationResult:
        await asyncio.sleep(0)
        self.calls.append((subject, window_start, window_end, kind))
        queue = self.results.get(subject)
        if not queue:
            return Unavailable(reason="No fitness tracker connected for this wallet")
        if len(queue) > 1:
            return queue.pop(0)
        return queue[0]
