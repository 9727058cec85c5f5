from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_FLOOR, Decimal
from enum import IntEnum
from typing import Any, Sequence

from pydantic import BaseModel, field_validator

from .exceptions import LedgerDataError


def _to_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def _to_timestamp(value: datetime) -> int:
    return int(value.timestamp())


class GoalKind(IntEnum):
    """On-chain goal type encoding (``goalTypes(goalId)``)."""

    DISTANCE = 0
    STEPS = 1

    @property
    def unit(self) -> str:
        return "steps" if self is GoalKind.STEPS else "miles"


class Goal(BaseModel):
    id: int
    name: str = ""
    kind: GoalKind = GoalKind.DISTANCE
    target: int = 0
    min_stake: int = 0
    max_stake: int = 0
    start_time: datetime
    entry_deadline: datetime
    deadline: datetime
    active: bool = True
    settled: bool = False
    total_staked: int = 0
    participant_count: int = 0

    @field_validator("start_time", "entry_deadline", "deadline", mode="before")
    @classmethod
    def parse_time(cls, v: Any) -> datetime:
        return _to_datetime(v)

    @classmethod
    def from_chain(cls, data: Sequence[Any], goal_type: int) -> Goal:
        (
            goal_id,
            name,
            target,
            min_stake,
            max_stake,
            start_time,
            entry_deadline,
            deadline,
            active,
            settled,
            total_staked,
            participant_count,
        ) = data
        try:
            kind = GoalKind(goal_type)
        except ValueError:
            raise LedgerDataError(f"Goal {goal_id} has unknown goal type {goal_type}")
        return cls(
            id=goal_id,
            name=name,
            kind=kind,
            target=target,
            min_stake=min_stake,
            max_stake=max_stake,
            start_time=start_time,
            entry_deadline=entry_deadline,
            deadline=deadline,
            active=active,
            settled=settled,
            total_staked=total_staked,
            participant_count=participant_count,
        )


class Participant(BaseModel):
    user: str
    stake: int = 0
    achieved: int = 0
    verified: bool = False
    succeeded: bool = False
    claimed: bool = False

    @classmethod
    def from_chain(cls, data: Sequence[Any]) -> Participant:
        user, stake, achieved, verified, succeeded, claimed = data
        return cls(
            user=user,
            stake=stake,
            achieved=achieved,
            verified=verified,
            succeeded=succeeded,
            claimed=claimed,
        )


class ReceiptEntry(BaseModel):
    """One ``batchMintReceipts`` input: a proof-of-outcome for (goal, participant)."""

    goal_id: int
    participant: str
    kind: GoalKind
    target: int
    achieved: int
    stake: int
    payout: int
    succeeded: bool
    start_time: datetime
    end_time: datetime
    goal_name: str = ""

    def to_chain(self) -> tuple[Any, ...]:
        return (
            self.goal_id,
            self.participant,
            int(self.kind),
            self.target,
            self.achieved,
            self.stake,
            self.payout,
            self.succeeded,
            _to_timestamp(self.start_time),
            _to_timestamp(self.end_time),
            self.goal_name,
        )


def to_ledger_units(value: float, decimals: int) -> int:
    """Scale a native-unit value to the contract's fixed-point integer, rounding down."""
    if value < 0:
        raise ValueError(f"Achieved value cannot be negative: {value}")
    scaled = Decimal(str(value)) * (Decimal(10) ** decimals)
    return int(scaled.to_integral_value(rounding=ROUND_FLOOR))
