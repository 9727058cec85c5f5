"""Run report models: what one pipeline invocation observed and did."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

from vaada.services.ledger.models import GoalKind, ReceiptEntry

from .phase import GoalPhase


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


ParticipantStatus = Literal["verified", "already_verified", "error"]
SettlementStatus = Literal["settled", "already_settled", "not_eligible", "error"]
MintingStatus = Literal["minted", "nothing_to_mint", "not_settled", "dry_run", "error"]


class ParticipantOutcome(BaseModel):
    """Result of verifying one participant in this run."""

    user: str
    status: ParticipantStatus
    achieved: int | None = None  # ledger units as submitted
    provider: str | None = None
    tx_hash: str | None = None
    reason: str | None = None


class SettlementOutcome(BaseModel):
    status: SettlementStatus
    tx_hash: str | None = None
    unverified: list[str] = Field(default_factory=list)
    reason: str | None = None


class MintingOutcome(BaseModel):
    status: MintingStatus
    minted: int = 0
    skipped: int = 0  # participants that already hold a receipt
    entries: list[ReceiptEntry] = Field(default_factory=list)
    tx_hash: str | None = None
    reason: str | None = None


class GoalReport(BaseModel):
    """Everything the pipeline did for a single goal."""

    goal_id: int
    name: str = ""
    kind: GoalKind = GoalKind.DISTANCE
    phase: GoalPhase | None = None  # None when the goal could not be read
    participants: list[ParticipantOutcome] = Field(default_factory=list)
    settlement: SettlementOutcome | None = None
    minting: MintingOutcome | None = None
    error: str | None = None

    def count(self, status: ParticipantStatus) -> int:
        return sum(1 for p in self.participants if p.status == status)

    @property
    def settled(self) -> bool:
        return self.settlement is not None and self.settlement.status in (
            "settled",
            "already_settled",
        )


class RunReport(BaseModel):
    """Per-invocation report. Printed by the CLI and appended to the JSONL log."""

    run_id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    started_at: datetime = Field(default_factory=_utcnow)
    finished_at: datetime | None = None
    goals_seen: int = 0
    goals_skipped: int = 0  # not yet eligible, or cancelled
    goals_complete: int = 0  # settled with every receipt already minted
    goals: list[GoalReport] = Field(default_factory=list)
    stuck_goals: list[int] = Field(default_factory=list)
    fatal_error: str | None = None
    budget_exhausted: bool = False

    def finish(self) -> RunReport:
        self.finished_at = _utcnow()
        return self

    @property
    def ok(self) -> bool:
        return self.fatal_error is None and all(g.error is None for g in self.goals)

    def summary(self) -> str:
        verified = sum(g.count("verified") for g in self.goals)
        errors = sum(g.count("error") for g in self.goals)
        settled = sum(
            1 for g in self.goals if g.settlement and g.settlement.status == "settled"
        )
        minted = sum(g.minting.minted for g in self.goals if g.minting)
        parts = [
            f"{len(self.goals)} goals processed",
            f"{verified} verified",
            f"{errors} verification errors",
            f"{settled} settled",
            f"{minted} receipts minted",
        ]
        if self.stuck_goals:
            parts.append(f"{len(self.stuck_goals)} stuck")
        if self.budget_exhausted:
            parts.append("budget exhausted")
        if self.fatal_error:
            parts.append(f"fatal: {self.fatal_error}")
        return ", ".join(parts)
