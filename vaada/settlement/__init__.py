"""Settlement stages: phase resolution, verification, settlement, receipts."""

from .budget import RunBudget
from .commands import CommandResult, CommandStatus, MintReceipts, SettleGoal, VerifyParticipant
from .errors import BudgetExhausted, SettlementError
from .phase import GoalPhase, is_eligible, is_stuck, resolve_phase
from .receipts import build_receipt_entry, compute_payout, issue_receipts, plan_receipts
from .report import (
    GoalReport,
    MintingOutcome,
    ParticipantOutcome,
    RunReport,
    SettlementOutcome,
)
from .trigger import settle_if_ready
from .verification import verify_goal, verify_participant

__all__ = [
    "RunBudget",
    "CommandResult",
    "CommandStatus",
    "MintReceipts",
    "SettleGoal",
    "VerifyParticipant",
    "BudgetExhausted",
    "SettlementError",
    "GoalPhase",
    "is_eligible",
    "is_stuck",
    "resolve_phase",
    "build_receipt_entry",
    "compute_payout",
    "issue_receipts",
    "plan_receipts",
    "GoalReport",
    "MintingOutcome",
    "ParticipantOutcome",
    "RunReport",
    "SettlementOutcome",
    "settle_if_ready",
    "verify_goal",
    "verify_participant",
]
