"""Goal lifecycle phase, derived purely from ledger state and the clock."""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum

from vaada.services.ledger.models import Goal


class GoalPhase(str, Enum):
    ENTRY = "entry"
    COMPETITION = "competition"
    AWAITING_SETTLEMENT = "awaiting_settlement"
    SETTLED = "settled"
    CANCELLED = "cancelled"


def resolve_phase(goal: Goal, now: datetime) -> GoalPhase:
    """Map a goal snapshot to its phase at ``now``.

    Settled wins over everything else; an inactive (cancelled) goal is
    terminal and never processed. Otherwise the phase advances with time:
    entry until ``entry_deadline``, competition until ``deadline``, then
    awaiting settlement.
    """
    if goal.settled:
        return GoalPhase.SETTLED
    if not goal.active:
        return GoalPhase.CANCELLED
    if now >= goal.deadline:
        return GoalPhase.AWAITING_SETTLEMENT
    if now >= goal.entry_deadline:
        return GoalPhase.COMPETITION
    return GoalPhase.ENTRY


def is_eligible(goal: Goal, now: datetime) -> bool:
    return resolve_phase(goal, now) is GoalPhase.AWAITING_SETTLEMENT


def is_stuck(goal: Goal, now: datetime, stuck_after: timedelta) -> bool:
    """Awaiting settlement for longer than ``stuck_after`` past the deadline."""
    return is_eligible(goal, now) and now - goal.deadline >= stuck_after
