"""Verification orchestrator: one pass over a goal's unverified participants."""

from __future__ import annotations

import logging

from vaada.services.fitness.adapter import VerificationAdapter
from vaada.services.fitness.models import Unavailable
from vaada.services.ledger.exceptions import LedgerWriteRejected
from vaada.services.ledger.models import Goal, to_ledger_units
from vaada.services.ledger.protocol import Ledger

from .budget import RunBudget
from .commands import CommandStatus, VerifyParticipant
from .report import ParticipantOutcome

logger = logging.getLogger(__name__)


async def verify_participant(
    ledger: Ledger,
    adapter: VerificationAdapter,
    goal: Goal,
    user: str,
    decimals: int,
) -> ParticipantOutcome:
    participant = await ledger.get_participant(goal.id, user)
    if participant.verified:
        return ParticipantOutcome(
            user=user, status="already_verified", achieved=participant.achieved
        )

    result = await adapter.verify(user, goal.start_time, goal.deadline, goal.kind)
    if isinstance(result, Unavailable):
        return ParticipantOutcome(
            user=user,
            status="error",
            provider=result.provider.value if result.provider else None,
            reason=result.reason,
        )

    try:
        achieved = to_ledger_units(result.value, decimals)
    except ValueError as e:
        return ParticipantOutcome(
            user=user, status="error", provider=result.provider.value, reason=str(e)
        )

    command = VerifyParticipant(goal_id=goal.id, user=user, achieved_value=achieved)
    try:
        outcome = await command.execute(ledger)
    except LedgerWriteRejected as e:
        logger.warning(f"Goal {goal.id}: verification of {user} rejected: {e}")
        return ParticipantOutcome(
            user=user,
            status="error",
            achieved=achieved,
            provider=result.provider.value,
            tx_hash=e.tx_hash,
            reason=f"Verification rejected: {e}",
        )

    if outcome.status is CommandStatus.ALREADY_DONE:
        return ParticipantOutcome(
            user=user,
            status="already_verified",
            provider=result.provider.value,
            reason=outcome.detail,
        )

    logger.info(
        f"Goal {goal.id}: verified {user} achieved={achieved} "
        f"target={goal.target} tx={outcome.tx_hash}"
    )
    return ParticipantOutcome(
        user=user,
        status="verified",
        achieved=achieved,
        provider=result.provider.value,
        tx_hash=outcome.tx_hash,
    )


async def verify_goal(
    ledger: Ledger,
    adapter: VerificationAdapter,
    goal: Goal,
    decimals: int,
    outcomes: list[ParticipantOutcome],
    budget: RunBudget | None = None,
) -> list[ParticipantOutcome]:
    """Verify every participant once, appending to ``outcomes`` as it goes.

    A participant whose provider is unavailable is recorded as an error and
    the pass moves on; it is retried on the next invocation. Ledger outages
    propagate and abort the goal. Outcomes recorded before an exhausted
    budget or an outage are kept in ``outcomes``.
    """
    users = await ledger.get_participants(goal.id)
    logger.info(f"Goal {goal.id}: verifying {len(users)} participants")

    for user in users:
        if budget is not None:
            budget.check()
        outcome = await verify_participant(ledger, adapter, goal, user, decimals)
        if outcome.status == "error":
            logger.warning(f"Goal {goal.id}: {user} not verified: {outcome.reason}")
        outcomes.append(outcome)

    return outcomes
