"""Settlement trigger: settle a goal once every participant is verified."""

from __future__ import annotations

import logging

from vaada.services.ledger.exceptions import LedgerWriteRejected
from vaada.services.ledger.protocol import Ledger

from .commands import CommandStatus, SettleGoal
from .report import SettlementOutcome

logger = logging.getLogger(__name__)


async def settle_if_ready(ledger: Ledger, goal_id: int) -> SettlementOutcome:
    """Decide from fresh ledger reads, never from this run's verification tally."""
    command = SettleGoal(goal_id=goal_id)
    try:
        result = await command.execute(ledger)
    except LedgerWriteRejected as e:
        logger.error(f"Goal {goal_id}: settlement rejected: {e}")
        return SettlementOutcome(status="error", tx_hash=e.tx_hash, reason=str(e))

    if result.status is CommandStatus.EXECUTED:
        logger.info(f"Goal {goal_id}: settled tx={result.tx_hash}")
        return SettlementOutcome(status="settled", tx_hash=result.tx_hash)

    if result.status is CommandStatus.ALREADY_DONE:
        return SettlementOutcome(status="already_settled", reason=result.detail)

    # Left awaiting settlement; the next invocation tries again
    logger.info(f"Goal {goal_id}: not settling, {result.detail}")
    return SettlementOutcome(
        status="not_eligible", unverified=result.pending, reason=result.detail
    )