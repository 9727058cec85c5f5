"""Receipt issuer: one proof-of-outcome per participant of a settled goal."""

from __future__ import annotations

import logging

from vaada.services.ledger.exceptions import LedgerWriteRejected
from vaada.services.ledger.models import Goal, Participant, ReceiptEntry
from vaada.services.ledger.protocol import Ledger

from .commands import CommandStatus, MintReceipts
from .report import MintingOutcome

logger = logging.getLogger(__name__)


def compute_payout(participant: Participant) -> int:
    """Winners get their stake back; losers get nothing."""
    return participant.stake if participant.succeeded else 0


def build_receipt_entry(goal: Goal, participant: Participant) -> ReceiptEntry:
    return ReceiptEntry(
        goal_id=goal.id,
        participant=participant.user,
        kind=goal.kind,
        target=goal.target,
        achieved=participant.achieved,
        stake=participant.stake,
        payout=compute_payout(participant),
        succeeded=participant.succeeded,
        start_time=goal.start_time,
        end_time=goal.deadline,
        goal_name=goal.name,
    )


async def plan_receipts(ledger: Ledger, goal: Goal) -> tuple[list[ReceiptEntry], int]:
    """Entries for participants without a receipt, plus the count already minted."""
    entries: list[ReceiptEntry] = []
    skipped = 0
    for user in await ledger.get_participants(goal.id):
        if await ledger.has_receipt(goal.id, user):
            skipped += 1
            continue
        participant = await ledger.get_participant(goal.id, user)
        entries.append(build_receipt_entry(goal, participant))
    return entries, skipped


async def issue_receipts(
    ledger: Ledger,
    goal_id: int,
    dry_run: bool = False,
) -> MintingOutcome:
    """Mint every missing receipt for a settled goal in a single batch."""
    goal = await ledger.get_goal(goal_id)
    if not goal.settled:
        return MintingOutcome(status="not_settled")

    entries, skipped = await plan_receipts(ledger, goal)
    if not entries:
        return MintingOutcome(status="nothing_to_mint", skipped=skipped)

    if dry_run:
        logger.info(f"Goal {goal_id}: would mint {len(entries)} receipts (dry run)")
        return MintingOutcome(status="dry_run", skipped=skipped, entries=entries)

    command = MintReceipts(goal_id=goal_id, entries=tuple(entries))
    try:
        result = await command.execute(ledger)
    except LedgerWriteRejected as e:
        logger.error(f"Goal {goal_id}: receipt batch rejected: {e}")
        return MintingOutcome(
            status="error", skipped=skipped, tx_hash=e.tx_hash, reason=str(e)
        )

    if result.status is not CommandStatus.EXECUTED:
        return MintingOutcome(
            status="nothing_to_mint", skipped=skipped + len(entries), reason=result.detail
        )

    minted = len(result.written)
    logger.info(f"Goal {goal_id}: minted {minted} receipts tx={result.tx_hash}")
    return MintingOutcome(
        status="minted",
        minted=minted,
        skipped=skipped + len(entries) - minted,
        entries=result.written,
        tx_hash=result.tx_hash,
    )
