"""Settlement pipeline: (Phase -> Verify -> Settle -> Mint) for every goal."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable

from vaada.config import Settings, get_settings
from vaada.services.fitness import FitnessHttpClient, ProviderKind, VerificationAdapter
from vaada.services.ledger import Goal, Ledger, LedgerClient, LedgerError
from vaada.services.telegram import (
    TelegramAlertClient,
    TelegramAlertError,
    TelegramConfig,
    format_failure_alert,
    format_stuck_alert,
    format_summary,
)
from vaada.settlement import (
    BudgetExhausted,
    GoalPhase,
    GoalReport,
    RunBudget,
    RunReport,
    is_stuck,
    issue_receipts,
    resolve_phase,
    settle_if_ready,
    verify_goal,
)
from vaada.storage import get_credential_store, log_run_report

logger = logging.getLogger("vaada.pipeline")


async def _goal_ids(ledger: Ledger, goal_ids: Iterable[int] | None) -> list[int]:
    if goal_ids is None:
        return await ledger.list_goal_ids()
    return list(goal_ids)


async def _fetch_goal(ledger: Ledger, goal_id: int, report: RunReport) -> Goal | None:
    """Read one goal, recording a failure on the report instead of raising."""
    try:
        return await ledger.get_goal(goal_id)
    except LedgerError as e:
        logger.error(f"Goal {goal_id} could not be read: {e}")
        report.goals.append(GoalReport(goal_id=goal_id, error=str(e)))
        return None


async def process_goal(
    ledger: Ledger,
    adapter: VerificationAdapter,
    goal: Goal,
    phase: GoalPhase,
    settings: Settings,
    report: GoalReport,
    budget: RunBudget | None = None,
) -> GoalReport:
    """Run the stages a goal's phase calls for, recording into ``report``.

    Settled goals only get missing receipts minted. Goals awaiting settlement
    are verified, settled once every participant is verified, then minted.
    """
    if phase is GoalPhase.AWAITING_SETTLEMENT:
        decimals = settings.ledger.decimals_for(goal.kind)
        await verify_goal(ledger, adapter, goal, decimals, report.participants, budget)

        if budget is not None:
            budget.check()
        report.settlement = await settle_if_ready(ledger, goal.id)
        if not report.settled:
            return report

    if budget is not None:
        budget.check()
    report.minting = await issue_receipts(ledger, goal.id)
    return report


async def run_pipeline(
    ledger: Ledger,
    adapter: VerificationAdapter,
    settings: Settings,
    now: datetime | None = None,
    goal_ids: Iterable[int] | None = None,
    clock: Callable[[], float] = time.monotonic,
    budget: RunBudget | None = None,
) -> RunReport:
    """Run one settlement invocation and return its report.

    Per-goal failures, including a goal that cannot be read or decoded, are
    recorded and the run moves on. Only a failure to enumerate goal ids aborts
    the whole run.
    """
    now = now or datetime.now(timezone.utc)
    report = RunReport()
    budget = budget or RunBudget(settings.pipeline.time_budget_seconds, clock=clock)
    stuck_after = timedelta(hours=settings.pipeline.stuck_after_hours)

    try:
        ids = await _goal_ids(ledger, goal_ids)
    except LedgerError as e:
        logger.error(f"Could not enumerate goals, aborting run: {e}")
        report.fatal_error = f"Ledger unavailable: {e}"
        return report.finish()

    report.goals_seen = len(ids)
    logger.info(f"Pipeline starting: {len(ids)} goals on ledger")

    for goal_id in ids:
        if budget.exhausted():
            logger.warning(
                f"Time budget exhausted after {budget.elapsed:.1f}s, stopping run"
            )
            report.budget_exhausted = True
            break

        goal = await _fetch_goal(ledger, goal_id, report)
        if goal is None:
            continue

        phase = resolve_phase(goal, now)
        if phase not in (GoalPhase.AWAITING_SETTLEMENT, GoalPhase.SETTLED):
            logger.debug(f"Goal {goal.id}: {phase.value}, skipping")
            report.goals_skipped += 1
            continue

        goal_report = GoalReport(
            goal_id=goal.id, name=goal.name, kind=goal.kind, phase=phase
        )
        try:
            await process_goal(
                ledger, adapter, goal, phase, settings, goal_report, budget
            )
        except BudgetExhausted as e:
            logger.warning(f"Goal {goal.id}: {e}, stopping run")
            report.budget_exhausted = True
        except LedgerError as e:
            logger.error(f"Goal {goal.id} aborted: {e}")
            goal_report.error = str(e)
        except Exception as e:
            logger.error(f"Goal {goal.id} failed: {e}", exc_info=True)
            goal_report.error = f"{type(e).__name__}: {e}"

        if phase is GoalPhase.SETTLED and goal_report.error is None:
            if goal_report.minting and goal_report.minting.status == "nothing_to_mint":
                report.goals_complete += 1
                continue

        if is_stuck(goal, now, stuck_after) and not goal_report.settled:
            logger.warning(
                f"Goal {goal.id} still unsettled {now - goal.deadline} after deadline"
            )
            report.stuck_goals.append(goal.id)

        report.goals.append(goal_report)
        if report.budget_exhausted:
            break

    report.finish()
    logger.info(f"Pipeline complete: {report.summary()}")
    return report


async def backfill_receipts(
    ledger: Ledger,
    dry_run: bool = False,
    goal_ids: Iterable[int] | None = None,
) -> RunReport:
    """Mint missing receipts across settled goals without verifying anything."""
    report = RunReport()
    try:
        ids = await _goal_ids(ledger, goal_ids)
    except LedgerError as e:
        report.fatal_error = f"Ledger unavailable: {e}"
        return report.finish()

    report.goals_seen = len(ids)
    for goal_id in ids:
        goal = await _fetch_goal(ledger, goal_id, report)
        if goal is None:
            continue
        if not goal.settled:
            report.goals_skipped += 1
            continue

        goal_report = GoalReport(
            goal_id=goal.id, name=goal.name, kind=goal.kind, phase=GoalPhase.SETTLED
        )
        try:
            goal_report.minting = await issue_receipts(ledger, goal.id, dry_run=dry_run)
        except LedgerError as e:
            logger.error(f"Goal {goal.id}: receipt backfill aborted: {e}")
            goal_report.error = str(e)

        if goal_report.minting and goal_report.minting.status == "nothing_to_mint":
            report.goals_complete += 1
            continue
        report.goals.append(goal_report)

    return report.finish()


def _client_secrets(settings: Settings) -> dict[ProviderKind, tuple[str, str]]:
    return {
        ProviderKind.STRAVA: (settings.strava_client_id, settings.strava_client_secret),
        ProviderKind.FITBIT: (settings.fitbit_client_id, settings.fitbit_client_secret),
    }


async def send_run_alerts(report: RunReport, settings: Settings) -> None:
    """Post stuck-goal and failure alerts to Telegram when configured."""
    if not settings.telegram_enabled:
        return

    messages = []
    if report.fatal_error and settings.telegram.send_run_failures:
        messages.append(format_failure_alert(report))
    if report.stuck_goals and settings.telegram.send_stuck_alerts:
        messages.append(format_stuck_alert(report))
    if report.goals and settings.telegram.send_settlement_summaries:
        messages.append(format_summary(report))
    if not messages:
        return

    config = TelegramConfig(
        bot_token=settings.telegram_bot_token, chat_id=settings.telegram_chat_id
    )
    try:
        async with TelegramAlertClient(config) as client:
            for message in messages:
                result = await client.send(message)
                if not result.delivered:
                    logger.warning(str(result))
    except TelegramAlertError as e:
        logger.warning(f"Telegram alerts unavailable: {e}")


async def run_settlement(
    settings: Settings | None = None,
    goal_ids: Iterable[int] | None = None,
) -> RunReport:
    """Run the pipeline against the live ledger and fitness providers."""
    settings = settings or get_settings()
    store = get_credential_store(settings.data_dir)
    budget = RunBudget(settings.pipeline.time_budget_seconds)

    async with LedgerClient(
        config=settings.ledger,
        private_key=settings.verifier_private_key,
        time_left=budget.remaining,
    ) as ledger, FitnessHttpClient(config=settings.providers) as http:
        adapter = VerificationAdapter(http, store, _client_secrets(settings))
        report = await run_pipeline(
            ledger, adapter, settings, goal_ids=goal_ids, budget=budget
        )

    if settings.pipeline.log_reports:
        log_run_report(report, settings.data_dir)
    await send_run_alerts(report, settings)
    return report


async def run_receipt_backfill(
    settings: Settings | None = None,
    dry_run: bool = False,
) -> RunReport:
    settings = settings or get_settings()
    async with LedgerClient(
        config=settings.ledger,
        private_key="" if dry_run else settings.verifier_private_key,
    ) as ledger:
        report = await backfill_receipts(ledger, dry_run=dry_run)

    if settings.pipeline.log_reports and not dry_run:
        log_run_report(report, settings.data_dir)
    return report


def settlement_job() -> None:
    """Scheduler job wrapper for one settlement run."""
    try:
        report = asyncio.run(run_settlement())
        logger.info(f"Settlement: {report.summary()}")
    except Exception as exc:
        logger.error("Settlement run failed: %s", exc, exc_info=True)
