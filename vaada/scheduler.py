"""Job scheduler using APScheduler."""

import logging

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

from vaada.config import Settings
from vaada.pipeline import settlement_job

logger = logging.getLogger(__name__)


def build_scheduler(settings: Settings) -> BlockingScheduler:
    """Register the settlement job; a run never overlaps the previous one."""
    scheduler = BlockingScheduler(timezone="UTC")

    interval = settings.scheduler.settlement_interval_minutes
    scheduler.add_job(
        settlement_job,
        IntervalTrigger(minutes=interval),
        id="settlement-run",
        name="Settlement: Verify, Settle, Mint",
        max_instances=1,
        coalesce=True,
    )
    logger.info(f"Registered job: Settlement Run (every {interval} min)")
    return scheduler


def start_scheduler(settings: Settings) -> None:
    """Start the blocking scheduler until interrupted."""
    scheduler = build_scheduler(settings)

    try:
        logger.info("✓ Scheduler starting...")
        logger.info(f"✓ {len(scheduler.get_jobs())} jobs registered")
        logger.info("Press Ctrl+C to stop\n")

        scheduler.start()

    except (KeyboardInterrupt, SystemExit):
        logger.info("\nReceived interrupt signal")
        scheduler.shutdown()
        logger.info("✓ Scheduler stopped cleanly")
