"""Logfire cloud observability initialization and instrumentation."""

import logging

import logfire

from vaada import __version__
from vaada.config import Settings

logger = logging.getLogger(__name__)


def initialize_logfire(settings: Settings) -> bool:
    """
    Initialize Logfire tracing for the settlement service.

    Must be called ONCE at startup, before any client is created.

    Instruments:
    - HTTPX clients (Strava and Fitbit API calls, token refreshes)
    - aiohttp clients (ledger JSON-RPC traffic)
    - Python logging (bridges to Logfire)

    Args:
        settings: Application settings containing the Logfire token

    Returns:
        True when Logfire was configured, False when it is disabled.
    """
    if not settings.logfire_token:
        logger.warning("Logfire token not set - observability disabled")
        return False

    try:
        logfire.configure(
            token=settings.logfire_token,
            service_name="vaada-settlement",
            service_version=__version__,
            environment=f"chain-{settings.ledger.chain_id}",
        )

        logfire.instrument_httpx()
        logfire.instrument_aiohttp_client()

        root_logger = logging.getLogger()
        root_logger.addHandler(logfire.LogfireLoggingHandler())

        logger.info("✓ Logfire cloud tracking initialized")
        return True

    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")
        return False
