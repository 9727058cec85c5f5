"""Strava: running distance from device-recorded activities."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from vaada.services.ledger.models import GoalKind

from .client import FitnessHttpClient
from .exceptions import ProviderAuthError, ProviderError
from .models import Measurement, TokenGrant

logger = logging.getLogger(__name__)

METERS_PER_MILE = 1609.34
COUNTED_TYPES = {"Run"}


def sum_strava_miles(activities: list[dict[str, Any]]) -> Measurement:
    """Total miles over runs recorded by a device; manual entries are skipped."""
    total_meters = 0.0
    counted = 0
    skipped = 0

    for activity in activities:
        # Strava marks hand-entered activities with manual=true
        if activity.get("manual") is not False:
            skipped += 1
            continue
        if activity.get("type") not in COUNTED_TYPES:
            skipped += 1
            continue
        total_meters += float(activity.get("distance") or 0)
        counted += 1

    return Measurement(
        value=total_meters / METERS_PER_MILE,
        records_counted=counted,
        records_skipped=skipped,
    )


async def refresh_strava_token(
    http: FitnessHttpClient,
    refresh_token: str,
    client_id: str,
    client_secret: str,
) -> TokenGrant:
    if not client_id or not client_secret:
        raise ProviderAuthError("Strava client credentials not configured")

    data = await http.request(
        "POST",
        http.config.strava_token_url,
        json_data={
            "client_id": client_id,
            "client_secret": client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        },
    )
    try:
        return TokenGrant(
            access_token=data["access_token"],
            refresh_token=data["refresh_token"],
            expires_at=data.get("expires_at"),
        )
    except (KeyError, TypeError) as e:
        raise ProviderAuthError(f"Malformed Strava token response: {e}")


async def fetch_strava_activities(
    http: FitnessHttpClient,
    access_token: str,
    window_start: datetime,
    window_end: datetime,
) -> list[dict[str, Any]]:
    url = f"{http.config.strava_base_url}/athlete/activities"
    per_page = http.config.strava_page_size
    all_items: list[dict[str, Any]] = []
    page = 1

    while True:
        items = await http.get_json(
            url,
            access_token,
            params={
                "after": int(window_start.timestamp()),
                "before": int(window_end.timestamp()),
                "per_page": per_page,
                "page": page,
            },
        )
        if not isinstance(items, list):
            raise ProviderError("Unexpected Strava activities payload")

        all_items.extend(items)
        if len(items) < per_page:
            break
        page += 1

    return all_items


async def query_strava(
    http: FitnessHttpClient,
    access_token: str,
    window_start: datetime,
    window_end: datetime,
    kind: GoalKind,
) -> Measurement:
    if kind is not GoalKind.DISTANCE:
        raise ProviderError(f"Strava cannot measure {kind.unit}")

    activities = await fetch_strava_activities(
        http, access_token, window_start, window_end
    )
    measurement = sum_strava_miles(activities)
    logger.debug(
        f"Strava: {measurement.records_counted} runs counted, "
        f"{measurement.records_skipped} skipped, {measurement.value:.2f} mi"
    )
    return measurement
