"""Fitbit: tracker steps and auto-recorded run/walk distance."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from vaada.services.ledger.models import GoalKind

from .client import FitnessHttpClient
from .exceptions import ProviderAuthError, ProviderError
from .models import Measurement, TokenGrant

logger = logging.getLogger(__name__)

KM_PER_MILE = 1.60934
RUN_TYPE_ID = 90009
WALK_TYPE_ID = 90013
# "manual" is the only logType a user can enter by hand
DEVICE_LOG_TYPES = {"auto_detected", "tracker", "mobile_run"}


def _is_run_or_walk(activity: dict[str, Any]) -> bool:
    name = (activity.get("activityName") or "").lower()
    if any(word in name for word in ("run", "walk", "jog")):
        return True
    return activity.get("activityTypeId") in (RUN_TYPE_ID, WALK_TYPE_ID)


def _parse_start(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def sum_fitbit_miles(
    activities: list[dict[str, Any]],
    window_start: datetime,
    window_end: datetime,
) -> Measurement:
    """Total miles over device-logged runs and walks starting inside the window."""
    total_km = 0.0
    counted = 0
    skipped = 0

    for activity in activities:
        if activity.get("logType") not in DEVICE_LOG_TYPES:
            skipped += 1
            continue
        if not _is_run_or_walk(activity):
            skipped += 1
            continue
        started = _parse_start(activity.get("startTime"))
        if started is None or started.tzinfo is None:
            skipped += 1
            continue
        if not (window_start <= started < window_end):
            skipped += 1
            continue

        distance = float(activity.get("distance") or 0)
        if activity.get("distanceUnit") == "Mile":
            distance *= KM_PER_MILE
        total_km += distance
        counted += 1

    return Measurement(
        value=total_km / KM_PER_MILE,
        records_counted=counted,
        records_skipped=skipped,
    )


def sum_fitbit_steps(series: list[dict[str, Any]]) -> Measurement:
    """Total steps from the tracker-only daily series."""
    total = 0
    for point in series:
        total += int(float(point.get("value") or 0))
    return Measurement(value=float(total), records_counted=len(series))


async def refresh_fitbit_token(
    http: FitnessHttpClient,
    refresh_token: str,
    client_id: str,
    client_secret: str,
) -> TokenGrant:
    if not client_id or not client_secret:
        raise ProviderAuthError("Fitbit client credentials not configured")

    data = await http.request(
        "POST",
        http.config.fitbit_token_url,
        data={"refresh_token": refresh_token, "grant_type": "refresh_token"},
        auth=(client_id, client_secret),
    )
    try:
        return TokenGrant(
            access_token=data["access_token"],
            refresh_token=data["refresh_token"],
        )
    except (KeyError, TypeError) as e:
        raise ProviderAuthError(f"Malformed Fitbit token response: {e}")


async def fetch_fitbit_activities(
    http: FitnessHttpClient,
    access_token: str,
    window_start: datetime,
    window_end: datetime,
) -> list[dict[str, Any]]:
    url = f"{http.config.fitbit_base_url}/1/user/-/activities/list.json"
    limit = http.config.fitbit_page_size
    all_items: list[dict[str, Any]] = []
    offset = 0

    while True:
        data = await http.get_json(
            url,
            access_token,
            params={
                "afterDate": window_start.strftime("%Y-%m-%d"),
                "sort": "asc",
                "limit": limit,
                "offset": offset,
            },
        )
        items = data.get("activities", []) if isinstance(data, dict) else None
        if items is None:
            raise ProviderError("Unexpected Fitbit activities payload")

        all_items.extend(items)
        if len(items) < limit:
            break

        # Ascending order: stop once the page runs past the window
        last_start = _parse_start(items[-1].get("startTime"))
        if last_start is not None and last_start.tzinfo and last_start >= window_end:
            break
        offset += limit

    return all_items


def fitbit_step_dates(window_start: datetime, window_end: datetime) -> tuple[str, str]:
    """Inclusive calendar dates for the daily steps series covering a window.

    The series has one total per day in the user's Fitbit timezone, so whole
    days are counted: steps taken on the first day before ``window_start`` are
    included. Dates are taken from the window in UTC. The window end itself
    belongs to the next period.
    """
    start = window_start.astimezone(timezone.utc)
    end = window_end.astimezone(timezone.utc) - timedelta(seconds=1)
    return start.strftime("%Y-%m-%d"), end.strftime("%Y-%m-%d")


async def fetch_fitbit_steps(
    http: FitnessHttpClient,
    access_token: str,
    window_start: datetime,
    window_end: datetime,
) -> list[dict[str, Any]]:
    start_date, end_date = fitbit_step_dates(window_start, window_end)
    url = (
        f"{http.config.fitbit_base_url}/1/user/-/activities/tracker/steps/date/"
        f"{start_date}/{end_date}.json"
    )
    data = await http.get_json(url, access_token)
    if not isinstance(data, dict) or "activities-tracker-steps" not in data:
        raise ProviderError("Unexpected Fitbit steps payload")
    return data["activities-tracker-steps"]


async def query_fitbit(
    http: FitnessHttpClient,
    access_token: str,
    window_start: datetime,
    window_end: datetime,
    kind: GoalKind,
) -> Measurement:
    if kind is GoalKind.STEPS:
        series = await fetch_fitbit_steps(http, access_token, window_start, window_end)
        measurement = sum_fitbit_steps(series)
    else:
        activities = await fetch_fitbit_activities(
            http, access_token, window_start, window_end
        )
        measurement = sum_fitbit_miles(activities, window_start, window_end)

    logger.debug(
        f"Fitbit: {measurement.records_counted} records counted, "
        f"{measurement.records_skipped} skipped, {measurement.value:.2f} {kind.unit}"
    )
    return measurement
