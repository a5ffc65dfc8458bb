"""Utilities for deciding whether a live location is fresh and how to label it.

A locksmith who shares their location publishes a live position with an
update timestamp. Once that position is older than the staleness threshold the
search falls back to the HQ (base) location, and the UI says so.
"""

from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from .models import ProviderCandidate

DEFAULT_MAX_LIVE_AGE_MINUTES = 15

# Timestamps this far ahead of now are treated as clock skew and read as age 0
FUTURE_TOLERANCE_MINUTES = 1.0

DISPLAY_TIMEZONE = ZoneInfo("Europe/London")


def _now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.now(timezone.utc)


def calculate_location_age_minutes(updated_at: Optional[datetime], now: Optional[datetime] = None) -> Optional[float]:
    """Calculate how many minutes ago a live location was published.

    Args:
        updated_at: Aware timestamp of the last live update, or None
        now: Reference time (defaults to the current UTC time)

    Returns:
        Age in minutes (never negative), or None if the timestamp is missing
        or lies more than ``FUTURE_TOLERANCE_MINUTES`` in the future
    """
    if updated_at is None:
        return None

    try:
        age = (_now(now) - updated_at).total_seconds() / 60.0
    except TypeError:
        # naive/aware mix
        return None
    if age < -FUTURE_TOLERANCE_MINUTES:
        return None
    return max(0.0, age)


def is_live_location_fresh(
    updated_at: Optional[datetime],
    max_age_minutes: float = DEFAULT_MAX_LIVE_AGE_MINUTES,
    now: Optional[datetime] = None,
) -> bool:
    age = calculate_location_age_minutes(updated_at, now)
    return age is not None and age <= max_age_minutes


def get_location_status(
    candidate: ProviderCandidate,
    now: Optional[datetime] = None,
    max_age_minutes: float = DEFAULT_MAX_LIVE_AGE_MINUTES,
) -> str:
    """Get the user-facing location label for a locksmith.

    Args:
        candidate: The provider snapshot
        now: Reference time (defaults to the current UTC time)
        max_age_minutes: Age after which a live location is considered stale

    Returns:
        "Live @ 10:30 AM" (UK local time) when showing a live position,
        "Using HQ (Live > 15m ago)" when the live position went stale,
        "Using HQ" otherwise
    """
    if candidate.is_sharing_live:
        if candidate.live_updated_at is None:
            return "Live"
        local_time = candidate.live_updated_at.astimezone(DISPLAY_TIMEZONE)
        return f"Live @ {local_time.strftime('%I:%M %p').lstrip('0')}"

    if candidate.share_location and candidate.live_updated_at is not None:
        if not is_live_location_fresh(candidate.live_updated_at, max_age_minutes, now):
            return f"Using HQ (Live > {int(max_age_minutes)}m ago)"

    return "Using HQ"


def format_time_ago(updated_at: Optional[datetime], now: Optional[datetime] = None) -> str:
    age = calculate_location_age_minutes(updated_at, now)
    if age is None:
        return "Never"

    minutes = int(age)
    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes} minute{'' if minutes == 1 else 's'} ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours} hour{'' if hours == 1 else 's'} ago"
    days = hours // 24
    return f"{days} day{'' if days == 1 else 's'} ago"
