"""
eiken_sim/utils/timezone.py — Fixed-timezone date handling
The daily quota resets at midnight in the quota timezone (JST by default),
never at server-local midnight.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

import pytz

from eiken_sim.config import get_settings

settings = get_settings()

QUOTA_TZ = pytz.timezone(settings.quota_timezone)
UTC = pytz.utc


def quota_now() -> datetime:
    """Return current datetime in the quota timezone (timezone-aware)."""
    return datetime.now(QUOTA_TZ)


def to_quota_tz(dt: datetime) -> datetime:
    """Convert a datetime to the quota timezone. Naive values are taken as UTC."""
    if dt.tzinfo is None:
        dt = UTC.localize(dt)
    return dt.astimezone(QUOTA_TZ)


def today_quota_str(now: Optional[datetime] = None) -> str:
    """Return today's date string in the quota timezone as YYYY-MM-DD."""
    if now is None:
        now = quota_now()
    return to_quota_tz(now).strftime("%Y-%m-%d")
