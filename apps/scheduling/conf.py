"""Access to the SCHEDULING settings dict with defaults."""

from __future__ import annotations

from datetime import time, timedelta
from zoneinfo import ZoneInfo

from django.conf import settings  # type: ignore

DEFAULTS = {
    "TIME_ZONE": "America/New_York",
    "HOLD_MINUTES": 15,
    "GRANULARITY_MINUTES": 15,
    "DEFAULT_LEAD_TIME_HOURS": 18,
    "DELIVERY_WINDOW": ("08:00", "11:00"),
    "SAME_DAY_PICKUP_WINDOW": ("18:00", "20:00"),
    "NEXT_DAY_PICKUP_WINDOW": ("08:00", "10:00"),
    "RESCHEDULE_HORIZON_DAYS": 60,
    "RESCHEDULE_MAX_OPTIONS": 30,
}


def scheduling_setting(name: str):
    return getattr(settings, "SCHEDULING", {}).get(name, DEFAULTS[name])


def business_tz() -> ZoneInfo:
    return ZoneInfo(scheduling_setting("TIME_ZONE"))


def hold_duration() -> timedelta:
    return timedelta(minutes=scheduling_setting("HOLD_MINUTES"))


def granularity() -> timedelta:
    return timedelta(minutes=scheduling_setting("GRANULARITY_MINUTES"))


def window_setting(name: str) -> tuple[time, time]:
    start, end = scheduling_setting(name)
    return time.fromisoformat(start), time.fromisoformat(end)
