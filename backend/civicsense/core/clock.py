"""Time helpers shared by the scoring, rate-limit and SLA code."""

from __future__ import annotations

import datetime as dt
from functools import lru_cache
from zoneinfo import ZoneInfo

from civicsense.core.config import settings


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def as_utc(value: dt.datetime | None) -> dt.datetime | None:
    """Normalize to aware UTC; naive values (SQLite round-trips) are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


def iso(value: dt.datetime | None) -> str | None:
    normalized = as_utc(value)
    if normalized is None:
        return None
    return normalized.isoformat()


@lru_cache(maxsize=8)
def _zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def municipal_zone() -> ZoneInfo:
    return _zone(settings.MUNICIPAL_TIMEZONE)


def to_local(value: dt.datetime, zone: dt.tzinfo | None = None) -> dt.datetime:
    return as_utc(value).astimezone(zone or municipal_zone())


def hour_start(value: dt.datetime, zone: dt.tzinfo | None = None) -> dt.datetime:
    local = to_local(value, zone)
    return as_utc(local.replace(minute=0, second=0, microsecond=0))


def local_date(value: dt.datetime, zone: dt.tzinfo | None = None) -> dt.date:
    return to_local(value, zone).date()


def next_day_start(value: dt.datetime, zone: dt.tzinfo | None = None) -> dt.datetime:
    tz = zone or municipal_zone()
    tomorrow = local_date(value, tz) + dt.timedelta(days=1)
    return as_utc(dt.datetime.combine(tomorrow, dt.time.min, tzinfo=tz))


def hours_between(start: dt.datetime, end: dt.datetime) -> float:
    return (as_utc(end) - as_utc(start)).total_seconds() / 3600.0
