"""Geospatial + temporal near-duplicate detection for new reports."""

from __future__ import annotations

import datetime as dt
import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from civicsense.core.clock import as_utc, hours_between, utcnow
from civicsense.core.config import settings
from civicsense.models.enums import CLOSED_STATUSES, IssueType
from civicsense.models.report import Report

logger = logging.getLogger(__name__)

EARTH_RADIUS_METERS = 6_371_000.0


@dataclass(frozen=True)
class DuplicateMatch:
    existing_report_id: UUID
    title: str
    distance_meters: int
    hours_ago: int


def haversine_distance_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters between two points in decimal degrees."""
    lat1, lon1, lat2, lon2 = map(math.radians, [lat1, lon1, lat2, lon2])

    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    c = 2 * math.asin(math.sqrt(min(1.0, a)))
    return c * EARTH_RADIUS_METERS


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _issue_value(issue_type: Any) -> str:
    value = issue_type.value if hasattr(issue_type, "value") else issue_type
    return str(value or "").strip().lower()


def closest_candidate(
    candidates: Iterable[Any],
    *,
    latitude: float,
    longitude: float,
    issue_type: IssueType | str,
    radius_meters: float,
    window_hours: float,
    now: dt.datetime,
) -> DuplicateMatch | None:
    """Pick the nearest qualifying report; ties go to the most recent one.

    Candidates without coordinates are skipped. The window and radius are
    checked on exact values; only the returned figures are rounded.
    """
    wanted_type = _issue_value(issue_type)
    closed = {status.value for status in CLOSED_STATUSES}
    best: tuple[float, float, Any] | None = None

    for report in candidates:
        if _issue_value(report.issue_type) != wanted_type:
            continue
        if _issue_value(report.status) in closed:
            continue
        if report.latitude is None or report.longitude is None:
            continue
        elapsed = hours_between(report.created_at, now)
        if elapsed >= window_hours:
            continue
        distance = haversine_distance_meters(latitude, longitude, float(report.latitude), float(report.longitude))
        if distance > radius_meters:
            continue
        # Smaller distance first, then smaller elapsed time (more recent).
        key = (distance, elapsed, report)
        if best is None or key[:2] < best[:2]:
            best = key

    if best is None:
        return None
    distance, elapsed, report = best
    return DuplicateMatch(
        existing_report_id=report.id,
        title=report.title,
        distance_meters=_round_half_up(distance),
        hours_ago=_round_half_up(elapsed),
    )


def find_duplicate(
    db: Session,
    latitude: float,
    longitude: float,
    issue_type: IssueType | str,
    *,
    radius_meters: float | None = None,
    window_hours: float | None = None,
    now: dt.datetime | None = None,
) -> DuplicateMatch | None:
    current = as_utc(now) or utcnow()
    radius = settings.DUPLICATE_RADIUS_METERS if radius_meters is None else radius_meters
    window = settings.DUPLICATE_WINDOW_HOURS if window_hours is None else window_hours
    try:
        wanted = IssueType(_issue_value(issue_type))
    except ValueError:
        return None

    cutoff = current - dt.timedelta(hours=window)
    rows = db.execute(
        select(Report).where(
            Report.issue_type == wanted,
            Report.status.not_in(list(CLOSED_STATUSES)),
            Report.created_at > cutoff,
            Report.latitude.is_not(None),
            Report.longitude.is_not(None),
        )
    ).scalars().all()

    match = closest_candidate(
        rows,
        latitude=latitude,
        longitude=longitude,
        issue_type=wanted,
        radius_meters=radius,
        window_hours=window,
        now=current,
    )
    if match is not None:
        logger.info(
            "Possible duplicate of %s (%sm, %sh ago) for %s report",
            match.existing_report_id,
            match.distance_meters,
            match.hours_ago,
            wanted.value,
        )
    return match
