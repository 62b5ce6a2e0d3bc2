"""Deterministic priority scoring for newly submitted reports.

The score is ``base * time_multiplier * (0.5 + ai_confidence * 0.5)`` capped
at 1.0, where ``base`` is the active issue-type weight (0.5 when unmapped).
Only streetlights are time sensitive: outside the daytime window their base
is multiplied by the night multiplier.
"""

from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from sqlalchemy.orm import Session

from civicsense.core.clock import to_local, utcnow
from civicsense.core.config import settings
from civicsense.models.enums import IssueType, ReportPriority
from civicsense.services.issue_catalog import is_emergency_issue
from civicsense.services.reference_data import load_issue_weights

logger = logging.getLogger(__name__)

PRIORITY_THRESHOLDS: tuple[tuple[float, ReportPriority], ...] = (
    (0.75, ReportPriority.critical),
    (0.55, ReportPriority.high),
    (0.35, ReportPriority.medium),
)
EMERGENCY_SCORE = 1.0
_TIME_SENSITIVE_TYPES = {IssueType.streetlight.value}


@dataclass(frozen=True)
class PriorityScore:
    score: float
    priority: ReportPriority


def _issue_value(issue_type: IssueType | str) -> str:
    value = issue_type.value if isinstance(issue_type, IssueType) else issue_type
    return str(value or "").strip().lower()


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def priority_for_score(
    score: float,
    thresholds: Sequence[tuple[float, ReportPriority]] = PRIORITY_THRESHOLDS,
) -> ReportPriority:
    for floor, tier in thresholds:
        if score >= floor:
            return tier
    return ReportPriority.low


def is_night(now: dt.datetime, *, day_start_hour: int | None = None, day_end_hour: int | None = None) -> bool:
    start = settings.PRIORITY_DAY_START_HOUR if day_start_hour is None else day_start_hour
    end = settings.PRIORITY_DAY_END_HOUR if day_end_hour is None else day_end_hour
    hour = to_local(now).hour
    return not (start <= hour < end)


def time_multiplier(issue_type: IssueType | str, now: dt.datetime) -> float:
    if _issue_value(issue_type) in _TIME_SENSITIVE_TYPES and is_night(now):
        return settings.PRIORITY_NIGHT_MULTIPLIER
    return 1.0


def score_report(
    issue_type: IssueType | str,
    latitude: float | None = None,
    longitude: float | None = None,
    ai_confidence: float = 0.5,
    *,
    weights: Mapping[str, float] | None = None,
    now: dt.datetime | None = None,
    thresholds: Sequence[tuple[float, ReportPriority]] = PRIORITY_THRESHOLDS,
) -> PriorityScore:
    """Score a report and map it to a tier.

    ``latitude``/``longitude`` are accepted for interface stability; no
    location factor contributes to the score yet. ``weights`` holds the
    active issue-type weights; anything missing falls back to the default
    base weight.
    """
    current = now or utcnow()
    issue_value = _issue_value(issue_type)
    base = (weights or {}).get(issue_value)
    if base is None:
        logger.debug("No active priority rule for issue type %s, using default weight", issue_value)
        base = settings.PRIORITY_DEFAULT_BASE_WEIGHT

    confidence = _clamp(float(ai_confidence if ai_confidence is not None else 0.5))
    raw = float(base) * time_multiplier(issue_value, current) * (0.5 + confidence * 0.5)
    score = _clamp(raw)
    return PriorityScore(score=score, priority=priority_for_score(score, thresholds))


def emergency_score() -> PriorityScore:
    return PriorityScore(score=EMERGENCY_SCORE, priority=ReportPriority.critical)


def score_submission(
    db: Session,
    issue_type: IssueType | str,
    latitude: float | None = None,
    longitude: float | None = None,
    ai_confidence: float = 0.5,
    *,
    now: dt.datetime | None = None,
) -> PriorityScore:
    """Score as the submission flow does: emergency issues bypass the scorer."""
    if is_emergency_issue(issue_type):
        return emergency_score()
    return score_report(
        issue_type,
        latitude,
        longitude,
        ai_confidence,
        weights=load_issue_weights(db),
        now=now,
    )
