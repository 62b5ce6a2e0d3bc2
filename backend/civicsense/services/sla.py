"""SLA deadline computation."""

from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Mapping

from sqlalchemy.orm import Session

from civicsense.core.clock import as_utc
from civicsense.models.enums import ReportPriority
from civicsense.services.reference_data import SLATarget, load_sla_targets

logger = logging.getLogger(__name__)


def compute_sla_due_at(
    priority: ReportPriority | str,
    created_at: dt.datetime,
    targets: Mapping[ReportPriority, SLATarget],
) -> dt.datetime | None:
    """Return ``created_at + resolution_time_hours`` or None when the tier is unconfigured."""
    try:
        tier = ReportPriority(priority)
    except ValueError:
        logger.debug("Unknown priority %r, no SLA tracked", priority)
        return None
    target = targets.get(tier)
    if target is None:
        logger.debug("No SLA configuration for priority %s, no SLA tracked", tier.value)
        return None
    return as_utc(created_at) + dt.timedelta(hours=target.resolution_time_hours)


def sla_due_at_for(db: Session, priority: ReportPriority | str, created_at: dt.datetime) -> dt.datetime | None:
    return compute_sla_due_at(priority, created_at, load_sla_targets(db))


def is_overdue(sla_due_at: dt.datetime | None, now: dt.datetime) -> bool:
    due = as_utc(sla_due_at)
    return due is not None and due < as_utc(now)
