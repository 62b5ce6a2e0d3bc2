"""SLA configuration and priority-rule lookups, plus their default rows."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from civicsense.models.enums import ReportPriority
from civicsense.models.priority_rule import PriorityRule
from civicsense.models.sla_config import SLAConfig

logger = logging.getLogger(__name__)

ISSUE_TYPE_FACTOR = "issue_type"


@dataclass(frozen=True)
class SLATarget:
    priority: ReportPriority
    response_time_hours: int
    resolution_time_hours: int
    escalation_level_1_hours: int
    escalation_level_2_hours: int


DEFAULT_SLA_TARGETS: dict[ReportPriority, SLATarget] = {
    ReportPriority.critical: SLATarget(ReportPriority.critical, 2, 24, 4, 12),
    ReportPriority.high: SLATarget(ReportPriority.high, 8, 72, 24, 48),
    ReportPriority.medium: SLATarget(ReportPriority.medium, 24, 168, 72, 120),
    ReportPriority.low: SLATarget(ReportPriority.low, 72, 336, 168, 240),
}

DEFAULT_ISSUE_WEIGHTS: dict[str, tuple[float, str]] = {
    "pothole": (0.7, "Road hazard - moderate risk"),
    "streetlight": (0.8, "Safety critical - night visibility"),
    "drainage": (0.6, "Infrastructure issue"),
    "garbage": (0.4, "Sanitation issue"),
    "road_damage": (0.75, "Road hazard - higher risk"),
    "other": (0.3, "General issue"),
}


def _target_from_row(row: SLAConfig) -> SLATarget:
    return SLATarget(
        priority=ReportPriority(row.priority),
        response_time_hours=int(row.response_time_hours),
        resolution_time_hours=int(row.resolution_time_hours),
        escalation_level_1_hours=int(row.escalation_level_1_hours),
        escalation_level_2_hours=int(row.escalation_level_2_hours),
    )


def load_sla_targets(db: Session) -> dict[ReportPriority, SLATarget]:
    rows = db.execute(select(SLAConfig)).scalars().all()
    return {ReportPriority(row.priority): _target_from_row(row) for row in rows}


def load_issue_weights(db: Session) -> dict[str, float]:
    """Active issue-type weights keyed by issue type value."""
    rows = db.execute(
        select(PriorityRule).where(
            PriorityRule.factor_type == ISSUE_TYPE_FACTOR,
            PriorityRule.is_active.is_(True),
        )
    ).scalars().all()
    return {str(row.factor_value): float(row.priority_weight) for row in rows}


def seed_reference_data(db: Session) -> tuple[int, int]:
    """Insert missing default SLA and priority-rule rows. Caller commits."""
    existing_sla = {ReportPriority(row.priority) for row in db.execute(select(SLAConfig)).scalars().all()}
    sla_added = 0
    for priority, target in DEFAULT_SLA_TARGETS.items():
        if priority in existing_sla:
            continue
        db.add(
            SLAConfig(
                priority=priority,
                response_time_hours=target.response_time_hours,
                resolution_time_hours=target.resolution_time_hours,
                escalation_level_1_hours=target.escalation_level_1_hours,
                escalation_level_2_hours=target.escalation_level_2_hours,
            )
        )
        sla_added += 1

    existing_rules = set(
        db.execute(
            select(PriorityRule.factor_value).where(PriorityRule.factor_type == ISSUE_TYPE_FACTOR)
        ).scalars().all()
    )
    rules_added = 0
    for issue_type, (weight, description) in DEFAULT_ISSUE_WEIGHTS.items():
        if issue_type in existing_rules:
            continue
        db.add(
            PriorityRule(
                factor_type=ISSUE_TYPE_FACTOR,
                factor_value=issue_type,
                priority_weight=weight,
                description=description,
            )
        )
        rules_added += 1
    db.flush()
    logger.info("Reference data seeded: sla_rows=%s priority_rules=%s", sla_added, rules_added)
    return sla_added, rules_added
