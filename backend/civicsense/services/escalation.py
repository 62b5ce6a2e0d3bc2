"""SLA escalation sweep over active reports.

A report escalates when the hours elapsed since creation pass the level-1
or level-2 threshold of its priority tier. The guard compares against the
report's current level, so a second sweep in the same window is a no-op.
Overlapping sweeps are additionally kept apart by a lease row in
``scheduler_locks`` and a process-local lock.
"""

from __future__ import annotations

import datetime as dt
import logging
import math
import os
import socket
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from threading import Lock
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from civicsense.core.clock import as_utc, hours_between, iso, utcnow
from civicsense.core.config import settings
from civicsense.core.rbac import SYSTEM_ACTOR
from civicsense.models.enums import ACTIVE_STATUSES, ReportPriority
from civicsense.models.escalation import Escalation
from civicsense.models.report import Report
from civicsense.models.scheduler_lock import SchedulerLock
from civicsense.services.audit import record_report_updated, snapshot
from civicsense.services.notifications import EscalationNotifier, default_notifier
from civicsense.services.reference_data import SLATarget, load_sla_targets

logger = logging.getLogger(__name__)

SWEEP_LOCK_NAME = "escalation_sweep"
MAX_ESCALATION_LEVEL = 2

_sweep_mutex = Lock()


@dataclass(frozen=True)
class EscalationDecision:
    from_level: int
    to_level: int
    hours_elapsed: float
    threshold_hours: int
    reason: str


@dataclass(frozen=True)
class EscalatedReport:
    report_id: str
    from_level: int
    to_level: int
    reason: str


@dataclass(frozen=True)
class SweepFailure:
    report_id: str
    error: str


@dataclass
class SweepResult:
    processed: int = 0
    escalated: list[EscalatedReport] = field(default_factory=list)
    failures: list[SweepFailure] = field(default_factory=list)
    skipped: bool = False
    ran_at: dt.datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "processed": self.processed,
            "escalated_count": len(self.escalated),
            "escalations": [asdict(item) for item in self.escalated],
            "failures": [asdict(item) for item in self.failures],
            "skipped": self.skipped,
            "ran_at": iso(self.ran_at),
        }


def _escalation_reason(level: int, hours_elapsed: float, threshold_hours: int) -> str:
    return f"SLA Level {level} breach - {math.floor(hours_elapsed + 0.5)}h elapsed (threshold: {threshold_hours}h)"


def evaluate_escalation(
    current_level: int,
    created_at: dt.datetime,
    target: SLATarget,
    now: dt.datetime,
) -> EscalationDecision | None:
    """Return the escalation a report is due for, or None when it is up to date."""
    level = int(current_level or 0)
    elapsed = hours_between(created_at, now)

    if elapsed > target.escalation_level_2_hours and level < MAX_ESCALATION_LEVEL:
        new_level, threshold = 2, target.escalation_level_2_hours
    elif elapsed > target.escalation_level_1_hours and level < 1:
        new_level, threshold = 1, target.escalation_level_1_hours
    else:
        return None

    return EscalationDecision(
        from_level=level,
        to_level=new_level,
        hours_elapsed=elapsed,
        threshold_hours=threshold,
        reason=_escalation_reason(new_level, elapsed, threshold),
    )


def _default_holder() -> str:
    return f"{socket.gethostname()}:{os.getpid()}"


def acquire_sweep_lease(
    db: Session,
    *,
    holder: str,
    now: dt.datetime,
    lease_seconds: int | None = None,
    name: str = SWEEP_LOCK_NAME,
) -> bool:
    """Claim the named lease when it is free or expired, or when ``holder`` has it. Commits.

    Re-claiming our own unexpired lease renews it, so a holder whose release
    failed is not locked out until expiry.
    """
    seconds = settings.ESCALATION_SWEEP_LEASE_SECONDS if lease_seconds is None else lease_seconds
    if db.get(SchedulerLock, name) is None:
        savepoint = db.begin_nested()
        try:
            db.add(SchedulerLock(name=name))
            db.flush()
            savepoint.commit()
        except IntegrityError:
            savepoint.rollback()

    result = db.execute(
        update(SchedulerLock)
        .where(
            SchedulerLock.name == name,
            (SchedulerLock.locked_until.is_(None))
            | (SchedulerLock.locked_until <= now)
            | (SchedulerLock.holder == holder),
        )
        .values(holder=holder, locked_until=now + dt.timedelta(seconds=seconds))
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount == 1


def release_sweep_lease(db: Session, *, holder: str, now: dt.datetime, name: str = SWEEP_LOCK_NAME) -> None:
    db.execute(
        update(SchedulerLock)
        .where(SchedulerLock.name == name, SchedulerLock.holder == holder)
        .values(locked_until=None, last_run_at=now)
        .execution_options(synchronize_session=False)
    )
    db.commit()


def _active_report_ids(db: Session) -> list[UUID]:
    return list(
        db.execute(
            select(Report.id)
            .where(Report.status.in_(list(ACTIVE_STATUSES)), Report.sla_due_at.is_not(None))
            .order_by(Report.created_at.asc())
        ).scalars().all()
    )


def escalate_report(
    db: Session,
    report_id: UUID,
    *,
    targets: Mapping[ReportPriority, SLATarget],
    now: dt.datetime,
) -> EscalatedReport | None:
    """Re-read one report under a row lock and apply its due escalation. Commits."""
    report = db.execute(select(Report).where(Report.id == report_id).with_for_update()).scalars().first()
    if report is None or report.status not in ACTIVE_STATUSES or report.sla_due_at is None:
        db.rollback()
        return None

    target = targets.get(ReportPriority(report.priority))
    if target is None:
        logger.debug("No SLA configuration for priority %s, skipping report %s", report.priority, report.id)
        db.rollback()
        return None

    decision = evaluate_escalation(report.escalation_level, report.created_at, target, now)
    if decision is None:
        db.rollback()
        return None

    before = snapshot(report)
    report.escalation_level = decision.to_level
    report.updated_at = now
    db.add(
        Escalation(
            report_id=report.id,
            from_level=decision.from_level,
            to_level=decision.to_level,
            reason=decision.reason,
            escalated_by=SYSTEM_ACTOR.id,
            notified_users=[],
            created_at=now,
        )
    )
    db.flush()
    record_report_updated(db, report, before, SYSTEM_ACTOR)
    db.commit()
    logger.info(
        "Escalated report %s from level %s to %s (%s)",
        report_id,
        decision.from_level,
        decision.to_level,
        decision.reason,
    )
    return EscalatedReport(
        report_id=str(report_id),
        from_level=decision.from_level,
        to_level=decision.to_level,
        reason=decision.reason,
    )


def run_escalation_sweep(
    db: Session,
    *,
    now: dt.datetime | None = None,
    notifier: EscalationNotifier | None = None,
    holder: str | None = None,
) -> SweepResult:
    current = as_utc(now) or utcnow()
    sink = notifier or default_notifier
    owner = holder or _default_holder()
    result = SweepResult(ran_at=current)

    if not _sweep_mutex.acquire(blocking=False):
        logger.info("Escalation sweep already running in this process, skipping")
        result.skipped = True
        return result
    try:
        if not acquire_sweep_lease(db, holder=owner, now=current):
            logger.info("Escalation sweep lease held elsewhere, skipping")
            result.skipped = True
            return result
        try:
            targets = load_sla_targets(db)
            report_ids = _active_report_ids(db)
            result.processed = len(report_ids)
            for report_id in report_ids:
                try:
                    escalated = escalate_report(db, report_id, targets=targets, now=current)
                except Exception as exc:  # noqa: BLE001
                    db.rollback()
                    logger.warning("Escalation failed for report %s: %s", report_id, exc)
                    result.failures.append(SweepFailure(report_id=str(report_id), error=str(exc)))
                    continue
                if escalated is None:
                    continue
                result.escalated.append(escalated)
                try:
                    sink.notify(report_id, escalated.to_level)
                except Exception as exc:  # noqa: BLE001
                    logger.warning("Escalation notification failed for report %s: %s", report_id, exc)
        finally:
            release_sweep_lease(db, holder=owner, now=current)
    finally:
        _sweep_mutex.release()

    logger.info(
        "Escalation sweep completed: processed=%s escalated=%s failures=%s",
        result.processed,
        len(result.escalated),
        len(result.failures),
    )
    return result


def list_escalations(db: Session, report_id: UUID) -> list[Escalation]:
    return list(
        db.execute(
            select(Escalation).where(Escalation.report_id == report_id).order_by(Escalation.created_at.asc())
        ).scalars().all()
    )
