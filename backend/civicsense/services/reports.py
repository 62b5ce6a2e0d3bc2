"""Report submission pipeline, status workflow and staff operations."""

from __future__ import annotations

import datetime as dt
import enum
import logging
from collections import Counter
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from civicsense.core.clock import as_utc, utcnow
from civicsense.core.exceptions import (
    ConflictError,
    InsufficientPermissionsError,
    InvalidStatusTransitionError,
    NotFoundError,
    ReportPersistenceError,
)
from civicsense.core.rbac import Actor, can_reopen_report
from civicsense.models.enums import ACTIVE_STATUSES, CLOSED_STATUSES, ReportPriority, ReportStatus
from civicsense.models.feedback import CitizenFeedback
from civicsense.models.report import Report, ReportUpdate
from civicsense.schemas.report import FeedbackCreate, ReportSubmit
from civicsense.services.audit import record_report_created, record_report_updated, snapshot
from civicsense.services.duplicates import DuplicateMatch, find_duplicate
from civicsense.services.issue_catalog import department_for_issue
from civicsense.services.priority import PriorityScore, score_submission
from civicsense.services.rate_limiter import RateLimitDecision, check_and_consume, hold_submitter
from civicsense.services.sla import is_overdue, sla_due_at_for

logger = logging.getLogger(__name__)

# Staff-driven moves. Reopening goes through reopen_report only.
STAFF_TRANSITIONS: dict[ReportStatus, frozenset[ReportStatus]] = {
    ReportStatus.pending: frozenset({ReportStatus.in_progress, ReportStatus.rejected}),
    ReportStatus.in_progress: frozenset({ReportStatus.resolved, ReportStatus.rejected}),
    ReportStatus.reopened: frozenset({ReportStatus.in_progress, ReportStatus.resolved, ReportStatus.rejected}),
    ReportStatus.resolved: frozenset(),
    ReportStatus.rejected: frozenset(),
}
REOPEN_COMMENT = "Report reopened by citizen"
_MAX_DUPLICATE_HOPS = 16


class SubmissionOutcome(str, enum.Enum):
    created = "created"
    rate_limited = "rate_limited"
    duplicate_found = "duplicate_found"


@dataclass
class SubmissionResult:
    outcome: SubmissionOutcome
    report: Report | None = None
    rate_limit: RateLimitDecision | None = None
    duplicate: DuplicateMatch | None = None
    priority: PriorityScore | None = None


def get_report(db: Session, report_id: UUID) -> Report:
    report = db.get(Report, report_id)
    if report is None:
        raise NotFoundError("report_not_found", details={"report_id": str(report_id)})
    return report


def _root_original(db: Session, report_id: UUID) -> Report | None:
    """Follow duplicate_of links to the first report that is not itself a duplicate."""
    report = db.get(Report, report_id)
    hops = 0
    while report is not None and report.is_duplicate and report.duplicate_of is not None:
        hops += 1
        if hops > _MAX_DUPLICATE_HOPS:
            logger.warning("Duplicate chain too deep starting at %s", report_id)
            return None
        report = db.get(Report, report.duplicate_of)
    if report is None or report.is_duplicate:
        return None
    return report


def submit_report(
    db: Session,
    payload: ReportSubmit,
    *,
    actor: Actor,
    now: dt.datetime | None = None,
) -> SubmissionResult:
    """Gate, check, score and persist a citizen submission in one transaction.

    Order: rate limit -> duplicate check -> priority (emergency bypass) ->
    SLA deadline -> insert + audit. Only the ``created`` outcome commits;
    every other outcome rolls back, so a refused submission never consumes
    quota. The submitter stays held until the transaction ends, so two
    requests from one submitter cannot both read the same counters.
    """
    current = as_utc(now) or utcnow()
    submitter_id = str(actor.id)
    with hold_submitter(submitter_id):
        result = _submit_locked(db, payload, actor=actor, submitter_id=submitter_id, now=current)

    if result.outcome == SubmissionOutcome.created:
        report = result.report
        logger.info(
            "Report %s submitted by %s: %s/%s score=%.3f duplicate_of=%s",
            report.id,
            submitter_id,
            report.issue_type.value,
            report.priority.value,
            result.priority.score,
            report.duplicate_of,
        )
    return result


def _bump_duplicate_count(db: Session, original: Report, *, actor: Actor, now: dt.datetime) -> None:
    before = snapshot(original)
    db.execute(
        update(Report)
        .where(Report.id == original.id)
        .values(duplicate_count=Report.duplicate_count + 1, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    db.refresh(original)
    record_report_updated(db, original, before, actor)


def _submit_locked(
    db: Session,
    payload: ReportSubmit,
    *,
    actor: Actor,
    submitter_id: str,
    now: dt.datetime,
) -> SubmissionResult:
    current = now
    try:
        decision = check_and_consume(db, submitter_id, now=current, commit=False)
        if not decision.allowed:
            db.rollback()
            return SubmissionResult(outcome=SubmissionOutcome.rate_limited, rate_limit=decision)

        match: DuplicateMatch | None = None
        if payload.latitude is not None and payload.longitude is not None:
            match = find_duplicate(db, payload.latitude, payload.longitude, payload.issue_type, now=current)
        if match is not None and not payload.force_submit:
            db.rollback()
            return SubmissionResult(outcome=SubmissionOutcome.duplicate_found, rate_limit=decision, duplicate=match)

        original = _root_original(db, match.existing_report_id) if match is not None else None

        scored = score_submission(
            db,
            payload.issue_type,
            payload.latitude,
            payload.longitude,
            payload.ai_confidence,
            now=current,
        )
        report = Report(
            submitter_id=submitter_id,
            issue_type=payload.issue_type,
            title=payload.title,
            description=payload.description,
            image_url=payload.image_url,
            latitude=payload.latitude,
            longitude=payload.longitude,
            address=payload.address,
            municipality=payload.municipality,
            ward_id=payload.ward_id,
            department=department_for_issue(payload.issue_type),
            status=ReportStatus.pending,
            priority=scored.priority,
            priority_score=scored.score,
            ai_confidence=payload.ai_confidence,
            ai_detected_type=payload.ai_detected_type,
            sla_due_at=sla_due_at_for(db, scored.priority, current),
            escalation_level=0,
            is_duplicate=original is not None,
            duplicate_of=original.id if original is not None else None,
            duplicate_count=0,
            created_at=current,
            updated_at=current,
        )
        db.add(report)
        db.flush()
        record_report_created(db, report, actor)

        if original is not None:
            _bump_duplicate_count(db, original, actor=actor, now=current)

        db.commit()
        db.refresh(report)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Report submission failed for %s", submitter_id)
        raise ReportPersistenceError() from exc

    return SubmissionResult(
        outcome=SubmissionOutcome.created,
        report=report,
        rate_limit=decision,
        duplicate=match,
        priority=scored,
    )


def _commit_mutation(db: Session, report: Report, before: dict, actor: Actor) -> Report:
    try:
        db.flush()
        record_report_updated(db, report, before, actor)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to persist change to report %s", report.id)
        raise ReportPersistenceError(report_id=str(report.id)) from exc
    db.refresh(report)
    return report


def _add_timeline(db: Session, report: Report, *, actor: Actor, status: ReportStatus | None, comment: str, now: dt.datetime) -> None:
    db.add(ReportUpdate(report_id=report.id, actor_id=str(actor.id), status=status, comment=comment, created_at=now))


def update_status(
    db: Session,
    report_id: UUID,
    status: ReportStatus,
    *,
    actor: Actor,
    comment: str | None = None,
    now: dt.datetime | None = None,
) -> Report:
    report = get_report(db, report_id)
    current_status = ReportStatus(report.status)
    if status not in STAFF_TRANSITIONS.get(current_status, frozenset()):
        raise InvalidStatusTransitionError(current_status.value, status.value)

    current = as_utc(now) or utcnow()
    before = snapshot(report)
    report.status = status
    if status == ReportStatus.resolved:
        report.resolved_at = current
    else:
        report.resolved_at = None
    report.updated_at = current
    if comment:
        _add_timeline(db, report, actor=actor, status=status, comment=comment, now=current)

    _commit_mutation(db, report, before, actor)
    logger.info("Report %s status updated: %s -> %s by %s", report.id, current_status.value, status.value, actor.id)
    return report


def reopen_report(
    db: Session,
    report_id: UUID,
    *,
    actor: Actor,
    comment: str | None = None,
    now: dt.datetime | None = None,
) -> Report:
    """Submitter reopens a resolved report; counts as a fresh escalation signal."""
    report = get_report(db, report_id)
    if not can_reopen_report(actor, report):
        raise InsufficientPermissionsError("only_submitter_can_reopen")
    current_status = ReportStatus(report.status)
    if current_status != ReportStatus.resolved:
        raise InvalidStatusTransitionError(current_status.value, ReportStatus.reopened.value)

    current = as_utc(now) or utcnow()
    before = snapshot(report)
    report.status = ReportStatus.reopened
    report.resolved_at = None
    report.escalation_level = int(report.escalation_level or 0) + 1
    report.updated_at = current
    _add_timeline(db, report, actor=actor, status=ReportStatus.reopened, comment=comment or REOPEN_COMMENT, now=current)

    _commit_mutation(db, report, before, actor)
    logger.info("Report %s reopened by %s (escalation level %s)", report.id, actor.id, report.escalation_level)
    return report


def assign_report(
    db: Session,
    report_id: UUID,
    assignee_id: str | None,
    *,
    actor: Actor,
    now: dt.datetime | None = None,
) -> Report:
    report = get_report(db, report_id)
    if ReportStatus(report.status) in CLOSED_STATUSES:
        raise ConflictError("report_closed", details={"status": ReportStatus(report.status).value})

    current = as_utc(now) or utcnow()
    before = snapshot(report)
    report.assigned_to = assignee_id
    report.assigned_at = current if assignee_id else None
    report.updated_at = current
    _commit_mutation(db, report, before, actor)
    logger.info("Report %s assigned to %s by %s", report.id, assignee_id or "nobody", actor.id)
    return report


def override_priority(
    db: Session,
    report_id: UUID,
    priority: ReportPriority,
    *,
    actor: Actor,
    comment: str | None = None,
    now: dt.datetime | None = None,
) -> Report:
    """Manually set the tier.

    The SLA deadline stays frozen at its creation-time value. The computed
    score no longer justifies the tier, so it is cleared.
    """
    report = get_report(db, report_id)
    if ReportStatus(report.status) in CLOSED_STATUSES:
        raise ConflictError("report_closed", details={"status": ReportStatus(report.status).value})

    current = as_utc(now) or utcnow()
    before = snapshot(report)
    previous = ReportPriority(report.priority)
    report.priority = priority
    if previous != priority:
        report.priority_score = None
    report.updated_at = current
    if comment:
        _add_timeline(db, report, actor=actor, status=None, comment=comment, now=current)

    _commit_mutation(db, report, before, actor)
    logger.info("Report %s priority overridden: %s -> %s by %s", report.id, previous.value, priority.value, actor.id)
    return report


def submit_feedback(db: Session, report_id: UUID, payload: FeedbackCreate, *, actor: Actor) -> CitizenFeedback:
    report = get_report(db, report_id)
    if str(report.submitter_id) != str(actor.id):
        raise InsufficientPermissionsError("only_submitter_can_give_feedback")
    if ReportStatus(report.status) != ReportStatus.resolved:
        raise ConflictError("report_not_resolved", details={"status": ReportStatus(report.status).value})
    existing = db.execute(select(CitizenFeedback.id).where(CitizenFeedback.report_id == report.id)).scalars().first()
    if existing is not None:
        raise ConflictError("feedback_already_submitted")

    feedback = CitizenFeedback(
        report_id=report.id,
        submitter_id=str(actor.id),
        rating=payload.rating,
        feedback_text=payload.feedback_text,
        is_satisfied=payload.is_satisfied,
        would_recommend=payload.would_recommend,
        response_time_rating=payload.response_time_rating,
    )
    db.add(feedback)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise ReportPersistenceError("Failed to store feedback", report_id=str(report.id)) from exc
    db.refresh(feedback)
    return feedback


def list_timeline(db: Session, report_id: UUID) -> list[ReportUpdate]:
    get_report(db, report_id)
    return list(
        db.execute(
            select(ReportUpdate).where(ReportUpdate.report_id == report_id).order_by(ReportUpdate.created_at.asc())
        ).scalars().all()
    )


def compute_stats(db: Session, *, submitter_id: str | None = None, now: dt.datetime | None = None) -> dict:
    """Dashboard counters over original (non-duplicate) reports."""
    current = as_utc(now) or utcnow()
    query = select(Report).where(Report.is_duplicate.is_(False))
    if submitter_id is not None:
        query = query.where(Report.submitter_id == submitter_id)
    reports = db.execute(query).scalars().all()

    by_status = Counter(ReportStatus(r.status).value for r in reports)
    by_type = Counter(r.issue_type.value for r in reports)
    by_priority = {tier.value: 0 for tier in ReportPriority}
    for report in reports:
        by_priority[ReportPriority(report.priority).value] += 1

    return {
        "total": len(reports),
        "pending": by_status.get(ReportStatus.pending.value, 0),
        "in_progress": by_status.get(ReportStatus.in_progress.value, 0),
        "resolved": by_status.get(ReportStatus.resolved.value, 0),
        "rejected": by_status.get(ReportStatus.rejected.value, 0),
        "reopened": by_status.get(ReportStatus.reopened.value, 0),
        "overdue_sla": sum(
            1 for r in reports if ReportStatus(r.status) in ACTIVE_STATUSES and is_overdue(r.sla_due_at, current)
        ),
        "escalated": sum(1 for r in reports if int(r.escalation_level or 0) > 0),
        "by_type": dict(by_type),
        "by_priority": by_priority,
    }
