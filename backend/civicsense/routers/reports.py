"""Report submission, workflow and read-model endpoints."""

from __future__ import annotations

from dataclasses import asdict
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Path, Response, status
from sqlalchemy.orm import Session

from civicsense.core.clock import iso
from civicsense.core.deps import get_current_actor, require_permission
from civicsense.core.exceptions import InsufficientPermissionsError, RateLimitExceeded
from civicsense.core.rbac import Actor, can_update_report_status, can_view_audit, has_permission
from civicsense.db.session import get_db
from civicsense.schemas.report import (
    AuditLogOut,
    DuplicateWarning,
    EscalationOut,
    FeedbackCreate,
    FeedbackOut,
    ReportAssignment,
    ReportOut,
    ReportPriorityOverride,
    ReportStats,
    ReportStatusUpdate,
    ReportSubmit,
    ReportUpdateOut,
    SubmissionOut,
)
from civicsense.services.audit import list_report_audit
from civicsense.services.escalation import list_escalations
from civicsense.services.reports import (
    SubmissionOutcome,
    SubmissionResult,
    assign_report,
    compute_stats,
    get_report,
    list_timeline,
    override_priority,
    reopen_report,
    submit_feedback,
    submit_report,
    update_status,
)

router = APIRouter(dependencies=[Depends(get_current_actor)])


def _submission_out(result: SubmissionResult) -> SubmissionOut:
    decision = result.rate_limit
    return SubmissionOut(
        outcome=result.outcome.value,
        report=ReportOut.model_validate(result.report) if result.report is not None else None,
        duplicate=DuplicateWarning(**asdict(result.duplicate)) if result.duplicate is not None else None,
        remaining_hourly=decision.remaining_hourly if decision else None,
        remaining_daily=decision.remaining_daily if decision else None,
    )


@router.post("/", response_model=SubmissionOut, status_code=status.HTTP_201_CREATED)
def create_report(
    response: Response,
    payload: ReportSubmit,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("create_report")),
) -> SubmissionOut:
    result = submit_report(db, payload, actor=actor)
    if result.outcome == SubmissionOutcome.rate_limited:
        decision = result.rate_limit
        raise RateLimitExceeded(
            reason=decision.reason or "rate_limited",
            reset_at=iso(decision.reset_at),
            blocked_until=iso(decision.blocked_until),
        )
    if result.outcome == SubmissionOutcome.duplicate_found:
        # Advisory: nothing was stored, the client may resubmit with force_submit.
        response.status_code = status.HTTP_200_OK
    return _submission_out(result)


@router.get("/stats", response_model=ReportStats)
def get_stats(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> ReportStats:
    submitter_id = None if has_permission(actor, "view_analytics") else actor.id
    return ReportStats(**compute_stats(db, submitter_id=submitter_id))


@router.get("/{report_id}", response_model=ReportOut)
def get_report_by_id(
    report_id: UUID = Path(...),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("view_all_reports")),
) -> ReportOut:
    return ReportOut.model_validate(get_report(db, report_id))


@router.patch("/{report_id}/status", response_model=ReportOut)
def patch_report_status(
    report_id: UUID = Path(...),
    payload: ReportStatusUpdate = Body(...),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> ReportOut:
    report = get_report(db, report_id)
    if not can_update_report_status(actor, report):
        raise InsufficientPermissionsError("forbidden")
    report = update_status(db, report_id, payload.status, actor=actor, comment=payload.comment)
    return ReportOut.model_validate(report)


@router.post("/{report_id}/reopen", response_model=ReportOut)
def post_report_reopen(
    report_id: UUID = Path(...),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> ReportOut:
    return ReportOut.model_validate(reopen_report(db, report_id, actor=actor))


@router.patch("/{report_id}/assignment", response_model=ReportOut)
def patch_report_assignment(
    report_id: UUID = Path(...),
    payload: ReportAssignment = Body(...),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("assign_reports")),
) -> ReportOut:
    return ReportOut.model_validate(assign_report(db, report_id, payload.assigned_to, actor=actor))


@router.patch("/{report_id}/priority", response_model=ReportOut)
def patch_report_priority(
    report_id: UUID = Path(...),
    payload: ReportPriorityOverride = Body(...),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("update_any_report")),
) -> ReportOut:
    report = override_priority(db, report_id, payload.priority, actor=actor, comment=payload.comment)
    return ReportOut.model_validate(report)


@router.post("/{report_id}/feedback", response_model=FeedbackOut, status_code=status.HTTP_201_CREATED)
def post_report_feedback(
    report_id: UUID = Path(...),
    payload: FeedbackCreate = Body(...),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> FeedbackOut:
    return FeedbackOut.model_validate(submit_feedback(db, report_id, payload, actor=actor))


@router.get("/{report_id}/escalations", response_model=list[EscalationOut])
def get_report_escalations(
    report_id: UUID = Path(...),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("view_all_reports")),
) -> list[EscalationOut]:
    get_report(db, report_id)
    return [EscalationOut.model_validate(row) for row in list_escalations(db, report_id)]


@router.get("/{report_id}/audit", response_model=list[AuditLogOut])
def get_report_audit(
    report_id: UUID = Path(...),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> list[AuditLogOut]:
    if not can_view_audit(actor):
        raise InsufficientPermissionsError("forbidden")
    get_report(db, report_id)
    return [AuditLogOut.model_validate(row) for row in list_report_audit(db, report_id)]


@router.get("/{report_id}/updates", response_model=list[ReportUpdateOut])
def get_report_updates(
    report_id: UUID = Path(...),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("view_all_reports")),
) -> list[ReportUpdateOut]:
    return [ReportUpdateOut.model_validate(row) for row in list_timeline(db, report_id)]
