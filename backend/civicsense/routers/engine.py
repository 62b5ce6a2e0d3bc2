"""Direct access to the scoring, SLA, duplicate and rate-limit primitives."""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Path
from sqlalchemy.orm import Session

from civicsense.core.clock import as_utc
from civicsense.core.deps import get_current_actor
from civicsense.core.exceptions import InsufficientPermissionsError
from civicsense.core.rbac import Actor, is_staff
from civicsense.core.sanitize import clean_single_line
from civicsense.db.session import get_db
from civicsense.schemas.engine import (
    DuplicateCheckOut,
    DuplicateCheckRequest,
    DuplicateMatchOut,
    IssueCategoryOut,
    RateLimitDecisionOut,
    ScoreOut,
    ScoreRequest,
    SlaDueAtOut,
    SlaDueAtRequest,
)
from civicsense.services.duplicates import find_duplicate
from civicsense.services.issue_catalog import ISSUE_CATEGORIES, all_issue_types
from civicsense.services.priority import score_report
from civicsense.services.rate_limiter import check_and_consume
from civicsense.services.reference_data import load_issue_weights
from civicsense.services.sla import sla_due_at_for

router = APIRouter(dependencies=[Depends(get_current_actor)])


@router.post("/score", response_model=ScoreOut)
def post_score(
    payload: ScoreRequest = Body(...),
    db: Session = Depends(get_db),
) -> ScoreOut:
    result = score_report(
        payload.issue_type,
        payload.latitude,
        payload.longitude,
        payload.ai_confidence,
        weights=load_issue_weights(db),
        now=as_utc(payload.at),
    )
    return ScoreOut(score=result.score, priority=result.priority)


@router.post("/sla-due-at", response_model=SlaDueAtOut)
def post_sla_due_at(
    payload: SlaDueAtRequest = Body(...),
    db: Session = Depends(get_db),
) -> SlaDueAtOut:
    return SlaDueAtOut(sla_due_at=sla_due_at_for(db, payload.priority, payload.created_at))


@router.post("/duplicates", response_model=DuplicateCheckOut)
def post_duplicate_check(
    payload: DuplicateCheckRequest = Body(...),
    db: Session = Depends(get_db),
) -> DuplicateCheckOut:
    match = find_duplicate(
        db,
        payload.latitude,
        payload.longitude,
        payload.issue_type,
        radius_meters=payload.radius_meters,
        window_hours=payload.window_hours,
    )
    if match is None:
        return DuplicateCheckOut(is_duplicate=False)
    return DuplicateCheckOut(
        is_duplicate=True,
        match=DuplicateMatchOut(
            existing_report_id=match.existing_report_id,
            title=match.title,
            distance_meters=match.distance_meters,
            hours_ago=match.hours_ago,
        ),
    )


@router.post("/rate-limit/{submitter_id}", response_model=RateLimitDecisionOut)
def post_rate_limit_check(
    submitter_id: str = Path(..., min_length=1, max_length=64),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> RateLimitDecisionOut:
    submitter_id = clean_single_line(submitter_id)
    if submitter_id != actor.id and not is_staff(actor):
        raise InsufficientPermissionsError("forbidden")
    decision = check_and_consume(db, submitter_id)
    return RateLimitDecisionOut(
        allowed=decision.allowed,
        reason=decision.reason,
        remaining_hourly=decision.remaining_hourly,
        remaining_daily=decision.remaining_daily,
        reset_at=decision.reset_at,
        blocked_until=decision.blocked_until,
    )


@router.get("/issue-types", response_model=list[IssueCategoryOut])
def get_issue_types() -> list[IssueCategoryOut]:
    categories = [
        IssueCategoryOut(
            id=category.id,
            label=category.label,
            department=category.department,
            officer=category.officer,
            issues=[issue.value for issue in category.issues],
            emergency=category.default_priority is not None,
        )
        for category in ISSUE_CATEGORIES
    ]
    catalogued = {issue for category in categories for issue in category.issues}
    leftovers = [issue.value for issue in all_issue_types() if issue.value not in catalogued]
    if leftovers:
        categories.append(
            IssueCategoryOut(
                id="other",
                label="Other",
                department=None,
                officer=None,
                issues=leftovers,
                emergency=False,
            )
        )
    return categories
