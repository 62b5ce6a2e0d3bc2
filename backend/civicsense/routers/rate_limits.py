"""Submitter trust and block administration."""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Path
from sqlalchemy.orm import Session

from civicsense.core.deps import require_permission
from civicsense.core.rbac import Actor
from civicsense.core.sanitize import clean_single_line
from civicsense.db.session import get_db
from civicsense.schemas.engine import BlockRequest, RateLimitRecordOut, TrustUpdate
from civicsense.services.rate_limiter import block_submitter, set_trusted, unblock_submitter

router = APIRouter(dependencies=[Depends(require_permission("manage_users"))])


@router.post("/{submitter_id}/trust", response_model=RateLimitRecordOut)
def post_trust(
    submitter_id: str = Path(..., min_length=1, max_length=64),
    payload: TrustUpdate = Body(...),
    db: Session = Depends(get_db),
) -> RateLimitRecordOut:
    record = set_trusted(db, clean_single_line(submitter_id), trusted=payload.trusted, reason=payload.reason)
    return RateLimitRecordOut.model_validate(record)


@router.post("/{submitter_id}/block", response_model=RateLimitRecordOut)
def post_block(
    submitter_id: str = Path(..., min_length=1, max_length=64),
    payload: BlockRequest = Body(...),
    db: Session = Depends(get_db),
) -> RateLimitRecordOut:
    record = block_submitter(db, clean_single_line(submitter_id), reason=payload.reason, until=payload.until)
    return RateLimitRecordOut.model_validate(record)


@router.post("/{submitter_id}/unblock", response_model=RateLimitRecordOut)
def post_unblock(
    submitter_id: str = Path(..., min_length=1, max_length=64),
    db: Session = Depends(get_db),
) -> RateLimitRecordOut:
    return RateLimitRecordOut.model_validate(unblock_submitter(db, clean_single_line(submitter_id)))
