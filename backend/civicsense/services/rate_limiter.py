"""Per-submitter submission rate limiting with lazy hourly/daily rollover."""

from __future__ import annotations

import datetime as dt
import logging
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from threading import Lock, RLock
from typing import Any, Iterator

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from civicsense.core.clock import as_utc, hour_start, iso, local_date, next_day_start, utcnow
from civicsense.core.config import settings
from civicsense.models.rate_limit import RateLimitRecord

logger = logging.getLogger(__name__)

REASON_BLOCKED = "blocked"
REASON_HOURLY = "hourly limit reached"
REASON_DAILY = "daily limit reached"


@dataclass(frozen=True)
class RateLimitTier:
    hourly: int
    daily: int


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    reason: str | None = None
    remaining_hourly: int | None = None
    remaining_daily: int | None = None
    reset_at: dt.datetime | None = None
    blocked_until: dt.datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["reset_at"] = iso(self.reset_at)
        payload["blocked_until"] = iso(self.blocked_until)
        return payload


class _KeyedLocks:
    """Process-local mutexes keyed by submitter, for engines without row locks.

    Entries are reference counted and dropped when the last holder leaves.
    The locks are reentrant so a caller holding a submitter can still go
    through ``check_and_consume`` for the same key.
    """

    def __init__(self) -> None:
        self._locks: dict[str, list[Any]] = {}
        self._guard = Lock()

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = [RLock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    self._locks.pop(key, None)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


_submitter_locks = _KeyedLocks()


def hold_submitter(submitter_id: str):
    """Serialize one submitter's transaction in this process until the block exits.

    Wrap the whole unit of work (consume, insert, commit or rollback) so the
    counter update cannot be read by a concurrent request before it commits.
    """
    return _submitter_locks.hold(submitter_id)


def tier_for(record: RateLimitRecord) -> RateLimitTier:
    if record.is_trusted:
        return RateLimitTier(hourly=settings.RATE_LIMIT_TRUSTED_HOURLY, daily=settings.RATE_LIMIT_TRUSTED_DAILY)
    return RateLimitTier(hourly=settings.RATE_LIMIT_HOURLY, daily=settings.RATE_LIMIT_DAILY)


def new_record(submitter_id: str, now: dt.datetime) -> RateLimitRecord:
    return RateLimitRecord(
        submitter_id=submitter_id,
        reports_today=0,
        reports_this_hour=0,
        daily_reset_at=local_date(now),
        hourly_reset_at=hour_start(now),
        is_trusted=False,
        spam_score=0.0,
        is_blocked=False,
    )


def is_blocked(record: RateLimitRecord, now: dt.datetime) -> bool:
    if not record.is_blocked:
        return False
    until = as_utc(record.blocked_until)
    return until is None or until > as_utc(now)


def roll_over(record: RateLimitRecord, now: dt.datetime) -> None:
    """Zero any counter whose window has passed and stamp the new window start."""
    today = local_date(now)
    if record.daily_reset_at is None or record.daily_reset_at < today:
        record.reports_today = 0
        record.daily_reset_at = today

    current_hour = hour_start(now)
    last_hour = as_utc(record.hourly_reset_at)
    if last_hour is None or last_hour < current_hour:
        record.reports_this_hour = 0
        record.hourly_reset_at = current_hour


def consume(record: RateLimitRecord, now: dt.datetime) -> RateLimitDecision:
    """Check the record against its tier and, when allowed, count one submission."""
    if is_blocked(record, now):
        return RateLimitDecision(allowed=False, reason=REASON_BLOCKED, blocked_until=as_utc(record.blocked_until))

    roll_over(record, now)
    tier = tier_for(record)
    hourly_used = int(record.reports_this_hour or 0)
    daily_used = int(record.reports_today or 0)

    if hourly_used >= tier.hourly:
        return RateLimitDecision(
            allowed=False,
            reason=REASON_HOURLY,
            reset_at=hour_start(now) + dt.timedelta(hours=1),
        )
    if daily_used >= tier.daily:
        return RateLimitDecision(allowed=False, reason=REASON_DAILY, reset_at=next_day_start(now))

    record.reports_this_hour = hourly_used + 1
    record.reports_today = daily_used + 1
    record.last_report_at = as_utc(now)
    return RateLimitDecision(
        allowed=True,
        remaining_hourly=tier.hourly - hourly_used - 1,
        remaining_daily=tier.daily - daily_used - 1,
    )


def get_or_create_record(db: Session, submitter_id: str, *, now: dt.datetime) -> RateLimitRecord:
    """Fetch the submitter's record under a row lock, creating it on first use."""
    stmt = select(RateLimitRecord).where(RateLimitRecord.submitter_id == submitter_id).with_for_update()
    record = db.execute(stmt).scalars().first()
    if record is not None:
        return record

    record = new_record(submitter_id, now)
    savepoint = db.begin_nested()
    try:
        db.add(record)
        db.flush()
        savepoint.commit()
    except IntegrityError:
        # A concurrent first submission created it; lock the winner's row.
        savepoint.rollback()
        record = db.execute(stmt).scalars().one()
    return record


def check_and_consume(
    db: Session,
    submitter_id: str,
    *,
    now: dt.datetime | None = None,
    commit: bool = True,
) -> RateLimitDecision:
    """Atomically gate one submission for ``submitter_id``.

    With ``commit=False`` the counter change stays in the caller's
    transaction, so a later rollback also returns the quota. Such callers
    must run the whole transaction inside ``hold_submitter``.
    """
    if not settings.RATE_LIMIT_ENABLED:
        return RateLimitDecision(allowed=True)

    current = as_utc(now) or utcnow()
    with _submitter_locks.hold(submitter_id):
        record = get_or_create_record(db, submitter_id, now=current)
        decision = consume(record, current)
        db.add(record)
        db.flush()
        if commit:
            db.commit()

    if decision.allowed:
        logger.debug(
            "Submission allowed for %s (remaining hourly=%s daily=%s)",
            submitter_id,
            decision.remaining_hourly,
            decision.remaining_daily,
        )
    else:
        logger.info("Submission denied for %s: %s", submitter_id, decision.reason)
    return decision


def set_trusted(
    db: Session,
    submitter_id: str,
    *,
    trusted: bool,
    reason: str | None = None,
    now: dt.datetime | None = None,
) -> RateLimitRecord:
    record = get_or_create_record(db, submitter_id, now=as_utc(now) or utcnow())
    record.is_trusted = trusted
    record.trust_reason = reason if trusted else None
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info("Submitter %s trust set to %s", submitter_id, trusted)
    return record


def block_submitter(
    db: Session,
    submitter_id: str,
    *,
    reason: str | None = None,
    until: dt.datetime | None = None,
    now: dt.datetime | None = None,
) -> RateLimitRecord:
    record = get_or_create_record(db, submitter_id, now=as_utc(now) or utcnow())
    record.is_blocked = True
    record.blocked_reason = reason
    record.blocked_until = as_utc(until)
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.warning("Submitter %s blocked until %s", submitter_id, iso(until) or "further notice")
    return record


def unblock_submitter(db: Session, submitter_id: str, *, now: dt.datetime | None = None) -> RateLimitRecord:
    record = get_or_create_record(db, submitter_id, now=as_utc(now) or utcnow())
    record.is_blocked = False
    record.blocked_reason = None
    record.blocked_until = None
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info("Submitter %s unblocked", submitter_id)
    return record
