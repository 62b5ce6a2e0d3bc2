from __future__ import annotations

import datetime as dt

import pytest
from fastapi import Response
from fastapi.testclient import TestClient
from pydantic import ValidationError

from civicsense.core.exceptions import InsufficientPermissionsError, RateLimitExceeded
from civicsense.core.rbac import Actor
from civicsense.db.session import get_db
from civicsense.models.enums import ReportPriority, ReportStatus, UserRole
from civicsense.routers.engine import post_duplicate_check, post_rate_limit_check, post_score, post_sla_due_at
from civicsense.routers.rate_limits import post_block, post_trust, post_unblock
from civicsense.routers.reports import (
    create_report,
    get_report_audit,
    get_report_escalations,
    get_report_updates,
    get_stats,
    patch_report_status,
)
from civicsense.routers.sla import get_sla_config, post_escalation_sweep
from civicsense.schemas.engine import (
    BlockRequest,
    DuplicateCheckRequest,
    ScoreRequest,
    SlaDueAtRequest,
    TrustUpdate,
)
from civicsense.schemas.report import ReportStatusUpdate, ReportSubmit

CITIZEN = Actor(id="citizen-1", role=UserRole.citizen)
OFFICER = Actor(id="officer-9", role=UserRole.ward_officer)
DEPT_ADMIN = Actor(id="dept-2", role=UserRole.dept_admin)
LAT, LNG = 12.9716, 77.5946


def _submission(**overrides) -> ReportSubmit:
    values = {
        "issue_type": "streetlight",
        "title": "Streetlight out on 5th cross",
        "description": "Whole stretch is dark after 7pm.",
        "latitude": LAT,
        "longitude": LNG,
    }
    values.update(overrides)
    return ReportSubmit(**values)


def test_score_endpoint_uses_seeded_weights(db) -> None:
    night = dt.datetime(2026, 3, 10, 22, 0, tzinfo=dt.timezone.utc)

    out = post_score(payload=ScoreRequest(issue_type="Streetlight", ai_confidence=1.0, at=night), db=db)

    assert out.score == 1.0
    assert out.priority == ReportPriority.critical


@pytest.mark.parametrize("confidence", [-0.1, 1.5])
def test_score_request_rejects_out_of_range_confidence(confidence) -> None:
    with pytest.raises(ValidationError):
        ScoreRequest(issue_type="pothole", ai_confidence=confidence)


def test_sla_due_at_endpoint_soft_fails_for_unknown_priority(db) -> None:
    created = dt.datetime(2026, 3, 10, 9, 0, tzinfo=dt.timezone.utc)

    known = post_sla_due_at(payload=SlaDueAtRequest(priority="HIGH", created_at=created), db=db)
    unknown = post_sla_due_at(payload=SlaDueAtRequest(priority="urgent", created_at=created), db=db)

    assert known.sla_due_at == created + dt.timedelta(hours=72)
    assert unknown.sla_due_at is None


def test_duplicate_endpoint(db) -> None:
    create_report(response=Response(), payload=_submission(), db=db, actor=CITIZEN)

    hit = post_duplicate_check(
        payload=DuplicateCheckRequest(latitude=LAT, longitude=LNG, issue_type="streetlight"), db=db
    )
    miss = post_duplicate_check(payload=DuplicateCheckRequest(latitude=LAT, longitude=LNG, issue_type="garbage"), db=db)

    assert hit.is_duplicate
    assert hit.match.distance_meters == 0
    assert not miss.is_duplicate
    assert miss.match is None


def test_rate_limit_endpoint_only_for_self_or_staff(db) -> None:
    own = post_rate_limit_check(submitter_id="citizen-1", db=db, actor=CITIZEN)
    assert own.allowed
    assert own.remaining_hourly == 2

    assert post_rate_limit_check(submitter_id="citizen-1", db=db, actor=OFFICER).remaining_hourly == 1

    with pytest.raises(InsufficientPermissionsError):
        post_rate_limit_check(submitter_id="citizen-1", db=db, actor=Actor(id="citizen-2", role=UserRole.citizen))


def test_create_report_statuses(db) -> None:
    created_response = Response()
    created = create_report(response=created_response, payload=_submission(), db=db, actor=CITIZEN)
    assert created.outcome == "created"
    assert created.report.department == "Electricity Department"
    assert created.remaining_hourly == 2

    dup_response = Response()
    dup = create_report(response=dup_response, payload=_submission(), db=db, actor=CITIZEN)
    assert dup.outcome == "duplicate_found"
    assert dup_response.status_code == 200
    assert dup.duplicate.existing_report_id == created.report.id
    assert dup.report is None


def test_create_report_raises_429_when_limited(db) -> None:
    for i in range(3):
        create_report(response=Response(), payload=_submission(latitude=LAT + i), db=db, actor=CITIZEN)

    with pytest.raises(RateLimitExceeded) as excinfo:
        create_report(response=Response(), payload=_submission(latitude=LAT + 5), db=db, actor=CITIZEN)

    assert excinfo.value.status_code == 429
    assert excinfo.value.details["reason"] == "hourly limit reached"
    assert "X-RateLimit-Reset" in excinfo.value.headers


def test_status_patch_requires_staff(db) -> None:
    created = create_report(response=Response(), payload=_submission(), db=db, actor=CITIZEN)

    with pytest.raises(InsufficientPermissionsError):
        patch_report_status(
            report_id=created.report.id,
            payload=ReportStatusUpdate(status=ReportStatus.in_progress),
            db=db,
            actor=CITIZEN,
        )

    out = patch_report_status(
        report_id=created.report.id,
        payload=ReportStatusUpdate(status=ReportStatus.in_progress, comment="  Crew dispatched "),
        db=db,
        actor=OFFICER,
    )
    assert out.status == ReportStatus.in_progress

    timeline = get_report_updates(report_id=created.report.id, db=db, actor=OFFICER)
    assert [row.comment for row in timeline] == ["Crew dispatched"]


def test_audit_view_is_admin_only(db) -> None:
    created = create_report(response=Response(), payload=_submission(), db=db, actor=CITIZEN)

    with pytest.raises(InsufficientPermissionsError):
        get_report_audit(report_id=created.report.id, db=db, actor=OFFICER)

    entries = get_report_audit(report_id=created.report.id, db=db, actor=DEPT_ADMIN)
    assert [e.action for e in entries] == ["INSERT"]


def test_stats_scope_depends_on_role(db) -> None:
    create_report(response=Response(), payload=_submission(), db=db, actor=CITIZEN)
    create_report(
        response=Response(),
        payload=_submission(issue_type="garbage", latitude=LAT + 1),
        db=db,
        actor=Actor(id="citizen-2", role=UserRole.citizen),
    )

    assert get_stats(db=db, actor=CITIZEN).total == 1
    assert get_stats(db=db, actor=OFFICER).total == 2


def test_sla_config_and_manual_sweep(db) -> None:
    config = get_sla_config(db=db)
    assert [row.priority for row in config] == [
        ReportPriority.critical,
        ReportPriority.high,
        ReportPriority.medium,
        ReportPriority.low,
    ]

    created = create_report(response=Response(), payload=_submission(), db=db, actor=CITIZEN)
    result = post_escalation_sweep(db=db, actor=DEPT_ADMIN)

    assert result.skipped is False
    assert result.processed == 1
    assert result.escalated_count == 0
    assert get_report_escalations(report_id=created.report.id, db=db, actor=OFFICER) == []


def test_rate_limit_admin_endpoints(db) -> None:
    trusted = post_trust(submitter_id="volunteer-7", payload=TrustUpdate(trusted=True, reason="NGO"), db=db)
    assert trusted.is_trusted
    assert trusted.trust_reason == "NGO"

    blocked = post_block(submitter_id="spammer", payload=BlockRequest(reason="flood"), db=db)
    assert blocked.is_blocked
    assert blocked.blocked_until is None

    assert post_unblock(submitter_id="spammer", db=db).is_blocked is False


@pytest.fixture()
def client(db):
    from civicsense.main import app

    def _override_db():
        yield db

    app.dependency_overrides[get_db] = _override_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def test_health(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_missing_actor_header_is_401(client) -> None:
    response = client.get("/api/sla/config")

    assert response.status_code == 401
    assert response.json()["error_code"] == "NOT_AUTHENTICATED"


def test_http_submission_and_rate_limit(client) -> None:
    headers = {"X-Actor-Id": "citizen-1", "X-Actor-Role": "citizen"}
    body = {
        "issue_type": "pothole",
        "title": "Pothole by the school gate",
        "description": "Kids trip over it every morning.",
    }

    first = client.post("/api/reports/", json=body, headers=headers)
    assert first.status_code == 201
    assert first.json()["outcome"] == "created"

    for _ in range(2):
        assert client.post("/api/reports/", json=body, headers=headers).status_code == 201

    limited = client.post("/api/reports/", json=body, headers=headers)
    assert limited.status_code == 429
    assert limited.json()["details"]["reason"] == "hourly limit reached"
    assert "x-ratelimit-reset" in limited.headers


def test_sweep_requires_manage_sla(client) -> None:
    response = client.post("/api/sla/sweep", headers={"X-Actor-Id": "o-1", "X-Actor-Role": "ward_officer"})

    assert response.status_code == 403
