from __future__ import annotations

import datetime as dt
from uuid import UUID

from civicsense.core.rbac import SYSTEM_ACTOR, Actor
from civicsense.models.enums import AuditAction, ReportStatus, UserRole
from civicsense.services.audit import changed_fields, list_report_audit, record_audit, snapshot


def test_changed_fields_lists_only_differences() -> None:
    before = {"status": "pending", "escalation_level": 0, "title": "Pothole"}
    after = {"status": "in_progress", "escalation_level": 0, "title": "Pothole", "assigned_to": "eng-1"}

    assert changed_fields(before, after) == ["assigned_to", "status"]


def test_changed_fields_handles_missing_snapshots() -> None:
    assert changed_fields(None, {"a": 1}) == ["a"]
    assert changed_fields({"a": 1}, None) == ["a"]
    assert changed_fields(None, None) == []


def test_snapshot_is_json_safe(make_report) -> None:
    report = make_report(status=ReportStatus.in_progress)

    data = snapshot(report)

    assert data["status"] == "in_progress"
    assert data["priority"] == "high"
    assert isinstance(data["id"], str)
    UUID(data["id"])
    assert data["created_at"].endswith("+00:00")
    assert data["duplicate_of"] is None


def test_record_audit_update_keeps_both_states(db, make_report) -> None:
    report = make_report()
    before = snapshot(report)
    report.status = ReportStatus.in_progress
    report.updated_at = dt.datetime(2026, 3, 10, 16, 0, tzinfo=dt.timezone.utc)
    db.flush()

    entry = record_audit(
        db,
        table_name="civic_reports",
        record_id=report.id,
        action=AuditAction.update,
        before=before,
        after=snapshot(report),
        actor=Actor(id="officer-9", role=UserRole.ward_officer),
    )
    db.commit()

    assert entry.changed_fields == ["status", "updated_at"]
    assert entry.old_data["status"] == "pending"
    assert entry.new_data["status"] == "in_progress"
    assert entry.user_role == "ward_officer"


def test_record_audit_create_has_no_old_state(db, make_report) -> None:
    report = make_report()

    entry = record_audit(
        db,
        table_name="civic_reports",
        record_id=report.id,
        action=AuditAction.create,
        before=None,
        after=snapshot(report),
        actor=SYSTEM_ACTOR,
    )
    db.commit()

    assert entry.old_data is None
    assert entry.changed_fields is None
    assert entry.changed_by == "system"
    assert entry.user_role is None
    assert [row.id for row in list_report_audit(db, report.id)] == [entry.id]
