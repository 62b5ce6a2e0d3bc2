from __future__ import annotations

import datetime as dt

from civicsense.core.clock import as_utc
from civicsense.models.audit_log import AuditLog
from civicsense.models.enums import ReportPriority, ReportStatus
from civicsense.models.escalation import Escalation
from civicsense.models.scheduler_lock import SchedulerLock
from civicsense.services import escalation as escalation_service
from civicsense.services.escalation import (
    SWEEP_LOCK_NAME,
    acquire_sweep_lease,
    evaluate_escalation,
    run_escalation_sweep,
)
from civicsense.services.reference_data import DEFAULT_SLA_TARGETS

T = dt.datetime(2026, 3, 1, 8, 0, tzinfo=dt.timezone.utc)
HIGH = DEFAULT_SLA_TARGETS[ReportPriority.high]


class _RecordingNotifier:
    def __init__(self) -> None:
        self.calls: list[tuple[str, int]] = []

    def notify(self, report_id, new_level: int) -> None:  # noqa: ANN001
        self.calls.append((str(report_id), new_level))


def _escalations(db, report_id) -> list[Escalation]:
    return db.query(Escalation).filter(Escalation.report_id == report_id).order_by(Escalation.to_level).all()


def test_evaluate_escalation_follows_thresholds() -> None:
    assert evaluate_escalation(0, T, HIGH, T + dt.timedelta(hours=10)) is None
    assert evaluate_escalation(0, T, HIGH, T + dt.timedelta(hours=24)) is None

    first = evaluate_escalation(0, T, HIGH, T + dt.timedelta(hours=30))
    assert (first.from_level, first.to_level) == (0, 1)
    assert first.reason == "SLA Level 1 breach - 30h elapsed (threshold: 24h)"

    second = evaluate_escalation(1, T, HIGH, T + dt.timedelta(hours=50))
    assert (second.from_level, second.to_level) == (1, 2)
    assert second.reason == "SLA Level 2 breach - 50h elapsed (threshold: 48h)"

    assert evaluate_escalation(2, T, HIGH, T + dt.timedelta(hours=500)) is None


def test_unswept_report_jumps_straight_to_level_two() -> None:
    decision = evaluate_escalation(0, T, HIGH, T + dt.timedelta(hours=50))

    assert (decision.from_level, decision.to_level) == (0, 2)


def test_high_priority_scenario(db, make_report) -> None:
    report = make_report(priority=ReportPriority.high, created_at=T)
    notifier = _RecordingNotifier()

    early = run_escalation_sweep(db, now=T + dt.timedelta(hours=10), notifier=notifier)
    assert early.processed == 1
    assert early.escalated == []

    first = run_escalation_sweep(db, now=T + dt.timedelta(hours=30), notifier=notifier)
    assert [(e.from_level, e.to_level) for e in first.escalated] == [(0, 1)]
    assert "30h elapsed" in first.escalated[0].reason
    assert "threshold: 24h" in first.escalated[0].reason

    second = run_escalation_sweep(db, now=T + dt.timedelta(hours=50), notifier=notifier)
    assert [(e.from_level, e.to_level) for e in second.escalated] == [(1, 2)]

    db.expire_all()
    assert db.get(type(report), report.id).escalation_level == 2
    rows = _escalations(db, report.id)
    assert [(row.from_level, row.to_level) for row in rows] == [(0, 1), (1, 2)]
    assert all(row.escalated_by == "system" for row in rows)
    assert notifier.calls == [(str(report.id), 1), (str(report.id), 2)]


def test_sweep_is_idempotent(db, make_report) -> None:
    report = make_report(created_at=T)
    at = T + dt.timedelta(hours=30)

    first = run_escalation_sweep(db, now=at)
    second = run_escalation_sweep(db, now=at)

    assert len(first.escalated) == 1
    assert second.escalated == []
    assert len(_escalations(db, report.id)) == 1


def test_sweep_writes_system_audit_entry(db, make_report) -> None:
    report = make_report(created_at=T)

    run_escalation_sweep(db, now=T + dt.timedelta(hours=30))

    entries = db.query(AuditLog).filter(AuditLog.record_id == report.id).all()
    assert len(entries) == 1
    assert entries[0].changed_by == "system"
    assert "escalation_level" in entries[0].changed_fields
    assert entries[0].old_data["escalation_level"] == 0
    assert entries[0].new_data["escalation_level"] == 1


def test_sweep_ignores_closed_and_untracked_reports(db, make_report) -> None:
    make_report(created_at=T, status=ReportStatus.resolved)
    make_report(created_at=T, status=ReportStatus.rejected)
    make_report(created_at=T, sla_due_at=None)
    reopened = make_report(created_at=T, status=ReportStatus.reopened)

    result = run_escalation_sweep(db, now=T + dt.timedelta(hours=30))

    assert result.processed == 1
    assert [e.report_id for e in result.escalated] == [str(reopened.id)]


def test_missing_sla_config_skips_report(db, make_report) -> None:
    from civicsense.models.sla_config import SLAConfig

    make_report(created_at=T, priority=ReportPriority.low)
    db.query(SLAConfig).filter(SLAConfig.priority == ReportPriority.low).delete()
    db.commit()

    result = run_escalation_sweep(db, now=T + dt.timedelta(days=30))

    assert result.escalated == []
    assert result.failures == []


def test_one_failing_report_does_not_stop_the_sweep(db, make_report, monkeypatch) -> None:
    broken = make_report(created_at=T)
    healthy = make_report(created_at=T + dt.timedelta(minutes=1))
    original = escalation_service.escalate_report

    def _flaky(session, report_id, **kwargs):  # noqa: ANN001, ANN003
        if report_id == broken.id:
            raise RuntimeError("write failed")
        return original(session, report_id, **kwargs)

    monkeypatch.setattr(escalation_service, "escalate_report", _flaky)

    result = run_escalation_sweep(db, now=T + dt.timedelta(hours=30))

    assert result.processed == 2
    assert [e.report_id for e in result.escalated] == [str(healthy.id)]
    assert len(result.failures) == 1
    assert result.failures[0].report_id == str(broken.id)
    assert "write failed" in result.failures[0].error


def test_notifier_failure_does_not_undo_escalation(db, make_report) -> None:
    report = make_report(created_at=T)

    class _Broken:
        def notify(self, report_id, new_level):  # noqa: ANN001
            raise ConnectionError("sink down")

    result = run_escalation_sweep(db, now=T + dt.timedelta(hours=30), notifier=_Broken())

    assert len(result.escalated) == 1
    assert result.failures == []
    assert len(_escalations(db, report.id)) == 1


def test_sweep_skips_when_lease_is_held(db, make_report) -> None:
    report = make_report(created_at=T)
    at = T + dt.timedelta(hours=30)
    db.add(SchedulerLock(name=SWEEP_LOCK_NAME, holder="other-host:1", locked_until=at + dt.timedelta(minutes=10)))
    db.commit()

    result = run_escalation_sweep(db, now=at, holder="this-host:2")

    assert result.skipped
    assert result.processed == 0
    db.expire_all()
    assert db.get(type(report), report.id).escalation_level == 0


def test_expired_lease_can_be_taken_over(db) -> None:
    at = T + dt.timedelta(hours=30)
    db.add(SchedulerLock(name=SWEEP_LOCK_NAME, holder="crashed:1", locked_until=at - dt.timedelta(seconds=1)))
    db.commit()

    assert acquire_sweep_lease(db, holder="fresh:2", now=at)
    assert not acquire_sweep_lease(db, holder="late:3", now=at)


def test_holder_can_renew_its_own_lease(db) -> None:
    at = T + dt.timedelta(hours=30)

    assert acquire_sweep_lease(db, holder="worker:1", now=at, lease_seconds=600)
    assert acquire_sweep_lease(db, holder="worker:1", now=at + dt.timedelta(minutes=1), lease_seconds=600)
    assert not acquire_sweep_lease(db, holder="worker:2", now=at + dt.timedelta(minutes=2))

    db.expire_all()
    lock = db.get(SchedulerLock, SWEEP_LOCK_NAME)
    assert lock.holder == "worker:1"
    assert as_utc(lock.locked_until) == at + dt.timedelta(minutes=11)


def test_sweep_releases_lease_and_stamps_last_run(db, make_report) -> None:
    make_report(created_at=T)
    at = T + dt.timedelta(hours=30)

    run_escalation_sweep(db, now=at, holder="worker:1")

    db.expire_all()
    lock = db.get(SchedulerLock, SWEEP_LOCK_NAME)
    assert lock.locked_until is None
    assert lock.last_run_at is not None


def test_sweep_result_serializes(db, make_report) -> None:
    make_report(created_at=T)

    payload = run_escalation_sweep(db, now=T + dt.timedelta(hours=30)).to_dict()

    assert payload["processed"] == 1
    assert payload["escalated_count"] == 1
    assert payload["escalations"][0]["to_level"] == 1
    assert payload["skipped"] is False
    assert payload["ran_at"].startswith("2026-03-02T14:00:00")
