from __future__ import annotations

import datetime as dt

import pytest

from civicsense.models.enums import ReportPriority
from civicsense.models.sla_config import SLAConfig
from civicsense.services.reference_data import DEFAULT_SLA_TARGETS, load_sla_targets
from civicsense.services.sla import compute_sla_due_at, is_overdue, sla_due_at_for

CREATED = dt.datetime(2026, 3, 10, 9, 30, tzinfo=dt.timezone.utc)


@pytest.mark.parametrize(
    ("priority", "hours"),
    [
        (ReportPriority.critical, 24),
        (ReportPriority.high, 72),
        (ReportPriority.medium, 168),
        (ReportPriority.low, 336),
    ],
)
def test_due_at_adds_resolution_window(priority: ReportPriority, hours: int) -> None:
    due = compute_sla_due_at(priority, CREATED, DEFAULT_SLA_TARGETS)

    assert due == CREATED + dt.timedelta(hours=hours)


def test_unconfigured_priority_returns_none() -> None:
    targets = {p: t for p, t in DEFAULT_SLA_TARGETS.items() if p != ReportPriority.low}

    assert compute_sla_due_at(ReportPriority.low, CREATED, targets) is None


def test_unknown_priority_value_returns_none() -> None:
    assert compute_sla_due_at("urgent", CREATED, DEFAULT_SLA_TARGETS) is None


def test_naive_created_at_is_treated_as_utc() -> None:
    naive = CREATED.replace(tzinfo=None)

    due = compute_sla_due_at("high", naive, DEFAULT_SLA_TARGETS)

    assert due == CREATED + dt.timedelta(hours=72)


def test_due_at_reads_seeded_config(db) -> None:
    assert sla_due_at_for(db, "medium", CREATED) == CREATED + dt.timedelta(hours=168)


def test_missing_config_row_soft_fails(db) -> None:
    db.query(SLAConfig).filter(SLAConfig.priority == ReportPriority.critical).delete()
    db.commit()

    assert ReportPriority.critical not in load_sla_targets(db)
    assert sla_due_at_for(db, ReportPriority.critical, CREATED) is None


def test_is_overdue() -> None:
    due = CREATED + dt.timedelta(hours=24)

    assert is_overdue(due, due + dt.timedelta(seconds=1))
    assert not is_overdue(due, due)
    assert not is_overdue(None, due)
