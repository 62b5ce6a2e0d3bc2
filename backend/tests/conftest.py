from __future__ import annotations

import datetime as dt
import os
import sys
from pathlib import Path
from uuid import uuid4

import pytest

BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")
os.environ.setdefault("ESCALATION_SWEEP_ENABLED", "false")

from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import civicsense.models  # noqa: E402,F401
from civicsense.db.base import Base  # noqa: E402
from civicsense.models.enums import IssueType, ReportPriority, ReportStatus  # noqa: E402
from civicsense.models.report import Report  # noqa: E402
from civicsense.services.reference_data import seed_reference_data  # noqa: E402

FIXED_NOW = dt.datetime(2026, 3, 10, 14, 5, tzinfo=dt.timezone.utc)


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite needs explicit BEGIN for SAVEPOINT support.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, _record):  # noqa: ANN001
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):  # noqa: ANN001
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    seed_reference_data(session)
    session.commit()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def now() -> dt.datetime:
    return FIXED_NOW


@pytest.fixture()
def make_report(db):
    def _make(**overrides) -> Report:
        created_at = overrides.pop("created_at", FIXED_NOW)
        values = {
            "id": uuid4(),
            "submitter_id": "citizen-1",
            "issue_type": IssueType.pothole,
            "title": "Deep pothole near the bus stop",
            "description": "Large pothole on the left lane.",
            "latitude": 12.9716,
            "longitude": 77.5946,
            "status": ReportStatus.pending,
            "priority": ReportPriority.high,
            "priority_score": 0.6,
            "ai_confidence": 0.5,
            "sla_due_at": created_at + dt.timedelta(hours=72),
            "escalation_level": 0,
            "is_duplicate": False,
            "duplicate_count": 0,
            "created_at": created_at,
            "updated_at": created_at,
        }
        values.update(overrides)
        report = Report(**values)
        db.add(report)
        db.commit()
        db.refresh(report)
        return report

    return _make


@pytest.fixture()
def session_factory(tmp_path):
    """Sessions on a file-backed database, one connection per thread."""
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'civicsense.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, _record):  # noqa: ANN001
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):  # noqa: ANN001
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    with factory() as session:
        seed_reference_data(session)
        session.commit()
    yield factory
    engine.dispose()
