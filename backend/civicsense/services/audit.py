"""Before/after audit recording for report mutations."""

from __future__ import annotations

import datetime as dt
import enum
import logging
from typing import Any
from uuid import UUID

from sqlalchemy import inspect, select
from sqlalchemy.orm import Session

from civicsense.core.clock import iso
from civicsense.core.rbac import Actor
from civicsense.models.audit_log import AuditLog
from civicsense.models.enums import AuditAction
from civicsense.models.report import Report

logger = logging.getLogger(__name__)

REPORTS_TABLE = Report.__tablename__


def _json_safe(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, dt.datetime):
        return iso(value)
    if isinstance(value, dt.date):
        return value.isoformat()
    return value


def snapshot(entity: Any) -> dict[str, Any]:
    """Column values of a mapped entity as a JSON-safe dict."""
    mapper = inspect(entity).mapper
    return {attr.key: _json_safe(getattr(entity, attr.key)) for attr in mapper.column_attrs}


def changed_fields(before: dict[str, Any] | None, after: dict[str, Any] | None) -> list[str]:
    before = before or {}
    after = after or {}
    keys = sorted(set(before) | set(after))
    return [key for key in keys if before.get(key) != after.get(key)]


def record_audit(
    db: Session,
    *,
    table_name: str,
    record_id: UUID,
    action: AuditAction,
    before: dict[str, Any] | None,
    after: dict[str, Any] | None,
    actor: Actor,
) -> AuditLog:
    """Append one audit entry. Caller is responsible for commit."""
    fields = changed_fields(before, after) if action == AuditAction.update else None
    entry = AuditLog(
        table_name=table_name,
        record_id=record_id,
        action=action,
        old_data=before if action in {AuditAction.update, AuditAction.delete} else None,
        new_data=after if action in {AuditAction.create, AuditAction.update} else None,
        changed_fields=fields,
        changed_by=str(actor.id),
        user_role=actor.role_value,
    )
    db.add(entry)
    return entry


def record_report_created(db: Session, report: Report, actor: Actor) -> AuditLog:
    return record_audit(
        db,
        table_name=REPORTS_TABLE,
        record_id=report.id,
        action=AuditAction.create,
        before=None,
        after=snapshot(report),
        actor=actor,
    )


def record_report_updated(db: Session, report: Report, before: dict[str, Any], actor: Actor) -> AuditLog:
    entry = record_audit(
        db,
        table_name=REPORTS_TABLE,
        record_id=report.id,
        action=AuditAction.update,
        before=before,
        after=snapshot(report),
        actor=actor,
    )
    logger.debug("Audit %s on report %s: %s", entry.action.value, report.id, entry.changed_fields)
    return entry


def list_report_audit(db: Session, report_id: UUID, *, limit: int = 100) -> list[AuditLog]:
    return list(
        db.execute(
            select(AuditLog)
            .where(AuditLog.table_name == REPORTS_TABLE, AuditLog.record_id == report_id)
            .order_by(AuditLog.created_at.asc())
            .limit(limit)
        ).scalars().all()
    )
