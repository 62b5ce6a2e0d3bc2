"""Centralized RBAC policy and report scope helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from civicsense.models.enums import UserRole

Permission = str

SYSTEM_ACTOR_ID = "system"

ROLE_PERMISSIONS: dict[UserRole, set[Permission]] = {
    UserRole.citizen: {
        "create_report",
        "view_all_reports",
    },
    UserRole.ward_officer: {
        "create_report",
        "view_all_reports",
        "update_any_report",
        "assign_reports",
        "view_analytics",
    },
    UserRole.dept_admin: {
        "create_report",
        "view_all_reports",
        "update_any_report",
        "delete_report",
        "assign_reports",
        "view_analytics",
        "manage_sla",
    },
    UserRole.city_admin: {
        "create_report",
        "view_all_reports",
        "update_any_report",
        "delete_report",
        "assign_reports",
        "manage_users",
        "view_analytics",
        "manage_sla",
    },
}

STAFF_ROLES = frozenset({UserRole.ward_officer, UserRole.dept_admin, UserRole.city_admin})


@dataclass(frozen=True)
class Actor:
    """Caller identity as supplied by the upstream identity service."""

    id: str
    role: UserRole | None = None

    @property
    def role_value(self) -> str | None:
        return self.role.value if self.role else None


SYSTEM_ACTOR = Actor(id=SYSTEM_ACTOR_ID, role=None)


def has_permission(actor: Actor, permission: Permission) -> bool:
    if actor.role is None:
        return False
    return permission in ROLE_PERMISSIONS.get(actor.role, set())


def is_staff(actor: Actor) -> bool:
    return actor.role in STAFF_ROLES


def is_submitter(actor: Actor, report: Any) -> bool:
    return str(actor.id) == str(getattr(report, "submitter_id", "") or "")


def can_update_report_status(actor: Actor, report: Any) -> bool:
    return has_permission(actor, "update_any_report")


def can_reopen_report(actor: Actor, report: Any) -> bool:
    return is_submitter(actor, report)


def can_view_audit(actor: Actor) -> bool:
    return actor.role in {UserRole.dept_admin, UserRole.city_admin}
