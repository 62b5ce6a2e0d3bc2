from __future__ import annotations

from types import SimpleNamespace

import pytest

from civicsense.core.deps import get_current_actor, require_permission
from civicsense.core.exceptions import AuthenticationException, InsufficientPermissionsError
from civicsense.core.rbac import (
    Actor,
    can_reopen_report,
    can_update_report_status,
    can_view_audit,
    has_permission,
    is_staff,
)
from civicsense.models.enums import UserRole


def _request(headers: dict[str, str]) -> SimpleNamespace:
    return SimpleNamespace(headers=headers)


def test_citizen_can_report_but_not_triage() -> None:
    citizen = Actor(id="c-1", role=UserRole.citizen)

    assert has_permission(citizen, "create_report")
    assert not has_permission(citizen, "update_any_report")
    assert not has_permission(citizen, "manage_sla")
    assert not is_staff(citizen)


def test_staff_permission_ladder() -> None:
    officer = Actor(id="o-1", role=UserRole.ward_officer)
    dept = Actor(id="d-1", role=UserRole.dept_admin)
    city = Actor(id="a-1", role=UserRole.city_admin)

    assert has_permission(officer, "assign_reports")
    assert not has_permission(officer, "manage_sla")
    assert has_permission(dept, "manage_sla")
    assert not has_permission(dept, "manage_users")
    assert has_permission(city, "manage_users")
    assert all(is_staff(a) for a in (officer, dept, city))


def test_report_level_policies() -> None:
    report = SimpleNamespace(submitter_id="c-1")
    citizen = Actor(id="c-1", role=UserRole.citizen)
    stranger = Actor(id="c-2", role=UserRole.citizen)
    officer = Actor(id="o-1", role=UserRole.ward_officer)

    assert can_reopen_report(citizen, report)
    assert not can_reopen_report(stranger, report)
    assert not can_reopen_report(officer, report)
    assert can_update_report_status(officer, report)
    assert not can_update_report_status(citizen, report)
    assert not can_view_audit(officer)
    assert can_view_audit(Actor(id="a-1", role=UserRole.city_admin))


def test_actor_without_role_has_no_permissions() -> None:
    assert not has_permission(Actor(id="system"), "create_report")


def test_actor_from_headers() -> None:
    actor = get_current_actor(_request({"X-Actor-Id": " officer-9 ", "X-Actor-Role": "Ward-Officer"}))

    assert actor == Actor(id="officer-9", role=UserRole.ward_officer)


def test_missing_role_defaults_to_citizen() -> None:
    assert get_current_actor(_request({"X-Actor-Id": "c-1"})).role == UserRole.citizen


def test_missing_actor_is_unauthenticated() -> None:
    with pytest.raises(AuthenticationException) as excinfo:
        get_current_actor(_request({}))

    assert excinfo.value.status_code == 401


def test_unknown_role_is_rejected() -> None:
    with pytest.raises(AuthenticationException):
        get_current_actor(_request({"X-Actor-Id": "c-1", "X-Actor-Role": "mayor"}))


def test_permission_dependency() -> None:
    officer = Actor(id="o-1", role=UserRole.ward_officer)

    assert require_permission("assign_reports")(officer) is officer
    with pytest.raises(InsufficientPermissionsError):
        require_permission("manage_sla")(officer)
