from __future__ import annotations

from civicsense.models.enums import IssueType, ReportPriority
from civicsense.routers.engine import get_issue_types
from civicsense.services.issue_catalog import (
    all_issue_types,
    category_for_issue,
    department_for_issue,
    is_emergency_issue,
)


def test_category_lookup_accepts_raw_strings() -> None:
    category = category_for_issue(" Pothole ")

    assert category is not None
    assert category.id == "road_transport"
    assert category_for_issue(IssueType.gas_leak).default_priority == ReportPriority.critical


def test_unknown_and_other_have_no_category() -> None:
    assert category_for_issue("meteor_strike") is None
    assert category_for_issue(IssueType.other) is None
    assert department_for_issue("") is None


def test_department_routing() -> None:
    assert department_for_issue("streetlight") == "Electricity Department"
    assert department_for_issue(IssueType.sewer_overflow) == "Water Supply & Sewerage Board"


def test_emergency_issues() -> None:
    assert is_emergency_issue("fire_hazard")
    assert is_emergency_issue(IssueType.building_collapse)
    assert not is_emergency_issue("garbage")
    assert not is_emergency_issue("nonsense")


def test_all_issue_types_covers_every_enum_member_once() -> None:
    issues = all_issue_types()

    assert len(issues) == len(set(issues))
    assert set(issues) == set(IssueType)
    assert issues[-1] == IssueType.other


def test_issue_types_endpoint_lists_other_last() -> None:
    categories = get_issue_types()

    assert categories[-1].id == "other"
    assert categories[-1].issues == ["other"]
    assert categories[-1].department is None
    assert [c.id for c in categories if c.emergency] == ["emergency"]
