"""Issue categories, department routing and the emergency category."""

from __future__ import annotations

from dataclasses import dataclass

from civicsense.models.enums import IssueType, ReportPriority

EMERGENCY_CATEGORY_ID = "emergency"


@dataclass(frozen=True)
class IssueCategory:
    id: str
    label: str
    department: str
    officer: str
    issues: tuple[IssueType, ...]
    default_priority: ReportPriority | None = None


ISSUE_CATEGORIES: tuple[IssueCategory, ...] = (
    IssueCategory(
        id="road_transport",
        label="Road & Transport",
        department="Roads & Buildings Department",
        officer="Ward Engineer",
        issues=(
            IssueType.pothole,
            IssueType.road_damage,
            IssueType.broken_footpath,
            IssueType.speed_breaker,
            IssueType.missing_signboard,
        ),
    ),
    IssueCategory(
        id="sanitation",
        label="Sanitation & Waste",
        department="Municipal Sanitation Department",
        officer="Waste Management Officer",
        issues=(IssueType.garbage, IssueType.illegal_dumping, IssueType.dead_animal, IssueType.public_toilet),
    ),
    IssueCategory(
        id="electricity",
        label="Electricity & Lights",
        department="Electricity Department",
        officer="Power Utility Office",
        issues=(IssueType.streetlight, IssueType.power_outage, IssueType.loose_wires, IssueType.transformer_fault),
    ),
    IssueCategory(
        id="water_drainage",
        label="Water & Drainage",
        department="Water Supply & Sewerage Board",
        officer="Drainage Maintenance Dept",
        issues=(IssueType.drainage, IssueType.water_leak, IssueType.sewer_overflow, IssueType.flooding),
    ),
    IssueCategory(
        id="environment",
        label="Environment & Parks",
        department="Parks & Environment Department",
        officer="Municipal Estate Office",
        issues=(IssueType.fallen_tree, IssueType.park_damage, IssueType.tree_cutting, IssueType.encroachment),
    ),
    IssueCategory(
        id="traffic",
        label="Traffic & Safety",
        department="Traffic Police Department",
        officer="Urban Transport Authority",
        issues=(IssueType.traffic_signal, IssueType.parking_violation, IssueType.accident_prone),
    ),
    IssueCategory(
        id=EMERGENCY_CATEGORY_ID,
        label="Emergency / High Risk",
        department="Emergency Services",
        officer="Disaster Management Authority",
        issues=(IssueType.fire_hazard, IssueType.gas_leak, IssueType.building_collapse),
        default_priority=ReportPriority.critical,
    ),
)

_CATEGORY_BY_ISSUE: dict[IssueType, IssueCategory] = {
    issue: category for category in ISSUE_CATEGORIES for issue in category.issues
}


def _as_issue_type(issue_type: IssueType | str) -> IssueType | None:
    if isinstance(issue_type, IssueType):
        return issue_type
    try:
        return IssueType(str(issue_type or "").strip().lower())
    except ValueError:
        return None


def category_for_issue(issue_type: IssueType | str) -> IssueCategory | None:
    resolved = _as_issue_type(issue_type)
    if resolved is None:
        return None
    return _CATEGORY_BY_ISSUE.get(resolved)


def department_for_issue(issue_type: IssueType | str) -> str | None:
    category = category_for_issue(issue_type)
    return category.department if category else None


def is_emergency_issue(issue_type: IssueType | str) -> bool:
    category = category_for_issue(issue_type)
    return category is not None and category.id == EMERGENCY_CATEGORY_ID


def all_issue_types() -> list[IssueType]:
    """Every catalogued issue type, then the uncategorised fallback."""
    return [issue for category in ISSUE_CATEGORIES for issue in category.issues] + [IssueType.other]
