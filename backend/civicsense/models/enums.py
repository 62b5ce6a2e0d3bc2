"""Shared enum values used by the database models and schemas."""

from __future__ import annotations

import enum


class UserRole(str, enum.Enum):
    citizen = "citizen"
    ward_officer = "ward_officer"
    dept_admin = "dept_admin"
    city_admin = "city_admin"


class ReportStatus(str, enum.Enum):
    pending = "pending"
    in_progress = "in_progress"
    resolved = "resolved"
    rejected = "rejected"
    reopened = "reopened"


class ReportPriority(str, enum.Enum):
    critical = "critical"
    high = "high"
    medium = "medium"
    low = "low"


class IssueType(str, enum.Enum):
    # road & transport
    pothole = "pothole"
    road_damage = "road_damage"
    broken_footpath = "broken_footpath"
    speed_breaker = "speed_breaker"
    missing_signboard = "missing_signboard"
    # sanitation
    garbage = "garbage"
    illegal_dumping = "illegal_dumping"
    dead_animal = "dead_animal"
    public_toilet = "public_toilet"
    # electricity
    streetlight = "streetlight"
    power_outage = "power_outage"
    loose_wires = "loose_wires"
    transformer_fault = "transformer_fault"
    # water & drainage
    drainage = "drainage"
    water_leak = "water_leak"
    sewer_overflow = "sewer_overflow"
    flooding = "flooding"
    # environment
    fallen_tree = "fallen_tree"
    park_damage = "park_damage"
    tree_cutting = "tree_cutting"
    encroachment = "encroachment"
    # traffic
    traffic_signal = "traffic_signal"
    parking_violation = "parking_violation"
    accident_prone = "accident_prone"
    # emergency
    fire_hazard = "fire_hazard"
    gas_leak = "gas_leak"
    building_collapse = "building_collapse"
    other = "other"


class AuditAction(str, enum.Enum):
    create = "INSERT"
    update = "UPDATE"
    delete = "DELETE"


ACTIVE_STATUSES = frozenset({ReportStatus.pending, ReportStatus.in_progress, ReportStatus.reopened})
CLOSED_STATUSES = frozenset({ReportStatus.resolved, ReportStatus.rejected})
