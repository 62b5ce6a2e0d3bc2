"""Request/response models for the engine, SLA and rate-limit endpoints."""

from __future__ import annotations

import datetime as dt
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from civicsense.core.sanitize import clean_identifier, clean_multiline
from civicsense.models.enums import ReportPriority


class ScoreRequest(BaseModel):
    issue_type: str = Field(min_length=1, max_length=64)
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    ai_confidence: float = Field(default=0.5, ge=0, le=1)
    at: dt.datetime | None = None

    @field_validator("issue_type", mode="before")
    @classmethod
    def normalize_issue_type(cls, value: str) -> str:
        return clean_identifier(value)


class ScoreOut(BaseModel):
    score: float
    priority: ReportPriority


class SlaDueAtRequest(BaseModel):
    priority: str = Field(min_length=1, max_length=32)
    created_at: dt.datetime

    @field_validator("priority", mode="before")
    @classmethod
    def normalize_priority(cls, value: str) -> str:
        return clean_identifier(value)


class SlaDueAtOut(BaseModel):
    sla_due_at: dt.datetime | None


class DuplicateCheckRequest(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    issue_type: str = Field(min_length=1, max_length=64)
    radius_meters: float | None = Field(default=None, gt=0)
    window_hours: float | None = Field(default=None, gt=0)

    @field_validator("issue_type", mode="before")
    @classmethod
    def normalize_issue_type(cls, value: str) -> str:
        return clean_identifier(value)


class DuplicateMatchOut(BaseModel):
    existing_report_id: UUID
    title: str
    distance_meters: int
    hours_ago: int


class DuplicateCheckOut(BaseModel):
    is_duplicate: bool
    match: DuplicateMatchOut | None = None


class RateLimitDecisionOut(BaseModel):
    allowed: bool
    reason: str | None = None
    remaining_hourly: int | None = None
    remaining_daily: int | None = None
    reset_at: dt.datetime | None = None
    blocked_until: dt.datetime | None = None


class SweepResultOut(BaseModel):
    processed: int
    escalated_count: int
    escalations: list[dict[str, Any]]
    failures: list[dict[str, Any]]
    skipped: bool
    ran_at: str | None


class SLAConfigOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    priority: ReportPriority
    response_time_hours: int
    resolution_time_hours: int
    escalation_level_1_hours: int
    escalation_level_2_hours: int


class TrustUpdate(BaseModel):
    trusted: bool = True
    reason: str | None = Field(default=None, max_length=500)

    @field_validator("reason", mode="before")
    @classmethod
    def normalize_reason(cls, value: str | None) -> str | None:
        cleaned = clean_multiline(value)
        return cleaned or None


class BlockRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)
    until: dt.datetime | None = None

    @field_validator("reason", mode="before")
    @classmethod
    def normalize_reason(cls, value: str | None) -> str | None:
        cleaned = clean_multiline(value)
        return cleaned or None


class RateLimitRecordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    submitter_id: str
    reports_today: int
    reports_this_hour: int
    last_report_at: dt.datetime | None
    is_trusted: bool
    trust_reason: str | None
    is_blocked: bool
    blocked_reason: str | None
    blocked_until: dt.datetime | None


class IssueCategoryOut(BaseModel):
    id: str
    label: str
    department: str | None
    officer: str | None
    issues: list[str]
    emergency: bool
