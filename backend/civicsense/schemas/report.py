"""Pydantic schemas for reports, timeline, feedback and stats."""

from __future__ import annotations

import datetime as dt
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from civicsense.core.sanitize import clean_identifier, clean_multiline, clean_single_line
from civicsense.models.enums import IssueType, ReportPriority, ReportStatus

MAX_TITLE_LEN = 200
MAX_DESCRIPTION_LEN = 4000
MAX_ADDRESS_LEN = 500
MAX_COMMENT_LEN = 2000


class ReportSubmit(BaseModel):
    issue_type: IssueType
    title: str = Field(min_length=3, max_length=MAX_TITLE_LEN)
    description: str = Field(min_length=5, max_length=MAX_DESCRIPTION_LEN)
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    address: str | None = Field(default=None, max_length=MAX_ADDRESS_LEN)
    municipality: str | None = Field(default=None, max_length=255)
    ward_id: str | None = Field(default=None, max_length=64)
    image_url: str | None = Field(default=None, max_length=1024)
    ai_confidence: float = Field(default=0.5, ge=0, le=1)
    ai_detected_type: str | None = Field(default=None, max_length=64)
    force_submit: bool = False

    @field_validator("issue_type", mode="before")
    @classmethod
    def normalize_issue_type(cls, value: str) -> str:
        return clean_identifier(value) if isinstance(value, str) else value

    @field_validator("title", mode="before")
    @classmethod
    def normalize_title(cls, value: str) -> str:
        return clean_single_line(value)

    @field_validator("description", mode="before")
    @classmethod
    def normalize_description(cls, value: str) -> str:
        return clean_multiline(value)

    @field_validator("address", "municipality", "ward_id", "ai_detected_type", mode="before")
    @classmethod
    def normalize_optional(cls, value: str | None) -> str | None:
        cleaned = clean_single_line(value)
        return cleaned or None


class ReportStatusUpdate(BaseModel):
    status: ReportStatus
    comment: str | None = Field(default=None, max_length=MAX_COMMENT_LEN)

    @field_validator("comment", mode="before")
    @classmethod
    def normalize_comment(cls, value: str | None) -> str | None:
        cleaned = clean_multiline(value)
        return cleaned or None


class ReportAssignment(BaseModel):
    assigned_to: str | None = Field(default=None, max_length=64)

    @field_validator("assigned_to", mode="before")
    @classmethod
    def normalize_assignee(cls, value: str | None) -> str | None:
        cleaned = clean_single_line(value)
        return cleaned or None


class ReportPriorityOverride(BaseModel):
    priority: ReportPriority
    comment: str | None = Field(default=None, max_length=MAX_COMMENT_LEN)


class FeedbackCreate(BaseModel):
    rating: int = Field(ge=1, le=5)
    feedback_text: str | None = Field(default=None, max_length=MAX_COMMENT_LEN)
    is_satisfied: bool | None = None
    would_recommend: bool | None = None
    response_time_rating: int | None = Field(default=None, ge=1, le=5)

    @field_validator("feedback_text", mode="before")
    @classmethod
    def normalize_text(cls, value: str | None) -> str | None:
        cleaned = clean_multiline(value)
        return cleaned or None


class ReportOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    submitter_id: str
    issue_type: IssueType
    title: str
    description: str
    image_url: str | None
    latitude: float | None
    longitude: float | None
    address: str | None
    municipality: str | None
    ward_id: str | None
    department: str | None
    status: ReportStatus
    priority: ReportPriority
    priority_score: float | None
    ai_confidence: float
    ai_detected_type: str | None
    sla_due_at: dt.datetime | None
    escalation_level: int
    is_duplicate: bool
    duplicate_of: UUID | None
    duplicate_count: int
    assigned_to: str | None
    assigned_at: dt.datetime | None
    created_at: dt.datetime
    updated_at: dt.datetime
    resolved_at: dt.datetime | None


class ReportUpdateOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    actor_id: str
    status: ReportStatus | None
    comment: str
    created_at: dt.datetime


class EscalationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    report_id: UUID
    from_level: int
    to_level: int
    reason: str
    escalated_by: str
    created_at: dt.datetime


class AuditLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    table_name: str
    record_id: UUID
    action: str
    old_data: dict | None
    new_data: dict | None
    changed_fields: list[str] | None
    changed_by: str
    user_role: str | None
    created_at: dt.datetime

    @field_validator("action", mode="before")
    @classmethod
    def action_value(cls, value: object) -> str:
        return str(getattr(value, "value", value))


class FeedbackOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    report_id: UUID
    rating: int
    feedback_text: str | None
    is_satisfied: bool | None
    would_recommend: bool | None
    response_time_rating: int | None
    created_at: dt.datetime


class ReportStats(BaseModel):
    total: int
    pending: int
    in_progress: int
    resolved: int
    rejected: int
    reopened: int
    overdue_sla: int
    escalated: int
    by_type: dict[str, int]
    by_priority: dict[str, int]


class DuplicateWarning(BaseModel):
    existing_report_id: UUID
    title: str
    distance_meters: int
    hours_ago: int


class SubmissionOut(BaseModel):
    outcome: str
    report: ReportOut | None = None
    duplicate: DuplicateWarning | None = None
    remaining_hourly: int | None = None
    remaining_daily: int | None = None
