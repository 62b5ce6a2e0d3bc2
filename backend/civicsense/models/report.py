"""Civic report and timeline models."""

from __future__ import annotations

import datetime as dt
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, Enum, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from civicsense.core.clock import utcnow
from civicsense.db.base import Base
from civicsense.models.enums import IssueType, ReportPriority, ReportStatus


class Report(Base):
    __tablename__ = "civic_reports"
    __table_args__ = (
        Index("ix_civic_reports_status_priority_created", "status", "priority", "created_at"),
        Index("ix_civic_reports_location", "latitude", "longitude"),
        Index("ix_civic_reports_assigned", "assigned_to", "status"),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    submitter_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    issue_type: Mapped[IssueType] = mapped_column(
        Enum(IssueType, name="issue_type", values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    address: Mapped[str | None] = mapped_column(String(512), nullable=True)
    municipality: Mapped[str | None] = mapped_column(String(255), nullable=True)
    ward_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    department: Mapped[str | None] = mapped_column(String(255), nullable=True)

    status: Mapped[ReportStatus] = mapped_column(
        Enum(ReportStatus, name="report_status", values_callable=lambda x: [e.value for e in x]),
        default=ReportStatus.pending,
        nullable=False,
        index=True,
    )
    priority: Mapped[ReportPriority] = mapped_column(
        Enum(ReportPriority, name="report_priority", values_callable=lambda x: [e.value for e in x]),
        default=ReportPriority.medium,
        nullable=False,
    )
    priority_score: Mapped[float | None] = mapped_column(Float, nullable=True)

    ai_confidence: Mapped[float] = mapped_column(Float, default=0.5, nullable=False)
    ai_detected_type: Mapped[str | None] = mapped_column(String(64), nullable=True)

    sla_due_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    escalation_level: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    is_duplicate: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    duplicate_of: Mapped[UUID | None] = mapped_column(ForeignKey("civic_reports.id"), nullable=True)
    duplicate_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    assigned_to: Mapped[str | None] = mapped_column(String(64), nullable=True)
    assigned_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    resolved_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    updates: Mapped[list[ReportUpdate]] = relationship(
        "ReportUpdate",
        back_populates="report",
        cascade="all, delete-orphan",
        order_by="ReportUpdate.created_at",
    )


class ReportUpdate(Base):
    """Timeline entry: a status change and/or a comment left on a report."""

    __tablename__ = "report_updates"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    report_id: Mapped[UUID] = mapped_column(ForeignKey("civic_reports.id", ondelete="CASCADE"), index=True)
    actor_id: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[ReportStatus | None] = mapped_column(
        Enum(ReportStatus, name="report_status", values_callable=lambda x: [e.value for e in x]),
        nullable=True,
    )
    comment: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    report: Mapped[Report] = relationship("Report", back_populates="updates")
