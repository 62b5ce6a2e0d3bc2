"""Per-priority SLA targets and escalation thresholds."""

from __future__ import annotations

import datetime as dt
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Enum, Integer
from sqlalchemy.orm import Mapped, mapped_column

from civicsense.core.clock import utcnow
from civicsense.db.base import Base
from civicsense.models.enums import ReportPriority


class SLAConfig(Base):
    __tablename__ = "sla_config"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    priority: Mapped[ReportPriority] = mapped_column(
        Enum(ReportPriority, name="report_priority", values_callable=lambda x: [e.value for e in x]),
        unique=True,
        nullable=False,
    )
    response_time_hours: Mapped[int] = mapped_column(Integer, nullable=False)
    resolution_time_hours: Mapped[int] = mapped_column(Integer, nullable=False)
    escalation_level_1_hours: Mapped[int] = mapped_column(Integer, nullable=False)
    escalation_level_2_hours: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
