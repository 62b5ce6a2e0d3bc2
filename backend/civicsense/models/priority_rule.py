"""Weighted factors used as the base of the priority score."""

from __future__ import annotations

import datetime as dt
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, DateTime, Float, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from civicsense.core.clock import utcnow
from civicsense.db.base import Base


class PriorityRule(Base):
    __tablename__ = "priority_rules"
    __table_args__ = (
        UniqueConstraint("factor_type", "factor_value", name="uq_priority_rules_factor"),
        CheckConstraint("priority_weight >= 0 AND priority_weight <= 1", name="ck_priority_rules_weight_range"),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    factor_type: Mapped[str] = mapped_column(String(64), nullable=False)
    factor_value: Mapped[str] = mapped_column(String(128), nullable=False)
    priority_weight: Mapped[float] = mapped_column(Float, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
