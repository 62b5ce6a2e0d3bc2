"""Per-submitter submission counters, trust tier and block state."""

from __future__ import annotations

import datetime as dt

from sqlalchemy import Boolean, Date, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from civicsense.db.base import Base


class RateLimitRecord(Base):
    __tablename__ = "user_rate_limits"

    submitter_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    reports_today: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    reports_this_hour: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_report_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    daily_reset_at: Mapped[dt.date] = mapped_column(Date, nullable=False)
    hourly_reset_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_trusted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    trust_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    spam_score: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    is_blocked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    blocked_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    blocked_until: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
