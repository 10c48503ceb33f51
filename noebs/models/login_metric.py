"""
LoginMetric model — login attempt counters, one row per (tenant_id, mobile).

login_count counts attempts since window_started_at; suspicious_count counts
attempts the auth layer flagged (wrong OTP, device mismatch, ...).
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from noebs.database import Base


class LoginMetric(Base):
    __tablename__ = "login_metrics"

    tenant_id: Mapped[str] = mapped_column(Text, primary_key=True, index=True)
    mobile: Mapped[str] = mapped_column(Text, primary_key=True)

    login_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    window_started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    suspicious_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
