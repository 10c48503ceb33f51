"""
Bill-payment lookup tables.

CacheBiller remembers which biller a phone number was last paid through, so
the next top-up can skip asking. MeterName maps an electricity meter number
(NEC) to the name of its account holder.

Both tables predate tenancy and carry no surrogate id; rows are keyed by
tenant and natural key. Legacy rows may have NULL timestamps.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from noebs.database import Base


class CacheBiller(Base):
    __tablename__ = "cache_billers"

    tenant_id: Mapped[str] = mapped_column(Text, primary_key=True, index=True)
    mobile: Mapped[str] = mapped_column(Text, primary_key=True)
    biller_id: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


class MeterName(Base):
    __tablename__ = "meter_names"

    tenant_id: Mapped[str] = mapped_column(Text, primary_key=True, index=True)
    nec: Mapped[str] = mapped_column(Text, primary_key=True)
    name: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
