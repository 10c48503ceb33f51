"""
APIKey model — merchant API keys, one per (tenant_id, email).
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from noebs.database import Base


class APIKey(Base):
    __tablename__ = "api_keys"

    __table_args__ = (
        UniqueConstraint("tenant_id", "email", name="uq_api_keys_tenant_email"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)

    # Stored lowercased
    email: Mapped[str] = mapped_column(Text, nullable=False)
    api_key: Mapped[str] = mapped_column(Text, nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
