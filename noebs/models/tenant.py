"""
Tenant model — the isolation boundary.

Every other table carries a tenant_id column and every store query filters
on it. The tenants table itself is only a registry: it lets operators list
tenants and lets startup code make sure the default tenant exists.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from noebs.database import Base


class Tenant(Base):
    __tablename__ = "tenants"

    # Tenant IDs are operator-chosen strings ("default", "acme"), not UUIDs
    id: Mapped[str] = mapped_column(Text, primary_key=True)

    name: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
