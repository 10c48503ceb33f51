"""
KYC models — identity documents submitted by a user.

Both tables hold at most one row per (tenant_id, mobile). Resubmitting KYC
replaces the previous selfie, passport image and passport details.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from noebs.database import Base


class KYC(Base):
    __tablename__ = "kyc"

    __table_args__ = (
        UniqueConstraint("tenant_id", "mobile", name="uq_kyc_tenant_mobile"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)

    user_mobile: Mapped[str | None] = mapped_column(Text)
    mobile: Mapped[str] = mapped_column(Text, nullable=False)

    # Image references (object-store keys or data URLs)
    selfie: Mapped[str | None] = mapped_column(Text)
    passport_img: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


class Passport(Base):
    __tablename__ = "passports"

    __table_args__ = (
        UniqueConstraint("tenant_id", "mobile", name="uq_passports_tenant_mobile"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)

    mobile: Mapped[str] = mapped_column(Text, nullable=False)
    birth_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    issue_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    expiration_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    national_number: Mapped[str | None] = mapped_column(Text)
    passport_number: Mapped[str | None] = mapped_column(Text)
    gender: Mapped[str | None] = mapped_column(Text)
    nationality: Mapped[str | None] = mapped_column(Text)
    holder_name: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
