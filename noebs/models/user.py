"""
User model — a wallet user of the payment gateway.

Each user is identified within a tenant by mobile number. The only sensitive
column is the user's main card:

  - main_card: the lookup hash ("h:...") once migrated; legacy rows may still
    hold the plaintext PAN until they are first read
  - main_card_enc: the AES-GCM envelope of the PAN; the only recoverable copy

Two attributes are mapped onto legacy column names kept for compatibility
with existing databases: device_token lives in firebase_token and exp_date
lives in main_expdate.

Users are soft-deleted through deleted_at; every lookup ignores deleted rows.
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from noebs.database import Base


class User(Base):
    __tablename__ = "users"

    __table_args__ = (
        UniqueConstraint("tenant_id", "mobile", name="uq_users_tenant_mobile"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    tenant_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)

    # Hashed by the caller before it reaches the store
    password: Mapped[str | None] = mapped_column(Text)
    fullname: Mapped[str | None] = mapped_column(Text)
    username: Mapped[str | None] = mapped_column(Text)
    gender: Mapped[str | None] = mapped_column(Text)
    birthday: Mapped[str | None] = mapped_column(Text)
    email: Mapped[str | None] = mapped_column(Text, index=True)
    is_merchant: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    public_key: Mapped[str | None] = mapped_column(Text)
    device_id: Mapped[str | None] = mapped_column(Text)
    otp: Mapped[str | None] = mapped_column(Text)
    signed_otp: Mapped[str | None] = mapped_column(Text)

    # Push token; the column name predates the rename
    device_token: Mapped[str | None] = mapped_column("firebase_token", Text)

    is_password_otp: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    main_card: Mapped[str | None] = mapped_column(Text)
    main_card_enc: Mapped[str | None] = mapped_column(Text)
    exp_date: Mapped[str | None] = mapped_column("main_expdate", Text)

    language: Mapped[str | None] = mapped_column(Text)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    mobile: Mapped[str] = mapped_column(Text, nullable=False)

    # Audit timestamps
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
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
