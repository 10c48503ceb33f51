"""
Card models — saved payment cards and the card-validation cache.

Card is a card a user saved for payments. CacheCard remembers cards that the
switch has already validated, so repeat validations can be skipped.

Sensitive columns come in pairs:
  - pan / pan_enc: pan holds the lookup hash once migrated, pan_enc the
    AES-GCM envelope of the PAN
  - ipin / ipin_enc (Card only): nobody searches by IPIN, so once sealed the
    ipin column is emptied and ipin_enc is the only copy

Legacy rows written before encryption was enabled still hold plaintext in
pan/ipin with an empty _enc column. They are migrated the first time they are
read (see noebs.sensitive).

Cards are soft-deleted through deleted_at. Exactly one live card per user
should carry is_main; card_service.set_main_card maintains that.
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from noebs.database import Base


class Card(Base):
    __tablename__ = "cards"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    tenant_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    pan: Mapped[str | None] = mapped_column(Text, index=True)
    pan_enc: Mapped[str | None] = mapped_column(Text)

    expiry: Mapped[str | None] = mapped_column(Text)
    name: Mapped[str | None] = mapped_column(Text)

    ipin: Mapped[str | None] = mapped_column(Text)
    ipin_enc: Mapped[str | None] = mapped_column(Text)

    is_main: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # NULL means "not validated yet"
    is_valid: Mapped[bool | None] = mapped_column(Boolean)

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


class CacheCard(Base):
    __tablename__ = "cache_cards"

    # One cache entry per card per tenant; pan is the lookup hash here
    __table_args__ = (
        UniqueConstraint("tenant_id", "pan", name="uq_cache_cards_tenant_pan"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    tenant_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)

    pan: Mapped[str | None] = mapped_column(Text)
    pan_enc: Mapped[str | None] = mapped_column(Text)

    expiry: Mapped[str | None] = mapped_column(Text)
    name: Mapped[str | None] = mapped_column(Text)
    is_valid: Mapped[bool | None] = mapped_column(Boolean)

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
