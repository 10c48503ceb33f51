"""
Token model — a payment request a user shares (QR code / link).

A token asks for `amount` to be paid, optionally into a specific recipient
card (to_card). Tokens are created by the store, never imported from a
legacy system, so to_card is encrypted eagerly at creation:

  - to_card: lookup hash of the recipient card
  - to_card_enc: AES-GCM envelope of the recipient card

Tokens are addressed by their public uuid rather than the integer id.
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from noebs.database import Base


class Token(Base):
    __tablename__ = "tokens"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    tenant_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)

    user_id: Mapped[int | None] = mapped_column(Integer, index=True)

    # Amount requested, in the switch's minor units
    amount: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    cart_id: Mapped[str | None] = mapped_column(Text)
    uuid: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    note: Mapped[str | None] = mapped_column(Text)

    to_card: Mapped[str | None] = mapped_column(Text)
    to_card_enc: Mapped[str | None] = mapped_column(Text)

    is_paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

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
