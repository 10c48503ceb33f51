"""
PushData model — notifications delivered (or queued) to a user's device.

Rows are keyed by the notification uuid. payment_request holds the JSON of the
payment request a notification carries (e.g. "X asked you to pay 500").
"""

from datetime import datetime, timezone

from sqlalchemy import BigInteger, Boolean, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from noebs.database import Base


class PushData(Base):
    __tablename__ = "push_data"

    uuid: Mapped[str] = mapped_column(Text, primary_key=True)

    tenant_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)

    type: Mapped[str | None] = mapped_column(Text)

    # Unix timestamp set by the sender; used for ordering
    date: Mapped[int | None] = mapped_column(BigInteger)

    to_device: Mapped[str | None] = mapped_column(Text)
    title: Mapped[str | None] = mapped_column(Text)
    body: Mapped[str | None] = mapped_column(Text)
    call_to_action: Mapped[str | None] = mapped_column(Text)
    phone: Mapped[str | None] = mapped_column(Text)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    device_id: Mapped[str | None] = mapped_column(Text)
    user_mobile: Mapped[str | None] = mapped_column(Text, index=True)
    ebs_uuid: Mapped[str | None] = mapped_column(Text)
    payment_request: Mapped[str | None] = mapped_column(Text)

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
