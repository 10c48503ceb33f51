"""
Transaction model — one row per response received from the EBS switch.

The switch response is kept twice:
  - a handful of summary columns used for filtering (uuid, status, masked PANs)
  - the whole response as a JSON payload, returned verbatim on reads

PANs are masked ("123456*****3456") before the row is written. Transaction
history never needs the full card number, so it is never stored here.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Float, Integer, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column

from noebs.database import Base


class Transaction(Base):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    tenant_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)

    # uuid of the payment token this transaction settled, if any
    token_id: Mapped[str | None] = mapped_column(Text)

    uuid: Mapped[str | None] = mapped_column(Text, index=True)

    response_code: Mapped[int | None] = mapped_column(Integer)
    response_message: Mapped[str | None] = mapped_column(Text)
    response_status: Mapped[str | None] = mapped_column(Text)
    tran_date_time: Mapped[str | None] = mapped_column(Text)
    tran_amount: Mapped[float | None] = mapped_column(Float)
    tran_fee: Mapped[float | None] = mapped_column(Numeric(asdecimal=False))

    # Masked PANs only
    pan: Mapped[str | None] = mapped_column(Text, index=True)
    sender_pan: Mapped[str | None] = mapped_column(Text)
    receiver_pan: Mapped[str | None] = mapped_column(Text)

    terminal_id: Mapped[str | None] = mapped_column(Text)
    system_trace_audit_number: Mapped[int | None] = mapped_column(Integer)
    approval_code: Mapped[str | None] = mapped_column(Text)
    service_id: Mapped[str | None] = mapped_column(Text)
    merchant_id: Mapped[str | None] = mapped_column(Text)
    bill_type: Mapped[str | None] = mapped_column(Text)
    bill_to: Mapped[str | None] = mapped_column(Text)
    bill_info2: Mapped[str | None] = mapped_column(Text)

    # Full response as JSON
    payload: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
