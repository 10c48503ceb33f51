"""
Records for switch transactions.

TransactionRecord mirrors the summary columns of the transactions table.
`payload` carries the full (masked) response the row was built from and is
decoded from its JSON column on read.
"""

import json
from datetime import datetime
from typing import Any

from pydantic import BaseModel, field_validator


class TransactionRecord(BaseModel):
    id: int | None = None
    tenant_id: str = ""
    token_id: str | None = None
    uuid: str | None = None
    response_code: int | None = None
    response_message: str | None = None
    response_status: str | None = None
    tran_date_time: str | None = None
    tran_amount: float | None = None
    tran_fee: float | None = None
    pan: str | None = None
    sender_pan: str | None = None
    receiver_pan: str | None = None
    terminal_id: str | None = None
    system_trace_audit_number: int | None = None
    approval_code: str | None = None
    service_id: str | None = None
    merchant_id: str | None = None
    bill_type: str | None = None
    bill_to: str | None = None
    bill_info2: str | None = None
    payload: dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}

    @field_validator("payload", mode="before")
    @classmethod
    def _decode_payload(cls, value):
        if isinstance(value, str):
            return json.loads(value) if value else None
        return value
