"""
Records for push notifications and the payment requests they carry.
"""

import json
from datetime import datetime
from typing import Any

from pydantic import BaseModel, field_validator


class PushDataRecord(BaseModel):
    """
    One notification.

    payment_request is free-form JSON (amount, requester, token uuid, ...)
    describing a payment the recipient is asked to make.
    """
    uuid: str = ""
    tenant_id: str = ""
    type: str | None = None
    date: int | None = None
    to_device: str | None = None
    title: str | None = None
    body: str | None = None
    call_to_action: str | None = None
    phone: str | None = None
    is_read: bool = False
    device_id: str | None = None
    user_mobile: str | None = None
    ebs_uuid: str | None = None
    payment_request: dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}

    @field_validator("payment_request", mode="before")
    @classmethod
    def _decode_payment_request(cls, value):
        if isinstance(value, str):
            return json.loads(value) if value else None
        return value
