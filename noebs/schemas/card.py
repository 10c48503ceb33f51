"""
Records for saved cards and cached card validations.

`pan` and `ipin` always hold plaintext on these records: the store seals them
on write and hydrates them on read. The *_enc attributes mirror the stored
envelopes and are informational only.
"""

from datetime import datetime

from pydantic import BaseModel


class CardRecord(BaseModel):
    """A payment card saved by a user."""
    id: int | None = None
    tenant_id: str = ""
    user_id: int | None = None
    pan: str | None = None
    pan_enc: str | None = None
    expiry: str | None = None
    name: str | None = None
    ipin: str | None = None
    ipin_enc: str | None = None
    is_main: bool = False
    is_valid: bool | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    model_config = {"from_attributes": True}


class CardUpdate(BaseModel):
    """Fields of a card that may be changed after it is saved."""
    pan: str | None = None
    expiry: str | None = None
    name: str | None = None
    ipin: str | None = None
    is_valid: bool | None = None

    model_config = {"extra": "forbid"}


class CacheCardRecord(BaseModel):
    """A card the switch has already validated."""
    id: int | None = None
    tenant_id: str = ""
    pan: str | None = None
    pan_enc: str | None = None
    expiry: str | None = None
    name: str | None = None
    is_valid: bool | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}
