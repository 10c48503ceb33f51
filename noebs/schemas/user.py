"""
Records for wallet users.

UserUpdate replaces free-form column maps for partial updates: only the
attributes declared here can be written, and the store knows which of them
are sensitive. Unknown keys are rejected at construction time.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from noebs.schemas.card import CardRecord
from noebs.schemas.kyc import KYCRecord, PassportRecord


class UserRecord(BaseModel):
    """A user as callers see it: main_card holds the plaintext PAN."""
    id: int | None = None
    tenant_id: str = ""
    mobile: str
    password: str | None = None
    fullname: str | None = None
    username: str | None = None
    gender: str | None = None
    birthday: str | None = None
    email: str | None = None
    is_merchant: bool = False
    public_key: str | None = None
    device_id: str | None = None
    otp: str | None = None
    signed_otp: str | None = None
    device_token: str | None = None
    is_password_otp: bool = False
    main_card: str | None = None
    main_card_enc: str | None = None
    exp_date: str | None = None
    language: str | None = None
    is_verified: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    model_config = {"from_attributes": True}


class UserUpdate(BaseModel):
    """
    Partial update of a user.

    Only attributes that were explicitly set are written, so
    UserUpdate(main_card="") clears the main card while UserUpdate()
    changes nothing.
    """
    password: str | None = None
    fullname: str | None = None
    username: str | None = None
    gender: str | None = None
    birthday: str | None = None
    email: str | None = None
    is_merchant: bool | None = None
    public_key: str | None = None
    device_id: str | None = None
    otp: str | None = None
    signed_otp: str | None = None
    device_token: str | None = None
    is_password_otp: bool | None = None
    main_card: str | None = None
    exp_date: str | None = None
    language: str | None = None
    is_verified: bool | None = None

    model_config = {"extra": "forbid"}


class UserWithCards(UserRecord):
    cards: list[CardRecord] = Field(default_factory=list)


class UserWithKYC(UserRecord):
    kyc: KYCRecord | None = None
    passport: PassportRecord | None = None
