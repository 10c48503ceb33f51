"""
Records for KYC submissions.
"""

from datetime import datetime

from pydantic import BaseModel


class PassportRecord(BaseModel):
    id: int | None = None
    tenant_id: str = ""
    mobile: str = ""
    birth_date: datetime | None = None
    issue_date: datetime | None = None
    expiration_date: datetime | None = None
    national_number: str | None = None
    passport_number: str | None = None
    gender: str | None = None
    nationality: str | None = None
    holder_name: str | None = None

    model_config = {"from_attributes": True}


class KYCRecord(BaseModel):
    id: int | None = None
    tenant_id: str = ""
    user_mobile: str | None = None
    mobile: str
    selfie: str | None = None
    passport_img: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}
