"""
Record for external identity provider logins.
"""

from datetime import datetime

from pydantic import BaseModel


class AuthAccountRecord(BaseModel):
    id: int | None = None
    tenant_id: str = ""
    user_id: int
    provider: str
    provider_user_id: str
    email: str | None = None
    email_verified: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}
