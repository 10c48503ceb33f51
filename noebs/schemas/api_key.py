"""
Record for merchant API keys.
"""

from datetime import datetime

from pydantic import BaseModel


class APIKeyRecord(BaseModel):
    id: int | None = None
    tenant_id: str = ""
    email: str
    api_key: str
    created_at: datetime | None = None

    model_config = {"from_attributes": True}
