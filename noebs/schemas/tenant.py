"""
Record for the tenant registry.
"""

from datetime import datetime

from pydantic import BaseModel


class TenantRecord(BaseModel):
    id: str
    name: str
    created_at: datetime | None = None

    model_config = {"from_attributes": True}
