"""
Record for saved bill-payment beneficiaries.
"""

from datetime import datetime

from pydantic import BaseModel


class BeneficiaryRecord(BaseModel):
    id: int | None = None
    tenant_id: str = ""
    user_id: int | None = None
    data: str
    bill_type: str | None = None
    name: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}
