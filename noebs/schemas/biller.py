"""
Records for the bill-payment lookup tables.
"""

from pydantic import BaseModel


class CacheBillerRecord(BaseModel):
    tenant_id: str = ""
    mobile: str
    biller_id: str | None = None

    model_config = {"from_attributes": True}
