"""
Record for per-mobile login counters.
"""

from datetime import datetime

from pydantic import BaseModel


class LoginMetricRecord(BaseModel):
    tenant_id: str = ""
    mobile: str
    login_count: int = 0
    window_started_at: datetime | None = None
    suspicious_count: int = 0

    model_config = {"from_attributes": True}
