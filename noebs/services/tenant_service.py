"""
Tenant service — the tenant registry.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from noebs.models.tenant import Tenant
from noebs.schemas.tenant import TenantRecord


async def ensure_tenant(db: AsyncSession, tenant_id: str, name: str | None = None) -> TenantRecord:
    """
    Return the tenant row for `tenant_id`, creating it if needed.

    Called at startup for the default tenant and by provisioning code for new
    ones. Existing tenants are returned unchanged.
    """
    result = await db.execute(select(Tenant).where(Tenant.id == tenant_id))
    tenant = result.scalar_one_or_none()
    if tenant is None:
        tenant = Tenant(id=tenant_id, name=name or tenant_id)
        db.add(tenant)
        await db.flush()
    return TenantRecord.model_validate(tenant)


async def list_tenants(db: AsyncSession) -> list[TenantRecord]:
    result = await db.execute(select(Tenant).order_by(Tenant.id))
    return [TenantRecord.model_validate(t) for t in result.scalars().all()]
