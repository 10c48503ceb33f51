"""
Biller service — the bill-payment lookup tables.

Cached billers remember which biller a phone number was last paid through.
Meter names resolve an electricity meter number to its account holder.
Both are plain tenant-scoped key/value lookups.
"""

from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from noebs.exceptions import NotFoundError
from noebs.models.biller import CacheBiller, MeterName
from noebs.schemas.biller import CacheBillerRecord


async def upsert_cache_biller(db: AsyncSession, tenant_id: str, mobile: str, biller_id: str) -> None:
    now = datetime.now(timezone.utc)
    result = await db.execute(
        update(CacheBiller)
        .where(CacheBiller.tenant_id == tenant_id, CacheBiller.mobile == mobile)
        .values(biller_id=biller_id, updated_at=now)
    )
    if result.rowcount == 0:
        db.add(CacheBiller(tenant_id=tenant_id, mobile=mobile, biller_id=biller_id, created_at=now, updated_at=now))
        await db.flush()


async def get_cache_biller(db: AsyncSession, tenant_id: str, mobile: str) -> CacheBillerRecord:
    """
    Raises:
        NotFoundError: If no biller was cached for `mobile`.
    """
    result = await db.execute(
        select(CacheBiller).where(CacheBiller.tenant_id == tenant_id, CacheBiller.mobile == mobile)
    )
    row = result.scalars().first()
    if row is None:
        raise NotFoundError("cached biller", tenant_id)
    return CacheBillerRecord.model_validate(row)


async def save_meter_name(db: AsyncSession, tenant_id: str, nec: str, name: str) -> None:
    now = datetime.now(timezone.utc)
    result = await db.execute(
        update(MeterName)
        .where(MeterName.tenant_id == tenant_id, MeterName.nec == nec)
        .values(name=name, updated_at=now)
    )
    if result.rowcount == 0:
        db.add(MeterName(tenant_id=tenant_id, nec=nec, name=name, created_at=now, updated_at=now))
        await db.flush()


async def get_meter_name(db: AsyncSession, tenant_id: str, nec: str) -> str:
    """
    Account holder name of meter `nec`.

    Raises:
        NotFoundError: If the meter is unknown in the tenant.
    """
    result = await db.execute(
        select(MeterName.name).where(MeterName.tenant_id == tenant_id, MeterName.nec == nec)
    )
    name = result.scalar_one_or_none()
    if name is None:
        raise NotFoundError("meter", tenant_id)
    return name
