"""
Login metric service — per-mobile login attempt counters.

The auth layer reads the attempt count to decide when to throttle a mobile
number, and bumps the suspicious counter when an attempt looks wrong. A
mobile with no row yet starts at zero on both counters.
"""

from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from noebs.exceptions import NotFoundError
from noebs.models.login_metric import LoginMetric
from noebs.schemas.login_metric import LoginMetricRecord


async def _insert(db: AsyncSession, tenant_id: str, mobile: str, login_count: int, suspicious_count: int):
    now = datetime.now(timezone.utc)
    db.add(
        LoginMetric(
            tenant_id=tenant_id,
            mobile=mobile,
            login_count=login_count,
            window_started_at=now,
            suspicious_count=suspicious_count,
            created_at=now,
            updated_at=now,
        )
    )
    await db.flush()


async def record_login_attempt(
    db: AsyncSession,
    tenant_id: str,
    mobile: str,
    increment: bool = True,
) -> int:
    """
    Return the login attempt count for `mobile`, counting this attempt first
    when `increment` is set.

    Every counted attempt restarts the window.
    """
    if increment:
        now = datetime.now(timezone.utc)
        result = await db.execute(
            update(LoginMetric)
            .where(LoginMetric.tenant_id == tenant_id, LoginMetric.mobile == mobile)
            .values(login_count=LoginMetric.login_count + 1, window_started_at=now, updated_at=now)
            .returning(LoginMetric.login_count)
        )
    else:
        result = await db.execute(
            select(LoginMetric.login_count)
            .where(LoginMetric.tenant_id == tenant_id, LoginMetric.mobile == mobile)
        )
    count = result.scalar_one_or_none()
    if count is not None:
        return count

    count = 1 if increment else 0
    await _insert(db, tenant_id, mobile, login_count=count, suspicious_count=0)
    return count


async def increment_suspicious(db: AsyncSession, tenant_id: str, mobile: str) -> None:
    result = await db.execute(
        update(LoginMetric)
        .where(LoginMetric.tenant_id == tenant_id, LoginMetric.mobile == mobile)
        .values(
            suspicious_count=LoginMetric.suspicious_count + 1,
            updated_at=datetime.now(timezone.utc),
        )
    )
    if result.rowcount == 0:
        await _insert(db, tenant_id, mobile, login_count=0, suspicious_count=1)


async def get_login_metric(db: AsyncSession, tenant_id: str, mobile: str) -> LoginMetricRecord:
    """
    Raises:
        NotFoundError: If no attempt was ever recorded for `mobile`.
    """
    result = await db.execute(
        select(LoginMetric).where(LoginMetric.tenant_id == tenant_id, LoginMetric.mobile == mobile)
    )
    row = result.scalars().first()
    if row is None:
        raise NotFoundError("login metric", tenant_id)
    return LoginMetricRecord.model_validate(row)
