"""
Notification service — push notifications stored per user mobile.
"""

import json
import uuid as uuid_lib
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from noebs.exceptions import NotFoundError
from noebs.models.push_data import PushData
from noebs.schemas.notification import PushDataRecord


def _encode(value: dict[str, Any] | None) -> str | None:
    return json.dumps(value) if value is not None else None


async def create_push_data(
    db: AsyncSession,
    tenant_id: str,
    data: PushDataRecord,
) -> PushDataRecord:
    if not data.uuid:
        data.uuid = str(uuid_lib.uuid4())

    values = data.model_dump(exclude={"tenant_id", "payment_request", "created_at", "updated_at"})
    row = PushData(tenant_id=tenant_id, payment_request=_encode(data.payment_request), **values)
    db.add(row)
    await db.flush()

    data.tenant_id = tenant_id
    data.created_at = row.created_at
    data.updated_at = row.updated_at
    return data


async def get_notifications(
    db: AsyncSession,
    tenant_id: str,
    user_mobile: str,
) -> list[PushDataRecord]:
    """Live notifications for a mobile number, newest first."""
    result = await db.execute(
        select(PushData)
        .where(
            PushData.tenant_id == tenant_id,
            PushData.user_mobile == user_mobile,
            PushData.deleted_at.is_(None),
        )
        .order_by(PushData.date.desc(), PushData.created_at.desc())
    )
    return [PushDataRecord.model_validate(row) for row in result.scalars().all()]


async def mark_notifications_read(db: AsyncSession, tenant_id: str, phone: str) -> int:
    """Mark every notification sent to `phone` as read; returns how many changed."""
    result = await db.execute(
        update(PushData)
        .where(PushData.tenant_id == tenant_id, PushData.phone == phone)
        .values(is_read=True, updated_at=datetime.now(timezone.utc))
    )
    return result.rowcount


async def update_payment_request(
    db: AsyncSession,
    tenant_id: str,
    notification_uuid: str,
    payment_request: dict[str, Any],
) -> None:
    """
    Raises:
        NotFoundError: If no notification with that uuid exists in the tenant.
    """
    result = await db.execute(
        update(PushData)
        .where(PushData.tenant_id == tenant_id, PushData.uuid == notification_uuid)
        .values(payment_request=_encode(payment_request), updated_at=datetime.now(timezone.utc))
    )
    if result.rowcount == 0:
        raise NotFoundError("notification", tenant_id)
