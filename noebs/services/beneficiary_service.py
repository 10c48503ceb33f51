"""
Beneficiary service — saved bill-payment targets of a user.

A beneficiary is identified within a user by its `data` value (the phone
number, meter number, ... being paid). Saving the same value again updates
its name and bill type.
"""

from datetime import datetime, timezone

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from noebs.exceptions import NotFoundError
from noebs.models.beneficiary import Beneficiary
from noebs.schemas.beneficiary import BeneficiaryRecord


async def list_beneficiaries(db: AsyncSession, tenant_id: str, user_id: int) -> list[BeneficiaryRecord]:
    result = await db.execute(
        select(Beneficiary)
        .where(Beneficiary.tenant_id == tenant_id, Beneficiary.user_id == user_id)
        .order_by(Beneficiary.id)
    )
    return [BeneficiaryRecord.model_validate(row) for row in result.scalars().all()]


async def upsert_beneficiary(
    db: AsyncSession,
    tenant_id: str,
    user_id: int,
    beneficiary: BeneficiaryRecord,
) -> BeneficiaryRecord:
    now = datetime.now(timezone.utc)
    result = await db.execute(
        update(Beneficiary)
        .where(
            Beneficiary.tenant_id == tenant_id,
            Beneficiary.user_id == user_id,
            Beneficiary.data == beneficiary.data,
        )
        .values(bill_type=beneficiary.bill_type, name=beneficiary.name, updated_at=now)
        .returning(Beneficiary.id, Beneficiary.created_at)
    )
    existing = result.first()

    if existing is not None:
        beneficiary.id, beneficiary.created_at = existing
    else:
        row = Beneficiary(
            tenant_id=tenant_id,
            user_id=user_id,
            data=beneficiary.data,
            bill_type=beneficiary.bill_type,
            name=beneficiary.name,
        )
        db.add(row)
        await db.flush()
        beneficiary.id = row.id
        beneficiary.created_at = row.created_at

    beneficiary.tenant_id = tenant_id
    beneficiary.user_id = user_id
    beneficiary.updated_at = now
    return beneficiary


async def delete_beneficiary(db: AsyncSession, tenant_id: str, user_id: int, data: str) -> None:
    """
    Raises:
        NotFoundError: If the user has no beneficiary with that value.
    """
    result = await db.execute(
        delete(Beneficiary).where(
            Beneficiary.tenant_id == tenant_id,
            Beneficiary.user_id == user_id,
            Beneficiary.data == data,
        )
    )
    if result.rowcount == 0:
        raise NotFoundError("beneficiary", tenant_id)
