"""
KYC service — identity documents, one set per mobile number.

update_kyc() upserts the KYC row and, when given, the passport row inside one
SAVEPOINT: either both are written or neither is.
"""

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from noebs.database import dialect_insert
from noebs.models.kyc import KYC, Passport
from noebs.schemas.kyc import KYCRecord, PassportRecord
from noebs.schemas.user import UserWithKYC
from noebs.sensitive import SensitiveFieldVault
from noebs.services import user_service


def _upsert(db: AsyncSession, model, values: dict, update_columns: list[str]):
    insert = dialect_insert(db, model).values(**values)
    return insert.on_conflict_do_update(
        index_elements=["tenant_id", "mobile"],
        set_={name: insert.excluded[name] for name in update_columns},
    )


async def update_kyc(
    db: AsyncSession,
    tenant_id: str,
    kyc: KYCRecord,
    passport: PassportRecord | None = None,
) -> None:
    """Create or replace the KYC submission (and passport) for kyc.mobile."""
    now = datetime.now(timezone.utc)
    kyc_values = kyc.model_dump(include={"user_mobile", "mobile", "selfie", "passport_img"})

    async with db.begin_nested():
        await db.execute(_upsert(
            db,
            KYC,
            {**kyc_values, "tenant_id": tenant_id, "created_at": now, "updated_at": now},
            ["user_mobile", "selfie", "passport_img", "updated_at"],
        ))

        if passport is not None:
            passport_values = passport.model_dump(exclude={"id", "tenant_id"})
            if not passport_values["mobile"]:
                passport_values["mobile"] = kyc.mobile
            await db.execute(_upsert(
                db,
                Passport,
                {**passport_values, "tenant_id": tenant_id, "created_at": now, "updated_at": now},
                [
                    "birth_date", "issue_date", "expiration_date", "national_number",
                    "passport_number", "gender", "nationality", "holder_name", "updated_at",
                ],
            ))


async def get_user_with_kyc(
    db: AsyncSession,
    vault: SensitiveFieldVault,
    tenant_id: str,
    mobile: str,
) -> UserWithKYC:
    """
    A user together with their KYC submission and passport, when present.

    Raises:
        NotFoundError: If the user does not exist. Missing KYC data is not
            an error; the corresponding attributes are None.
    """
    user = await user_service.get_user_by_mobile(db, vault, tenant_id, mobile)

    kyc_row = (await db.execute(
        select(KYC).where(KYC.tenant_id == tenant_id, KYC.mobile == mobile)
    )).scalar_one_or_none()
    passport_row = (await db.execute(
        select(Passport).where(Passport.tenant_id == tenant_id, Passport.mobile == mobile)
    )).scalar_one_or_none()

    return UserWithKYC(
        **user.model_dump(),
        kyc=KYCRecord.model_validate(kyc_row) if kyc_row is not None else None,
        passport=PassportRecord.model_validate(passport_row) if passport_row is not None else None,
    )
