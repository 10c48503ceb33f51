"""
API key service — merchant API keys.

Keys are compared with hmac.compare_digest so validation time does not
depend on how much of a guessed key is correct.
"""

import hmac
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from noebs.database import dialect_insert
from noebs.models.api_key import APIKey
from noebs.schemas.api_key import APIKeyRecord


async def create_api_key(db: AsyncSession, tenant_id: str, email: str, api_key: str) -> APIKeyRecord:
    """Store `api_key` for `email`, replacing any key it had before."""
    insert = dialect_insert(db, APIKey).values(
        tenant_id=tenant_id,
        email=email.lower(),
        api_key=api_key,
        created_at=datetime.now(timezone.utc),
    )
    stmt = insert.on_conflict_do_update(
        index_elements=["tenant_id", "email"],
        set_={"api_key": insert.excluded.api_key},
    ).returning(APIKey.id, APIKey.created_at)
    key_id, created_at = (await db.execute(stmt)).one()
    return APIKeyRecord(
        id=key_id,
        tenant_id=tenant_id,
        email=email.lower(),
        api_key=api_key,
        created_at=created_at,
    )


async def validate_api_key(db: AsyncSession, tenant_id: str, email: str, api_key: str) -> bool:
    """True when `api_key` is the key stored for `email`."""
    result = await db.execute(
        select(APIKey.api_key).where(APIKey.tenant_id == tenant_id, APIKey.email == email.lower())
    )
    stored = result.scalar_one_or_none()
    if stored is None:
        return False
    return hmac.compare_digest(stored.encode("utf-8"), api_key.encode("utf-8"))


async def validate_api_key_value(db: AsyncSession, tenant_id: str, api_key: str) -> bool:
    """True when `api_key` belongs to any merchant of the tenant."""
    result = await db.execute(
        select(APIKey.api_key).where(APIKey.tenant_id == tenant_id, APIKey.api_key == api_key).limit(1)
    )
    stored = result.scalar_one_or_none()
    if stored is None:
        return False
    return hmac.compare_digest(stored.encode("utf-8"), api_key.encode("utf-8"))
