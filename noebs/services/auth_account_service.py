"""
Auth account service — logins through external identity providers.

An account is identified within a tenant by (provider, provider_user_id).
Linking the same identity again refreshes its email and verification flag
but never moves it to another user.
"""

from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from noebs.exceptions import NotFoundError
from noebs.models.auth_account import AuthAccount
from noebs.schemas.auth_account import AuthAccountRecord


def _by_identity(tenant_id: str, provider: str, provider_user_id: str):
    return (
        AuthAccount.tenant_id == tenant_id,
        AuthAccount.provider == provider,
        AuthAccount.provider_user_id == provider_user_id,
        AuthAccount.deleted_at.is_(None),
    )


async def link_auth_account(
    db: AsyncSession,
    tenant_id: str,
    account: AuthAccountRecord,
) -> AuthAccountRecord:
    """Insert the account, or update the email of an already linked one."""
    email = account.email.lower() if account.email else account.email
    now = datetime.now(timezone.utc)

    result = await db.execute(
        update(AuthAccount)
        .where(*_by_identity(tenant_id, account.provider, account.provider_user_id))
        .values(email=email, email_verified=account.email_verified, updated_at=now)
        .returning(AuthAccount.id, AuthAccount.user_id, AuthAccount.created_at)
    )
    existing = result.first()

    if existing is not None:
        account.id, account.user_id, account.created_at = existing
    else:
        row = AuthAccount(
            tenant_id=tenant_id,
            user_id=account.user_id,
            provider=account.provider,
            provider_user_id=account.provider_user_id,
            email=email,
            email_verified=account.email_verified,
        )
        db.add(row)
        await db.flush()
        account.id = row.id
        account.created_at = row.created_at

    account.tenant_id = tenant_id
    account.email = email
    account.updated_at = now
    return account


async def find_auth_account(
    db: AsyncSession,
    tenant_id: str,
    provider: str,
    provider_user_id: str,
) -> AuthAccountRecord:
    """
    Raises:
        NotFoundError: If that identity is not linked in the tenant.
    """
    result = await db.execute(
        select(AuthAccount).where(*_by_identity(tenant_id, provider, provider_user_id)).limit(1)
    )
    row = result.scalars().first()
    if row is None:
        raise NotFoundError("auth account", tenant_id)
    return AuthAccountRecord.model_validate(row)
