"""
Token service — payment tokens shared as links or QR codes.

Tokens are always created by this store, so their recipient card is sealed
at creation time. Reads still hydrate through the vault; tokens written
before encryption was switched on migrate the same way cards do.

Tokens are addressed by their public uuid.
"""

import uuid as uuid_lib
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from noebs.exceptions import NotFoundError
from noebs.models.token import Token
from noebs.models.transaction import Transaction
from noebs.schemas.token import TokenRecord, TokenWithTransaction
from noebs.schemas.transaction import TransactionRecord
from noebs.sensitive import TOKEN_FIELDS, SensitiveFieldVault


async def _hydrated(db: AsyncSession, vault: SensitiveFieldVault, rows) -> list[TokenRecord]:
    tokens = []
    for row in rows:
        token = TokenRecord.model_validate(row)
        await vault.hydrate(db, Token, token, TOKEN_FIELDS, key="uuid")
        tokens.append(token)
    return tokens


async def create_token(
    db: AsyncSession,
    vault: SensitiveFieldVault,
    tenant_id: str,
    token: TokenRecord,
) -> TokenRecord:
    """
    Insert a token, generating its uuid when the caller left it empty.

    Raises:
        CryptoError: If the recipient card cannot be encrypted.
    """
    if not token.uuid:
        token.uuid = str(uuid_lib.uuid4())

    sealed = token.model_copy()
    vault.seal(sealed, TOKEN_FIELDS)
    row = Token(
        tenant_id=tenant_id,
        **sealed.model_dump(exclude={"id", "tenant_id", "created_at", "updated_at"}),
    )
    db.add(row)
    await db.flush()

    token.id = row.id
    token.tenant_id = tenant_id
    token.to_card_enc = row.to_card_enc
    token.created_at = row.created_at
    token.updated_at = row.updated_at
    return token


async def get_token_by_uuid(
    db: AsyncSession,
    vault: SensitiveFieldVault,
    tenant_id: str,
    token_uuid: str,
) -> TokenRecord:
    """
    Raises:
        NotFoundError: If no token with that uuid exists in the tenant.
    """
    result = await db.execute(
        select(Token).where(Token.tenant_id == tenant_id, Token.uuid == token_uuid).limit(1)
    )
    row = result.scalars().first()
    if row is None:
        raise NotFoundError("token", tenant_id)
    return (await _hydrated(db, vault, [row]))[0]


async def list_tokens_by_user_id(
    db: AsyncSession,
    vault: SensitiveFieldVault,
    tenant_id: str,
    user_id: int,
    cart_id: str | None = None,
) -> list[TokenRecord]:
    """Tokens issued by a user, optionally only those for one cart."""
    stmt = select(Token).where(Token.tenant_id == tenant_id, Token.user_id == user_id)
    if cart_id is not None:
        stmt = stmt.where(Token.cart_id == cart_id)
    result = await db.execute(stmt.order_by(Token.id))
    return await _hydrated(db, vault, result.scalars().all())


async def mark_token_paid(db: AsyncSession, tenant_id: str, token_uuid: str) -> None:
    """
    Raises:
        NotFoundError: If no token with that uuid exists in the tenant.
    """
    result = await db.execute(
        update(Token)
        .where(Token.tenant_id == tenant_id, Token.uuid == token_uuid)
        .values(is_paid=True, updated_at=datetime.now(timezone.utc))
    )
    if result.rowcount == 0:
        raise NotFoundError("token", tenant_id)


async def update_token_card(
    db: AsyncSession,
    vault: SensitiveFieldVault,
    tenant_id: str,
    token_uuid: str,
    to_card: str,
) -> None:
    """
    Point a token at a different recipient card ("" clears it).

    Raises:
        NotFoundError: If no token with that uuid exists in the tenant.
    """
    values = {"to_card": to_card}
    vault.seal_changes(values, TOKEN_FIELDS)
    values["updated_at"] = datetime.now(timezone.utc)
    result = await db.execute(
        update(Token)
        .where(Token.tenant_id == tenant_id, Token.uuid == token_uuid)
        .values(**values)
    )
    if result.rowcount == 0:
        raise NotFoundError("token", tenant_id)


async def get_token_with_transaction(
    db: AsyncSession,
    vault: SensitiveFieldVault,
    tenant_id: str,
    token_uuid: str,
) -> TokenWithTransaction:
    """
    A token together with the latest transaction that settled it.

    `transaction` is None while the token is unpaid.

    Raises:
        NotFoundError: If no token with that uuid exists in the tenant.
    """
    token = await get_token_by_uuid(db, vault, tenant_id, token_uuid)
    result = await db.execute(
        select(Transaction)
        .where(Transaction.tenant_id == tenant_id, Transaction.token_id == token_uuid)
        .order_by(Transaction.id.desc())
        .limit(1)
    )
    row = result.scalars().first()
    return TokenWithTransaction(
        **token.model_dump(),
        transaction=TransactionRecord.model_validate(row) if row is not None else None,
    )
