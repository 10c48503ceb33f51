"""
User service — wallet users and their main card.

Every function takes the tenant ID explicitly and filters on it; soft-deleted
users are invisible to all lookups.

Sensitive data:
  users.main_card is sealed on every write path (create_user, update_user,
  update_user_columns) and hydrated on every read path. Reads of a legacy
  plaintext main card migrate it in place (see noebs.sensitive).

Records, not rows:
  Functions return UserRecord instances built from the ORM row. Hydrating a
  record therefore never dirties the session: plaintext cannot be flushed
  back into the table by accident.
"""

from datetime import datetime, timezone

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from noebs.exceptions import NotFoundError
from noebs.models.card import Card
from noebs.models.user import User
from noebs.schemas.user import UserRecord, UserUpdate, UserWithCards
from noebs.sensitive import USER_FIELDS, SensitiveFieldVault
from noebs.services import card_service


_GENERATED = {"id", "tenant_id", "created_at", "updated_at", "deleted_at"}


def _live_users(tenant_id: str):
    return select(User).where(User.tenant_id == tenant_id, User.deleted_at.is_(None))


async def _get_one(db: AsyncSession, vault: SensitiveFieldVault, tenant_id: str, stmt) -> UserRecord:
    result = await db.execute(stmt.limit(1))
    row = result.scalars().first()
    if row is None:
        raise NotFoundError("user", tenant_id)
    user = UserRecord.model_validate(row)
    await vault.hydrate(db, User, user, USER_FIELDS)
    return user


async def _update_columns(db: AsyncSession, tenant_id: str, user_id: int, values: dict) -> None:
    values["updated_at"] = datetime.now(timezone.utc)
    stmt = (
        update(User)
        .where(User.tenant_id == tenant_id, User.id == user_id, User.deleted_at.is_(None))
        .values({getattr(User, name): value for name, value in values.items()})
    )
    result = await db.execute(stmt)
    if result.rowcount == 0:
        raise NotFoundError("user", tenant_id)


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------

async def create_user(
    db: AsyncSession,
    vault: SensitiveFieldVault,
    tenant_id: str,
    user: UserRecord,
) -> UserRecord:
    """
    Insert a user.

    The main card is sealed on a copy, so `user` keeps its plaintext. The
    generated id and timestamps are written back onto `user`.

    Raises:
        DatabaseError (at commit or flush): duplicate (tenant_id, mobile).
    """
    sealed = user.model_copy()
    vault.seal(sealed, USER_FIELDS)
    if sealed.email:
        sealed.email = sealed.email.lower()

    row = User(tenant_id=tenant_id, **sealed.model_dump(exclude=_GENERATED))
    db.add(row)
    await db.flush()

    user.id = row.id
    user.tenant_id = tenant_id
    user.main_card_enc = row.main_card_enc
    user.created_at = row.created_at
    user.updated_at = row.updated_at
    return user


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

async def get_user_by_mobile(db: AsyncSession, vault: SensitiveFieldVault, tenant_id: str, mobile: str) -> UserRecord:
    return await _get_one(db, vault, tenant_id, _live_users(tenant_id).where(User.mobile == mobile))


async def get_user_by_email_or_mobile(
    db: AsyncSession, vault: SensitiveFieldVault, tenant_id: str, query: str
) -> UserRecord:
    q = query.lower()
    stmt = _live_users(tenant_id).where(or_(User.email == q, User.mobile == q))
    return await _get_one(db, vault, tenant_id, stmt)


async def find_user_by_username(
    db: AsyncSession, vault: SensitiveFieldVault, tenant_id: str, username: str
) -> UserRecord:
    stmt = _live_users(tenant_id).where(User.username == username.lower())
    return await _get_one(db, vault, tenant_id, stmt)


async def get_user_by_username_email_or_mobile(
    db: AsyncSession, vault: SensitiveFieldVault, tenant_id: str, query: str
) -> UserRecord:
    q = query.lower()
    stmt = _live_users(tenant_id).where(
        or_(User.username == q, User.email == q, User.mobile == q)
    )
    return await _get_one(db, vault, tenant_id, stmt)


async def find_user_by_id(db: AsyncSession, vault: SensitiveFieldVault, tenant_id: str, user_id: int) -> UserRecord:
    return await _get_one(db, vault, tenant_id, _live_users(tenant_id).where(User.id == user_id))


async def find_user_by_email(db: AsyncSession, vault: SensitiveFieldVault, tenant_id: str, email: str) -> UserRecord:
    stmt = _live_users(tenant_id).where(User.email == email.lower())
    return await _get_one(db, vault, tenant_id, stmt)


async def get_user_by_card(db: AsyncSession, vault: SensitiveFieldVault, tenant_id: str, pan: str) -> UserRecord:
    """Find the owner of a saved (live) card, by migrated or legacy PAN."""
    stmt = (
        _live_users(tenant_id)
        .join(Card, Card.user_id == User.id)
        .where(
            Card.tenant_id == tenant_id,
            Card.deleted_at.is_(None),
            vault.match(Card.pan, pan),
        )
    )
    return await _get_one(db, vault, tenant_id, stmt)


# ---------------------------------------------------------------------------
# Updates
# ---------------------------------------------------------------------------

async def update_user(
    db: AsyncSession,
    vault: SensitiveFieldVault,
    tenant_id: str,
    user: UserRecord,
) -> UserRecord:
    """
    Overwrite every column of an existing user with the values on `user`.

    Raises:
        NotFoundError: If no live user with user.id exists in the tenant.
    """
    sealed = user.model_copy()
    vault.seal(sealed, USER_FIELDS)
    values = sealed.model_dump(exclude=_GENERATED)
    if values.get("email"):
        values["email"] = values["email"].lower()
    if not values.get("main_card"):
        values["main_card_enc"] = None

    await _update_columns(db, tenant_id, user.id, values)
    user.tenant_id = tenant_id
    user.main_card_enc = values["main_card_enc"]
    user.updated_at = values["updated_at"]
    return user


async def update_user_columns(
    db: AsyncSession,
    vault: SensitiveFieldVault,
    tenant_id: str,
    user_id: int,
    changes: UserUpdate,
) -> None:
    """
    Write only the attributes explicitly set on `changes`.

    Setting main_card seals it; setting it to "" clears the card and its
    envelope. An empty UserUpdate is a no-op.

    Raises:
        NotFoundError: If the user does not exist in the tenant.
    """
    values = changes.model_dump(exclude_unset=True)
    if not values:
        return

    vault.seal_changes(values, USER_FIELDS)

    if values.get("email"):
        values["email"] = values["email"].lower()

    await _update_columns(db, tenant_id, user_id, values)


async def update_user_profile(
    db: AsyncSession,
    vault: SensitiveFieldVault,
    tenant_id: str,
    user_id: int,
    fullname: str = "",
    username: str = "",
    email: str = "",
    birthday: str = "",
    gender: str = "",
) -> None:
    """Update profile attributes; empty arguments leave the stored value alone."""
    provided = {
        "fullname": fullname,
        "username": username,
        "email": email,
        "birthday": birthday,
        "gender": gender,
    }
    changes = UserUpdate(**{k: v for k, v in provided.items() if v})
    await update_user_columns(db, vault, tenant_id, user_id, changes)


async def update_user_password(
    db: AsyncSession,
    vault: SensitiveFieldVault,
    tenant_id: str,
    user_id: int,
    password_hash: str,
) -> None:
    await update_user_columns(db, vault, tenant_id, user_id, UserUpdate(password=password_hash))


async def upsert_device_token(
    db: AsyncSession,
    vault: SensitiveFieldVault,
    tenant_id: str,
    mobile: str,
    device_id: str,
) -> None:
    """
    Record the device a mobile number signed in from.

    Unknown mobiles get a minimal user row (username = mobile).
    """
    stmt = (
        update(User)
        .where(User.tenant_id == tenant_id, User.mobile == mobile)
        .values(device_id=device_id, updated_at=datetime.now(timezone.utc))
    )
    result = await db.execute(stmt)
    if result.rowcount == 0:
        await create_user(
            db, vault, tenant_id,
            UserRecord(mobile=mobile, username=mobile, device_id=device_id),
        )


# ---------------------------------------------------------------------------
# Users with cards
# ---------------------------------------------------------------------------

async def get_user_with_cards(
    db: AsyncSession, vault: SensitiveFieldVault, tenant_id: str, mobile: str
) -> UserWithCards:
    user = await get_user_by_mobile(db, vault, tenant_id, mobile)
    cards = await card_service.list_cards_by_user_id(db, vault, tenant_id, user.id)
    return UserWithCards(**user.model_dump(), cards=cards)


async def get_cards_or_fail(
    db: AsyncSession, vault: SensitiveFieldVault, tenant_id: str, mobile: str
) -> UserWithCards:
    """Like get_user_with_cards, but a user without live cards is NotFound."""
    user = await get_user_with_cards(db, vault, tenant_id, mobile)
    if not user.cards:
        raise NotFoundError("card", tenant_id, "no cards found")
    return user


async def get_pan_by_mobile(db: AsyncSession, vault: SensitiveFieldVault, tenant_id: str, mobile: str) -> str:
    """Plaintext PAN of the user's main card (or first card when none is main)."""
    user = await get_cards_or_fail(db, vault, tenant_id, mobile)
    return user.cards[0].pan


async def get_device_ids_by_pan(
    db: AsyncSession, vault: SensitiveFieldVault, tenant_id: str, pan: str
) -> list[str]:
    """Device IDs of every user in the tenant who saved this card."""
    stmt = (
        select(User.device_id)
        .join(Card, Card.user_id == User.id)
        .where(
            User.tenant_id == tenant_id,
            Card.tenant_id == tenant_id,
            Card.deleted_at.is_(None),
            User.device_id.is_not(None),
            User.device_id != "",
            vault.match(Card.pan, pan),
        )
        .distinct()
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())
