"""
Card service — saved cards, the main-card flag, and the validation cache.

PAN lookups:
  A card is always addressed by its plaintext PAN. Because rows migrate
  lazily, the stored pan column may hold either that plaintext (legacy) or
  its lookup hash (migrated). Every PAN predicate therefore goes through
  vault.match(), which matches both.

Main card:
  set_main_card() clears the flag on all of the user's live cards and sets it
  on exactly one, inside a single SAVEPOINT, so no caller ever observes zero or
  two main cards as the result of a successful call.

Soft delete:
  delete_card() stamps deleted_at; deleted cards disappear from every lookup
  but stay in the table.
"""

from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from noebs.database import dialect_insert
from noebs.exceptions import NotFoundError
from noebs.models.card import CacheCard, Card
from noebs.schemas.card import CacheCardRecord, CardRecord, CardUpdate
from noebs.sensitive import CACHE_CARD_FIELDS, CARD_FIELDS, SensitiveFieldVault


_GENERATED = {"id", "tenant_id", "created_at", "updated_at", "deleted_at"}


def _live_cards(tenant_id: str):
    return select(Card).where(Card.tenant_id == tenant_id, Card.deleted_at.is_(None))


async def _hydrated(db: AsyncSession, vault: SensitiveFieldVault, rows) -> list[CardRecord]:
    cards = []
    for row in rows:
        card = CardRecord.model_validate(row)
        await vault.hydrate(db, Card, card, CARD_FIELDS)
        cards.append(card)
    return cards


# ---------------------------------------------------------------------------
# Saved cards
# ---------------------------------------------------------------------------

async def add_cards(
    db: AsyncSession,
    vault: SensitiveFieldVault,
    tenant_id: str,
    user_id: int,
    cards: list[CardRecord],
) -> list[CardRecord]:
    """
    Save cards for a user.

    PAN and IPIN are sealed on copies; the given records keep plaintext and
    receive their generated ids and timestamps.
    """
    rows = []
    for card in cards:
        sealed = card.model_copy()
        vault.seal(sealed, CARD_FIELDS)
        values = sealed.model_dump(exclude=_GENERATED | {"user_id"})
        row = Card(tenant_id=tenant_id, user_id=user_id, **values)
        db.add(row)
        rows.append(row)
    await db.flush()

    for card, row in zip(cards, rows):
        card.id = row.id
        card.tenant_id = tenant_id
        card.user_id = user_id
        card.pan_enc = row.pan_enc
        card.ipin_enc = row.ipin_enc
        card.created_at = row.created_at
        card.updated_at = row.updated_at
    return cards


async def list_cards_by_user_id(
    db: AsyncSession,
    vault: SensitiveFieldVault,
    tenant_id: str,
    user_id: int,
) -> list[CardRecord]:
    """Live cards of a user, main card first."""
    stmt = (
        _live_cards(tenant_id)
        .where(Card.user_id == user_id)
        .order_by(Card.is_main.desc(), Card.id)
    )
    result = await db.execute(stmt)
    return await _hydrated(db, vault, result.scalars().all())


async def get_card_by_pan(
    db: AsyncSession,
    vault: SensitiveFieldVault,
    tenant_id: str,
    pan: str,
    user_id: int | None = None,
) -> CardRecord:
    """
    Find a live card by plaintext PAN, optionally restricted to one user.

    Raises:
        NotFoundError: If no live card in the tenant matches.
        CryptoError: If the stored envelope cannot be decrypted.
    """
    stmt = _live_cards(tenant_id).where(vault.match(Card.pan, pan))
    if user_id is not None:
        stmt = stmt.where(Card.user_id == user_id)
    result = await db.execute(stmt.order_by(Card.id).limit(1))
    row = result.scalars().first()
    if row is None:
        raise NotFoundError("card", tenant_id)
    return (await _hydrated(db, vault, [row]))[0]


async def card_exists(db: AsyncSession, vault: SensitiveFieldVault, tenant_id: str, pan: str) -> bool:
    stmt = (
        select(Card.id)
        .where(Card.tenant_id == tenant_id, Card.deleted_at.is_(None), vault.match(Card.pan, pan))
        .limit(1)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none() is not None


async def update_card(
    db: AsyncSession,
    vault: SensitiveFieldVault,
    tenant_id: str,
    user_id: int,
    pan: str,
    changes: CardUpdate,
) -> None:
    """
    Change attributes of the user's card identified by `pan`.

    A new PAN or IPIN in `changes` is sealed before it is written. A PAN
    given as its lookup hash keeps the stored envelope.

    Raises:
        NotFoundError: If the user has no live card with that PAN.
    """
    values = changes.model_dump(exclude_unset=True)
    if not values:
        return

    vault.seal_changes(values, CARD_FIELDS)

    values["updated_at"] = datetime.now(timezone.utc)
    stmt = (
        update(Card)
        .where(
            Card.tenant_id == tenant_id,
            Card.user_id == user_id,
            Card.deleted_at.is_(None),
            vault.match(Card.pan, pan),
        )
        .values(**values)
    )
    result = await db.execute(stmt)
    if result.rowcount == 0:
        raise NotFoundError("card", tenant_id)


async def delete_card(
    db: AsyncSession,
    vault: SensitiveFieldVault,
    tenant_id: str,
    user_id: int,
    pan: str,
) -> None:
    """
    Soft-delete the user's card identified by `pan`.

    Raises:
        NotFoundError: If the user has no live card with that PAN.
    """
    now = datetime.now(timezone.utc)
    stmt = (
        update(Card)
        .where(
            Card.tenant_id == tenant_id,
            Card.user_id == user_id,
            Card.deleted_at.is_(None),
            vault.match(Card.pan, pan),
        )
        .values(deleted_at=now, updated_at=now)
    )
    result = await db.execute(stmt)
    if result.rowcount == 0:
        raise NotFoundError("card", tenant_id)


async def set_main_card(
    db: AsyncSession,
    vault: SensitiveFieldVault,
    tenant_id: str,
    user_id: int,
    pan: str,
) -> None:
    """
    Make the card identified by `pan` the user's only main card.

    Works whatever the prior state (no main card, one, or several flagged).

    Raises:
        NotFoundError: If the user has no live card with that PAN; the
            existing flags are left untouched.
    """
    target = await db.execute(
        select(Card.id)
        .where(
            Card.tenant_id == tenant_id,
            Card.user_id == user_id,
            Card.deleted_at.is_(None),
            vault.match(Card.pan, pan),
        )
        .order_by(Card.id)
        .limit(1)
    )
    card_id = target.scalar_one_or_none()
    if card_id is None:
        raise NotFoundError("card", tenant_id)

    now = datetime.now(timezone.utc)
    async with db.begin_nested():
        await db.execute(
            update(Card)
            .where(
                Card.tenant_id == tenant_id,
                Card.user_id == user_id,
                Card.deleted_at.is_(None),
            )
            .values(is_main=False, updated_at=now)
        )
        await db.execute(
            update(Card)
            .where(Card.tenant_id == tenant_id, Card.id == card_id)
            .values(is_main=True, updated_at=now)
        )


# ---------------------------------------------------------------------------
# Validation cache
# ---------------------------------------------------------------------------

async def upsert_cache_card(
    db: AsyncSession,
    vault: SensitiveFieldVault,
    tenant_id: str,
    card: CacheCardRecord,
) -> CacheCardRecord:
    """
    Insert or refresh the cache entry for card.pan.

    An existing entry is found by dual-predicate lookup, so a legacy
    plaintext entry is updated (and migrated) in place instead of being
    duplicated next to its hashed twin.
    """
    sealed = card.model_copy()
    vault.seal(sealed, CACHE_CARD_FIELDS)
    now = datetime.now(timezone.utc)

    existing = await db.execute(
        select(CacheCard.id)
        .where(CacheCard.tenant_id == tenant_id, vault.match(CacheCard.pan, card.pan or ""))
        .limit(1)
    )
    cache_id = existing.scalar_one_or_none()

    if cache_id is not None:
        await db.execute(
            update(CacheCard)
            .where(CacheCard.tenant_id == tenant_id, CacheCard.id == cache_id)
            .values(
                pan=sealed.pan,
                pan_enc=sealed.pan_enc,
                expiry=sealed.expiry,
                name=sealed.name,
                is_valid=sealed.is_valid,
                updated_at=now,
            )
        )
    else:
        insert = dialect_insert(db, CacheCard).values(
            tenant_id=tenant_id,
            pan=sealed.pan,
            pan_enc=sealed.pan_enc,
            expiry=sealed.expiry,
            name=sealed.name,
            is_valid=sealed.is_valid,
            created_at=now,
            updated_at=now,
        )
        stmt = insert.on_conflict_do_update(
            index_elements=["tenant_id", "pan"],
            set_={
                "pan_enc": insert.excluded.pan_enc,
                "expiry": insert.excluded.expiry,
                "name": insert.excluded.name,
                "is_valid": insert.excluded.is_valid,
                "updated_at": insert.excluded.updated_at,
            },
        ).returning(CacheCard.id)
        cache_id = (await db.execute(stmt)).scalar_one()

    card.id = cache_id
    card.tenant_id = tenant_id
    card.pan_enc = sealed.pan_enc
    card.updated_at = now
    return card


async def get_cache_card(
    db: AsyncSession,
    vault: SensitiveFieldVault,
    tenant_id: str,
    pan: str,
) -> CacheCardRecord:
    """
    Raises:
        NotFoundError: If the card has not been cached in this tenant.
    """
    result = await db.execute(
        select(CacheCard)
        .where(CacheCard.tenant_id == tenant_id, vault.match(CacheCard.pan, pan))
        .order_by(CacheCard.id)
        .limit(1)
    )
    row = result.scalars().first()
    if row is None:
        raise NotFoundError("cache card", tenant_id)
    card = CacheCardRecord.model_validate(row)
    await vault.hydrate(db, CacheCard, card, CACHE_CARD_FIELDS)
    return card
