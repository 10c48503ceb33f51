"""
Tests for the card service.

These tests verify:
  - Saved cards are sealed at rest and returned in plaintext
  - PAN lookups match both legacy (plaintext) and migrated (hashed) rows
  - set_main_card leaves exactly one main card whatever the prior state
  - Cards are isolated per tenant and soft-deleted cards disappear
  - The validation cache updates legacy entries in place
"""

import pytest
from sqlalchemy import text

from noebs.exceptions import NotFoundError
from noebs.schemas.card import CacheCardRecord, CardRecord, CardUpdate
from noebs.schemas.user import UserRecord
from noebs.services import card_service, user_service

TENANT = "default"
LEGACY_PAN = "1234567890123456"
OTHER_PAN = "9222081234567890"
THIRD_PAN = "6391750000000001"


async def main_flags(fetch_row, user_id):
    row = await fetch_row(
        "SELECT COUNT(*) AS total, SUM(CASE WHEN is_main THEN 1 ELSE 0 END) AS mains "
        "FROM cards WHERE user_id = :uid AND deleted_at IS NULL",
        uid=user_id,
    )
    return row["total"], row["mains"] or 0


class TestAddCards:

    async def test_cards_sealed_at_rest(self, store, user, fetch_row):
        cards = [CardRecord(pan=LEGACY_PAN, ipin="1234", expiry="2812", name="salary")]

        async with store.session() as db:
            saved = await card_service.add_cards(db, store.vault, TENANT, user.id, cards)

        assert saved[0].id is not None
        assert saved[0].pan == LEGACY_PAN
        assert saved[0].ipin == "1234"
        assert saved[0].user_id == user.id

        row = await fetch_row("SELECT * FROM cards WHERE id = :id", id=saved[0].id)
        assert row["tenant_id"] == TENANT
        assert row["pan"] == store.codec.hash(LEGACY_PAN)
        assert row["ipin"] == ""
        assert store.codec.decrypt(row["pan_enc"]) == LEGACY_PAN
        assert store.codec.decrypt(row["ipin_enc"]) == "1234"

    async def test_list_returns_plaintext(self, store, user):
        async with store.session() as db:
            await card_service.add_cards(
                db, store.vault, TENANT, user.id,
                [CardRecord(pan=LEGACY_PAN, ipin="1111"), CardRecord(pan=OTHER_PAN, ipin="2222")],
            )
        async with store.session() as db:
            cards = await card_service.list_cards_by_user_id(db, store.vault, TENANT, user.id)

        assert [(c.pan, c.ipin) for c in cards] == [(LEGACY_PAN, "1111"), (OTHER_PAN, "2222")]


class TestLookupByPan:

    async def test_legacy_row_found(self, store, user, insert_legacy_card):
        card_id = await insert_legacy_card(user.id)
        async with store.session() as db:
            assert await card_service.card_exists(db, store.vault, TENANT, LEGACY_PAN)
            card = await card_service.get_card_by_pan(db, store.vault, TENANT, LEGACY_PAN)
        assert card.id == card_id

    async def test_migrated_row_found(self, store, user):
        async with store.session() as db:
            await card_service.add_cards(db, store.vault, TENANT, user.id, [CardRecord(pan=LEGACY_PAN)])
        async with store.session() as db:
            assert await card_service.card_exists(db, store.vault, TENANT, LEGACY_PAN)
            card = await card_service.get_card_by_pan(db, store.vault, TENANT, LEGACY_PAN, user_id=user.id)
        assert card.pan == LEGACY_PAN

    async def test_found_before_and_after_migration(self, store, user, insert_legacy_card):
        """The same PAN resolves to the same card across the lazy migration."""
        card_id = await insert_legacy_card(user.id)
        async with store.session() as db:
            first = await card_service.get_card_by_pan(db, store.vault, TENANT, LEGACY_PAN)
        async with store.session() as db:
            second = await card_service.get_card_by_pan(db, store.vault, TENANT, LEGACY_PAN)
        assert first.id == second.id == card_id

    async def test_unknown_pan(self, store, user):
        async with store.session() as db:
            assert not await card_service.card_exists(db, store.vault, TENANT, OTHER_PAN)
        with pytest.raises(NotFoundError):
            async with store.session() as db:
                await card_service.get_card_by_pan(db, store.vault, TENANT, OTHER_PAN)

    async def test_restricted_to_user(self, store, user):
        async with store.session() as db:
            await card_service.add_cards(db, store.vault, TENANT, user.id, [CardRecord(pan=LEGACY_PAN)])
        with pytest.raises(NotFoundError):
            async with store.session() as db:
                await card_service.get_card_by_pan(db, store.vault, TENANT, LEGACY_PAN, user_id=user.id + 1)


class TestTenantIsolation:

    async def test_card_invisible_in_other_tenant(self, store, user, insert_legacy_card):
        await insert_legacy_card(user.id, tenant_id="acme")

        async with store.session() as db:
            assert not await card_service.card_exists(db, store.vault, TENANT, LEGACY_PAN)
            assert await card_service.card_exists(db, store.vault, "acme", LEGACY_PAN)
            assert await card_service.list_cards_by_user_id(db, store.vault, TENANT, user.id) == []

    async def test_update_does_not_cross_tenants(self, store, user, insert_legacy_card):
        await insert_legacy_card(user.id, tenant_id="acme")
        with pytest.raises(NotFoundError):
            async with store.session() as db:
                await card_service.update_card(
                    db, store.vault, TENANT, user.id, LEGACY_PAN, CardUpdate(name="x")
                )


class TestSetMainCard:

    async def _three_cards(self, insert_legacy_card, user_id, mains=()):
        for pan in (LEGACY_PAN, OTHER_PAN, THIRD_PAN):
            await insert_legacy_card(user_id, pan=pan, is_main=pan in mains)

    @pytest.mark.parametrize("mains", [(), (LEGACY_PAN,), (LEGACY_PAN, OTHER_PAN, THIRD_PAN)])
    async def test_exactly_one_main_card(self, store, user, insert_legacy_card, fetch_row, mains):
        await self._three_cards(insert_legacy_card, user.id, mains)

        async with store.session() as db:
            await card_service.set_main_card(db, store.vault, TENANT, user.id, OTHER_PAN)

        assert await main_flags(fetch_row, user.id) == (3, 1)
        async with store.session() as db:
            cards = await card_service.list_cards_by_user_id(db, store.vault, TENANT, user.id)
        assert cards[0].pan == OTHER_PAN
        assert cards[0].is_main

    async def test_works_on_migrated_cards(self, store, user, fetch_row):
        async with store.session() as db:
            await card_service.add_cards(
                db, store.vault, TENANT, user.id,
                [CardRecord(pan=LEGACY_PAN, is_main=True), CardRecord(pan=OTHER_PAN)],
            )
        async with store.session() as db:
            await card_service.set_main_card(db, store.vault, TENANT, user.id, OTHER_PAN)

        assert await main_flags(fetch_row, user.id) == (2, 1)
        async with store.session() as db:
            main = await card_service.get_card_by_pan(db, store.vault, TENANT, OTHER_PAN)
        assert main.is_main

    async def test_unknown_pan_leaves_flags_untouched(self, store, user, insert_legacy_card, fetch_row):
        await self._three_cards(insert_legacy_card, user.id, mains=(LEGACY_PAN,))

        with pytest.raises(NotFoundError):
            async with store.session() as db:
                await card_service.set_main_card(db, store.vault, TENANT, user.id, "5555555555555555")

        row = await fetch_row("SELECT pan FROM cards WHERE is_main AND user_id = :uid", uid=user.id)
        assert row["pan"] == LEGACY_PAN
        assert await main_flags(fetch_row, user.id) == (3, 1)

    async def test_other_users_cards_are_untouched(self, store, user, insert_legacy_card, fetch_row):
        async with store.session() as db:
            other = await user_service.create_user(db, store.vault, TENANT, UserRecord(mobile="0911111111"))
        await insert_legacy_card(other.id, pan=THIRD_PAN, is_main=True)
        await insert_legacy_card(user.id, pan=LEGACY_PAN)

        async with store.session() as db:
            await card_service.set_main_card(db, store.vault, TENANT, user.id, LEGACY_PAN)

        assert await main_flags(fetch_row, other.id) == (1, 1)
        assert await main_flags(fetch_row, user.id) == (1, 1)


class TestUpdateAndDelete:

    async def test_update_card_seals_new_ipin(self, store, user, insert_legacy_card, fetch_row):
        card_id = await insert_legacy_card(user.id)

        async with store.session() as db:
            await card_service.update_card(
                db, store.vault, TENANT, user.id, LEGACY_PAN, CardUpdate(ipin="4321", name="travel")
            )

        row = await fetch_row("SELECT name, ipin, ipin_enc FROM cards WHERE id = :id", id=card_id)
        assert row["name"] == "travel"
        assert row["ipin"] == ""
        assert store.codec.decrypt(row["ipin_enc"]) == "4321"

    async def test_update_card_changes_pan(self, store, user):
        async with store.session() as db:
            await card_service.add_cards(db, store.vault, TENANT, user.id, [CardRecord(pan=LEGACY_PAN)])
            await card_service.update_card(
                db, store.vault, TENANT, user.id, LEGACY_PAN, CardUpdate(pan=OTHER_PAN)
            )
        async with store.session() as db:
            card = await card_service.get_card_by_pan(db, store.vault, TENANT, OTHER_PAN)
            assert not await card_service.card_exists(db, store.vault, TENANT, LEGACY_PAN)
        assert card.pan == OTHER_PAN

    async def test_update_with_hashed_pan_keeps_envelope(self, store, user, fetch_row):
        async with store.session() as db:
            [card] = await card_service.add_cards(
                db, store.vault, TENANT, user.id, [CardRecord(pan=LEGACY_PAN)]
            )
            await card_service.update_card(
                db, store.vault, TENANT, user.id, LEGACY_PAN,
                CardUpdate(pan=store.codec.hash(LEGACY_PAN), name="renamed"),
            )
        async with store.session() as db:
            found = await card_service.get_card_by_pan(db, store.vault, TENANT, LEGACY_PAN)

        assert found.pan == LEGACY_PAN
        assert found.name == "renamed"
        row = await fetch_row("SELECT pan, pan_enc FROM cards WHERE id = :id", id=card.id)
        assert row["pan"] == store.codec.hash(LEGACY_PAN)
        assert store.codec.decrypt(row["pan_enc"]) == LEGACY_PAN

    async def test_empty_update_is_a_no_op(self, store, user):
        async with store.session() as db:
            await card_service.update_card(db, store.vault, TENANT, user.id, LEGACY_PAN, CardUpdate())

    async def test_soft_delete(self, store, user, insert_legacy_card, fetch_row):
        card_id = await insert_legacy_card(user.id)

        async with store.session() as db:
            await card_service.delete_card(db, store.vault, TENANT, user.id, LEGACY_PAN)

        row = await fetch_row("SELECT deleted_at FROM cards WHERE id = :id", id=card_id)
        assert row["deleted_at"] is not None
        async with store.session() as db:
            assert await card_service.list_cards_by_user_id(db, store.vault, TENANT, user.id) == []
            assert not await card_service.card_exists(db, store.vault, TENANT, LEGACY_PAN)

    async def test_delete_twice_raises(self, store, user, insert_legacy_card):
        await insert_legacy_card(user.id)
        async with store.session() as db:
            await card_service.delete_card(db, store.vault, TENANT, user.id, LEGACY_PAN)
        with pytest.raises(NotFoundError):
            async with store.session() as db:
                await card_service.delete_card(db, store.vault, TENANT, user.id, LEGACY_PAN)


class TestCacheCards:

    async def test_insert_and_get(self, store, fetch_row):
        async with store.session() as db:
            cached = await card_service.upsert_cache_card(
                db, store.vault, TENANT, CacheCardRecord(pan=LEGACY_PAN, expiry="2812", is_valid=True)
            )
        assert cached.id is not None
        assert cached.pan == LEGACY_PAN

        row = await fetch_row("SELECT pan, pan_enc FROM cache_cards WHERE id = :id", id=cached.id)
        assert row["pan"] == store.codec.hash(LEGACY_PAN)

        async with store.session() as db:
            found = await card_service.get_cache_card(db, store.vault, TENANT, LEGACY_PAN)
        assert found.pan == LEGACY_PAN
        assert found.is_valid is True

    async def test_upsert_refreshes_existing_entry(self, store, fetch_row):
        async with store.session() as db:
            first = await card_service.upsert_cache_card(
                db, store.vault, TENANT, CacheCardRecord(pan=LEGACY_PAN, is_valid=True)
            )
        async with store.session() as db:
            second = await card_service.upsert_cache_card(
                db, store.vault, TENANT, CacheCardRecord(pan=LEGACY_PAN, is_valid=False)
            )

        assert first.id == second.id
        row = await fetch_row("SELECT COUNT(*) AS n FROM cache_cards")
        assert row["n"] == 1

    async def test_legacy_entry_updated_in_place(self, store, db_engine, fetch_row):
        """A plaintext cache row is migrated, not duplicated next to a hashed twin."""
        async with db_engine.begin() as conn:
            await conn.execute(text(
                "INSERT INTO cache_cards (tenant_id, pan, is_valid, created_at, updated_at) "
                "VALUES ('default', :pan, 0, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)"
            ), {"pan": LEGACY_PAN})

        async with store.session() as db:
            await card_service.upsert_cache_card(
                db, store.vault, TENANT, CacheCardRecord(pan=LEGACY_PAN, is_valid=True)
            )

        row = await fetch_row("SELECT COUNT(*) AS n FROM cache_cards")
        assert row["n"] == 1
        row = await fetch_row("SELECT pan, pan_enc, is_valid FROM cache_cards")
        assert row["pan"] == store.codec.hash(LEGACY_PAN)
        assert row["is_valid"]

    async def test_cache_is_tenant_scoped(self, store):
        async with store.session() as db:
            await card_service.upsert_cache_card(db, store.vault, "acme", CacheCardRecord(pan=LEGACY_PAN))
        with pytest.raises(NotFoundError):
            async with store.session() as db:
                await card_service.get_cache_card(db, store.vault, TENANT, LEGACY_PAN)
