"""
Tests for the schema migrations.

These tests verify:
  - A second run against an up-to-date database changes nothing
  - A database from the pre-tenancy, pre-encryption deployment is upgraded in
    place: tenant columns backfilled, ciphertext columns added, push_data.to
    copied to to_device, default tenant registered
  - Legacy rows are then readable, and migrate on first read
  - A failing revision leaves the schema untouched
"""

import pytest
import pytest_asyncio
from sqlalchemy import inspect, text

from noebs.database import create_engine
from noebs.migrate import run_migrations
from noebs.services import biller_service, card_service, tenant_service, user_service
from noebs.store import Store

LEGACY_PAN = "1234567890123456"

LEGACY_SCHEMA = (
    """
    CREATE TABLE users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        password TEXT, fullname TEXT, username TEXT, gender TEXT, birthday TEXT,
        email TEXT, is_merchant BOOLEAN NOT NULL DEFAULT 0, public_key TEXT,
        device_id TEXT, otp TEXT, signed_otp TEXT, firebase_token TEXT,
        is_password_otp BOOLEAN NOT NULL DEFAULT 0, main_card TEXT, main_expdate TEXT,
        language TEXT, is_verified BOOLEAN NOT NULL DEFAULT 0, mobile TEXT NOT NULL,
        created_at DATETIME NOT NULL, updated_at DATETIME NOT NULL, deleted_at DATETIME
    )
    """,
    """
    CREATE TABLE cards (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL REFERENCES users(id),
        pan TEXT, expiry TEXT, name TEXT, ipin TEXT,
        is_main BOOLEAN NOT NULL DEFAULT 0, is_valid BOOLEAN,
        created_at DATETIME NOT NULL, updated_at DATETIME NOT NULL, deleted_at DATETIME
    )
    """,
    """
    CREATE TABLE push_data (
        uuid TEXT PRIMARY KEY, type TEXT, date BIGINT, "to" TEXT, title TEXT, body TEXT,
        call_to_action TEXT, phone TEXT, is_read BOOLEAN NOT NULL DEFAULT 0, device_id TEXT,
        user_mobile TEXT, ebs_uuid TEXT, payment_request TEXT,
        created_at DATETIME NOT NULL, updated_at DATETIME NOT NULL, deleted_at DATETIME
    )
    """,
    """
    CREATE TABLE cache_billers (mobile TEXT PRIMARY KEY, biller_id TEXT)
    """,
    """
    INSERT INTO users (id, mobile, username, main_card, created_at, updated_at)
    VALUES (1, '0912345678', '0912345678', '1234567890123456', CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
    """,
    """
    INSERT INTO cards (id, user_id, pan, ipin, is_main, created_at, updated_at)
    VALUES (1, 1, '1234567890123456', '0000', 1, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
    """,
    """
    INSERT INTO push_data (uuid, "to", title, is_read, created_at, updated_at)
    VALUES ('n-1', 'device-token', 'hello', 0, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
    """,
    """
    INSERT INTO cache_billers (mobile, biller_id) VALUES ('0912345678', '0010010002')
    """,
)


@pytest_asyncio.fixture
async def legacy_engine():
    engine = create_engine("sqlite+aiosqlite://")
    async with engine.begin() as conn:
        for statement in LEGACY_SCHEMA:
            await conn.execute(text(statement))
    yield engine
    await engine.dispose()


async def columns_of(engine, table):
    async with engine.connect() as conn:
        return await conn.run_sync(lambda c: {col["name"] for col in inspect(c).get_columns(table)})


async def table_names(engine):
    async with engine.connect() as conn:
        return await conn.run_sync(lambda c: set(inspect(c).get_table_names()))


class TestFreshDatabase:

    async def test_all_tables_created(self, db_engine):
        tables = await table_names(db_engine)
        assert {
            "alembic_version", "tenants", "users", "cards", "cache_cards", "tokens",
            "transactions", "kyc", "passports", "push_data", "beneficiaries", "api_keys",
            "auth_accounts", "login_metrics", "cache_billers", "meter_names",
        } <= tables

    async def test_second_run_changes_nothing(self, db_engine, user, fetch_row):
        before = await fetch_row("SELECT * FROM users WHERE id = :id", id=user.id)

        await run_migrations(db_engine, "default")

        after = await fetch_row("SELECT * FROM users WHERE id = :id", id=user.id)
        version = await fetch_row("SELECT COUNT(*) AS n, MAX(version_num) AS head FROM alembic_version")
        tenants = await fetch_row("SELECT COUNT(*) AS n FROM tenants")
        assert after == before
        assert version == {"n": 1, "head": "0004_account_tables"}
        assert tenants["n"] == 1

    async def test_failing_revision_rolls_back(self):
        engine = create_engine("sqlite+aiosqlite://")
        try:
            with pytest.raises(ValueError):
                await run_migrations(engine, "it's")
            assert await table_names(engine) == set()
        finally:
            await engine.dispose()


class TestLegacyDatabase:

    async def test_tenant_columns_backfilled(self, legacy_engine):
        await run_migrations(legacy_engine, "legacy")

        async with legacy_engine.connect() as conn:
            users = (await conn.execute(text("SELECT tenant_id FROM users"))).scalars().all()
            cards = (await conn.execute(text("SELECT tenant_id FROM cards"))).scalars().all()
        assert users == ["legacy"]
        assert cards == ["legacy"]

    async def test_ciphertext_columns_added(self, legacy_engine):
        await run_migrations(legacy_engine, "legacy")

        assert {"tenant_id", "main_card_enc"} <= await columns_of(legacy_engine, "users")
        assert {"tenant_id", "pan_enc", "ipin_enc"} <= await columns_of(legacy_engine, "cards")

    async def test_push_data_recipient_copied(self, legacy_engine):
        await run_migrations(legacy_engine, "legacy")

        async with legacy_engine.connect() as conn:
            to_device = (await conn.execute(
                text("SELECT to_device FROM push_data WHERE uuid = 'n-1'")
            )).scalar_one()
        assert to_device == "device-token"

    async def test_default_tenant_registered(self, legacy_engine):
        await run_migrations(legacy_engine, "legacy")
        store = Store(legacy_engine, default_tenant_id="legacy")

        async with store.session() as db:
            tenants = await tenant_service.list_tenants(db)
        assert [t.id for t in tenants] == ["legacy"]

    async def test_legacy_rows_migrate_on_read(self, legacy_engine):
        await run_migrations(legacy_engine, "legacy")
        store = Store(legacy_engine, data_key="legacy-key", default_tenant_id="legacy")
        tenant = store.tenant(None)

        async with store.session() as db:
            user = await user_service.get_user_by_mobile(db, store.vault, tenant, "0912345678")
            card = await card_service.get_card_by_pan(db, store.vault, tenant, LEGACY_PAN)

        assert user.main_card == LEGACY_PAN
        assert card.pan == LEGACY_PAN
        assert card.ipin == "0000"
        assert store.vault.stats.migrated == 2

        async with legacy_engine.connect() as conn:
            row = (await conn.execute(text("SELECT pan, pan_enc, ipin FROM cards WHERE id = 1"))).one()
        assert row.pan == store.codec.hash(LEGACY_PAN)
        assert store.codec.decrypt(row.pan_enc) == LEGACY_PAN
        assert row.ipin == ""

    async def test_legacy_cache_billers_upgraded(self, legacy_engine):
        await run_migrations(legacy_engine, "legacy")
        store = Store(legacy_engine, default_tenant_id="legacy")

        assert {"tenant_id", "created_at", "updated_at"} <= await columns_of(legacy_engine, "cache_billers")
        async with store.session() as db:
            cached = await biller_service.get_cache_biller(db, "legacy", "0912345678")
            await biller_service.upsert_cache_biller(db, "legacy", "0912345678", "0010010001")
        async with store.session() as db:
            updated = await biller_service.get_cache_biller(db, "legacy", "0912345678")

        assert cached.biller_id == "0010010002"
        assert updated.biller_id == "0010010001"
