"""
Test fixtures for the noebs store test suite.

This module provides shared fixtures used across all test files:

  - db_engine: Fresh in-memory SQLite database, migrated with the real
    migration runner, for each test
  - store: Store with a data key (encryption on)
  - plain_store: Store without a data key (passthrough mode)
  - user: A user created through user_service in the default tenant
  - fetch_row: Reads a raw row, bypassing the store, to assert what is at rest
  - insert_legacy_card: Writes a card the way pre-encryption deployments did

Key design decisions:
  - In-memory SQLite (sqlite+aiosqlite://) is used for speed and isolation.
    The in-memory database lives on a single shared connection, so tests
    open one store.session() at a time and never nest them.
  - Both stores share the same engine, so a test can write with one mode
    and read with the other.
"""

import pytest
import pytest_asyncio
from sqlalchemy import insert, text

from noebs.database import create_engine
from noebs.migrate import run_migrations
from noebs.models.card import Card
from noebs.schemas.user import UserRecord
from noebs.services import user_service
from noebs.store import Store


TEST_DATABASE_URL = "sqlite+aiosqlite://"
TEST_DATA_KEY = "test-data-key-do-not-use-in-production"
TENANT = "default"

LEGACY_PAN = "1234567890123456"


@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh migrated database for each test."""
    engine = create_engine(TEST_DATABASE_URL)
    await run_migrations(engine, TENANT)
    yield engine
    await engine.dispose()


@pytest.fixture
def store(db_engine):
    return Store(db_engine, data_key=TEST_DATA_KEY, default_tenant_id=TENANT)


@pytest.fixture
def plain_store(db_engine):
    return Store(db_engine, default_tenant_id=TENANT)


@pytest_asyncio.fixture
async def user(store):
    async with store.session() as db:
        return await user_service.create_user(
            db, store.vault, TENANT,
            UserRecord(mobile="0912345678", username="0912345678", fullname="Test User"),
        )


@pytest.fixture
def fetch_row(db_engine):
    """Return an async function that runs raw SQL and returns the first row as a dict."""

    async def _fetch(sql: str, **params):
        async with db_engine.connect() as conn:
            result = await conn.execute(text(sql), params)
            row = result.mappings().first()
            return dict(row) if row is not None else None

    return _fetch


@pytest.fixture
def insert_legacy_card(db_engine):
    """Return an async function inserting a plaintext card row with no envelopes."""

    async def _insert(user_id: int, pan: str = LEGACY_PAN, ipin: str | None = "0000",
                      tenant_id: str = TENANT, is_main: bool = False) -> int:
        async with db_engine.begin() as conn:
            result = await conn.execute(
                insert(Card)
                .values(
                    tenant_id=tenant_id,
                    user_id=user_id,
                    pan=pan,
                    ipin=ipin,
                    expiry="2812",
                    name="legacy card",
                    is_main=is_main,
                )
                .returning(Card.id)
            )
            return result.scalar_one()

    return _insert
