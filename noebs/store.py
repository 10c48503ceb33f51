"""
The Store handle: one engine, one codec, one vault, many sessions.

A Store is built once per process (or per test) and passed to whatever needs
database access. There are no module-level engines or session factories.

Typical use:

    store = Store.from_settings(settings)
    await store.ping()
    await store.migrate()

    async with store.session() as db:
        user = await user_service.get_user_by_mobile(db, store.vault, tenant, mobile)

Service functions never commit. The session() context manager is the unit of
work: it commits when the block exits normally and rolls back otherwise.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from noebs.config import DEFAULT_TENANT_ID, Settings
from noebs.database import create_engine
from noebs.exceptions import DatabaseError, NotFoundError
from noebs.migrate import run_migrations
from noebs.security import DataCodec
from noebs.sensitive import SensitiveFieldVault


logger = logging.getLogger(__name__)


class Store:
    """Tenant-aware encrypted data store."""

    def __init__(
        self,
        engine: AsyncEngine,
        data_key: str = "",
        default_tenant_id: str = DEFAULT_TENANT_ID,
        ping_timeout: float = 10.0,
    ):
        self.engine = engine
        self.default_tenant_id = default_tenant_id or DEFAULT_TENANT_ID
        self.ping_timeout = ping_timeout
        self.codec = DataCodec(data_key)
        self.vault = SensitiveFieldVault(self.codec)

        # expire_on_commit=False keeps loaded rows usable after commit
        self.sessionmaker = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, config: Settings) -> "Store":
        engine = create_engine(config.DATABASE_URL, echo=config.DEBUG)
        return cls(
            engine,
            data_key=config.DATA_KEY,
            default_tenant_id=config.DEFAULT_TENANT_ID,
            ping_timeout=config.DB_PING_TIMEOUT_SECONDS,
        )

    def tenant(self, tenant_id: str | None) -> str:
        """Resolve an optional tenant ID to the one a query should use."""
        return tenant_id or self.default_tenant_id

    async def ping(self) -> None:
        """
        Verify the database is reachable.

        Raises:
            DatabaseError: If the connection fails or times out.
        """
        try:
            async with asyncio.timeout(self.ping_timeout):
                async with self.engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError, TimeoutError) as exc:
            logger.error("Database ping failed: %s", type(exc).__name__)
            raise DatabaseError("Database unavailable") from exc

    async def migrate(self) -> None:
        """Bring the schema up to date. Safe to call on every startup."""
        try:
            await run_migrations(self.engine, self.default_tenant_id)
        except SQLAlchemyError as exc:
            logger.exception("Schema migration failed")
            raise DatabaseError("Schema migration failed") from exc

    async def dispose(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Unit of work.

        Commits on success. A NotFoundError still commits, so migrate-on-read
        backfills done before the miss are kept. Any other exception rolls back;
        SQLAlchemy errors are re-raised as DatabaseError.
        """
        async with self.sessionmaker() as db:
            try:
                yield db
            except NotFoundError:
                await self._commit(db)
                raise
            except SQLAlchemyError as exc:
                await db.rollback()
                logger.exception("Database error; transaction rolled back")
                raise DatabaseError("Database operation failed") from exc
            except BaseException:
                await db.rollback()
                raise
            else:
                await self._commit(db)

    async def _commit(self, db: AsyncSession) -> None:
        try:
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.exception("Commit failed; transaction rolled back")
            raise DatabaseError("Database operation failed") from exc
