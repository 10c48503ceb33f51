"""
Programmatic Alembic upgrades over the store's async engine.

There is no alembic.ini: the Config is built in code and points at the
migrations directory shipped inside the package. The whole upgrade runs in a
single outer transaction (engine.begin()), so a failing revision leaves the
schema exactly as it was.

Revisions read the tenant to backfill into pre-tenancy rows from
config.attributes["default_tenant_id"].
"""

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy.ext.asyncio import AsyncEngine

from noebs.config import DEFAULT_TENANT_ID


logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"


def alembic_config(default_tenant_id: str = DEFAULT_TENANT_ID) -> Config:
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    cfg.attributes["default_tenant_id"] = default_tenant_id or DEFAULT_TENANT_ID
    return cfg


def _upgrade(connection, cfg: Config) -> None:
    cfg.attributes["connection"] = connection
    command.upgrade(cfg, "head")


async def run_migrations(engine: AsyncEngine, default_tenant_id: str = DEFAULT_TENANT_ID) -> None:
    """Upgrade the database behind `engine` to the latest revision."""
    cfg = alembic_config(default_tenant_id)
    logger.info("Running schema migrations (dialect=%s)", engine.dialect.name)
    async with engine.begin() as conn:
        await conn.run_sync(_upgrade, cfg)
    logger.info("Schema migrations complete")
