"""
FastAPI application shell for the noebs store.

The store has no payment routes of its own. This module owns process startup
for whichever routers get mounted on it:
  1. Lifespan manager — logging, Store construction, ping, migrations,
     default tenant provisioning, engine disposal on shutdown
  2. Exception handlers — maps store errors to HTTP responses
  3. Health check

Running locally:
    uvicorn noebs.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from noebs.config import configure_logging, settings
from noebs.exceptions import register_exception_handlers
from noebs.services import tenant_service
from noebs.store import Store


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
      Builds the Store from settings, checks the database is reachable and
      brings the schema up to date before any request is served. A failure
      here aborts startup.

    Shutdown:
      Disposes of the database engine, closing all connections cleanly.
    """
    # --- Startup ---
    configure_logging(settings)
    store = Store.from_settings(settings)
    await store.ping()
    await store.migrate()
    async with store.session() as db:
        await tenant_service.ensure_tenant(db, store.default_tenant_id)
    if not store.codec.enabled:
        logger.warning("DATA_KEY is empty; sensitive fields are stored without encryption")
    app.state.store = store
    yield
    # --- Shutdown ---
    await store.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Tenant-aware encrypted data store for the noebs payment gateway",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

register_exception_handlers(app)


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness probe for deployment orchestrators."""
    return {"status": "ok", "version": settings.APP_VERSION}
