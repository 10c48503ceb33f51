"""
FastAPI dependencies that hand the store to route handlers.

  get_store      -> the Store built at startup (app.state.store)
  get_db         -> one unit of work (Store.session()) per request
  get_tenant_id  -> tenant named by the X-Tenant-ID header, else the default

Usage in a route:
    @router.get("/cards/{mobile}")
    async def list_cards(
        mobile: str,
        store: Store = Depends(get_store),
        db: AsyncSession = Depends(get_db),
        tenant_id: str = Depends(get_tenant_id),
    ):
        return await user_service.get_user_with_cards(db, store.vault, tenant_id, mobile)
"""

from typing import AsyncIterator

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from noebs.store import Store


def get_store(request: Request) -> Store:
    return request.app.state.store


async def get_db(store: Store = Depends(get_store)) -> AsyncIterator[AsyncSession]:
    """
    Session for the duration of one request.

    Committed when the handler returns, rolled back when it raises (store
    errors are then mapped to responses by the registered handlers).
    """
    async with store.session() as db:
        yield db


def get_tenant_id(
    x_tenant_id: str | None = Header(default=None),
    store: Store = Depends(get_store),
) -> str:
    return store.tenant(x_tenant_id.strip() if x_tenant_id else None)
