"""
Custom exception classes and FastAPI exception handlers.

The store raises domain-specific errors without importing HTTP concepts.
Whatever HTTP layer mounts the store translates them into responses through
register_exception_handlers().

Exception hierarchy:
    StoreError (base)
    ├── NotFoundError   — no row matched a tenant-scoped lookup
    ├── DatabaseError   — connectivity, constraint or driver failure
    └── CryptoError     — malformed ciphertext, failed AEAD open, no randomness

Best-effort backfill failures are not exceptions: they are logged and
counted by the SensitiveFieldVault, never raised.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class StoreError(Exception):
    """Base exception for all store errors."""

    def __init__(self, detail: str = "A store error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class NotFoundError(StoreError):
    """
    Raised when a tenant-scoped lookup matches no row.

    Attributes:
        entity: Kind of record that was looked up (e.g. "card").
        tenant_id: Tenant the lookup was scoped to.
    """

    def __init__(self, entity: str, tenant_id: str, detail: str | None = None):
        self.entity = entity
        self.tenant_id = tenant_id
        super().__init__(detail or f"{entity} not found")


class DatabaseError(StoreError):
    """Raised when the database rejects or cannot run a statement."""


class CryptoError(StoreError):
    """Raised when a value cannot be encrypted or decrypted."""


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register store exception handlers with the FastAPI application.

    Each handler maps a store exception to an HTTP status code and a
    consistent JSON body: {"detail": "...", "error_type": "..."}
    """

    @app.exception_handler(NotFoundError)
    async def not_found_handler(
        request: Request, exc: NotFoundError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content={"detail": exc.detail, "error_type": "not_found"},
        )

    @app.exception_handler(DatabaseError)
    async def database_error_handler(
        request: Request, exc: DatabaseError
    ) -> JSONResponse:
        # Driver messages can echo bound parameters, so they stay in the logs
        return JSONResponse(
            status_code=503,
            content={"detail": "Database unavailable", "error_type": "database_error"},
        )

    @app.exception_handler(CryptoError)
    async def crypto_error_handler(
        request: Request, exc: CryptoError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=500,
            content={"detail": "Stored data could not be decrypted", "error_type": "crypto_error"},
        )
