"""
Sensitive-field handling: seal on write, hydrate (and migrate) on read.

A sensitive field is stored in two columns:

    <attr>      searchable lookup hash "h:<hex>" (or "" for IPIN)
    <attr>_enc  AES-GCM envelope "enc:<nonce>:<ciphertext>"

Records handed to and returned from the store always carry plaintext in
<attr>. The vault converts between the two shapes:

  - seal(): plaintext -> (hash, envelope), called on a copy before INSERT/UPDATE
  - hydrate(): (hash, envelope) -> plaintext, called after SELECT

Rows written before encryption was enabled still hold plaintext in <attr> and
nothing in <attr>_enc. hydrate() recognises them with a per-field predicate,
encrypts them, and writes the sealed columns back in a SAVEPOINT. That
backfill is best effort: if it fails the savepoint is rolled back, the failure
is logged and counted, and the caller still gets its plaintext.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from sqlalchemy import or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from noebs.security import DataCodec


logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Legacy value predicates
# ---------------------------------------------------------------------------

def looks_like_pan(value: str | None) -> bool:
    """True for a plaintext card number: 12 to 19 ASCII digits."""
    if not value or not 12 <= len(value) <= 19:
        return False
    return value.isascii() and value.isdigit()


def is_present(value: str | None) -> bool:
    """True for any non-empty value that is not already a lookup hash."""
    return bool(value) and not DataCodec.is_hash(value)


# ---------------------------------------------------------------------------
# Field layouts
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SensitiveField:
    """
    One sensitive attribute and its ciphertext column.

    Attributes:
        attr: Attribute holding plaintext on records and the hash in the table.
        enc_attr: Attribute/column holding the envelope.
        is_legacy: Decides whether an unsealed stored value is legacy
            plaintext that should be migrated.
        searchable: False for values nobody queries by (IPIN); their plain
            column is emptied instead of hashed.
    """
    attr: str
    enc_attr: str
    is_legacy: Callable[[str | None], bool] = looks_like_pan
    searchable: bool = True


USER_FIELDS = (SensitiveField("main_card", "main_card_enc"),)

CARD_FIELDS = (
    SensitiveField("pan", "pan_enc"),
    SensitiveField("ipin", "ipin_enc", is_legacy=is_present, searchable=False),
)

CACHE_CARD_FIELDS = (SensitiveField("pan", "pan_enc"),)

TOKEN_FIELDS = (SensitiveField("to_card", "to_card_enc"),)


@dataclass
class BackfillStats:
    """Running totals of migrate-on-read backfills since process start."""
    migrated: int = 0
    failed: int = 0


# ---------------------------------------------------------------------------
# Vault
# ---------------------------------------------------------------------------

@dataclass
class SensitiveFieldVault:
    codec: DataCodec
    stats: BackfillStats = field(default_factory=BackfillStats)

    @property
    def enabled(self) -> bool:
        return self.codec.enabled

    def seal_value(self, value: str | None, searchable: bool = True) -> tuple[str | None, str | None]:
        """
        Return (stored value, envelope) for one plaintext value.

        A value that is already sealed (hash, or an envelope passed in by
        mistake) is normalised rather than wrapped a second time.
        """
        if not self.enabled or not value:
            return value, None
        if DataCodec.is_hash(value):
            return value, None
        plain = self.codec.decrypt(value) if DataCodec.is_encrypted(value) else value
        envelope = self.codec.encrypt(plain)
        if not searchable:
            return "", envelope
        return self.codec.hash(plain), envelope

    def seal(self, record, fields) -> None:
        """Replace plaintext on `record` with its stored representation, in place."""
        if not self.enabled:
            return
        for f in fields:
            value = getattr(record, f.attr)
            if not value or DataCodec.is_hash(value):
                continue
            stored, envelope = self.seal_value(value, f.searchable)
            setattr(record, f.attr, stored)
            setattr(record, f.enc_attr, envelope)

    def seal_changes(self, values: dict, fields) -> None:
        """
        Seal the sensitive entries of an UPDATE values map, in place.

        A value that is already a lookup hash keeps its stored envelope: its
        ciphertext column is left out of the map. An empty value clears it.
        """
        for f in fields:
            if f.attr not in values:
                continue
            value = values[f.attr]
            if value and DataCodec.is_hash(value):
                continue
            values[f.attr], values[f.enc_attr] = self.seal_value(value, f.searchable)

    async def hydrate(
        self,
        db: AsyncSession,
        model,
        record,
        fields,
        key: str = "id",
    ) -> None:
        """
        Restore plaintext on a freshly read `record`, migrating legacy values.

        Args:
            db: Session the record was read in; the backfill runs in it.
            model: ORM class of the table the record came from.
            record: Record read from `model` (mutated in place).
            fields: The entity's SensitiveField layout.
            key: Attribute identifying the row for the backfill UPDATE.

        Raises:
            CryptoError: If a stored envelope cannot be decrypted.
        """
        if not self.enabled:
            return

        pending: dict[str, str | None] = {}
        for f in fields:
            value = getattr(record, f.attr)
            envelope = getattr(record, f.enc_attr)
            if envelope:
                setattr(record, f.attr, self.codec.decrypt(envelope))
            elif value and not DataCodec.is_hash(value) and f.is_legacy(value):
                stored, envelope = self.seal_value(value, f.searchable)
                pending[f.attr] = stored
                pending[f.enc_attr] = envelope
                setattr(record, f.enc_attr, envelope)

        if not pending:
            return

        row_key = getattr(record, key)
        stmt = (
            update(model)
            .where(model.tenant_id == record.tenant_id, getattr(model, key) == row_key)
            .values(**pending, updated_at=datetime.now(timezone.utc))
        )
        try:
            async with db.begin_nested():
                await db.execute(stmt)
        except SQLAlchemyError:
            self.stats.failed += 1
            logger.warning(
                "Backfill of sensitive columns failed for %s %s=%s (tenant %s)",
                model.__tablename__, key, row_key, record.tenant_id,
                exc_info=True,
            )
            return

        self.stats.migrated += 1
        logger.debug(
            "Migrated legacy plaintext in %s %s=%s (tenant %s)",
            model.__tablename__, key, row_key, record.tenant_id,
        )

    def match(self, column, value: str):
        """
        WHERE clause finding `value` whether its row is migrated or not.

        Legacy rows hold the raw value, migrated rows hold its hash.
        """
        if not self.enabled:
            return column == value
        return or_(column == value, column == self.codec.hash(value))
