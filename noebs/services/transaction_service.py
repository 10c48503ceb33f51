"""
Transaction service — the history of switch responses.

Unlike cards, transactions never hold a recoverable PAN. Every card number
is masked to its first six and last four digits before the row is built, in
the summary columns and in the stored JSON payload alike. Lookups are by
masked PAN or by transaction uuid.
"""

import json

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from noebs.exceptions import NotFoundError
from noebs.models.transaction import Transaction
from noebs.schemas.transaction import TransactionRecord


MASK = "*****"

# Payload keys that carry card numbers in switch responses
PAN_KEYS = frozenset({
    "pan", "PAN", "toCard", "fromCard", "to_card", "from_card",
    "sender_pan", "receiver_pan", "senderPAN", "receiverPAN",
})


def mask_pan(pan: str | None) -> str | None:
    """
    "1234567890123456" -> "123456*****3456".

    Values too short to carry six plus four digits, and values that are
    already masked, are returned unchanged.
    """
    if not pan or MASK in pan or len(pan) < 10:
        return pan
    return pan[:6] + MASK + pan[-4:]


def _mask_payload(payload: dict) -> dict:
    masked = {}
    for key, value in payload.items():
        if key in PAN_KEYS and isinstance(value, str):
            masked[key] = mask_pan(value)
        else:
            masked[key] = value
    return masked


async def create_transaction(
    db: AsyncSession,
    tenant_id: str,
    transaction: TransactionRecord,
) -> TransactionRecord:
    """
    Record one switch response.

    transaction.payload may hold the raw response; it is masked and merged
    with the summary fields to form the stored JSON document. The returned
    record (and the caller's) carries the masked values.
    """
    transaction.pan = mask_pan(transaction.pan)
    transaction.sender_pan = mask_pan(transaction.sender_pan)
    transaction.receiver_pan = mask_pan(transaction.receiver_pan)

    document = _mask_payload(transaction.payload or {})
    document.update(
        transaction.model_dump(
            mode="json",
            exclude={"id", "tenant_id", "payload", "created_at", "updated_at"},
            exclude_none=True,
        )
    )
    transaction.payload = document

    values = transaction.model_dump(exclude={"id", "tenant_id", "payload", "created_at", "updated_at"})
    row = Transaction(tenant_id=tenant_id, payload=json.dumps(document), **values)
    db.add(row)
    await db.flush()

    transaction.id = row.id
    transaction.tenant_id = tenant_id
    transaction.created_at = row.created_at
    transaction.updated_at = row.updated_at
    return transaction


async def get_transactions_by_masked_pan(
    db: AsyncSession,
    tenant_id: str,
    masked_pan: str,
) -> list[TransactionRecord]:
    """Transactions where the card was the payer, the payee, or the subject."""
    masked_pan = mask_pan(masked_pan)
    result = await db.execute(
        select(Transaction)
        .where(
            Transaction.tenant_id == tenant_id,
            or_(
                Transaction.pan == masked_pan,
                Transaction.sender_pan == masked_pan,
                Transaction.receiver_pan == masked_pan,
            ),
        )
        .order_by(Transaction.id)
    )
    return [TransactionRecord.model_validate(row) for row in result.scalars().all()]


async def get_transaction_by_uuid(
    db: AsyncSession,
    tenant_id: str,
    transaction_uuid: str,
) -> TransactionRecord:
    """
    Most recent transaction recorded under `transaction_uuid`.

    Raises:
        NotFoundError: If no transaction with that uuid exists in the tenant.
    """
    result = await db.execute(
        select(Transaction)
        .where(Transaction.tenant_id == tenant_id, Transaction.uuid == transaction_uuid)
        .order_by(Transaction.id.desc())
        .limit(1)
    )
    row = result.scalars().first()
    if row is None:
        raise NotFoundError("transaction", tenant_id)
    return TransactionRecord.model_validate(row)
