"""
Records for payment tokens (payment requests shared as links or QR codes).
"""

from datetime import datetime

from pydantic import BaseModel

from noebs.schemas.transaction import TransactionRecord


class TokenRecord(BaseModel):
    """
    A payment token.

    uuid is the public identifier and is generated by the store when empty.
    to_card holds the plaintext recipient card.
    """
    id: int | None = None
    tenant_id: str = ""
    user_id: int | None = None
    amount: int = 0
    cart_id: str | None = None
    uuid: str = ""
    note: str | None = None
    to_card: str | None = None
    to_card_enc: str | None = None
    is_paid: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class TokenWithTransaction(TokenRecord):
    """A token and the latest switch response recorded against it, if paid."""
    transaction: TransactionRecord | None = None
