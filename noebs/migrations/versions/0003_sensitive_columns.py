"""Add ciphertext columns for sensitive fields.

Revision ID: 0003_sensitive_columns
Revises: 0002_tenant_backfill
Create Date: 2026-09-28

- users.main_card_enc
- cards.pan_enc, cards.ipin_enc
- cache_cards.pan_enc
- tokens.to_card_enc

The plaintext columns stay. Existing values are encrypted lazily, the first
time each row is read with a data key configured.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

revision = "0003_sensitive_columns"
down_revision = "0002_tenant_backfill"
branch_labels = None
depends_on = None


ENC_COLUMNS = (
    ("users", "main_card_enc"),
    ("cards", "pan_enc"),
    ("cards", "ipin_enc"),
    ("cache_cards", "pan_enc"),
    ("tokens", "to_card_enc"),
)


def _add_column_if_missing(table, column, coltype):
    inspector = inspect(op.get_bind())
    if not inspector.has_table(table):
        return
    cols = {c["name"] for c in inspector.get_columns(table)}
    if column not in cols:
        op.add_column(table, sa.Column(column, coltype, nullable=True))


def upgrade():
    for table, column in ENC_COLUMNS:
        _add_column_if_missing(table, column, sa.Text())


def downgrade():
    bind = op.get_bind()
    inspector = inspect(bind)

    for table, column in reversed(ENC_COLUMNS):
        if not inspector.has_table(table):
            continue
        cols = {c["name"] for c in inspector.get_columns(table)}
        if column in cols:
            op.drop_column(table, column)
