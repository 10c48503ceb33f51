"""Add tenant_id to tenant-owned tables and the late transaction columns.

Revision ID: 0002_tenant_backfill
Revises: 0001_initial_schema
Create Date: 2026-09-28

- tenant_id TEXT NOT NULL DEFAULT '<default tenant>' on every tenant-owned
  table, backfilled where NULL or empty
- transactions: terminal_id, system_trace_audit_number, approval_code,
  tran_fee, sender_pan, receiver_pan
- push_data.to_device, copied from the legacy "to" column
- the default tenant row

Tables that do not exist in this database are skipped.
"""
from datetime import datetime, timezone

from alembic import context, op
import sqlalchemy as sa
from sqlalchemy import inspect

revision = "0002_tenant_backfill"
down_revision = "0001_initial_schema"
branch_labels = None
depends_on = None


TENANT_TABLES = (
    "users",
    "auth_accounts",
    "cards",
    "cache_cards",
    "cache_billers",
    "beneficiaries",
    "tokens",
    "transactions",
    "push_data",
    "api_keys",
    "login_metrics",
    "meter_names",
    "kyc",
    "passports",
    "merchant_issues",
)

TRANSACTION_COLUMNS = (
    ("terminal_id", sa.Text()),
    ("system_trace_audit_number", sa.Integer()),
    ("approval_code", sa.Text()),
    ("tran_fee", sa.Numeric()),
    ("sender_pan", sa.Text()),
    ("receiver_pan", sa.Text()),
)


def _default_tenant():
    return context.config.attributes.get("default_tenant_id") or "default"


def _has_table(table):
    return inspect(op.get_bind()).has_table(table)


def _columns(table):
    return {c["name"] for c in inspect(op.get_bind()).get_columns(table)}


def _quote(name):
    return op.get_bind().dialect.identifier_preparer.quote(name)


def _add_column_if_missing(table, column):
    if column.name in _columns(table):
        return False
    op.add_column(table, column)
    return True


def _ensure_tenant_column(table, tenant):
    _add_column_if_missing(
        table,
        sa.Column(
            "tenant_id",
            sa.Text(),
            nullable=False,
            server_default=sa.text(f"'{tenant}'"),
        ),
    )
    op.execute(
        sa.text(
            f"UPDATE {_quote(table)} SET tenant_id = :tenant "
            "WHERE tenant_id IS NULL OR tenant_id = ''"
        ).bindparams(tenant=tenant)
    )
    index_name = f"ix_{table}_tenant_id"
    indexes = {i["name"] for i in inspect(op.get_bind()).get_indexes(table)}
    if index_name not in indexes:
        op.create_index(index_name, table, ["tenant_id"])


def _ensure_default_tenant(tenant):
    tenants = sa.table(
        "tenants",
        sa.column("id", sa.Text()),
        sa.column("name", sa.Text()),
        sa.column("created_at", sa.DateTime(timezone=True)),
    )
    bind = op.get_bind()
    exists = bind.execute(sa.select(tenants.c.id).where(tenants.c.id == tenant)).first()
    if exists is None:
        bind.execute(
            tenants.insert().values(
                id=tenant,
                name=tenant,
                created_at=datetime.now(timezone.utc),
            )
        )


def upgrade():
    tenant = _default_tenant()
    if "'" in tenant:
        raise ValueError("default tenant id must not contain quotes")

    for table in TENANT_TABLES:
        if _has_table(table):
            _ensure_tenant_column(table, tenant)

    if _has_table("transactions"):
        for name, coltype in TRANSACTION_COLUMNS:
            _add_column_if_missing("transactions", sa.Column(name, coltype, nullable=True))

    if _has_table("push_data"):
        _add_column_if_missing("push_data", sa.Column("to_device", sa.Text(), nullable=True))
        if "to" in _columns("push_data"):
            op.execute(
                f"UPDATE push_data SET to_device = {_quote('to')} "
                "WHERE to_device IS NULL OR to_device = ''"
            )

    _ensure_default_tenant(tenant)


def downgrade():
    pass
