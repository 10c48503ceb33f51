"""Create the sign-in and bill-payment helper tables.

Revision ID: 0004_account_tables
Revises: 0003_sensitive_columns
Create Date: 2026-10-19

- auth_accounts: external identity provider logins linked to a user
- login_metrics: per-mobile login attempt and suspicious-activity counters
- cache_billers: the biller last used to pay a phone number
- meter_names: electricity meter number to account holder name

Databases from the previous deployment may already have some of these
tables, without the columns added since. Missing tables are created and
missing columns are added as nullable.
"""
from alembic import context, op
import sqlalchemy as sa
from sqlalchemy import inspect

revision = "0004_account_tables"
down_revision = "0003_sensitive_columns"
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def _tenant_id(tenant, primary_key=False):
    return sa.Column(
        "tenant_id",
        sa.Text(),
        primary_key=primary_key,
        nullable=False,
        server_default=sa.text(f"'{tenant}'"),
    )


def _tables(tenant):
    return {
        "auth_accounts": (
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            _tenant_id(tenant),
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("provider", sa.Text(), nullable=False),
            sa.Column("provider_user_id", sa.Text(), nullable=False),
            sa.Column("email", sa.Text()),
            sa.Column("email_verified", sa.Boolean(), nullable=False),
            *_timestamps(),
            sa.Column("deleted_at", sa.DateTime(timezone=True)),
            sa.UniqueConstraint(
                "tenant_id", "provider", "provider_user_id", name="uq_auth_accounts_provider_user"
            ),
        ),
        "login_metrics": (
            _tenant_id(tenant, primary_key=True),
            sa.Column("mobile", sa.Text(), primary_key=True),
            sa.Column("login_count", sa.Integer(), nullable=False),
            sa.Column("window_started_at", sa.DateTime(timezone=True)),
            sa.Column("suspicious_count", sa.Integer(), nullable=False),
            *_timestamps(),
        ),
        "cache_billers": (
            _tenant_id(tenant, primary_key=True),
            sa.Column("mobile", sa.Text(), primary_key=True),
            sa.Column("biller_id", sa.Text()),
            *_timestamps(),
        ),
        "meter_names": (
            _tenant_id(tenant, primary_key=True),
            sa.Column("nec", sa.Text(), primary_key=True),
            sa.Column("name", sa.Text()),
            *_timestamps(),
        ),
    }


def _add_missing_columns(table, columns):
    existing = {c["name"] for c in inspect(op.get_bind()).get_columns(table)}
    for column in columns:
        if isinstance(column, sa.Column) and column.name not in existing:
            op.add_column(table, sa.Column(column.name, column.type, nullable=True))


def upgrade():
    tenant = context.config.attributes.get("default_tenant_id") or "default"
    if "'" in tenant:
        raise ValueError("default tenant id must not contain quotes")

    for name, columns in _tables(tenant).items():
        if inspect(op.get_bind()).has_table(name):
            _add_missing_columns(name, columns)
            continue
        op.create_table(name, *columns)
        op.create_index(f"ix_{name}_tenant_id", name, ["tenant_id"])


def downgrade():
    # Tables may predate this revision; dropping them would destroy legacy data
    pass
