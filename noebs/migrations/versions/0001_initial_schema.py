"""Create the store's tables when they do not exist yet.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-09-28

Databases created by the previous ORM-managed deployment already have most of
these tables (without tenant or encryption columns). Existing tables are left
alone here; 0002 and 0003 add what they are missing.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(updated: bool = True, deleted: bool = False):
    columns = [sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)]
    if updated:
        columns.append(sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False))
    if deleted:
        columns.append(sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True))
    return columns


def _create_table_if_missing(name, *columns, indexes=()):
    if inspect(op.get_bind()).has_table(name):
        return False
    op.create_table(name, *columns)
    for column in indexes:
        op.create_index(f"ix_{name}_{column}", name, [column])
    return True


def upgrade():
    _create_table_if_missing(
        "tenants",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    _create_table_if_missing(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("tenant_id", sa.Text(), nullable=False),
        sa.Column("password", sa.Text()),
        sa.Column("fullname", sa.Text()),
        sa.Column("username", sa.Text()),
        sa.Column("gender", sa.Text()),
        sa.Column("birthday", sa.Text()),
        sa.Column("email", sa.Text()),
        sa.Column("is_merchant", sa.Boolean(), nullable=False),
        sa.Column("public_key", sa.Text()),
        sa.Column("device_id", sa.Text()),
        sa.Column("otp", sa.Text()),
        sa.Column("signed_otp", sa.Text()),
        sa.Column("firebase_token", sa.Text()),
        sa.Column("is_password_otp", sa.Boolean(), nullable=False),
        sa.Column("main_card", sa.Text()),
        sa.Column("main_card_enc", sa.Text()),
        sa.Column("main_expdate", sa.Text()),
        sa.Column("language", sa.Text()),
        sa.Column("is_verified", sa.Boolean(), nullable=False),
        sa.Column("mobile", sa.Text(), nullable=False),
        *_timestamps(deleted=True),
        sa.UniqueConstraint("tenant_id", "mobile", name="uq_users_tenant_mobile"),
        indexes=("tenant_id", "email"),
    )

    _create_table_if_missing(
        "cards",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("tenant_id", sa.Text(), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("pan", sa.Text()),
        sa.Column("pan_enc", sa.Text()),
        sa.Column("expiry", sa.Text()),
        sa.Column("name", sa.Text()),
        sa.Column("ipin", sa.Text()),
        sa.Column("ipin_enc", sa.Text()),
        sa.Column("is_main", sa.Boolean(), nullable=False),
        sa.Column("is_valid", sa.Boolean()),
        *_timestamps(deleted=True),
        indexes=("tenant_id", "user_id", "pan"),
    )

    _create_table_if_missing(
        "cache_cards",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("tenant_id", sa.Text(), nullable=False),
        sa.Column("pan", sa.Text()),
        sa.Column("pan_enc", sa.Text()),
        sa.Column("expiry", sa.Text()),
        sa.Column("name", sa.Text()),
        sa.Column("is_valid", sa.Boolean()),
        *_timestamps(),
        sa.UniqueConstraint("tenant_id", "pan", name="uq_cache_cards_tenant_pan"),
        indexes=("tenant_id",),
    )

    _create_table_if_missing(
        "tokens",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("tenant_id", sa.Text(), nullable=False),
        sa.Column("user_id", sa.Integer()),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("cart_id", sa.Text()),
        sa.Column("uuid", sa.Text(), nullable=False),
        sa.Column("note", sa.Text()),
        sa.Column("to_card", sa.Text()),
        sa.Column("to_card_enc", sa.Text()),
        sa.Column("is_paid", sa.Boolean(), nullable=False),
        *_timestamps(),
        indexes=("tenant_id", "user_id", "uuid"),
    )

    _create_table_if_missing(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("tenant_id", sa.Text(), nullable=False),
        sa.Column("token_id", sa.Text()),
        sa.Column("uuid", sa.Text()),
        sa.Column("response_code", sa.Integer()),
        sa.Column("response_message", sa.Text()),
        sa.Column("response_status", sa.Text()),
        sa.Column("tran_date_time", sa.Text()),
        sa.Column("tran_amount", sa.Float()),
        sa.Column("tran_fee", sa.Numeric()),
        sa.Column("pan", sa.Text()),
        sa.Column("sender_pan", sa.Text()),
        sa.Column("receiver_pan", sa.Text()),
        sa.Column("terminal_id", sa.Text()),
        sa.Column("system_trace_audit_number", sa.Integer()),
        sa.Column("approval_code", sa.Text()),
        sa.Column("service_id", sa.Text()),
        sa.Column("merchant_id", sa.Text()),
        sa.Column("bill_type", sa.Text()),
        sa.Column("bill_to", sa.Text()),
        sa.Column("bill_info2", sa.Text()),
        sa.Column("payload", sa.Text()),
        *_timestamps(),
        indexes=("tenant_id", "uuid", "pan", "created_at"),
    )

    _create_table_if_missing(
        "kyc",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("tenant_id", sa.Text(), nullable=False),
        sa.Column("user_mobile", sa.Text()),
        sa.Column("mobile", sa.Text(), nullable=False),
        sa.Column("selfie", sa.Text()),
        sa.Column("passport_img", sa.Text()),
        *_timestamps(),
        sa.UniqueConstraint("tenant_id", "mobile", name="uq_kyc_tenant_mobile"),
        indexes=("tenant_id",),
    )

    _create_table_if_missing(
        "passports",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("tenant_id", sa.Text(), nullable=False),
        sa.Column("mobile", sa.Text(), nullable=False),
        sa.Column("birth_date", sa.DateTime(timezone=True)),
        sa.Column("issue_date", sa.DateTime(timezone=True)),
        sa.Column("expiration_date", sa.DateTime(timezone=True)),
        sa.Column("national_number", sa.Text()),
        sa.Column("passport_number", sa.Text()),
        sa.Column("gender", sa.Text()),
        sa.Column("nationality", sa.Text()),
        sa.Column("holder_name", sa.Text()),
        *_timestamps(),
        sa.UniqueConstraint("tenant_id", "mobile", name="uq_passports_tenant_mobile"),
        indexes=("tenant_id",),
    )

    _create_table_if_missing(
        "push_data",
        sa.Column("uuid", sa.Text(), primary_key=True),
        sa.Column("tenant_id", sa.Text(), nullable=False),
        sa.Column("type", sa.Text()),
        sa.Column("date", sa.BigInteger()),
        sa.Column("to_device", sa.Text()),
        sa.Column("title", sa.Text()),
        sa.Column("body", sa.Text()),
        sa.Column("call_to_action", sa.Text()),
        sa.Column("phone", sa.Text()),
        sa.Column("is_read", sa.Boolean(), nullable=False),
        sa.Column("device_id", sa.Text()),
        sa.Column("user_mobile", sa.Text()),
        sa.Column("ebs_uuid", sa.Text()),
        sa.Column("payment_request", sa.Text()),
        *_timestamps(deleted=True),
        indexes=("tenant_id", "user_mobile"),
    )

    _create_table_if_missing(
        "beneficiaries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("tenant_id", sa.Text(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("data", sa.Text(), nullable=False),
        sa.Column("bill_type", sa.Text()),
        sa.Column("name", sa.Text()),
        *_timestamps(),
        indexes=("tenant_id", "user_id"),
    )

    _create_table_if_missing(
        "api_keys",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("tenant_id", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("api_key", sa.Text(), nullable=False),
        *_timestamps(updated=False),
        sa.UniqueConstraint("tenant_id", "email", name="uq_api_keys_tenant_email"),
        indexes=("tenant_id", "api_key"),
    )


def downgrade():
    # Tables may predate this revision; dropping them would destroy legacy data
    pass
