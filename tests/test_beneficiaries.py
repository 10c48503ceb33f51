"""
Tests for beneficiaries, merchant API keys and the tenant registry.
"""

import pytest

from noebs.exceptions import NotFoundError
from noebs.schemas.beneficiary import BeneficiaryRecord
from noebs.services import api_key_service, beneficiary_service, tenant_service

TENANT = "default"


class TestBeneficiaries:

    async def test_upsert_updates_existing_value(self, store, user):
        async with store.session() as db:
            first = await beneficiary_service.upsert_beneficiary(
                db, TENANT, user.id, BeneficiaryRecord(data="0912000000", bill_type="zain", name="Mum")
            )
            second = await beneficiary_service.upsert_beneficiary(
                db, TENANT, user.id, BeneficiaryRecord(data="0912000000", bill_type="zain", name="Mother")
            )
            listed = await beneficiary_service.list_beneficiaries(db, TENANT, user.id)

        assert first.id == second.id
        assert [b.name for b in listed] == ["Mother"]

    async def test_delete(self, store, user):
        async with store.session() as db:
            await beneficiary_service.upsert_beneficiary(
                db, TENANT, user.id, BeneficiaryRecord(data="04000000000", bill_type="electricity")
            )
            await beneficiary_service.delete_beneficiary(db, TENANT, user.id, "04000000000")
            assert await beneficiary_service.list_beneficiaries(db, TENANT, user.id) == []

    async def test_delete_unknown(self, store, user):
        with pytest.raises(NotFoundError):
            async with store.session() as db:
                await beneficiary_service.delete_beneficiary(db, TENANT, user.id, "nothing")


class TestAPIKeys:

    async def test_create_and_validate(self, store):
        async with store.session() as db:
            key = await api_key_service.create_api_key(db, TENANT, "Shop@Example.com", "secret-1")
            assert key.email == "shop@example.com"
            assert await api_key_service.validate_api_key(db, TENANT, "shop@example.com", "secret-1")
            assert not await api_key_service.validate_api_key(db, TENANT, "shop@example.com", "secret-2")
            assert not await api_key_service.validate_api_key(db, TENANT, "other@example.com", "secret-1")
            assert await api_key_service.validate_api_key_value(db, TENANT, "secret-1")
            assert not await api_key_service.validate_api_key_value(db, "acme", "secret-1")

    async def test_create_replaces_previous_key(self, store, fetch_row):
        async with store.session() as db:
            first = await api_key_service.create_api_key(db, TENANT, "shop@example.com", "old")
            second = await api_key_service.create_api_key(db, TENANT, "shop@example.com", "new")
            assert not await api_key_service.validate_api_key(db, TENANT, "shop@example.com", "old")
            assert await api_key_service.validate_api_key(db, TENANT, "shop@example.com", "new")

        assert first.id == second.id
        row = await fetch_row("SELECT COUNT(*) AS n FROM api_keys")
        assert row["n"] == 1


class TestTenants:

    async def test_default_tenant_created_by_migrations(self, store):
        async with store.session() as db:
            tenants = await tenant_service.list_tenants(db)
        assert [t.id for t in tenants] == [TENANT]

    async def test_ensure_tenant_is_idempotent(self, store):
        async with store.session() as db:
            created = await tenant_service.ensure_tenant(db, "acme", "Acme Payments")
            again = await tenant_service.ensure_tenant(db, "acme", "ignored")
            tenants = await tenant_service.list_tenants(db)

        assert created.name == again.name == "Acme Payments"
        assert [t.id for t in tenants] == ["acme", TENANT]
