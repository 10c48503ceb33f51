"""
Tests for KYC submissions.
"""

from datetime import datetime

import pytest

from noebs.exceptions import NotFoundError
from noebs.schemas.kyc import KYCRecord, PassportRecord
from noebs.services import kyc_service

TENANT = "default"


class TestKYC:

    async def test_user_without_kyc(self, store, user):
        async with store.session() as db:
            found = await kyc_service.get_user_with_kyc(db, store.vault, TENANT, user.mobile)
        assert found.id == user.id
        assert found.kyc is None
        assert found.passport is None

    async def test_update_kyc_with_passport(self, store, user):
        kyc = KYCRecord(mobile=user.mobile, user_mobile=user.mobile, selfie="selfie.jpg")
        passport = PassportRecord(
            passport_number="P0001",
            holder_name="Test User",
            birth_date=datetime(1990, 1, 1),
        )

        async with store.session() as db:
            await kyc_service.update_kyc(db, TENANT, kyc, passport)
        async with store.session() as db:
            found = await kyc_service.get_user_with_kyc(db, store.vault, TENANT, user.mobile)

        assert found.kyc.selfie == "selfie.jpg"
        assert found.passport.passport_number == "P0001"
        assert found.passport.mobile == user.mobile

    async def test_update_kyc_is_idempotent(self, store, user, fetch_row):
        """Submitting again replaces the documents instead of adding rows."""
        async with store.session() as db:
            await kyc_service.update_kyc(db, TENANT, KYCRecord(mobile=user.mobile, selfie="one.jpg"))
        async with store.session() as db:
            await kyc_service.update_kyc(
                db, TENANT,
                KYCRecord(mobile=user.mobile, selfie="two.jpg"),
                PassportRecord(mobile=user.mobile, passport_number="P1"),
            )
            await kyc_service.update_kyc(
                db, TENANT,
                KYCRecord(mobile=user.mobile, selfie="two.jpg"),
                PassportRecord(mobile=user.mobile, passport_number="P2"),
            )

        counts = await fetch_row(
            "SELECT (SELECT COUNT(*) FROM kyc) AS kyc, (SELECT COUNT(*) FROM passports) AS passports"
        )
        assert counts == {"kyc": 1, "passports": 1}

        async with store.session() as db:
            found = await kyc_service.get_user_with_kyc(db, store.vault, TENANT, user.mobile)
        assert found.kyc.selfie == "two.jpg"
        assert found.passport.passport_number == "P2"

    async def test_kyc_is_tenant_scoped(self, store, user):
        async with store.session() as db:
            await kyc_service.update_kyc(db, "acme", KYCRecord(mobile=user.mobile, selfie="x.jpg"))
            found = await kyc_service.get_user_with_kyc(db, store.vault, TENANT, user.mobile)
        assert found.kyc is None

    async def test_unknown_user(self, store):
        with pytest.raises(NotFoundError):
            async with store.session() as db:
                await kyc_service.get_user_with_kyc(db, store.vault, TENANT, "0900000000")
