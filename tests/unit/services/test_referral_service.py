"""Unit tests for ReferralService."""

from datetime import datetime, timedelta, timezone

import pytest

from storefront.db.repositories import ReferralRepository
from storefront.exceptions import NotFoundError, ReferralError, ValidationError
from storefront.services.referrals import CODE_ALPHABET, CODE_LENGTH, ReferralService, generate_code
from tests.factories import UserFactory


def test_generate_code():
    code = generate_code()
    assert len(code) == CODE_LENGTH
    assert set(code) <= set(CODE_ALPHABET)


class TestCreateCode:
    async def test_creates_unique_code(self, db_session):
        user = await UserFactory.async_create(db_session)
        service = ReferralService(db_session)

        first = await service.create_code(user, max_uses=5)
        second = await service.create_code(user)

        assert first.code != second.code
        assert first.max_uses == 5
        assert first.usage_count == 0

    async def test_invalid_limits(self, db_session):
        user = await UserFactory.async_create(db_session)
        service = ReferralService(db_session)

        with pytest.raises(ValidationError):
            await service.create_code(user, max_uses=0)
        with pytest.raises(ValidationError):
            await service.create_code(user, expires_at=datetime.now(timezone.utc) - timedelta(hours=1))

    async def test_naive_expiry_is_treated_as_utc(self, db_session):
        user = await UserFactory.async_create(db_session)
        expires = datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(days=2)

        referral = await ReferralService(db_session).create_code(user, expires_at=expires)

        assert referral.expires_at.tzinfo is not None


class TestRedeem:
    async def test_redeem_counts_and_records(self, db_session):
        referrer = await UserFactory.async_create(db_session)
        newcomer = await UserFactory.async_create(db_session)
        repo = ReferralRepository(db_session)
        referral = await repo.create(referrer.id, "FRIEND", max_uses=2)

        redeemed = await ReferralService(db_session).redeem("friend", newcomer)

        assert redeemed.id == referral.id
        assert redeemed.usage_count == 1
        assert await repo.is_referred(newcomer.id) is True

    async def test_unknown_code(self, db_session):
        user = await UserFactory.async_create(db_session)
        with pytest.raises(NotFoundError):
            await ReferralService(db_session).redeem("NOPE", user)

    async def test_own_code(self, db_session):
        user = await UserFactory.async_create(db_session)
        await ReferralRepository(db_session).create(user.id, "MINE")
        with pytest.raises(ReferralError, match="own"):
            await ReferralService(db_session).redeem("MINE", user)

    async def test_exhausted_code(self, db_session):
        referrer = await UserFactory.async_create(db_session)
        first = await UserFactory.async_create(db_session)
        second = await UserFactory.async_create(db_session)
        await ReferralRepository(db_session).create(referrer.id, "ONCE", max_uses=1)
        service = ReferralService(db_session)

        await service.redeem("ONCE", first)
        with pytest.raises(ReferralError, match="maximum"):
            await service.redeem("ONCE", second)

    async def test_expired_code(self, db_session):
        referrer = await UserFactory.async_create(db_session)
        newcomer = await UserFactory.async_create(db_session)
        await ReferralRepository(db_session).create(
            referrer.id, "OLD", expires_at=datetime.now(timezone.utc) - timedelta(days=1)
        )
        with pytest.raises(ReferralError, match="expired"):
            await ReferralService(db_session).redeem("OLD", newcomer)

    async def test_user_can_only_be_referred_once(self, db_session):
        referrer = await UserFactory.async_create(db_session)
        newcomer = await UserFactory.async_create(db_session)
        repo = ReferralRepository(db_session)
        await repo.create(referrer.id, "FIRST")
        await repo.create(referrer.id, "SECOND")
        service = ReferralService(db_session)

        await service.redeem("FIRST", newcomer)
        with pytest.raises(ReferralError, match="already"):
            await service.redeem("SECOND", newcomer)
