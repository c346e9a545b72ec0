"""Unit tests for ReferralRepository."""

from datetime import timedelta

from storefront.db.models.base import utcnow
from storefront.db.repositories import ReferralRepository
from tests.factories import UserFactory


class TestReferralLookup:
    async def test_codes_are_case_insensitive(self, db_session):
        user = await UserFactory.async_create(db_session)
        repo = ReferralRepository(db_session)
        referral = await repo.create(user.id, "friend10")

        assert referral.code == "FRIEND10"
        assert (await repo.get_by_code("  friend10 ")).id == referral.id
        assert await repo.code_exists("FRIEND10") is True
        assert await repo.code_exists("OTHER") is False

    async def test_list_for_user_only_returns_own_codes(self, db_session):
        user = await UserFactory.async_create(db_session)
        other = await UserFactory.async_create(db_session)
        repo = ReferralRepository(db_session)
        await repo.create(user.id, "MINE1")
        await repo.create(other.id, "THEIRS1")

        codes = [r.code for r in await repo.list_for_user(user.id)]
        assert codes == ["MINE1"]


class TestTryIncrementUsage:
    """The usage counter never passes max_uses and ignores expired codes."""

    async def test_respects_max_uses(self, db_session):
        user = await UserFactory.async_create(db_session)
        repo = ReferralRepository(db_session)
        referral = await repo.create(user.id, "ONCE", max_uses=1)

        assert await repo.try_increment_usage(referral) is True
        assert referral.usage_count == 1
        assert await repo.try_increment_usage(referral) is False
        await db_session.refresh(referral)
        assert referral.usage_count == 1

    async def test_unlimited_code(self, db_session):
        user = await UserFactory.async_create(db_session)
        repo = ReferralRepository(db_session)
        referral = await repo.create(user.id, "MANY")

        for _ in range(3):
            assert await repo.try_increment_usage(referral) is True
        assert referral.usage_count == 3

    async def test_expired_code_is_not_counted(self, db_session):
        user = await UserFactory.async_create(db_session)
        repo = ReferralRepository(db_session)
        referral = await repo.create(user.id, "OLD", expires_at=utcnow() - timedelta(days=1))

        assert await repo.try_increment_usage(referral) is False

    async def test_future_expiry_is_counted(self, db_session):
        user = await UserFactory.async_create(db_session)
        repo = ReferralRepository(db_session)
        referral = await repo.create(user.id, "SOON", expires_at=utcnow() + timedelta(days=1))

        assert await repo.try_increment_usage(referral) is True


class TestRedemption:
    async def test_record_redemption_marks_user_referred(self, db_session):
        referrer = await UserFactory.async_create(db_session)
        newcomer = await UserFactory.async_create(db_session)
        repo = ReferralRepository(db_session)
        referral = await repo.create(referrer.id, "WELCOME")

        assert await repo.is_referred(newcomer.id) is False
        await repo.record_redemption(referral, newcomer.id)
        assert await repo.is_referred(newcomer.id) is True
