"""Referral code issuing and redemption."""

import secrets
import string
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.models import Referral, User
from storefront.db.models.base import utcnow
from storefront.db.repositories import ReferralRepository
from storefront.exceptions import ConflictError, NotFoundError, ReferralError, ValidationError
from storefront.logging_config import get_logger

logger = get_logger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 8
MAX_CODE_ATTEMPTS = 5


def generate_code(length: int = CODE_LENGTH) -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


class ReferralService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.referrals = ReferralRepository(db)

    async def create_code(
        self,
        user: User,
        max_uses: Optional[int] = None,
        expires_at: Optional[datetime] = None,
    ) -> Referral:
        """Issue a new random code owned by ``user``.

        Raises:
            ValidationError: If max_uses is below 1 or expires_at is in the past
        """
        if max_uses is not None and max_uses < 1:
            raise ValidationError("max_uses must be at least 1")
        if expires_at is not None:
            if expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=utcnow().tzinfo)
            if expires_at <= utcnow():
                raise ValidationError("expires_at must be in the future")

        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_code()
            if not await self.referrals.code_exists(code):
                break
        else:
            raise ConflictError("Could not generate a unique referral code, please retry")

        referral = await self.referrals.create(user.id, code, max_uses, expires_at)
        logger.info(f"User {user.id} created referral code {referral.code}")
        return referral

    async def redeem(self, code: str, user: User) -> Referral:
        """Record that ``user`` signed up through ``code``.

        A user can be referred once, never by their own code. The usage
        counter is bumped with a guarded UPDATE, so two concurrent
        redemptions of the last remaining use cannot both succeed.

        Raises:
            NotFoundError: Unknown code
            ReferralError: Expired, used up, own code, or user already referred
        """
        referral = await self.referrals.get_by_code(code)
        if referral is None:
            raise NotFoundError("Referral code", code)

        now = utcnow()
        if referral.is_expired(now):
            raise ReferralError("Referral code has expired")
        if referral.is_exhausted:
            raise ReferralError("Referral code has reached maximum uses")
        if referral.referrer_id == user.id:
            raise ReferralError("Cannot use your own referral code")
        if await self.referrals.is_referred(user.id):
            raise ReferralError("You have already redeemed a referral code")

        if not await self.referrals.try_increment_usage(referral, now):
            # Lost a race with another redemption or the code just expired
            raise ReferralError("Referral code has reached maximum uses")

        await self.referrals.record_redemption(referral, user.id)
        logger.info(f"User {user.id} redeemed referral code {referral.code}")
        return referral
