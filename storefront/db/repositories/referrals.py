"""Repository for referral codes and redemptions."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.models import Referral, ReferredUser
from storefront.db.models.base import utcnow


class ReferralRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        referrer_id: int,
        code: str,
        max_uses: Optional[int] = None,
        expires_at: Optional[datetime] = None,
    ) -> Referral:
        referral = Referral(
            referrer_id=referrer_id,
            code=code.upper(),
            usage_count=0,
            max_uses=max_uses,
            expires_at=expires_at,
        )
        self.db.add(referral)
        await self.db.flush()
        return referral

    async def get_by_code(self, code: str) -> Optional[Referral]:
        result = await self.db.execute(
            select(Referral).where(Referral.code == code.strip().upper())
        )
        return result.scalar_one_or_none()

    async def code_exists(self, code: str) -> bool:
        return await self.get_by_code(code) is not None

    async def list_for_user(self, user_id: int) -> List[Referral]:
        result = await self.db.execute(
            select(Referral)
            .where(Referral.referrer_id == user_id)
            .order_by(Referral.created_at.desc(), Referral.id.desc())
        )
        return list(result.scalars().all())

    async def is_referred(self, user_id: int) -> bool:
        result = await self.db.execute(
            select(ReferredUser.id).where(ReferredUser.user_id == user_id)
        )
        return result.first() is not None

    async def try_increment_usage(self, referral: Referral, now: Optional[datetime] = None) -> bool:
        """Count one redemption if the code is still within its limits.

        The limit and expiry checks are part of the UPDATE's WHERE clause, so
        concurrent redemptions can never push ``usage_count`` past
        ``max_uses``.

        Returns:
            True if the usage was counted
        """
        now = now or utcnow()
        result = await self.db.execute(
            update(Referral)
            .where(
                Referral.id == referral.id,
                or_(Referral.max_uses.is_(None), Referral.usage_count < Referral.max_uses),
                or_(Referral.expires_at.is_(None), Referral.expires_at > now),
            )
            .values(usage_count=Referral.usage_count + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        await self.db.refresh(referral, ["usage_count"])
        return True

    async def record_redemption(self, referral: Referral, user_id: int) -> ReferredUser:
        redemption = ReferredUser(referral_id=referral.id, user_id=user_id)
        self.db.add(redemption)
        await self.db.flush()
        return redemption
