"""Referral code routes."""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.shared.auth import get_current_user
from storefront.db.models import Referral, User
from storefront.db.repositories import ReferralRepository
from storefront.db.session import get_db
from storefront.exceptions import NotFoundError
from storefront.services.referrals import ReferralService

router = APIRouter(prefix="/referrals", tags=["referrals"])


class ReferralResponse(BaseModel):
    id: int
    code: str
    referrer_id: int
    usage_count: int
    max_uses: Optional[int] = None
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ReferralCreate(BaseModel):
    max_uses: Optional[int] = Field(default=None, description="Leave empty for unlimited uses")
    expires_at: Optional[datetime] = None


class RedeemResponse(BaseModel):
    success: bool
    message: str


@router.post("", response_model=ReferralResponse, status_code=status.HTTP_201_CREATED)
async def create_referral(
    body: ReferralCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Referral:
    return await ReferralService(db).create_code(user, body.max_uses, body.expires_at)


@router.get("", response_model=List[ReferralResponse])
async def list_referrals(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> List[Referral]:
    return await ReferralRepository(db).list_for_user(user.id)


@router.get("/{code}", response_model=ReferralResponse)
async def get_referral(code: str, db: AsyncSession = Depends(get_db)) -> Referral:
    referral = await ReferralRepository(db).get_by_code(code)
    if referral is None:
        raise NotFoundError("Referral code", code)
    return referral


@router.post("/{code}/redeem", response_model=RedeemResponse)
async def redeem_referral(
    code: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> RedeemResponse:
    await ReferralService(db).redeem(code, user)
    return RedeemResponse(success=True, message="Referral code successfully redeemed")
