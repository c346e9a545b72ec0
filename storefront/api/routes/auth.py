"""Registration, login and session routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.shared.auth import (
    SESSION_CART_KEY,
    get_current_user,
    hash_password,
    login_user,
    logout_user,
    verify_password,
)
from storefront.api.shared.helpers import APIError, ErrorCode
from storefront.db.models import User, UserRole
from storefront.db.repositories import CartRepository, UserRepository
from storefront.db.session import get_db
from storefront.logging_config import get_logger
from storefront.services.referrals import ReferralService

logger = get_logger(__name__)

router = APIRouter(tags=["auth"])


# ============================================================================
# Request/Response Models
# ============================================================================


class UserResponse(BaseModel):
    """Public view of a user; the password hash is never included."""

    id: int
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: UserRole

    model_config = {"from_attributes": True}


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=100)
    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=6, max_length=128)
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    referral_code: Optional[str] = Field(
        default=None,
        description="Referral code to redeem for the new account",
    )

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        value = value.strip()
        local, _, domain = value.partition("@")
        if not local or "." not in domain:
            raise ValueError("Invalid email address")
        return value


class LoginRequest(BaseModel):
    username: str
    password: str


async def _merge_guest_cart(request: Request, db: AsyncSession, user: User) -> None:
    session_id = request.session.get(SESSION_CART_KEY)
    if session_id:
        await CartRepository(db).merge_guest_cart(session_id, user.id)


# ============================================================================
# Routes
# ============================================================================


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """Create an account and log it in.

    A guest cart from the current session is carried over, and a referral
    code, when given, is redeemed for the new user; an unusable code
    rejects the registration so the shopper can correct it.
    """
    user = await UserRepository(db).create(
        username=body.username,
        email=body.email,
        password_hash=hash_password(body.password),
        first_name=body.first_name,
        last_name=body.last_name,
    )
    if body.referral_code:
        await ReferralService(db).redeem(body.referral_code, user)

    await _merge_guest_cart(request, db, user)
    login_user(request, user)
    logger.info(f"Registered user {user.id}", extra={"username": user.username})
    return user


@router.post("/login", response_model=UserResponse)
async def login(
    body: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    users = UserRepository(db)
    user = await users.get_by_username(body.username)
    if user is None or not verify_password(body.password, user.password_hash):
        logger.info(f"Failed login for '{body.username}'")
        raise APIError(ErrorCode.AUTH_INVALID_CREDENTIALS)

    await _merge_guest_cart(request, db, user)
    login_user(request, user)
    return user


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(request: Request) -> None:
    logout_user(request)


@router.get("/user", response_model=UserResponse)
async def current_user(user: User = Depends(get_current_user)) -> User:
    return user
