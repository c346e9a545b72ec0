"""Session authentication for the storefront API.

This module provides:
- hash_password / verify_password: bcrypt password hashing
- get_session_id: anonymous cart identity stored in the signed session cookie
- get_current_user / get_optional_user / require_admin: FastAPI dependencies
- login_user / logout_user: session bookkeeping after credential checks

The session itself is Starlette's ``SessionMiddleware`` (a cookie signed with
itsdangerous), configured in ``storefront.api.app``.
"""

import secrets
from typing import Optional

import bcrypt
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.shared.helpers.errors import APIError, ErrorCode
from storefront.db.models import User
from storefront.db.repositories import UserRepository
from storefront.db.session import get_db
from storefront.logging_config import get_logger, set_context

logger = get_logger(__name__)

SESSION_USER_KEY = "user_id"
SESSION_CART_KEY = "cart_session_id"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check ``password`` against a stored bcrypt hash.

    Malformed hashes are treated as a mismatch rather than an error.
    """
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


def get_session_id(request: Request) -> str:
    """Anonymous session identifier used to own a guest cart.

    Created on first use and kept in the session cookie, so it survives
    until the cookie expires or the user logs out.
    """
    session_id = request.session.get(SESSION_CART_KEY)
    if not session_id:
        session_id = secrets.token_urlsafe(24)
        request.session[SESSION_CART_KEY] = session_id
    return session_id


async def get_optional_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """The logged-in user, or None for guests.

    A session pointing at a deleted user is cleared.
    """
    user_id = request.session.get(SESSION_USER_KEY)
    if user_id is None:
        return None
    user = await UserRepository(db).get_by_id(int(user_id))
    if user is None:
        request.session.pop(SESSION_USER_KEY, None)
        return None
    set_context(user_id=user.id)
    return user


async def get_current_user(
    user: Optional[User] = Depends(get_optional_user),
) -> User:
    """Require an authenticated user (401 otherwise)."""
    if user is None:
        raise APIError(ErrorCode.AUTH_REQUIRED)
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """Require an administrator (403 otherwise)."""
    if not user.is_admin:
        raise APIError(ErrorCode.AUTH_ADMIN_REQUIRED)
    return user


def login_user(request: Request, user: User) -> None:
    request.session[SESSION_USER_KEY] = user.id
    logger.info(f"User {user.id} logged in")


def logout_user(request: Request) -> None:
    """Drop the whole session, including the guest cart identity."""
    user_id = request.session.get(SESSION_USER_KEY)
    request.session.clear()
    if user_id is not None:
        logger.info(f"User {user_id} logged out")
