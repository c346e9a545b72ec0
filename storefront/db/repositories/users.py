"""Repository for user accounts."""

from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.models import User, UserRole
from storefront.exceptions import ConflictError, NotFoundError


class UserRepository:
    """Lookup and creation of users."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, user_id: int) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def get_by_id_or_raise(self, user_id: int) -> User:
        user = await self.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    async def get_by_username(self, username: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(func.lower(User.username) == username.lower())
        )
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(func.lower(User.email) == email.lower())
        )
        return result.scalar_one_or_none()

    async def create(
        self,
        username: str,
        email: str,
        password_hash: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        role: UserRole = UserRole.USER,
    ) -> User:
        """Create a user.

        Raises:
            ConflictError: If the username or email is already registered
        """
        result = await self.db.execute(
            select(User.username, User.email).where(
                or_(
                    func.lower(User.username) == username.lower(),
                    func.lower(User.email) == email.lower(),
                )
            )
        )
        existing = result.first()
        if existing is not None:
            field = "Username" if existing.username.lower() == username.lower() else "Email"
            raise ConflictError(f"{field} is already registered")

        user = User(
            username=username,
            email=email.lower(),
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            role=role,
        )
        self.db.add(user)
        await self.db.flush()
        return user

    async def set_stripe_customer_id(self, user: User, customer_id: str) -> User:
        user.stripe_customer_id = customer_id
        await self.db.flush()
        return user
