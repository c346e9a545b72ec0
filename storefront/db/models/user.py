"""User model for session-authenticated shoppers and administrators."""

import enum
from typing import TYPE_CHECKING, List

from sqlalchemy import Enum, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, IntegerPrimaryKeyMixin, TimestampMixin, generate_repr

if TYPE_CHECKING:
    from .address import Address
    from .referral import Referral


class UserRole(str, enum.Enum):
    """Authorization role of a user."""

    USER = "user"
    ADMIN = "admin"


class User(Base, IntegerPrimaryKeyMixin, TimestampMixin):
    """A registered customer or administrator.

    Attributes:
        id: Integer primary key
        username: Unique login name
        email: Unique email address
        password_hash: bcrypt hash of the password (never serialized)
        first_name: Optional given name
        last_name: Optional family name
        role: ``user`` or ``admin``
        stripe_customer_id: Stripe customer reference, set on first payment
        addresses: Saved shipping and billing addresses
        referrals: Referral codes created by this user
    """

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
        index=True,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    first_name: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )
    last_name: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )
    role: Mapped[UserRole] = mapped_column(
        Enum(
            UserRole,
            name="user_role",
            values_callable=lambda e: [m.value for m in e],
        ),
        default=UserRole.USER,
        nullable=False,
    )
    stripe_customer_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    # Relationships
    addresses: Mapped[List["Address"]] = relationship(
        "Address",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    referrals: Mapped[List["Referral"]] = relationship(
        "Referral",
        back_populates="referrer",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __repr__(self) -> str:
        return generate_repr(self, "id", "username")
