"""Saved customer addresses."""

import enum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Enum, ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, IntegerPrimaryKeyMixin, TimestampMixin, generate_repr

if TYPE_CHECKING:
    from .user import User


class AddressType(str, enum.Enum):
    """What an address is used for."""

    SHIPPING = "shipping"
    BILLING = "billing"


class Address(Base, IntegerPrimaryKeyMixin, TimestampMixin):
    """A postal address owned by a user.

    At most one address per (user, type) may be flagged ``is_default``;
    the partial unique index enforces it at the database level.
    """

    __tablename__ = "addresses"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    line1: Mapped[str] = mapped_column(String(255), nullable=False)
    line2: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[str] = mapped_column(String(100), nullable=False)
    postal_code: Mapped[str] = mapped_column(String(20), nullable=False)
    country: Mapped[str] = mapped_column(String(100), nullable=False)
    is_default: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    type: Mapped[AddressType] = mapped_column(
        Enum(
            AddressType,
            name="address_type",
            values_callable=lambda e: [m.value for m in e],
        ),
        default=AddressType.SHIPPING,
        nullable=False,
    )

    user: Mapped["User"] = relationship("User", back_populates="addresses")

    __table_args__ = (
        Index(
            "uq_addresses_default_per_type",
            "user_id",
            "type",
            unique=True,
            postgresql_where=text("is_default"),
            sqlite_where=text("is_default"),
        ),
    )

    def __repr__(self) -> str:
        return generate_repr(self, "id", "user_id", "type", "is_default")
