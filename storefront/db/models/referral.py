"""Referral codes and their redemptions."""

from datetime import datetime
from typing import TYPE_CHECKING, List

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, IntegerPrimaryKeyMixin, TimestampMixin, generate_repr, utcnow

if TYPE_CHECKING:
    from .user import User


class Referral(Base, IntegerPrimaryKeyMixin, TimestampMixin):
    """A shareable referral code.

    Attributes:
        referrer_id: User who owns the code
        code: Unique redeemable code
        usage_count: Number of successful redemptions
        max_uses: Redemption limit, unlimited when None
        expires_at: Expiry time, never expires when None
    """

    __tablename__ = "referrals"

    referrer_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    code: Mapped[str] = mapped_column(
        String(32),
        unique=True,
        nullable=False,
        index=True,
    )
    usage_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        server_default="0",
        nullable=False,
    )
    max_uses: Mapped[int | None] = mapped_column(Integer, nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    referrer: Mapped["User"] = relationship("User", back_populates="referrals")
    redemptions: Mapped[List["ReferredUser"]] = relationship(
        "ReferredUser",
        back_populates="referral",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        now = now or utcnow()
        expires_at = self.expires_at
        # SQLite hands back naive datetimes
        if expires_at.tzinfo is None and now.tzinfo is not None:
            now = now.replace(tzinfo=None)
        return expires_at <= now

    @property
    def is_exhausted(self) -> bool:
        return self.max_uses is not None and self.usage_count >= self.max_uses

    def __repr__(self) -> str:
        return generate_repr(self, "id", "code", "usage_count")


class ReferredUser(Base, IntegerPrimaryKeyMixin, TimestampMixin):
    """A redemption of a referral code by a user."""

    __tablename__ = "referred_users"

    referral_id: Mapped[int] = mapped_column(
        ForeignKey("referrals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    referral: Mapped[Referral] = relationship(Referral, back_populates="redemptions")

    def __repr__(self) -> str:
        return generate_repr(self, "referral_id", "user_id")
