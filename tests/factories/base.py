"""Shared base for the model factories.

``build()`` gives a detached instance; ``async_create()`` adds it to the
test's ``AsyncSession`` and flushes so ids and defaults are populated.
"""

from typing import Any
from uuid import uuid4

import factory
from sqlalchemy.ext.asyncio import AsyncSession


class AsyncModelFactory(factory.Factory):
    class Meta:
        abstract = True

    @classmethod
    async def async_create(cls, session: AsyncSession, **overrides: Any):
        """Build, add and flush one row, returning it refreshed."""
        row = cls.build(**overrides)
        session.add(row)
        await session.flush()
        await session.refresh(row)
        return row


def short_id() -> str:
    """12 hex characters, unique enough for usernames and Stripe-style ids."""
    return uuid4().hex[:12]
