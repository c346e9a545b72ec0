"""Repository for saved addresses."""

from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.models import Address, AddressType
from storefront.exceptions import NotFoundError, PermissionDeniedError


class AddressRepository:
    """CRUD for addresses, keeping one default per (user, type)."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_for_user(self, user_id: int) -> List[Address]:
        result = await self.db.execute(
            select(Address)
            .where(Address.user_id == user_id)
            .order_by(Address.is_default.desc(), Address.id)
        )
        return list(result.scalars().all())

    async def get_by_id(self, address_id: int) -> Optional[Address]:
        return await self.db.get(Address, address_id)

    async def get_owned(self, address_id: int, user_id: int) -> Address:
        """Return an address belonging to ``user_id``.

        Raises:
            NotFoundError: If the address does not exist
            PermissionDeniedError: If it belongs to someone else
        """
        address = await self.get_by_id(address_id)
        if address is None:
            raise NotFoundError("Address", address_id)
        if address.user_id != user_id:
            raise PermissionDeniedError("You do not have access to this address")
        return address

    async def _clear_default(
        self,
        user_id: int,
        address_type: AddressType,
        exclude_id: Optional[int] = None,
    ) -> None:
        stmt = update(Address).where(
            Address.user_id == user_id,
            Address.type == address_type,
            Address.is_default.is_(True),
        )
        if exclude_id is not None:
            stmt = stmt.where(Address.id != exclude_id)
        await self.db.execute(
            stmt.values(is_default=False).execution_options(synchronize_session="fetch")
        )

    async def create(self, user_id: int, data: Dict[str, Any]) -> Address:
        address = Address(user_id=user_id, **data)
        if address.type is None:
            address.type = AddressType.SHIPPING
        if data.get("is_default"):
            await self._clear_default(user_id, AddressType(address.type))
        self.db.add(address)
        await self.db.flush()
        return address

    async def update(self, address: Address, data: Dict[str, Any]) -> Address:
        address_type = AddressType(data.get("type") or address.type)
        is_default = data.get("is_default", address.is_default)
        if is_default:
            await self._clear_default(address.user_id, address_type, exclude_id=address.id)
        for key, value in data.items():
            setattr(address, key, value)
        await self.db.flush()
        return address

    async def delete(self, address: Address) -> None:
        await self.db.delete(address)
        await self.db.flush()
