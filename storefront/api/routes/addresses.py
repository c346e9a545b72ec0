"""Saved address routes for the logged-in user."""

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.shared.auth import get_current_user
from storefront.db.models import Address, AddressType, User
from storefront.db.repositories import AddressRepository
from storefront.db.session import get_db

router = APIRouter(prefix="/addresses", tags=["addresses"])


class AddressResponse(BaseModel):
    id: int
    line1: str
    line2: Optional[str] = None
    city: str
    state: str
    postal_code: str
    country: str
    is_default: bool
    type: AddressType

    model_config = {"from_attributes": True}


class AddressCreate(BaseModel):
    line1: str = Field(..., min_length=1, max_length=255)
    line2: Optional[str] = Field(default=None, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    postal_code: str = Field(..., min_length=1, max_length=20)
    country: str = Field(..., min_length=1, max_length=100)
    is_default: bool = False
    type: AddressType = AddressType.SHIPPING


class AddressUpdate(BaseModel):
    line1: Optional[str] = Field(default=None, min_length=1, max_length=255)
    line2: Optional[str] = Field(default=None, max_length=255)
    city: Optional[str] = Field(default=None, min_length=1, max_length=100)
    state: Optional[str] = Field(default=None, min_length=1, max_length=100)
    postal_code: Optional[str] = Field(default=None, min_length=1, max_length=20)
    country: Optional[str] = Field(default=None, min_length=1, max_length=100)
    is_default: Optional[bool] = None
    type: Optional[AddressType] = None


@router.get("", response_model=List[AddressResponse])
async def list_addresses(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> List[Address]:
    return await AddressRepository(db).list_for_user(user.id)


@router.post("", response_model=AddressResponse, status_code=status.HTTP_201_CREATED)
async def create_address(
    body: AddressCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Address:
    """Save an address. Marking it default unsets the previous default of that type."""
    return await AddressRepository(db).create(user.id, body.model_dump())


@router.put("/{address_id}", response_model=AddressResponse)
async def update_address(
    address_id: int,
    body: AddressUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Address:
    addresses = AddressRepository(db)
    address = await addresses.get_owned(address_id, user.id)
    data = {
        key: value
        for key, value in body.model_dump(exclude_unset=True).items()
        if value is not None or key == "line2"
    }
    return await addresses.update(address, data)


@router.delete("/{address_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_address(
    address_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    addresses = AddressRepository(db)
    address = await addresses.get_owned(address_id, user.id)
    await addresses.delete(address)
