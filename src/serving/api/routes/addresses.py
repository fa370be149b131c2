"""
Addresses API Endpoints

Shipping addresses of the current user. The default address is mirrored onto
the user's ``address_summary``.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from src.commerce.defaults import addresses
from src.database.connection import get_db_dependency
from src.database.models import User
from src.serving.api.dependencies import get_current_user
from src.serving.api.routes.payment_methods import DeleteResponse

router = APIRouter()


class AddressCreate(BaseModel):
    name: str
    street: str
    city: str
    state: str
    zip_code: str
    is_default: bool = False


class AddressUpdate(BaseModel):
    name: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    is_default: Optional[bool] = None


class AddressResponse(BaseModel):
    id: UUID
    name: str
    street: str
    city: str
    state: str
    zip_code: str
    is_default: bool
    created_at: datetime

    class Config:
        from_attributes = True


@router.get("", response_model=List[AddressResponse])
async def list_addresses(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_dependency),
):
    return await addresses.list(db, user.id)


@router.post("", response_model=AddressResponse, status_code=status.HTTP_201_CREATED)
async def add_address(
    payload: AddressCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_dependency),
):
    fields = payload.model_dump(exclude={"is_default"})
    return await addresses.create(db, user.id, fields, is_default=payload.is_default)


@router.put("/{address_id}", response_model=AddressResponse)
async def update_address(
    address_id: UUID,
    payload: AddressUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_dependency),
):
    return await addresses.update(
        db, user.id, address_id, payload.model_dump(exclude_unset=True, exclude_none=True)
    )


@router.patch("/{address_id}/default", response_model=AddressResponse)
async def set_default_address(
    address_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_dependency),
):
    return await addresses.promote(db, user.id, address_id)


@router.delete("/{address_id}", response_model=DeleteResponse)
async def delete_address(
    address_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_dependency),
):
    successor = await addresses.delete(db, user.id, address_id)
    return DeleteResponse(
        message="Address deleted successfully",
        new_default_id=successor.id if successor is not None else None,
    )
