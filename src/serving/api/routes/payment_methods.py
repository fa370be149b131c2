"""
Payment Methods API Endpoints

Stored card references of the current user. At most one of them is the
default, and the first one added always is.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from src.commerce.defaults import payment_methods
from src.database.connection import get_db_dependency
from src.database.models import User
from src.serving.api.dependencies import get_current_user

router = APIRouter()


class PaymentMethodCreate(BaseModel):
    card_type: str
    last_four: str
    expiry_date: str = Field(..., description="MM/YY")
    is_default: bool = False


class PaymentMethodUpdate(BaseModel):
    card_type: Optional[str] = None
    last_four: Optional[str] = None
    expiry_date: Optional[str] = None
    is_default: Optional[bool] = None


class PaymentMethodResponse(BaseModel):
    """Stored payment method"""
    id: UUID
    card_type: str
    last_four: str
    expiry_date: str
    is_default: bool
    created_at: datetime

    class Config:
        from_attributes = True


class DeleteResponse(BaseModel):
    message: str
    new_default_id: Optional[UUID] = None


@router.get("", response_model=List[PaymentMethodResponse])
async def list_payment_methods(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_dependency),
):
    return await payment_methods.list(db, user.id)


@router.post("", response_model=PaymentMethodResponse, status_code=status.HTTP_201_CREATED)
async def add_payment_method(
    payload: PaymentMethodCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_dependency),
):
    """Add a payment method; the first one becomes the default."""
    fields = payload.model_dump(exclude={"is_default"})
    return await payment_methods.create(db, user.id, fields, is_default=payload.is_default)


@router.put("/{method_id}", response_model=PaymentMethodResponse)
async def update_payment_method(
    method_id: UUID,
    payload: PaymentMethodUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_dependency),
):
    return await payment_methods.update(
        db, user.id, method_id, payload.model_dump(exclude_unset=True, exclude_none=True)
    )


@router.patch("/{method_id}/default", response_model=PaymentMethodResponse)
async def set_default_payment_method(
    method_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_dependency),
):
    return await payment_methods.promote(db, user.id, method_id)


@router.delete("/{method_id}", response_model=DeleteResponse)
async def delete_payment_method(
    method_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_dependency),
):
    """Delete a payment method; the oldest remaining one inherits the default."""
    successor = await payment_methods.delete(db, user.id, method_id)
    return DeleteResponse(
        message="Payment method deleted successfully",
        new_default_id=successor.id if successor is not None else None,
    )
