"""
Wishlist API Endpoints

Products the current user saved for later.
"""

from typing import Dict, List
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from src.commerce import wishlist
from src.database.connection import get_db_dependency
from src.database.models import User
from src.serving.api.dependencies import get_current_user
from src.serving.api.routes.products import ProductSummary

router = APIRouter()


class WishlistCheck(BaseModel):
    is_in_wishlist: bool


@router.get("", response_model=List[ProductSummary])
async def read_wishlist(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_dependency),
):
    return await wishlist.list_wishlist(db, user.id)


@router.get("/check/{product_id}", response_model=WishlistCheck)
async def check_wishlist(
    product_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_dependency),
):
    return WishlistCheck(is_in_wishlist=await wishlist.in_wishlist(db, user.id, product_id))


@router.post("/{product_id}")
async def add_to_wishlist(
    product_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, str]:
    await wishlist.add_to_wishlist(db, user.id, product_id)
    return {"message": "Product added to wishlist"}


@router.delete("/{product_id}")
async def remove_from_wishlist(
    product_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, str]:
    await wishlist.remove_from_wishlist(db, user.id, product_id)
    return {"message": "Product removed from wishlist"}
