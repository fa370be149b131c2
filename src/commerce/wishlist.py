"""
Wishlist

Products a shopper saved for later. Each product appears at most once per
user; adding it twice or removing one that is not there is a client error.
"""

import uuid
from typing import List

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.commerce.catalog import get_product
from src.commerce.exceptions import ValidationFailure
from src.database.models import Product, WishlistItem

logger = structlog.get_logger(__name__)


async def list_wishlist(db: AsyncSession, user_id: uuid.UUID) -> List[Product]:
    """Saved products, oldest addition first."""
    result = await db.execute(
        select(Product)
        .join(WishlistItem, WishlistItem.product_id == Product.id)
        .where(WishlistItem.user_id == user_id)
        .order_by(WishlistItem.created_at, Product.name)
    )
    return list(result.scalars().all())


async def in_wishlist(db: AsyncSession, user_id: uuid.UUID, product_id: uuid.UUID) -> bool:
    return await db.get(WishlistItem, (user_id, product_id)) is not None


async def add_to_wishlist(db: AsyncSession, user_id: uuid.UUID, product_id: uuid.UUID) -> None:
    await get_product(db, product_id)
    if await in_wishlist(db, user_id, product_id):
        raise ValidationFailure("Product already in wishlist")

    db.add(WishlistItem(user_id=user_id, product_id=product_id))
    await db.flush()
    logger.info("Product added to wishlist", user_id=str(user_id), product_id=str(product_id))


async def remove_from_wishlist(db: AsyncSession, user_id: uuid.UUID, product_id: uuid.UUID) -> None:
    item = await db.get(WishlistItem, (user_id, product_id))
    if item is None:
        raise ValidationFailure("Product not in wishlist")

    await db.delete(item)
    await db.flush()
    logger.info("Product removed from wishlist", user_id=str(user_id), product_id=str(product_id))
