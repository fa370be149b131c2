"""
Product Reviews

Review writes always finish with recompute_product_rating, which keeps
Product.rating (mean, one decimal) and Product.reviews_count in step with the
reviews table.
"""

import uuid
from typing import List, Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.commerce.exceptions import NotFoundError, PermissionDenied, ValidationFailure
from src.database.models import Product, Review, User

logger = structlog.get_logger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def _check_rating(rating) -> int:
    try:
        value = float(rating)
    except (TypeError, ValueError):
        raise ValidationFailure("Rating must be a number between 1 and 5")
    if value < MIN_RATING or value > MAX_RATING or value != int(value):
        raise ValidationFailure("Rating must be a number between 1 and 5")
    return int(value)


def _check_comment(comment: Optional[str]) -> str:
    if not comment or not comment.strip():
        raise ValidationFailure("Missing required fields")
    return comment


async def _get_product(db: AsyncSession, product_id: uuid.UUID) -> Product:
    product = await db.get(Product, product_id)
    if product is None:
        raise NotFoundError("product", product_id)
    return product


async def _get_own_review(db: AsyncSession, user: User, review_id: uuid.UUID) -> Review:
    review = await db.get(Review, review_id)
    if review is None:
        raise NotFoundError("review", review_id)
    if review.user_id != user.id:
        logger.warning("Review access denied", review_id=str(review_id), user_id=str(user.id))
        raise PermissionDenied("Not authorized to modify this review")
    return review


async def recompute_product_rating(db: AsyncSession, product_id: uuid.UUID) -> Optional[Product]:
    """
    Refresh a product's rating and review count from its reviews.

    Returns the product, or None when it no longer exists.
    """
    product = await db.get(Product, product_id)
    if product is None:
        return None

    result = await db.execute(
        select(func.count(Review.id), func.avg(Review.rating)).where(Review.product_id == product_id)
    )
    count, average = result.one()

    product.reviews_count = count or 0
    product.rating = round(float(average), 1) if count else 0.0
    await db.flush()

    logger.debug(
        "Product rating recomputed",
        product_id=str(product_id),
        rating=product.rating,
        reviews_count=product.reviews_count,
    )
    return product


async def create_review(
    db: AsyncSession,
    user: User,
    product_id: uuid.UUID,
    rating,
    comment: str,
) -> Review:
    """Add the user's review of a product; one review per user and product."""
    numeric_rating = _check_rating(rating)
    comment = _check_comment(comment)
    await _get_product(db, product_id)

    existing = await db.execute(
        select(Review.id).where(Review.product_id == product_id, Review.user_id == user.id)
    )
    if existing.scalar_one_or_none() is not None:
        raise ValidationFailure(
            "You have already reviewed this product. You can only submit one review per product."
        )

    review = Review(
        user_id=user.id,
        product_id=product_id,
        name=user.full_name or user.email,
        rating=numeric_rating,
        comment=comment,
        verified=True,
    )
    db.add(review)
    await db.flush()

    await recompute_product_rating(db, product_id)
    logger.info("Review created", review_id=str(review.id), product_id=str(product_id), user_id=str(user.id))
    return review


async def update_review(
    db: AsyncSession,
    user: User,
    review_id: uuid.UUID,
    rating,
    comment: str,
) -> Review:
    numeric_rating = _check_rating(rating)
    comment = _check_comment(comment)
    review = await _get_own_review(db, user, review_id)

    review.rating = numeric_rating
    review.comment = comment
    await db.flush()

    await recompute_product_rating(db, review.product_id)
    logger.info("Review updated", review_id=str(review_id))
    return review


async def delete_review(db: AsyncSession, user: User, review_id: uuid.UUID) -> None:
    review = await _get_own_review(db, user, review_id)
    product_id = review.product_id

    await db.delete(review)
    await db.flush()

    await recompute_product_rating(db, product_id)
    logger.info("Review deleted", review_id=str(review_id), product_id=str(product_id))


async def list_product_reviews(db: AsyncSession, product_id: uuid.UUID) -> List[Review]:
    """Reviews of a product, newest first, with their authors loaded."""
    await _get_product(db, product_id)
    result = await db.execute(
        select(Review)
        .options(selectinload(Review.user))
        .where(Review.product_id == product_id)
        .order_by(Review.created_at.desc())
    )
    return list(result.scalars().all())


async def recent_reviews(db: AsyncSession, limit: int = 3) -> List[Review]:
    """Newest reviews across the catalog, with author and product loaded."""
    result = await db.execute(
        select(Review)
        .execution_options(populate_existing=True)
        .options(selectinload(Review.user), selectinload(Review.product))
        .order_by(Review.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
