"""
Reviews API Endpoints

Writes recompute the reviewed product's rating and review count in the same
transaction.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from src.commerce import reviews
from src.database.connection import get_db_dependency
from src.database.models import User
from src.serving.api.dependencies import get_current_user

router = APIRouter()


class ReviewCreate(BaseModel):
    product_id: UUID
    rating: float
    comment: str


class ReviewUpdate(BaseModel):
    rating: float
    comment: str


class ReviewResponse(BaseModel):
    """Review as shown on the product page"""
    id: UUID
    product_id: UUID
    user_id: UUID
    name: str
    rating: int
    comment: str
    verified: bool
    created_at: datetime

    class Config:
        from_attributes = True


class RecentReviewResponse(ReviewResponse):
    product_name: Optional[str] = None
    avatar: Optional[str] = None


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def create_review(
    payload: ReviewCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_dependency),
):
    return await reviews.create_review(db, user, payload.product_id, payload.rating, payload.comment)


@router.get("/recent", response_model=List[RecentReviewResponse])
async def get_recent_reviews(
    limit: int = Query(3, ge=1, le=20),
    db: AsyncSession = Depends(get_db_dependency),
):
    """Newest reviews across the catalog."""
    items = await reviews.recent_reviews(db, limit=limit)
    return [
        RecentReviewResponse(
            **ReviewResponse.model_validate(r).model_dump(),
            product_name=r.product.name if r.product else None,
            avatar=r.user.avatar if r.user else None,
        )
        for r in items
    ]


@router.get("/product/{product_id}", response_model=List[ReviewResponse])
async def get_product_reviews(
    product_id: UUID,
    db: AsyncSession = Depends(get_db_dependency),
):
    return await reviews.list_product_reviews(db, product_id)


@router.put("/{review_id}", response_model=ReviewResponse)
async def update_review(
    review_id: UUID,
    payload: ReviewUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_dependency),
):
    return await reviews.update_review(db, user, review_id, payload.rating, payload.comment)


@router.delete("/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_review(
    review_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_dependency),
):
    await reviews.delete_review(db, user, review_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
