"""
Products API Endpoints

Public catalog reads plus admin writes.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from src.commerce import catalog
from src.database.connection import get_db_dependency
from src.serving.api.dependencies import require_admin
from src.serving.cache import stats_cache

router = APIRouter()


class ProductImage(BaseModel):
    url: str
    alt: str
    is_primary: bool = False


class ProductSpecification(BaseModel):
    name: str
    value: str


class PlantCareInfo(BaseModel):
    """Care sheet shown on plant product pages"""
    light_requirement: Literal["low", "medium", "high"]
    watering_frequency: str
    temperature: str
    humidity: str
    fertilizing: str
    difficulty: Literal["beginner", "intermediate", "advanced"]


class ProductSummary(BaseModel):
    """Product card response"""
    id: UUID
    name: str
    slug: str
    short_description: str
    price: float
    old_price: Optional[float]
    category: Optional[str]
    stock: int
    rating: float
    reviews_count: int
    featured: bool
    images: List[ProductImage]

    class Config:
        from_attributes = True


class ProductDetail(ProductSummary):
    """Detailed product response"""
    description: str
    scientific_name: Optional[str]
    sku: str
    specifications: List[ProductSpecification]
    care_info: Optional[PlantCareInfo]
    created_at: datetime
    updated_at: datetime


class ProductCreate(BaseModel):
    name: str
    description: str = ""
    short_description: str = ""
    scientific_name: Optional[str] = None
    price: Decimal
    old_price: Optional[Decimal] = None
    sku: str
    stock: int = 0
    category: Optional[str] = None
    featured: bool = False
    images: List[ProductImage] = []
    specifications: List[ProductSpecification] = []
    care_info: Optional[PlantCareInfo] = None


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    short_description: Optional[str] = None
    scientific_name: Optional[str] = None
    price: Optional[Decimal] = None
    old_price: Optional[Decimal] = None
    sku: Optional[str] = None
    stock: Optional[int] = None
    category: Optional[str] = None
    featured: Optional[bool] = None
    images: Optional[List[ProductImage]] = None
    specifications: Optional[List[ProductSpecification]] = None
    care_info: Optional[PlantCareInfo] = None


@router.get("", response_model=List[ProductSummary])
async def list_products(
    limit: Optional[int] = Query(None, ge=1, le=100),
    category: Optional[str] = None,
    db: AsyncSession = Depends(get_db_dependency),
):
    """List products, newest first."""
    return await catalog.list_products(db, limit=limit, category=category)


@router.get("/featured", response_model=List[ProductSummary])
async def list_featured_products(db: AsyncSession = Depends(get_db_dependency)):
    return await catalog.featured_products(db)


@router.get("/slug/{slug}", response_model=ProductDetail)
async def get_product_by_slug(slug: str, db: AsyncSession = Depends(get_db_dependency)):
    return await catalog.get_product_by_slug(db, slug)


@router.get("/{product_id}", response_model=ProductDetail)
async def get_product(product_id: UUID, db: AsyncSession = Depends(get_db_dependency)):
    """Get product details."""
    return await catalog.get_product(db, product_id)


@router.post(
    "",
    response_model=ProductDetail,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_product(payload: ProductCreate, db: AsyncSession = Depends(get_db_dependency)):
    product = await catalog.create_product(db, payload.model_dump())
    await stats_cache.invalidate_after_commit(db)
    return product


@router.put("/{product_id}", response_model=ProductDetail, dependencies=[Depends(require_admin)])
async def update_product(
    product_id: UUID,
    payload: ProductUpdate,
    db: AsyncSession = Depends(get_db_dependency),
):
    product = await catalog.update_product(db, product_id, payload.model_dump(exclude_unset=True))
    await stats_cache.invalidate_after_commit(db)
    return product


@router.delete(
    "/{product_id}",
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
async def delete_product(product_id: UUID, db: AsyncSession = Depends(get_db_dependency)):
    await catalog.delete_product(db, product_id)
    await stats_cache.invalidate_after_commit(db)
    return {"message": "Product deleted successfully"}
