"""
Product Catalog

Product reads and admin writes. Slugs are derived from the product name and
must stay unique across the catalog.
"""

import uuid
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.commerce.exceptions import NotFoundError, ValidationFailure
from src.commerce.slugs import slugify
from src.database.models import Product

logger = structlog.get_logger(__name__)

FEATURED_LIMIT = 8

PRODUCT_FIELDS = (
    "name",
    "description",
    "short_description",
    "scientific_name",
    "price",
    "old_price",
    "sku",
    "stock",
    "category",
    "featured",
    "images",
    "specifications",
    "care_info",
)


async def list_products(
    db: AsyncSession,
    limit: Optional[int] = None,
    category: Optional[str] = None,
) -> List[Product]:
    """Products newest first."""
    query = select(Product).order_by(Product.created_at.desc(), Product.name)
    if category:
        query = query.where(Product.category == category)
    if limit:
        query = query.limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


async def featured_products(db: AsyncSession) -> List[Product]:
    result = await db.execute(
        select(Product)
        .where(Product.featured.is_(True))
        .order_by(Product.created_at.desc())
        .limit(FEATURED_LIMIT)
    )
    return list(result.scalars().all())


async def get_product(db: AsyncSession, product_id: uuid.UUID) -> Product:
    product = await db.get(Product, product_id)
    if product is None:
        raise NotFoundError("product", product_id)
    return product


async def get_product_by_slug(db: AsyncSession, slug: str) -> Product:
    result = await db.execute(select(Product).where(Product.slug == slug))
    product = result.scalar_one_or_none()
    if product is None:
        raise NotFoundError("product", slug)
    return product


async def _check_unique(
    db: AsyncSession,
    column,
    value: str,
    message: str,
    exclude_id: Optional[uuid.UUID] = None,
) -> None:
    query = select(Product.id).where(column == value)
    if exclude_id is not None:
        query = query.where(Product.id != exclude_id)
    if (await db.execute(query)).first() is not None:
        raise ValidationFailure(message)


def _validate(fields: Dict[str, Any]) -> None:
    if "name" in fields and not str(fields["name"] or "").strip():
        raise ValidationFailure("Product name is required")
    if "price" in fields and (fields["price"] is None or fields["price"] <= 0):
        raise ValidationFailure("Price must be greater than 0")
    if "stock" in fields and fields["stock"] is not None and fields["stock"] < 0:
        raise ValidationFailure("Stock cannot be negative")
    for name in ("images", "specifications"):
        if name in fields and fields[name] is None:
            fields[name] = []
    if "images" in fields:
        fields["images"] = _with_primary_image(fields["images"])


def _with_primary_image(images: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Exactly one image is primary; the first one unless another is marked."""
    primary = [i for i, image in enumerate(images) if image.get("is_primary")]
    if len(primary) > 1:
        raise ValidationFailure("Only one product image can be primary")
    chosen = primary[0] if primary else 0
    return [dict(image, is_primary=(i == chosen)) for i, image in enumerate(images)]


async def create_product(db: AsyncSession, fields: Dict[str, Any]) -> Product:
    """Create a product; its slug comes from the name."""
    changes = {k: v for k, v in fields.items() if k in PRODUCT_FIELDS}
    _validate(changes)

    slug = slugify(changes.get("name", ""))
    if not slug:
        raise ValidationFailure("Product name must contain letters or digits")
    await _check_unique(db, Product.slug, slug, f"A product with slug '{slug}' already exists")
    await _check_unique(db, Product.sku, changes.get("sku", ""), "SKU already exists")

    product = Product(**changes, slug=slug)
    db.add(product)
    await db.flush()

    logger.info("Product created", product_id=str(product.id), slug=slug)
    return product


async def update_product(db: AsyncSession, product_id: uuid.UUID, fields: Dict[str, Any]) -> Product:
    """Apply changes; a new name regenerates the slug."""
    changes = {k: v for k, v in fields.items() if k in PRODUCT_FIELDS}
    _validate(changes)
    product = await get_product(db, product_id)

    if "name" in changes and changes["name"] != product.name:
        slug = slugify(changes["name"])
        if not slug:
            raise ValidationFailure("Product name must contain letters or digits")
        await _check_unique(
            db, Product.slug, slug, f"A product with slug '{slug}' already exists", exclude_id=product_id
        )
        product.slug = slug
    if "sku" in changes:
        await _check_unique(db, Product.sku, changes["sku"], "SKU already exists", exclude_id=product_id)

    for name, value in changes.items():
        setattr(product, name, value)
    await db.flush()

    logger.info("Product updated", product_id=str(product_id), fields=sorted(changes))
    return product


async def delete_product(db: AsyncSession, product_id: uuid.UUID) -> None:
    """Delete a product; its reviews go with it and order lines keep their price."""
    product = await get_product(db, product_id)
    await db.delete(product)
    await db.flush()
    logger.info("Product deleted", product_id=str(product_id))
