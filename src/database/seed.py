"""
Database Seeding

Creates the admin account, the default store settings and a small sample
catalog. Safe to run repeatedly: existing rows are left alone.

Usage:
    python -m src.database.seed
"""

import asyncio
from decimal import Decimal

import structlog
from sqlalchemy import select

from src.commerce.defaults import shipping_methods
from src.commerce.slugs import slugify
from src.commerce.store import get_store_settings
from src.config.logging import configure_logging
from src.database.connection import close_database, get_db, init_database
from src.database.models import Product, User, UserRole

logger = structlog.get_logger(__name__)

ADMIN_EMAIL = "admin@example.com"

SAMPLE_PRODUCTS = [
    {
        "name": "Monstera Deliciosa",
        "scientific_name": "Monstera deliciosa",
        "short_description": "Split-leaf tropical favourite",
        "description": "Large, glossy split leaves. Bright indirect light, water when the top soil is dry.",
        "price": Decimal("39.99"),
        "old_price": Decimal("49.99"),
        "sku": "PLT-MON-001",
        "stock": 25,
        "category": "Indoor Plants",
        "featured": True,
        "images": [
            {"url": "/images/products/monstera.jpg", "alt": "Monstera Deliciosa in a white pot", "is_primary": True},
        ],
        "specifications": [{"name": "Height", "value": "60-80 cm"}],
        "care_info": {
            "light_requirement": "medium",
            "watering_frequency": "Weekly",
            "temperature": "18-27 C",
            "humidity": "Medium to high",
            "fertilizing": "Monthly in spring and summer",
            "difficulty": "beginner",
        },
    },
    {
        "name": "Snake Plant",
        "scientific_name": "Dracaena trifasciata",
        "short_description": "Hardy low-light air purifier",
        "description": "Upright variegated leaves that tolerate low light and irregular watering.",
        "price": Decimal("24.99"),
        "sku": "PLT-SNK-001",
        "stock": 40,
        "category": "Indoor Plants",
        "featured": True,
    },
    {
        "name": "Ceramic Plant Pot - White",
        "short_description": "Matte white pot with drainage hole",
        "description": "15 cm glazed ceramic pot with saucer.",
        "price": Decimal("14.50"),
        "sku": "POT-CER-WHT",
        "stock": 60,
        "category": "Pots & Planters",
    },
]

SHIPPING_OPTIONS = [
    {"name": "Standard", "price": Decimal("4.99"), "estimated_delivery": "3-5 business days"},
    {"name": "Express", "price": Decimal("12.99"), "estimated_delivery": "1-2 business days"},
]


async def seed_admin(db) -> None:
    existing = await db.execute(select(User.id).where(User.email == ADMIN_EMAIL))
    if existing.first() is not None:
        logger.info("Admin user already exists", email=ADMIN_EMAIL)
        return
    db.add(User(email=ADMIN_EMAIL, first_name="Admin", last_name="User", role=UserRole.ADMIN))
    logger.info("Admin user created", email=ADMIN_EMAIL)


async def seed_store_settings(db) -> None:
    settings = await get_store_settings(db)
    if await shipping_methods.count(db, settings.id):
        return
    for option in SHIPPING_OPTIONS:
        await shipping_methods.create(db, settings.id, option)
    logger.info("Shipping methods seeded", count=len(SHIPPING_OPTIONS))


async def seed_products(db) -> None:
    created = 0
    for data in SAMPLE_PRODUCTS:
        slug = slugify(data["name"])
        existing = await db.execute(select(Product.id).where(Product.slug == slug))
        if existing.first() is not None:
            continue
        db.add(Product(**data, slug=slug))
        created += 1
    logger.info("Sample catalog seeded", created=created, total=len(SAMPLE_PRODUCTS))


async def main() -> None:
    configure_logging()
    logger.info("Starting database seeding")
    await init_database(create_tables=True)

    try:
        async with get_db() as db:
            await seed_admin(db)
            await seed_store_settings(db)
            await seed_products(db)
        logger.info("Database seeding completed")
    finally:
        await close_database()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
