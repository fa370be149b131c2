"""
Store Settings

The store configuration is a single row, created with defaults the first time
it is read. Shipping methods and payment gateways hang off that row and are
managed through ``shipping_methods`` / ``payment_gateways``.
"""

from typing import Any, Dict

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.commerce.exceptions import ValidationFailure
from src.database.models import StoreSettings

logger = structlog.get_logger(__name__)

GENERAL_FIELDS = ("store_name", "currency", "tax_rate")


async def get_store_settings(db: AsyncSession) -> StoreSettings:
    """Return the store settings row, creating it on first access."""
    result = await db.execute(
        select(StoreSettings).order_by(StoreSettings.created_at).limit(1)
    )
    settings = result.scalar_one_or_none()
    if settings is None:
        settings = StoreSettings()
        db.add(settings)
        await db.flush()
        logger.info("Store settings created with defaults", settings_id=str(settings.id))
    return settings


async def update_store_settings(db: AsyncSession, fields: Dict[str, Any]) -> StoreSettings:
    """Apply changes to the general store fields."""
    changes = {k: v for k, v in fields.items() if k in GENERAL_FIELDS}

    if "store_name" in changes and not str(changes["store_name"] or "").strip():
        raise ValidationFailure("Store name is required")
    if "currency" in changes:
        currency = str(changes["currency"] or "").upper()
        if len(currency) != 3 or not currency.isalpha():
            raise ValidationFailure(f"{changes['currency']} is not a valid currency code")
        changes["currency"] = currency
    if "tax_rate" in changes and not 0 <= float(changes["tax_rate"]) <= 100:
        raise ValidationFailure("Tax rate must be between 0 and 100")

    settings = await get_store_settings(db)
    for name, value in changes.items():
        setattr(settings, name, value)
    await db.flush()

    logger.info("Store settings updated", fields=sorted(changes))
    return settings
