"""
Store Settings API Endpoints (admin)

General store configuration plus the shipping method and payment gateway
families, each with a single default.
"""

from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from src.commerce.defaults import payment_gateways, shipping_methods
from src.commerce.store import get_store_settings, update_store_settings
from src.database.connection import get_db_dependency
from src.serving.api.dependencies import require_admin
from src.serving.api.routes.payment_methods import DeleteResponse

router = APIRouter(dependencies=[Depends(require_admin)])


# =============================================================================
# REQUEST/RESPONSE MODELS
# =============================================================================

class ShippingMethodCreate(BaseModel):
    name: str
    price: Decimal = Decimal("0")
    estimated_delivery: Optional[str] = None
    is_default: bool = False


class ShippingMethodUpdate(BaseModel):
    name: Optional[str] = None
    price: Optional[Decimal] = None
    estimated_delivery: Optional[str] = None
    is_default: Optional[bool] = None


class ShippingMethodResponse(BaseModel):
    id: UUID
    name: str
    price: float
    estimated_delivery: Optional[str]
    is_default: bool

    class Config:
        from_attributes = True


class PaymentGatewayCreate(BaseModel):
    name: str
    enabled: bool = False
    credentials: Dict[str, str] = Field(default_factory=dict)
    is_default: bool = False


class PaymentGatewayUpdate(BaseModel):
    name: Optional[str] = None
    enabled: Optional[bool] = None
    credentials: Optional[Dict[str, str]] = None
    is_default: Optional[bool] = None


class PaymentGatewayResponse(BaseModel):
    id: UUID
    name: str
    enabled: bool
    credentials: Dict[str, str]
    is_default: bool

    class Config:
        from_attributes = True


class StoreSettingsUpdate(BaseModel):
    store_name: Optional[str] = None
    currency: Optional[str] = None
    tax_rate: Optional[float] = None


class StoreSettingsResponse(BaseModel):
    """Store settings with both record families"""
    id: UUID
    store_name: str
    currency: str
    tax_rate: float
    shipping_methods: List[ShippingMethodResponse]
    payment_gateways: List[PaymentGatewayResponse]


async def _settings_response(db: AsyncSession) -> StoreSettingsResponse:
    settings = await get_store_settings(db)
    return StoreSettingsResponse(
        id=settings.id,
        store_name=settings.store_name,
        currency=settings.currency,
        tax_rate=settings.tax_rate,
        shipping_methods=[
            ShippingMethodResponse.model_validate(m)
            for m in await shipping_methods.list(db, settings.id)
        ],
        payment_gateways=[
            PaymentGatewayResponse.model_validate(g)
            for g in await payment_gateways.list(db, settings.id)
        ],
    )


# =============================================================================
# GENERAL
# =============================================================================

@router.get("", response_model=StoreSettingsResponse)
async def read_settings(db: AsyncSession = Depends(get_db_dependency)):
    """Store settings, created with defaults on first access."""
    return await _settings_response(db)


@router.put("", response_model=StoreSettingsResponse)
async def write_settings(
    payload: StoreSettingsUpdate,
    db: AsyncSession = Depends(get_db_dependency),
):
    await update_store_settings(db, payload.model_dump(exclude_unset=True, exclude_none=True))
    return await _settings_response(db)


# =============================================================================
# SHIPPING METHODS
# =============================================================================

@router.post("/shipping", response_model=ShippingMethodResponse, status_code=status.HTTP_201_CREATED)
async def add_shipping_method(
    payload: ShippingMethodCreate,
    db: AsyncSession = Depends(get_db_dependency),
):
    settings = await get_store_settings(db)
    fields = payload.model_dump(exclude={"is_default"})
    return await shipping_methods.create(db, settings.id, fields, is_default=payload.is_default)


@router.put("/shipping/{method_id}", response_model=ShippingMethodResponse)
async def update_shipping_method(
    method_id: UUID,
    payload: ShippingMethodUpdate,
    db: AsyncSession = Depends(get_db_dependency),
):
    settings = await get_store_settings(db)
    return await shipping_methods.update(
        db, settings.id, method_id, payload.model_dump(exclude_unset=True, exclude_none=True)
    )


@router.patch("/shipping/{method_id}/default", response_model=ShippingMethodResponse)
async def set_default_shipping_method(
    method_id: UUID,
    db: AsyncSession = Depends(get_db_dependency),
):
    settings = await get_store_settings(db)
    return await shipping_methods.promote(db, settings.id, method_id)


@router.delete("/shipping/{method_id}", response_model=DeleteResponse)
async def delete_shipping_method(
    method_id: UUID,
    db: AsyncSession = Depends(get_db_dependency),
):
    settings = await get_store_settings(db)
    successor = await shipping_methods.delete(db, settings.id, method_id)
    return DeleteResponse(
        message="Shipping method deleted successfully",
        new_default_id=successor.id if successor is not None else None,
    )


# =============================================================================
# PAYMENT GATEWAYS
# =============================================================================

@router.post("/payment", response_model=PaymentGatewayResponse, status_code=status.HTTP_201_CREATED)
async def add_payment_gateway(
    payload: PaymentGatewayCreate,
    db: AsyncSession = Depends(get_db_dependency),
):
    settings = await get_store_settings(db)
    fields = payload.model_dump(exclude={"is_default"})
    return await payment_gateways.create(db, settings.id, fields, is_default=payload.is_default)


@router.put("/payment/{gateway_id}", response_model=PaymentGatewayResponse)
async def update_payment_gateway(
    gateway_id: UUID,
    payload: PaymentGatewayUpdate,
    db: AsyncSession = Depends(get_db_dependency),
):
    settings = await get_store_settings(db)
    return await payment_gateways.update(
        db, settings.id, gateway_id, payload.model_dump(exclude_unset=True, exclude_none=True)
    )


@router.patch("/payment/{gateway_id}/default", response_model=PaymentGatewayResponse)
async def set_default_payment_gateway(
    gateway_id: UUID,
    db: AsyncSession = Depends(get_db_dependency),
):
    settings = await get_store_settings(db)
    return await payment_gateways.promote(db, settings.id, gateway_id)


@router.delete("/payment/{gateway_id}", response_model=DeleteResponse)
async def delete_payment_gateway(
    gateway_id: UUID,
    db: AsyncSession = Depends(get_db_dependency),
):
    settings = await get_store_settings(db)
    successor = await payment_gateways.delete(db, settings.id, gateway_id)
    return DeleteResponse(
        message="Payment gateway deleted successfully",
        new_default_id=successor.id if successor is not None else None,
    )
