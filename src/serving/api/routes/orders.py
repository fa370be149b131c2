"""
Orders API Endpoints (admin)

Order listing, creation and status management.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from src.commerce import orders
from src.database.connection import get_db_dependency
from src.serving.api.dependencies import require_admin
from src.serving.cache import stats_cache

router = APIRouter(dependencies=[Depends(require_admin)])


# =============================================================================
# REQUEST/RESPONSE MODELS
# =============================================================================

class OrderCustomer(BaseModel):
    id: UUID
    first_name: Optional[str]
    last_name: Optional[str]
    email: str

    class Config:
        from_attributes = True


class OrderItemResponse(BaseModel):
    id: UUID
    product_id: Optional[UUID]
    product_name: Optional[str] = None
    quantity: int
    price: float


class ShippingAddress(BaseModel):
    name: str
    street: str
    city: str
    state: str
    zip_code: str


class OrderResponse(BaseModel):
    """Order with customer, items and shipping snapshot"""
    id: UUID
    order_number: str
    customer: OrderCustomer
    items: List[OrderItemResponse]
    status: str
    payment_method: str
    payment_status: str
    total_amount: float
    shipping_cost: float
    tax: float
    shipping_address: ShippingAddress
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class OrderListResponse(BaseModel):
    """Paginated order list"""
    orders: List[OrderResponse]
    pagination: Pagination


class OrderItemCreate(BaseModel):
    product_id: Optional[UUID] = None
    quantity: int = 1
    price: Decimal


class OrderCreate(BaseModel):
    customer_id: UUID
    items: List[OrderItemCreate]
    payment_method: str
    shipping_address_id: Optional[UUID] = None
    shipping_address: Optional[ShippingAddress] = None
    shipping_cost: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    total_amount: Optional[Decimal] = None
    notes: Optional[str] = None


class StatusUpdate(BaseModel):
    status: str
    notes: Optional[str] = None


class BulkStatusUpdate(StatusUpdate):
    order_ids: List[UUID] = Field(..., min_length=1)


def to_response(order) -> OrderResponse:
    return OrderResponse(
        id=order.id,
        order_number=order.order_number,
        customer=OrderCustomer.model_validate(order.customer),
        items=[
            OrderItemResponse(
                id=item.id,
                product_id=item.product_id,
                product_name=item.product.name if item.product else None,
                quantity=item.quantity,
                price=item.price,
            )
            for item in order.items
        ],
        status=order.status.value,
        payment_method=order.payment_method.value,
        payment_status=order.payment_status.value,
        total_amount=order.total_amount,
        shipping_cost=order.shipping_cost,
        tax=order.tax,
        shipping_address=ShippingAddress(
            name=order.shipping_name,
            street=order.shipping_street,
            city=order.shipping_city,
            state=order.shipping_state,
            zip_code=order.shipping_zip_code,
        ),
        notes=order.notes,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("", response_model=OrderListResponse)
async def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[str] = None,
    search: Optional[str] = None,
    db: AsyncSession = Depends(get_db_dependency),
) -> OrderListResponse:
    """
    List orders, newest first.

    Supports filtering by status ("All" disables the filter) and a search over
    order number and customer name or email.
    """
    items, total = await orders.list_orders(db, page=page, limit=limit, status=status, search=search)
    return OrderListResponse(
        orders=[to_response(o) for o in items],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=(total + limit - 1) // limit,
        ),
    )


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(payload: OrderCreate, db: AsyncSession = Depends(get_db_dependency)):
    """Create a pending order; every item needs a positive price."""
    order = await orders.create_order(
        db,
        customer_id=payload.customer_id,
        items=[item.model_dump() for item in payload.items],
        payment_method=payload.payment_method,
        shipping_address_id=payload.shipping_address_id,
        shipping_address=payload.shipping_address.model_dump() if payload.shipping_address else None,
        shipping_cost=payload.shipping_cost,
        tax=payload.tax,
        total_amount=payload.total_amount,
        notes=payload.notes,
    )
    await stats_cache.invalidate_after_commit(db)
    return to_response(order)


# Declared before /{order_id} so "bulk-status" is not parsed as an id
@router.patch("/bulk-status", response_model=List[OrderResponse])
async def bulk_update_status(payload: BulkStatusUpdate, db: AsyncSession = Depends(get_db_dependency)):
    updated = await orders.bulk_update_status(db, payload.order_ids, payload.status, payload.notes)
    await stats_cache.invalidate_after_commit(db)
    return [to_response(o) for o in updated]


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: UUID, db: AsyncSession = Depends(get_db_dependency)):
    return to_response(await orders.get_order(db, order_id))


@router.patch("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: UUID,
    payload: StatusUpdate,
    db: AsyncSession = Depends(get_db_dependency),
):
    order = await orders.update_order_status(db, order_id, payload.status, payload.notes)
    await stats_cache.invalidate_after_commit(db)
    return to_response(order)


@router.delete("/{order_id}")
async def delete_order(order_id: UUID, db: AsyncSession = Depends(get_db_dependency)):
    await orders.delete_order(db, order_id)
    await stats_cache.invalidate_after_commit(db)
    return {"message": "Order deleted successfully"}
