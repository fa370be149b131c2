"""
Order Management (admin)

Orders are created pending, with pending payment, from priced line items.
Status changes are free-form admin decisions; the statistics report decides
which statuses count as completed sales.
"""

import secrets
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

import structlog
from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.commerce.exceptions import NotFoundError, ValidationFailure
from src.database.models import (
    Address,
    Order,
    OrderItem,
    OrderStatus,
    PaymentStatus,
    PaymentType,
    Product,
    User,
    utcnow,
)

logger = structlog.get_logger(__name__)

SHIPPING_FIELDS = ("name", "street", "city", "state", "zip_code")


def generate_order_number() -> str:
    """ORD-YYYYMMDD-XXXXXX with a random hex suffix."""
    return f"ORD-{utcnow():%Y%m%d}-{secrets.token_hex(3).upper()}"


def _with_details(query):
    return query.execution_options(populate_existing=True).options(
        selectinload(Order.customer),
        selectinload(Order.items).selectinload(OrderItem.product),
    )


def _parse_status(value: str) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in OrderStatus)
        raise ValidationFailure(f"Invalid order status '{value}'. Use one of: {allowed}")


async def list_orders(
    db: AsyncSession,
    page: int = 1,
    limit: int = 10,
    status: Optional[str] = None,
    search: Optional[str] = None,
) -> Tuple[List[Order], int]:
    """
    One page of orders, newest first, and the total matching count.

    ``status`` "All" or empty means no status filter; ``search`` matches the
    order number and the customer's name or email.
    """
    conditions = []
    if status and status != "All":
        conditions.append(Order.status == _parse_status(status))
    if search:
        pattern = f"%{search}%"
        conditions.append(
            or_(
                Order.order_number.ilike(pattern),
                Order.customer_id.in_(
                    select(User.id).where(
                        or_(
                            User.first_name.ilike(pattern),
                            User.last_name.ilike(pattern),
                            User.email.ilike(pattern),
                        )
                    )
                ),
            )
        )

    total = (
        await db.execute(select(func.count(Order.id)).where(*conditions))
    ).scalar() or 0

    result = await db.execute(
        _with_details(select(Order))
        .where(*conditions)
        .order_by(Order.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def get_order(db: AsyncSession, order_id: uuid.UUID) -> Order:
    result = await db.execute(_with_details(select(Order)).where(Order.id == order_id))
    order = result.scalar_one_or_none()
    if order is None:
        raise NotFoundError("order", order_id)
    return order


async def _shipping_snapshot(
    db: AsyncSession,
    customer_id: uuid.UUID,
    address_id: Optional[uuid.UUID],
    address: Optional[Dict[str, Any]],
) -> Dict[str, Any]:
    if address_id is not None:
        result = await db.execute(
            select(Address).where(Address.id == address_id, Address.user_id == customer_id)
        )
        saved = result.scalar_one_or_none()
        if saved is None:
            raise NotFoundError("address", address_id)
        address = {name: getattr(saved, name) for name in SHIPPING_FIELDS}

    if not address or any(not str(address.get(name) or "").strip() for name in SHIPPING_FIELDS):
        raise ValidationFailure("A complete shipping address is required")

    snapshot = {f"shipping_{name}": address[name] for name in SHIPPING_FIELDS}
    snapshot["shipping_address_id"] = address_id
    return snapshot


async def create_order(
    db: AsyncSession,
    customer_id: uuid.UUID,
    items: Sequence[Dict[str, Any]],
    payment_method: str,
    shipping_address_id: Optional[uuid.UUID] = None,
    shipping_address: Optional[Dict[str, Any]] = None,
    shipping_cost: Decimal = Decimal("0"),
    tax: Decimal = Decimal("0"),
    total_amount: Optional[Decimal] = None,
    notes: Optional[str] = None,
) -> Order:
    """
    Create a pending order.

    Every item needs a positive price and quantity. When ``total_amount`` is
    not given it is the item subtotal plus shipping and tax.
    """
    if not items:
        raise ValidationFailure("An order needs at least one item")
    if any(not item.get("price") or item["price"] <= 0 for item in items):
        raise ValidationFailure("Invalid price for one or more items")
    if any(int(item.get("quantity") or 0) < 1 for item in items):
        raise ValidationFailure("Item quantity must be at least 1")

    try:
        payment = PaymentType(payment_method)
    except ValueError:
        allowed = ", ".join(p.value for p in PaymentType)
        raise ValidationFailure(f"Invalid payment method '{payment_method}'. Use one of: {allowed}")

    if await db.get(User, customer_id) is None:
        raise NotFoundError("customer", customer_id)

    product_ids = {item["product_id"] for item in items if item.get("product_id")}
    if product_ids:
        found = set(
            (await db.execute(select(Product.id).where(Product.id.in_(product_ids)))).scalars()
        )
        for missing in product_ids - found:
            raise NotFoundError("product", missing)

    snapshot = await _shipping_snapshot(db, customer_id, shipping_address_id, shipping_address)

    subtotal = sum(Decimal(str(item["price"])) * int(item["quantity"]) for item in items)
    if total_amount is None:
        total_amount = subtotal + Decimal(str(shipping_cost)) + Decimal(str(tax))

    order = Order(
        order_number=generate_order_number(),
        customer_id=customer_id,
        status=OrderStatus.PENDING,
        payment_method=payment,
        payment_status=PaymentStatus.PENDING,
        total_amount=total_amount,
        shipping_cost=shipping_cost,
        tax=tax,
        notes=notes,
        items=[
            OrderItem(
                product_id=item.get("product_id"),
                quantity=int(item["quantity"]),
                price=Decimal(str(item["price"])),
            )
            for item in items
        ],
        **snapshot,
    )
    db.add(order)
    await db.flush()

    logger.info(
        "Order created",
        order_id=str(order.id),
        order_number=order.order_number,
        customer_id=str(customer_id),
        items=len(items),
        total_amount=str(total_amount),
    )
    return await get_order(db, order.id)


async def update_order_status(
    db: AsyncSession,
    order_id: uuid.UUID,
    status: str,
    notes: Optional[str] = None,
) -> Order:
    new_status = _parse_status(status)
    order = await get_order(db, order_id)

    previous = order.status
    order.status = new_status
    if notes:
        order.notes = notes
    await db.flush()

    logger.info(
        "Order status updated",
        order_id=str(order_id),
        previous=previous.value,
        status=new_status.value,
    )
    return order


async def bulk_update_status(
    db: AsyncSession,
    order_ids: Sequence[uuid.UUID],
    status: str,
    notes: Optional[str] = None,
) -> List[Order]:
    """Set one status on many orders; unknown ids are skipped."""
    new_status = _parse_status(status)
    if not order_ids:
        return []

    values: Dict[str, Any] = {"status": new_status, "updated_at": utcnow()}
    if notes:
        values["notes"] = notes

    result = await db.execute(
        update(Order)
        .where(Order.id.in_(order_ids))
        .values(**values)
        .execution_options(synchronize_session="fetch")
    )
    logger.info("Bulk order status update", requested=len(order_ids), updated=result.rowcount, status=new_status.value)

    orders = await db.execute(
        _with_details(select(Order))
        .where(Order.id.in_(order_ids))
        .order_by(Order.created_at.desc())
    )
    return list(orders.scalars().all())


async def delete_order(db: AsyncSession, order_id: uuid.UUID) -> None:
    order = await get_order(db, order_id)
    await db.delete(order)
    await db.flush()
    logger.info("Order deleted", order_id=str(order_id), order_number=order.order_number)
