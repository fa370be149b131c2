"""
Admin Statistics Reporter

Builds the admin dashboard snapshot:
- lifetime totals (completed revenue, orders, shoppers, products)
- current vs previous calendar month change ratios for the same four metrics
- most recent orders with customer and line items
- best selling products by units sold
- monthly sales over a rolling window of calendar months
- product count per category

Period windows are half-open: the current month is [month_start, now) and the
previous month is [last_month_start, month_start). Monthly buckets are keyed by
(year, month) so the same month of different years never merges.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

import structlog
from pydantic import BaseModel
from sqlalchemy import and_, extract, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.commerce.exceptions import StatisticsUnavailable
from src.database.models import (
    COMPLETED_ORDER_STATUSES,
    Order,
    OrderItem,
    Product,
    User,
    UserRole,
    utcnow,
)

logger = structlog.get_logger(__name__)

MONTH_ABBREVIATIONS = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]


# =============================================================================
# CALENDAR HELPERS
# =============================================================================

def month_start(moment: datetime) -> datetime:
    """First instant of the calendar month containing ``moment``."""
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def shift_months(first_of_month: datetime, months: int) -> datetime:
    """Move a first-of-month timestamp by a number of calendar months."""
    index = first_of_month.year * 12 + (first_of_month.month - 1) + months
    return first_of_month.replace(year=index // 12, month=index % 12 + 1)


def change_ratio(current: float, previous: Optional[float]) -> float:
    """
    Percentage change from ``previous`` to ``current``.

    Without a previous baseline (None or 0) the change is reported as 0.
    """
    if not previous:
        return 0.0
    return (float(current) - float(previous)) / float(previous) * 100


@dataclass(frozen=True)
class ReportWindows:
    """Boundaries used by one report, all derived from ``now``"""
    now: datetime
    month_start: datetime
    last_month_start: datetime
    two_months_ago_start: datetime
    trend_start: datetime


def report_windows(now: datetime, trend_months: int = 10) -> ReportWindows:
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc).replace(tzinfo=None)
    current = month_start(now)
    last = shift_months(current, -1)
    return ReportWindows(
        now=now,
        month_start=current,
        last_month_start=last,
        two_months_ago_start=shift_months(last, -1),
        trend_start=shift_months(current, -(trend_months - 1)),
    )


# =============================================================================
# REPORT MODELS
# =============================================================================

class PeriodChanges(BaseModel):
    """Month-over-month change in percent"""
    sales: float
    orders: float
    users: float
    products: float


class RecentOrderCustomer(BaseModel):
    id: UUID
    name: str
    email: str


class RecentOrderProduct(BaseModel):
    id: Optional[UUID]
    name: Optional[str]
    quantity: int
    price: float


class RecentOrder(BaseModel):
    id: UUID
    order_number: str
    customer: RecentOrderCustomer
    products: List[RecentOrderProduct]
    total_amount: float
    status: str
    payment_status: str
    created_at: datetime
    updated_at: datetime


class TopProduct(BaseModel):
    id: UUID
    name: str
    sales: int
    revenue: float


class MonthlySales(BaseModel):
    year: int
    month: int
    name: str
    sales: float


class CategoryCount(BaseModel):
    name: Optional[str]
    value: int


class AdminStatsReport(BaseModel):
    """Complete admin dashboard snapshot"""
    total_sales: float
    total_orders: int
    total_users: int
    total_products: int
    changes: PeriodChanges
    recent_orders: List[RecentOrder]
    top_products: List[TopProduct]
    sales_data: List[MonthlySales]
    category_data: List[CategoryCount]
    generated_at: datetime


# =============================================================================
# REPORTER
# =============================================================================

def _window(column, start: Optional[datetime] = None, end: Optional[datetime] = None):
    conditions = []
    if start is not None:
        conditions.append(column >= start)
    if end is not None:
        conditions.append(column < end)
    return conditions


class StatisticsReporter:
    """
    Produces AdminStatsReport snapshots.

    Each metric is a separate query on the same session; the report does not
    require a consistent snapshot across them. Any failing query aborts the
    whole report with StatisticsUnavailable.
    """

    def __init__(
        self,
        recent_orders_limit: int = 5,
        top_products_limit: int = 5,
        trend_months: int = 10,
    ):
        self.recent_orders_limit = recent_orders_limit
        self.top_products_limit = top_products_limit
        self.trend_months = trend_months

    async def generate_report(self, db: AsyncSession, now: Optional[datetime] = None) -> AdminStatsReport:
        windows = report_windows(now or utcnow(), self.trend_months)
        logger.info(
            "Generating admin statistics",
            month_start=windows.month_start.isoformat(),
            last_month_start=windows.last_month_start.isoformat(),
        )

        try:
            report = await self._build(db, windows)
        except (SQLAlchemyError, OSError) as e:
            logger.error("Admin statistics failed", error=str(e), error_type=type(e).__name__)
            raise StatisticsUnavailable() from e

        logger.info(
            "Admin statistics generated",
            total_orders=report.total_orders,
            recent_orders=len(report.recent_orders),
            months=len(report.sales_data),
        )
        return report

    async def _build(self, db: AsyncSession, w: ReportWindows) -> AdminStatsReport:
        current = (w.month_start, w.now)
        previous = (w.last_month_start, w.month_start)

        sales_now = await self.completed_sales(db, *current)
        sales_before = await self.completed_sales(db, *previous)
        orders_now = await self.count_orders(db, *current)
        orders_before = await self.count_orders(db, *previous)
        users_now = await self.count_shoppers(db, *current)
        users_before = await self.count_shoppers(db, *previous)
        products_now = await self.count_products(db, *current)
        products_before = await self.count_products(db, *previous)

        return AdminStatsReport(
            total_sales=await self.completed_sales(db),
            total_orders=await self.count_orders(db),
            total_users=await self.count_shoppers(db),
            total_products=await self.count_products(db),
            changes=PeriodChanges(
                sales=change_ratio(sales_now, sales_before),
                orders=change_ratio(orders_now, orders_before),
                users=change_ratio(users_now, users_before),
                products=change_ratio(products_now, products_before),
            ),
            recent_orders=await self.recent_orders(db),
            top_products=await self.top_products(db),
            sales_data=await self.monthly_sales(db, w.trend_start, w.now),
            category_data=await self.category_distribution(db),
            generated_at=w.now,
        )

    # -------------------------------------------------------------------------
    # Period metrics
    # -------------------------------------------------------------------------

    async def completed_sales(
        self, db: AsyncSession, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> float:
        """Revenue of shipped or delivered orders created in [start, end)."""
        result = await db.execute(
            select(func.sum(Order.total_amount)).where(
                Order.status.in_(COMPLETED_ORDER_STATUSES),
                *_window(Order.created_at, start, end),
            )
        )
        return float(result.scalar() or 0)

    async def count_orders(
        self, db: AsyncSession, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> int:
        result = await db.execute(
            select(func.count(Order.id)).where(*_window(Order.created_at, start, end))
        )
        return result.scalar() or 0

    async def count_shoppers(
        self, db: AsyncSession, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> int:
        """Users with the ordinary ``user`` role; administrators are not counted."""
        result = await db.execute(
            select(func.count(User.id)).where(
                User.role == UserRole.USER,
                *_window(User.created_at, start, end),
            )
        )
        return result.scalar() or 0

    async def count_products(
        self, db: AsyncSession, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> int:
        result = await db.execute(
            select(func.count(Product.id)).where(*_window(Product.created_at, start, end))
        )
        return result.scalar() or 0

    # -------------------------------------------------------------------------
    # Breakdowns
    # -------------------------------------------------------------------------

    async def recent_orders(self, db: AsyncSession) -> List[RecentOrder]:
        result = await db.execute(
            select(Order)
            .execution_options(populate_existing=True)
            .options(
                selectinload(Order.customer),
                selectinload(Order.items).selectinload(OrderItem.product),
            )
            .order_by(Order.created_at.desc())
            .limit(self.recent_orders_limit)
        )

        return [
            RecentOrder(
                id=order.id,
                order_number=order.order_number,
                customer=RecentOrderCustomer(
                    id=order.customer.id,
                    name=order.customer.full_name,
                    email=order.customer.email,
                ),
                products=[
                    RecentOrderProduct(
                        id=item.product_id,
                        name=item.product.name if item.product is not None else None,
                        quantity=item.quantity,
                        price=float(item.price),
                    )
                    for item in order.items
                ],
                total_amount=float(order.total_amount),
                status=order.status.value,
                payment_status=order.payment_status.value,
                created_at=order.created_at,
                updated_at=order.updated_at,
            )
            for order in result.scalars().all()
        ]

    async def top_products(self, db: AsyncSession) -> List[TopProduct]:
        """Best sellers by units sold; products deleted since are left out."""
        units = func.sum(OrderItem.quantity)
        sold = (
            select(
                OrderItem.product_id.label("product_id"),
                units.label("sales"),
                func.sum(OrderItem.quantity * OrderItem.price).label("revenue"),
            )
            .where(OrderItem.product_id.is_not(None))
            .group_by(OrderItem.product_id)
            .order_by(units.desc())
            .limit(self.top_products_limit)
            .subquery()
        )

        result = await db.execute(
            select(sold.c.product_id, Product.name, sold.c.sales, sold.c.revenue)
            .join(Product, Product.id == sold.c.product_id)
            .order_by(sold.c.sales.desc())
        )

        return [
            TopProduct(
                id=row.product_id,
                name=row.name,
                sales=int(row.sales or 0),
                revenue=float(row.revenue or 0),
            )
            for row in result.all()
        ]

    async def monthly_sales(self, db: AsyncSession, start: datetime, end: datetime) -> List[MonthlySales]:
        """Order revenue (all statuses) per calendar month in [start, end)."""
        year = extract("year", Order.created_at)
        month = extract("month", Order.created_at)

        result = await db.execute(
            select(
                year.label("year"),
                month.label("month"),
                func.sum(Order.total_amount).label("sales"),
            )
            .where(and_(*_window(Order.created_at, start, end)))
            .group_by(year, month)
            .order_by(year, month)
        )

        return [
            MonthlySales(
                year=int(row.year),
                month=int(row.month),
                name=MONTH_ABBREVIATIONS[int(row.month) - 1],
                sales=float(row.sales or 0),
            )
            for row in result.all()
        ]

    async def category_distribution(self, db: AsyncSession) -> List[CategoryCount]:
        count = func.count(Product.id)
        result = await db.execute(
            select(Product.category, count.label("value"))
            .group_by(Product.category)
            .order_by(count.desc(), Product.category)
        )
        return [CategoryCount(name=row.category, value=row.value) for row in result.all()]
