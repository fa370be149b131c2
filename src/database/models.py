"""
Database Models

Transactional schema for the storefront:

Catalog:
- Product: sellable items with denormalized rating statistics
- Review: one customer review per (user, product)
- WishlistItem: products saved by a user

Customers:
- User: shoppers and administrators
- Address, PaymentMethod: owned by a user, at most one default each

Sales:
- Order, OrderItem: orders with priced line items

Store:
- StoreSettings: singleton row with general store configuration
- ShippingMethod, PaymentGateway: owned by the store settings, at most one default each

The "at most one default per owner" rule is backed by partial unique indexes
on the owner column filtered by ``is_default``.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional, List
import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum as SQLEnum,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    """Naive UTC timestamp, the representation stored in every DateTime column"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


def default_flag_index(name: str, owner_column: str) -> Index:
    """Partial unique index allowing a single is_default row per owner."""
    return Index(
        name,
        owner_column,
        unique=True,
        postgresql_where=text("is_default"),
        sqlite_where=text("is_default = 1"),
    )


# =============================================================================
# ENUMERATIONS
# =============================================================================

class UserRole(str, Enum):
    """User role enumeration"""
    USER = "user"
    ADMIN = "admin"


class OrderStatus(str, Enum):
    """Order status enumeration"""
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# Orders whose revenue counts as realised sales
COMPLETED_ORDER_STATUSES = (OrderStatus.DELIVERED, OrderStatus.SHIPPED)


class PaymentStatus(str, Enum):
    """Payment status enumeration"""
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentType(str, Enum):
    """How an order is paid"""
    CREDIT_CARD = "Credit Card"
    PAYPAL = "Paypal"
    BANK_TRANSFER = "Bank Transfer"


class CardType(str, Enum):
    """Accepted card networks for stored payment methods"""
    VISA = "Visa"
    MASTERCARD = "Mastercard"
    AMERICAN_EXPRESS = "American Express"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


# =============================================================================
# CUSTOMERS
# =============================================================================

class User(Base):
    """
    User Table

    Shoppers (role ``user``) and administrators. ``address_summary`` mirrors the
    default address so listings do not need a join.
    """
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    first_name: Mapped[Optional[str]] = mapped_column(String(100))
    last_name: Mapped[Optional[str]] = mapped_column(String(100))
    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole, values_callable=_enum_values), default=UserRole.USER, nullable=False
    )
    avatar: Mapped[Optional[str]] = mapped_column(
        String(500),
        default="https://ui-avatars.com/api/?name=User&background=random&color=fff",
    )
    address_summary: Mapped[Optional[str]] = mapped_column(String(500))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    __table_args__ = (
        Index("ix_users_role_created", "role", "created_at"),
    )


class Address(Base):
    """Shipping address owned by a user"""
    __tablename__ = "addresses"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    street: Mapped[str] = mapped_column(String(200), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[str] = mapped_column(String(100), nullable=False)
    zip_code: Mapped[str] = mapped_column(String(20), nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def summary(self) -> str:
        return f"{self.name}, {self.street}, {self.city}, {self.state} {self.zip_code}"

    __table_args__ = (
        Index("ix_addresses_user_created", "user_id", "created_at"),
        default_flag_index("ux_addresses_default", "user_id"),
    )


class PaymentMethod(Base):
    """Stored card reference owned by a user (no full card numbers)"""
    __tablename__ = "payment_methods"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    card_type: Mapped[str] = mapped_column(String(30), nullable=False)
    last_four: Mapped[str] = mapped_column(String(4), nullable=False)
    expiry_date: Mapped[str] = mapped_column(String(5), nullable=False)  # MM/YY
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_payment_methods_user_created", "user_id", "created_at"),
        default_flag_index("ux_payment_methods_default", "user_id"),
    )


# =============================================================================
# CATALOG
# =============================================================================

class Product(Base):
    """
    Product Table

    ``rating`` and ``reviews_count`` are recomputed from the reviews table
    whenever a review changes.
    """
    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(220), unique=True, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    short_description: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    scientific_name: Mapped[Optional[str]] = mapped_column(String(200))

    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    old_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2))
    sku: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(100))

    # [{url, alt, is_primary}], [{name, value}] and the plant care sheet
    images: Mapped[List[dict]] = mapped_column(JSON, default=list, nullable=False)
    specifications: Mapped[List[dict]] = mapped_column(JSON, default=list, nullable=False)
    care_info: Mapped[Optional[dict]] = mapped_column(JSON)

    rating: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    reviews_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_products_category", "category"),
        Index("ix_products_featured", "featured"),
        Index("ix_products_created", "created_at"),
    )


class Review(Base):
    """Customer review of a product"""
    __tablename__ = "reviews"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str] = mapped_column(Text, nullable=False)
    verified: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    user: Mapped["User"] = relationship()
    product: Mapped["Product"] = relationship()

    __table_args__ = (
        UniqueConstraint("user_id", "product_id", name="uq_reviews_user_product"),
        Index("ix_reviews_product_created", "product_id", "created_at"),
    )


class WishlistItem(Base):
    """Junction table for products a user saved for later"""
    __tablename__ = "user_wishlist"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


# =============================================================================
# SALES
# =============================================================================

class Order(Base):
    """
    Order Table

    Holds a snapshot of the shipping address so later address edits do not
    rewrite order history.
    """
    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False
    )

    status: Mapped[OrderStatus] = mapped_column(
        SQLEnum(OrderStatus, values_callable=_enum_values), default=OrderStatus.PENDING, nullable=False
    )
    payment_method: Mapped[PaymentType] = mapped_column(
        SQLEnum(PaymentType, values_callable=_enum_values), nullable=False
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(PaymentStatus, values_callable=_enum_values), default=PaymentStatus.PENDING, nullable=False
    )

    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    shipping_cost: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=0)
    tax: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=0)

    shipping_address_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("addresses.id", ondelete="SET NULL")
    )
    shipping_name: Mapped[str] = mapped_column(String(200), nullable=False)
    shipping_street: Mapped[str] = mapped_column(String(200), nullable=False)
    shipping_city: Mapped[str] = mapped_column(String(100), nullable=False)
    shipping_state: Mapped[str] = mapped_column(String(100), nullable=False)
    shipping_zip_code: Mapped[str] = mapped_column(String(20), nullable=False)

    notes: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    customer: Mapped["User"] = relationship()
    items: Mapped[List["OrderItem"]] = relationship(
        back_populates="order", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_orders_created", "created_at"),
        Index("ix_orders_status_created", "status", "created_at"),
        Index("ix_orders_customer", "customer_id"),
    )


class OrderItem(Base):
    """Order line item priced at checkout time"""
    __tablename__ = "order_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    product_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("products.id", ondelete="SET NULL")
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    order: Mapped["Order"] = relationship(back_populates="items")
    product: Mapped[Optional["Product"]] = relationship()

    __table_args__ = (
        Index("ix_order_items_order", "order_id"),
        Index("ix_order_items_product", "product_id"),
    )


# =============================================================================
# STORE SETTINGS
# =============================================================================

class StoreSettings(Base):
    """Singleton store configuration row"""
    __tablename__ = "store_settings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    store_name: Mapped[str] = mapped_column(String(200), default="Botanical Store", nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)
    tax_rate: Mapped[float] = mapped_column(Float, default=19.0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class ShippingMethod(Base):
    """Shipping option offered at checkout"""
    __tablename__ = "shipping_methods"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    settings_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("store_settings.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=0)
    estimated_delivery: Mapped[Optional[str]] = mapped_column(String(100))
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        default_flag_index("ux_shipping_methods_default", "settings_id"),
    )


class PaymentGateway(Base):
    """Payment provider configuration"""
    __tablename__ = "payment_gateways"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    settings_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("store_settings.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    credentials: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        default_flag_index("ux_payment_gateways_default", "settings_id"),
    )
