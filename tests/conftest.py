"""
Test Suite Configuration
"""
import uuid
from datetime import datetime
from decimal import Decimal
from typing import AsyncGenerator, Iterable, Optional, Tuple

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from src.commerce.slugs import slugify
from src.database.connection import create_engine, create_session_factory, get_db_dependency
from src.database.models import (
    Base,
    Order,
    OrderItem,
    OrderStatus,
    PaymentType,
    Product,
    User,
    UserRole,
)
from src.serving.api.main import create_api_app


@pytest.fixture
async def test_engine():
    """In-memory SQLite engine with the full schema"""
    engine = create_engine("sqlite+aiosqlite:///:memory:")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Database session for one test"""
    session_factory = create_session_factory(test_engine)

    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def make_user(db):
    """Create and flush a user"""
    async def _make_user(
        email: Optional[str] = None,
        role: UserRole = UserRole.USER,
        first_name: str = "Jane",
        last_name: str = "Doe",
        created_at: Optional[datetime] = None,
    ) -> User:
        user = User(
            email=email or f"{uuid.uuid4().hex[:8]}@example.com",
            first_name=first_name,
            last_name=last_name,
            role=role,
        )
        if created_at is not None:
            user.created_at = created_at
        db.add(user)
        await db.flush()
        return user

    return _make_user


@pytest.fixture
def make_product(db):
    """Create and flush a product"""
    async def _make_product(
        name: Optional[str] = None,
        price: str = "10.00",
        category: Optional[str] = "Indoor Plants",
        featured: bool = False,
        created_at: Optional[datetime] = None,
    ) -> Product:
        name = name or f"Plant {uuid.uuid4().hex[:6]}"
        product = Product(
            name=name,
            slug=slugify(name),
            price=Decimal(price),
            sku=f"SKU-{uuid.uuid4().hex[:8]}",
            stock=10,
            category=category,
            featured=featured,
        )
        if created_at is not None:
            product.created_at = created_at
        db.add(product)
        await db.flush()
        return product

    return _make_product


@pytest.fixture
def make_order(db):
    """Create and flush an order from (product, quantity, unit price) lines"""
    async def _make_order(
        customer: User,
        lines: Iterable[Tuple[Optional[Product], int, str]] = (),
        status: OrderStatus = OrderStatus.PENDING,
        total: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> Order:
        items = [
            OrderItem(
                product_id=product.id if product is not None else None,
                quantity=quantity,
                price=Decimal(price),
            )
            for product, quantity, price in lines
        ]
        amount = Decimal(total) if total is not None else sum(
            (i.price * i.quantity for i in items), Decimal("0")
        )
        order = Order(
            order_number=f"ORD-{uuid.uuid4().hex[:10]}",
            customer_id=customer.id,
            status=status,
            payment_method=PaymentType.CREDIT_CARD,
            total_amount=amount,
            shipping_name="Jane Doe",
            shipping_street="1 Fern Lane",
            shipping_city="Portland",
            shipping_state="OR",
            shipping_zip_code="97201",
            items=items,
        )
        if created_at is not None:
            order.created_at = created_at
        db.add(order)
        await db.flush()
        return order

    return _make_order


@pytest.fixture
async def client(test_engine) -> AsyncGenerator[AsyncClient, None]:
    """
    API client backed by the test engine.

    Each request gets its own session that commits or rolls back like the
    production dependency; test setup must commit before calling the API.
    """
    app = create_api_app(rate_limit=False)
    session_factory = create_session_factory(test_engine)

    async def override_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_dependency] = override_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth():
    """Identity header as forwarded by the gateway"""
    def _auth(user: User) -> dict:
        return {"X-User-ID": str(user.id)}

    return _auth
