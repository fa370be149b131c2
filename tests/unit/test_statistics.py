"""
Unit tests for the admin statistics reporter
"""
from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError

from src.commerce.exceptions import StatisticsUnavailable
from src.commerce.statistics import (
    StatisticsReporter,
    change_ratio,
    report_windows,
    shift_months,
)
from src.database.models import OrderStatus, UserRole


class TestChangeRatio:
    """Tests for month-over-month change"""

    def test_no_previous_value_is_zero(self):
        assert change_ratio(150, 0) == 0
        assert change_ratio(150, None) == 0

    def test_growth(self):
        assert change_ratio(150, 100) == 50

    def test_decline(self):
        assert change_ratio(25, 100) == -75

    def test_no_change(self):
        assert change_ratio(0, 0) == 0
        assert change_ratio(80, 80) == 0


class TestCalendar:
    """Tests for month arithmetic"""

    def test_shift_back_across_year(self):
        assert shift_months(datetime(2025, 1, 1), -1) == datetime(2024, 12, 1)
        assert shift_months(datetime(2025, 3, 1), -9) == datetime(2024, 6, 1)

    def test_shift_forward(self):
        assert shift_months(datetime(2024, 11, 1), 3) == datetime(2025, 2, 1)

    def test_windows(self):
        w = report_windows(datetime(2025, 3, 15, 12, 30), trend_months=10)

        assert w.month_start == datetime(2025, 3, 1)
        assert w.last_month_start == datetime(2025, 2, 1)
        assert w.two_months_ago_start == datetime(2025, 1, 1)
        assert w.trend_start == datetime(2024, 6, 1)

    def test_aware_now_is_converted_to_utc(self):
        now = datetime(2025, 3, 1, 0, 30, tzinfo=timezone.utc)
        w = report_windows(now)

        assert w.now == datetime(2025, 3, 1, 0, 30)
        assert w.now.tzinfo is None


class TestReport:
    """Tests for the complete report"""

    async def test_empty_store(self, db):
        report = await StatisticsReporter().generate_report(db, now=datetime(2025, 3, 15))

        assert report.total_sales == 0
        assert report.total_orders == 0
        assert report.total_users == 0
        assert report.total_products == 0
        assert report.changes.sales == 0
        assert report.changes.orders == 0
        assert report.changes.users == 0
        assert report.changes.products == 0
        assert report.recent_orders == []
        assert report.top_products == []
        assert report.sales_data == []
        assert report.category_data == []

    async def test_month_rollover_boundary(self, db, make_user, make_order):
        """An order one second before midnight belongs to the previous month"""
        customer = await make_user(created_at=datetime(2025, 1, 10))
        await make_order(
            customer, status=OrderStatus.DELIVERED, total="100.00",
            created_at=datetime(2025, 2, 28, 23, 59, 59),
        )
        await make_order(
            customer, status=OrderStatus.SHIPPED, total="150.00",
            created_at=datetime(2025, 3, 1, 0, 0, 10),
        )

        report = await StatisticsReporter().generate_report(db, now=datetime(2025, 3, 1, 0, 0, 30))

        assert report.total_sales == 250
        assert report.changes.sales == 50
        assert report.changes.orders == 0

    async def test_order_at_month_start_is_current_month(self, db, make_user, make_order):
        """The window is half-open: the first instant of the month belongs to it"""
        customer = await make_user(created_at=datetime(2025, 1, 10))
        await make_order(
            customer, status=OrderStatus.DELIVERED, total="100.00",
            created_at=datetime(2025, 2, 1),
        )
        await make_order(
            customer, status=OrderStatus.DELIVERED, total="150.00",
            created_at=datetime(2025, 3, 1),
        )

        report = await StatisticsReporter().generate_report(db, now=datetime(2025, 3, 5))

        assert report.changes.sales == 50
        assert report.changes.orders == 0

    async def test_only_completed_orders_count_as_sales(self, db, make_user, make_order):
        customer = await make_user()
        for status in OrderStatus:
            await make_order(customer, status=status, total="10.00", created_at=datetime(2025, 3, 2))

        report = await StatisticsReporter().generate_report(db, now=datetime(2025, 3, 20))

        assert report.total_sales == 20
        assert report.total_orders == len(OrderStatus)

    async def test_admins_are_not_counted_as_users(self, db, make_user):
        await make_user(created_at=datetime(2025, 3, 5))
        await make_user(created_at=datetime(2025, 2, 5))
        await make_user(created_at=datetime(2025, 2, 6))
        await make_user(role=UserRole.ADMIN, created_at=datetime(2025, 3, 6))

        report = await StatisticsReporter().generate_report(db, now=datetime(2025, 3, 20))

        assert report.total_users == 3
        assert report.changes.users == -50

    async def test_top_products_by_units(self, db, make_user, make_product, make_order):
        customer = await make_user()
        a = await make_product("Alocasia")
        b = await make_product("Begonia")
        c = await make_product("Calathea")
        d = await make_product("Dracaena")
        await make_order(customer, [(a, 6, "5.00"), (b, 7, "4.00")])
        await make_order(customer, [(a, 4, "5.00"), (c, 7, "3.00"), (d, 3, "9.00")])

        report = await StatisticsReporter(top_products_limit=4).generate_report(db)
        top = report.top_products

        assert [p.sales for p in top] == [10, 7, 7, 3]
        assert top[0].name == "Alocasia"
        assert top[0].revenue == 50
        assert {p.name for p in top[1:3]} == {"Begonia", "Calathea"}
        assert top[3].name == "Dracaena"

    async def test_top_products_limit(self, db, make_user, make_product, make_order):
        customer = await make_user()
        products = [await make_product() for _ in range(7)]
        await make_order(customer, [(p, i + 1, "1.00") for i, p in enumerate(products)])

        report = await StatisticsReporter().generate_report(db)

        assert len(report.top_products) == 5
        assert report.top_products[0].sales == 7

    async def test_rolling_monthly_window(self, db, make_user, make_order):
        """Months outside the window are dropped rather than merged into the same month name"""
        customer = await make_user()
        await make_order(customer, total="500.00", created_at=datetime(2024, 3, 10))
        await make_order(customer, total="20.00", created_at=datetime(2024, 6, 5))
        await make_order(customer, total="30.00", created_at=datetime(2025, 1, 20))
        await make_order(customer, total="40.00", created_at=datetime(2025, 3, 2))
        await make_order(customer, total="2.50", created_at=datetime(2025, 3, 9))

        report = await StatisticsReporter().generate_report(db, now=datetime(2025, 3, 15))

        assert [(m.year, m.month, m.name) for m in report.sales_data] == [
            (2024, 6, "Jun"),
            (2025, 1, "Jan"),
            (2025, 3, "Mar"),
        ]
        assert report.sales_data[-1].sales == 42.5

    async def test_recent_orders(self, db, make_user, make_product, make_order):
        customer = await make_user(first_name="Ana", last_name="Silva", email="ana@example.com")
        fern = await make_product("Boston Fern", price="18.00")
        for day in range(1, 8):
            await make_order(customer, [(fern, day, "18.00")], created_at=datetime(2025, 3, day))

        report = await StatisticsReporter().generate_report(db, now=datetime(2025, 3, 20))

        assert len(report.recent_orders) == 5
        newest = report.recent_orders[0]
        assert newest.created_at == datetime(2025, 3, 7)
        assert newest.customer.name == "Ana Silva"
        assert newest.customer.email == "ana@example.com"
        assert newest.products[0].name == "Boston Fern"
        assert newest.products[0].quantity == 7

    async def test_category_distribution(self, db, make_product):
        await make_product(category="Indoor Plants")
        await make_product(category="Indoor Plants")
        await make_product(category="Pots & Planters")

        report = await StatisticsReporter().generate_report(db)

        assert [(c.name, c.value) for c in report.category_data] == [
            ("Indoor Plants", 2),
            ("Pots & Planters", 1),
        ]

    async def test_query_failure_aborts_report(self):
        class BrokenSession:
            async def execute(self, *args, **kwargs):
                raise OperationalError("SELECT 1", {}, Exception("connection lost"))

        with pytest.raises(StatisticsUnavailable) as exc_info:
            await StatisticsReporter().generate_report(BrokenSession())

        assert exc_info.value.message == "Error fetching admin statistics"
