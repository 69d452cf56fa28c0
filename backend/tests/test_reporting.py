"""
Dashboard figures: calendar-day boundaries, averages, trend and low stock.
"""

from datetime import datetime, timedelta
from types import SimpleNamespace

from services import reporting

NOW = datetime(2026, 10, 19, 15, 30)


def sale(price, qty, when):
    return SimpleNamespace(sale_price=price, quantity=qty, sale_date=when)


class TestRevenue:

    def test_today_uses_local_calendar_day(self):
        sales = [
            sale(1000, 1, datetime(2026, 10, 18, 23, 59, 59, 999000)),
            sale(2000, 1, datetime(2026, 10, 19, 0, 0)),
            sale(500, 2, datetime(2026, 10, 19, 23, 59)),
            sale(9999, 1, datetime(2026, 10, 20, 0, 0)),
        ]
        assert reporting.revenue_today(sales, NOW) == 3000

    def test_total_is_price_times_quantity(self):
        assert reporting.total_revenue([sale(1000, 3, NOW), sale(250, 2, NOW)]) == 3500

    def test_average_without_products_is_zero(self):
        assert reporting.average_revenue_per_product(50000, 0) == 0

    def test_average_is_rounded(self):
        assert reporting.average_revenue_per_product(10000, 3) == 3333.33

    def test_summary(self):
        summary = reporting.revenue_summary([sale(1000, 2, NOW), sale(500, 1, NOW - timedelta(days=2))], 2, NOW)
        assert summary == {"total_revenue": 2500, "revenue_today": 2000, "average_revenue_per_product": 1250}


class TestTrend:

    def test_groups_by_day_ascending_without_zero_fill(self):
        sales = [
            sale(1000, 1, NOW),
            sale(500, 1, NOW - timedelta(days=3)),
            sale(500, 1, NOW - timedelta(days=3, hours=1)),
            sale(7000, 1, NOW - timedelta(days=31)),
        ]
        points = reporting.daily_trend(sales, NOW)
        assert points == [
            {"date": (NOW - timedelta(days=3)).date(), "revenue": 1000},
            {"date": NOW.date(), "revenue": 1000},
        ]


class TestLowStock:

    def test_lowest_first_and_limited(self):
        products = [SimpleNamespace(id=i, stock=s) for i, s in enumerate([12, 10, 0, 3, 7, 1, 9, 50])]
        rows = reporting.low_stock(products, threshold=10, limit=5)
        assert [p.stock for p in rows] == [0, 1, 3, 7, 9]
