# backend/services/reporting.py
"""Dashboard figures derived from the sales ledger and product table.

Everything here is a pure function over rows already loaded by the caller;
nothing is cached between calls.
"""
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Tuple

LOW_STOCK_THRESHOLD = 10
LOW_STOCK_LIMIT = 5
TREND_DAYS = 30


def sale_revenue(sale) -> float:
    return sale.sale_price * sale.quantity


def total_revenue(sales: Iterable) -> float:
    return sum(sale_revenue(s) for s in sales)


def day_bounds(now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """Start of the local calendar day of ``now`` and start of the next one."""
    now = now or datetime.now()
    start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=1)


def revenue_today(sales: Iterable, now: Optional[datetime] = None) -> float:
    start, end = day_bounds(now)
    return sum(sale_revenue(s) for s in sales if start <= s.sale_date < end)


def average_revenue_per_product(total: float, product_count: int) -> float:
    if product_count <= 0:
        return 0
    return round(total / product_count, 2)


def daily_trend(sales: Iterable, now: Optional[datetime] = None, days: int = TREND_DAYS) -> List[dict]:
    # Days without sales are left out rather than reported as zero
    now = now or datetime.now()
    since = now - timedelta(days=days)
    per_day = defaultdict(float)
    for s in sales:
        if s.sale_date >= since:
            per_day[s.sale_date.date()] += sale_revenue(s)
    return [{"date": d, "revenue": per_day[d]} for d in sorted(per_day)]


def low_stock(products: Iterable, threshold: int = LOW_STOCK_THRESHOLD, limit: int = LOW_STOCK_LIMIT) -> list:
    rows = [p for p in products if p.stock <= threshold]
    rows.sort(key=lambda p: p.stock)
    return rows[:limit]


def revenue_summary(sales: Iterable, product_count: int, now: Optional[datetime] = None) -> dict:
    sales = list(sales)
    total = total_revenue(sales)
    return {
        "total_revenue": total,
        "revenue_today": revenue_today(sales, now),
        "average_revenue_per_product": average_revenue_per_product(total, product_count),
    }
