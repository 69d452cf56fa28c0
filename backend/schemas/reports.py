# schemas/reports.py
from datetime import date
from typing import List, Optional
from pydantic import BaseModel

# Headline revenue figures for the dashboard
class RevenueSummary(BaseModel):
    total_revenue: float
    revenue_today: float
    average_revenue_per_product: float

# Revenue trend points
class DailyRevenue(BaseModel):
    date: date
    revenue: float

class DailyRevenueResponse(BaseModel):
    data: List[DailyRevenue]

# Schemas for low stock alerting
class LowStockItem(BaseModel):
    product_id: int
    name: str
    barcode: Optional[str] = None
    stock: int

class LowStockResponse(BaseModel):
    items: List[LowStockItem]
    threshold: int
