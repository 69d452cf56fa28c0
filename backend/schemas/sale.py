# backend/schemas/sale.py
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

# One sale ledger row as shown in the sales history
class SaleOut(BaseModel):
    id: int
    product_id: Optional[int] = None
    product_name: str
    quantity: int
    sale_price: float
    line_total: float
    sale_date: datetime
    payment_method: str
    amount_paid: float
    change_given: float
    transaction_id: str
    payment_reference: Optional[str] = None

class SalesPage(BaseModel):
    items: List[SaleOut]
    total: int
    page: int
    page_size: int

# Direct sale of one product outside the POS cart
class QuickSaleRequest(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)
