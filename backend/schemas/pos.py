# backend/schemas/pos.py
from pydantic import BaseModel, Field
from typing import List, Optional

from services.payments import GatewayOutcome

# Request schema for adding one unit of a product to the cart
class CartAddItem(BaseModel):
    product_id: int

# Request schema for a barcode scan
class CartScan(BaseModel):
    barcode: str

# Request schema for replacing a line quantity (<= 0 removes the line)
class CartUpdateItem(BaseModel):
    quantity: int

# Response schema for a single cart line
class CartItemOut(BaseModel):
    product_id: int
    name: str
    price: float
    stock: int
    quantity: int
    line_total: float

# Response schema for the whole cart
class CartOut(BaseModel):
    items: List[CartItemOut]
    total: float
    checkout_state: str
    pending_payment: Optional[str] = None

# Product as held in the cashier's catalog snapshot
class CatalogItem(BaseModel):
    id: int
    name: str
    price: float
    stock: int
    barcode: Optional[str] = None
    image_url: Optional[str] = None

class CheckoutStartOut(BaseModel):
    state: str
    total: float

class PaymentRequest(BaseModel):
    payment_method: str = Field(min_length=1)
    amount_paid: Optional[float] = None
    customer_details: Optional[dict] = None

class GatewayCallback(BaseModel):
    outcome: GatewayOutcome
    transaction_id: Optional[str] = None
    status_message: Optional[str] = None

class ScanConfirm(BaseModel):
    success: bool

class CheckoutResultOut(BaseModel):
    transaction_id: str
    total: float
    payment_method: str
    amount_paid: float
    change_given: float
    payment_reference: Optional[str] = None
    sale_ids: List[int]
    stock_reconciled: bool
    warnings: List[str] = []

class PaymentResponse(BaseModel):
    status: str  # complete, pending or cancelled
    state: str
    payment_method: Optional[str] = None
    order_id: Optional[str] = None
    snap_token: Optional[str] = None
    redirect_url: Optional[str] = None
    result: Optional[CheckoutResultOut] = None
