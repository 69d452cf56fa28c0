# backend/schemas/midtrans.py
from pydantic import BaseModel
from typing import List, Optional

# Body accepted by the token issuance endpoint; presence is checked by hand so
# a missing field answers 400 like the gateway contract expects
class MidtransTransactionRequest(BaseModel):
    order_id: Optional[str] = None
    gross_amount: Optional[float] = None
    item_details: Optional[List[dict]] = None
    customer_details: Optional[dict] = None

class MidtransTransactionResponse(BaseModel):
    snap_token: Optional[str] = None
    redirect_url: Optional[str] = None
