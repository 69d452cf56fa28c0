# backend/services/payments.py
"""Payment capture for the POS checkout.

Every method answers the same question: given the frozen transaction total,
what was paid, what change is due, and (optionally) which external reference
identifies the payment. Methods that cannot answer immediately (gateway
popup, scan code) return None from ``settle`` and resolve later.
"""
import enum
import time
import uuid
from dataclasses import dataclass
from typing import Iterable, Optional

import httpx

from services.cart import CartLine
from utils.midtrans_client import MidtransClient, MidtransError, midtrans_client


@dataclass(frozen=True)
class Settlement:
    payment_method: str
    amount_paid: float
    change_given: float
    reference: Optional[str] = None


class PaymentRejected(Exception):
    """The payment attempt failed; cart and totals stay untouched."""


class GatewayError(PaymentRejected):
    """The payment provider refused or failed the request."""


class GatewayOutcome(str, enum.Enum):
    SUCCESS = "success"
    PENDING = "pending"
    ERROR = "error"
    CLOSE = "close"


def _millis() -> int:
    return int(time.time() * 1000)


class PaymentMethod:
    name = "other"

    def settle(self, total: float, amount_paid: Optional[float] = None) -> Optional[Settlement]:
        raise NotImplementedError


class CashPayment(PaymentMethod):
    name = "cash"

    def settle(self, total, amount_paid=None):
        if amount_paid is None or amount_paid <= 0:
            raise PaymentRejected("Invalid cash amount")
        if amount_paid < total:
            raise PaymentRejected("Insufficient cash amount")
        return Settlement(self.name, amount_paid, amount_paid - total)


class InstantPayment(PaymentMethod):
    """Non-cash methods that settle on the spot for the exact total (card etc.)."""

    def __init__(self, name: str = "card"):
        self.name = name

    def settle(self, total, amount_paid=None):
        return Settlement(self.name, total, 0, reference=f"MOCK-{_millis()}")


class ScanCodePayment(PaymentMethod):
    """QRIS-style payment; stays pending until someone confirms it out of band."""

    name = "qris"

    def settle(self, total, amount_paid=None):
        return None

    def confirm(self, total: float, success: bool) -> Settlement:
        if not success:
            raise PaymentRejected("QRIS payment failed")
        return Settlement(self.name, total, 0, reference=f"FAKE_QRIS_{_millis()}")


class GatewayPayment(PaymentMethod):
    """Midtrans Snap: the backend issues a token, the client runs the popup."""

    name = "midtrans"

    def __init__(self, client: MidtransClient):
        self.client = client

    def settle(self, total, amount_paid=None):
        return None

    @staticmethod
    def new_order_id() -> str:
        return f"TRX-{_millis()}-{uuid.uuid4().hex[:9]}"

    async def request_token(self, order_id: str, total: float, lines: Iterable[CartLine], customer: Optional[dict] = None) -> dict:
        item_details = [
            {
                "id": line.product.id,
                "name": line.product.name,
                "price": line.product.price,
                "quantity": line.quantity,
            }
            for line in lines
        ]
        try:
            return await self.client.create_transaction(
                order_id=order_id,
                gross_amount=total,
                item_details=item_details,
                customer_details=customer or DEFAULT_CUSTOMER,
            )
        except (MidtransError, httpx.RequestError) as e:
            raise GatewayError(f"Failed to get Midtrans token: {e}") from e

    def resolve(self, total: float, outcome: GatewayOutcome, reference: Optional[str] = None) -> Optional[Settlement]:
        if outcome == GatewayOutcome.SUCCESS:
            return Settlement(self.name, total, 0, reference=reference)
        if outcome == GatewayOutcome.ERROR:
            raise GatewayError("Midtrans payment failed")
        # pending / closed popup: nothing to settle yet
        return None


DEFAULT_CUSTOMER = {
    "first_name": "Customer",
    "last_name": "POS",
    "email": "customer@example.com",
    "phone": "081234567890",
}


def payment_method_for(name: str, gateway_client: Optional[MidtransClient] = None) -> PaymentMethod:
    method = (name or "").strip().lower()
    if not method:
        raise PaymentRejected("Payment method is required")
    if method == CashPayment.name:
        return CashPayment()
    if method == ScanCodePayment.name:
        return ScanCodePayment()
    if method == GatewayPayment.name:
        return GatewayPayment(gateway_client or midtrans_client)
    return InstantPayment(method)
