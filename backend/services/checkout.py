# backend/services/checkout.py
"""Checkout state machine.

    IDLE -> AWAITING_PAYMENT -> RECORDING_SALE -> ADJUSTING_STOCK -> COMPLETE

The sale rows are the record of truth and are written first, in one store
call. Stock is adjusted afterwards with one independent update per product;
those updates may partially fail without undoing the sale.
"""
import asyncio
import enum
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from starlette.concurrency import run_in_threadpool

from services.cart import Cart, CartLine
from services.catalog_store import CatalogStore, StoreError
from services.payments import Settlement

logger = logging.getLogger(__name__)


class CheckoutState(str, enum.Enum):
    IDLE = "idle"
    AWAITING_PAYMENT = "awaiting_payment"
    RECORDING_SALE = "recording_sale"
    ADJUSTING_STOCK = "adjusting_stock"
    COMPLETE = "complete"


class CheckoutError(Exception):
    pass


class CheckoutStateError(CheckoutError):
    """The requested step is not valid in the current state."""


class SaleRecordError(CheckoutError):
    """Sale rows could not be written; nothing was committed."""


@dataclass
class CheckoutResult:
    transaction_id: str
    total: float
    settlement: Settlement
    sale_ids: List[int] = field(default_factory=list)
    failed_product_ids: List[int] = field(default_factory=list)

    @property
    def stock_reconciled(self) -> bool:
        return not self.failed_product_ids

    @property
    def warnings(self) -> List[str]:
        if self.stock_reconciled:
            return []
        ids = ", ".join(str(pid) for pid in self.failed_product_ids)
        return [f"Stock reconciliation incomplete for products: {ids}"]


class CheckoutOrchestrator:
    def __init__(self, cart: Cart, store: CatalogStore, cashier_id: Optional[int] = None):
        self.cart = cart
        self.store = store
        self.cashier_id = cashier_id
        self.state = CheckoutState.IDLE
        self.total: Optional[float] = None
        # Method currently waiting for an out-of-band resolution (qris / midtrans)
        self.pending_method: Optional[str] = None
        self.pending_order_id: Optional[str] = None

    @property
    def in_progress(self) -> bool:
        return self.state not in (CheckoutState.IDLE, CheckoutState.COMPLETE)

    def begin(self) -> float:
        if self.in_progress:
            raise CheckoutStateError("A checkout is already in progress")
        if self.cart.is_empty():
            raise CheckoutStateError("Cart is empty")
        self.total = self.cart.total()
        self.pending_method = None
        self.pending_order_id = None
        self.state = CheckoutState.AWAITING_PAYMENT
        return self.total

    def mark_pending(self, method: str, order_id: Optional[str] = None) -> None:
        self._require(CheckoutState.AWAITING_PAYMENT)
        self.pending_method = method
        self.pending_order_id = order_id

    def clear_pending(self) -> None:
        self.pending_method = None
        self.pending_order_id = None

    def cancel(self) -> None:
        if self.state in (CheckoutState.RECORDING_SALE, CheckoutState.ADJUSTING_STOCK):
            raise CheckoutStateError("Sale is already being recorded")
        if self.state == CheckoutState.AWAITING_PAYMENT:
            self._reset()

    async def settle(self, settlement: Settlement) -> CheckoutResult:
        self._require(CheckoutState.AWAITING_PAYMENT)
        # Leave AWAITING_PAYMENT before the first await so a second submission
        # of the same checkout is refused.
        self.state = CheckoutState.RECORDING_SALE
        lines = self.cart.lines
        total = self.total

        transaction_id = str(uuid.uuid4())
        try:
            sale_ids = await self._record_sale(transaction_id, lines, settlement)
        except StoreError as e:
            self._reset()
            raise SaleRecordError(str(e)) from e

        self.state = CheckoutState.ADJUSTING_STOCK
        failed = await self._adjust_stock(lines)
        if failed:
            logger.warning(
                "Transaction %s recorded but stock update failed for products %s",
                transaction_id, failed,
            )

        result = CheckoutResult(
            transaction_id=transaction_id,
            total=total,
            settlement=settlement,
            sale_ids=sale_ids,
            failed_product_ids=failed,
        )
        self.cart.clear()
        self.clear_pending()
        self.state = CheckoutState.COMPLETE
        return result

    async def _record_sale(self, transaction_id: str, lines: List[CartLine], settlement: Settlement) -> List[int]:
        sale_date = datetime.now()
        rows = [
            {
                "product_id": line.product.id,
                "quantity": line.quantity,
                "sale_price": line.product.price,
                "transaction_id": transaction_id,
                "sale_date": sale_date,
                "payment_method": settlement.payment_method,
                "amount_paid": settlement.amount_paid,
                "change_given": settlement.change_given,
                "payment_reference": settlement.reference,
                "cashier_id": self.cashier_id,
            }
            for line in lines
        ]
        return await run_in_threadpool(self.store.insert_sales, rows)

    async def _adjust_stock(self, lines: List[CartLine]) -> List[int]:
        # New stock is computed from the snapshot taken when the product was
        # added to the cart, not re-read from the store.
        updates = [(line.product.id, line.product.stock - line.quantity) for line in lines]
        results = await asyncio.gather(
            *(run_in_threadpool(self.store.update_stock, pid, stock) for pid, stock in updates),
            return_exceptions=True,
        )
        failed = []
        for (pid, _), outcome in zip(updates, results):
            if isinstance(outcome, Exception):
                logger.error("Stock update for product %s failed: %s", pid, outcome)
                failed.append(pid)
        return failed

    def _require(self, state: CheckoutState) -> None:
        if self.state != state:
            raise CheckoutStateError(f"Checkout is {self.state.value}, expected {state.value}")

    def _reset(self) -> None:
        self.state = CheckoutState.IDLE
        self.total = None
        self.clear_pending()
