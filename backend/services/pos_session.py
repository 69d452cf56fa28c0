# backend/services/pos_session.py
import logging
import threading
from contextlib import contextmanager
from typing import Dict, List, Optional

from starlette.concurrency import run_in_threadpool

from services.cart import Cart, CartLine, ProductSnapshot, ProductNotFound
from services.catalog_store import CatalogStore, catalog_store
from services.checkout import CheckoutOrchestrator, CheckoutResult, CheckoutState, CheckoutStateError
from services.payments import (
    GatewayOutcome, GatewayPayment, PaymentRejected, ScanCodePayment, Settlement,
    payment_method_for,
)
from utils.midtrans_client import MidtransClient

logger = logging.getLogger(__name__)


class PosSession:
    """Everything one logged-in cashier works with at the register.

    Holds the cart, the catalog snapshot the cart was built from, and the
    checkout in progress. Created on first use and dropped on logout.
    """

    def __init__(self, user_id: int, store: CatalogStore):
        self.user_id = user_id
        self.store = store
        self.cart = Cart()
        self.catalog: List[ProductSnapshot] = []
        self.checkout = CheckoutOrchestrator(self.cart, store, cashier_id=user_id)
        # Serialises cart edits against begin_checkout; route handlers run on worker threads
        self._lock = threading.Lock()

    # -- catalog ----------------------------------------------------------

    def refresh_catalog(self) -> List[ProductSnapshot]:
        self.catalog = self.store.list_products()
        return self.catalog

    def find_product(self, product_id: int) -> ProductSnapshot:
        if not self.catalog:
            self.refresh_catalog()
        for product in self.catalog:
            if product.id == product_id:
                return product
        raise ProductNotFound(f"Product {product_id} not found")

    # -- cart -------------------------------------------------------------

    @contextmanager
    def _editing(self):
        with self._lock:
            if self.checkout.in_progress:
                raise CheckoutStateError("Cart is locked while a checkout is in progress")
            yield

    def add_product(self, product_id: int) -> CartLine:
        with self._editing():
            return self.cart.add(self.find_product(product_id))

    def scan(self, barcode: str) -> CartLine:
        with self._editing():
            if not self.catalog:
                self.refresh_catalog()
            return self.cart.add_by_barcode(barcode, self.catalog)

    def set_quantity(self, product_id: int, quantity: int) -> Optional[CartLine]:
        with self._editing():
            return self.cart.set_quantity(product_id, quantity)

    def remove(self, product_id: int) -> None:
        with self._editing():
            self.cart.remove(product_id)

    def clear_cart(self) -> None:
        with self._editing():
            self.cart.clear()

    # -- checkout ---------------------------------------------------------

    def begin_checkout(self) -> float:
        with self._lock:
            return self.checkout.begin()

    async def pay(self, method_name: str, amount_paid: Optional[float] = None,
                  gateway_client: Optional[MidtransClient] = None, customer: Optional[dict] = None) -> dict:
        """Run one payment attempt against the frozen total.

        Returns a dict with ``status`` ``complete`` (and ``result``) or
        ``pending`` (plus gateway token data where applicable).
        """
        if self.checkout.state != CheckoutState.AWAITING_PAYMENT:
            raise CheckoutStateError("Start a checkout before paying")
        if self.checkout.pending_method:
            raise CheckoutStateError(f"A {self.checkout.pending_method} payment is still pending")
        total = self.checkout.total
        method = payment_method_for(method_name, gateway_client)

        if isinstance(method, GatewayPayment):
            order_id = method.new_order_id()
            self.checkout.mark_pending(method.name, order_id)
            try:
                token = await method.request_token(order_id, total, self.cart.lines, customer)
            except Exception:
                self.checkout.clear_pending()
                raise
            return {"status": "pending", "payment_method": method.name, "order_id": order_id, **token}

        settlement = method.settle(total, amount_paid)
        if settlement is None:
            self.checkout.mark_pending(method.name)
            return {"status": "pending", "payment_method": method.name}
        return {"status": "complete", "result": await self.complete(settlement)}

    async def gateway_callback(self, outcome: GatewayOutcome, reference: Optional[str] = None,
                               gateway_client: Optional[MidtransClient] = None) -> dict:
        if self.checkout.pending_method != GatewayPayment.name:
            raise CheckoutStateError("No gateway payment is pending")
        method = payment_method_for(GatewayPayment.name, gateway_client)
        # The order id issued with the Snap token identifies the payment when the
        # register reports no transaction id of its own
        reference = reference or self.checkout.pending_order_id
        try:
            settlement = method.resolve(self.checkout.total, outcome, reference)
        except PaymentRejected:
            self.checkout.clear_pending()
            raise
        if settlement is None:
            if outcome == GatewayOutcome.CLOSE:
                self.checkout.clear_pending()
                return {"status": "cancelled"}
            return {"status": "pending", "payment_method": method.name}
        self.checkout.clear_pending()
        return {"status": "complete", "result": await self.complete(settlement)}

    async def confirm_scan_payment(self, success: bool) -> dict:
        if self.checkout.pending_method != ScanCodePayment.name:
            raise CheckoutStateError("No QRIS payment is pending")
        try:
            settlement = ScanCodePayment().confirm(self.checkout.total, success)
        except PaymentRejected:
            self.checkout.clear_pending()
            raise
        self.checkout.clear_pending()
        return {"status": "complete", "result": await self.complete(settlement)}

    async def complete(self, settlement: Settlement) -> CheckoutResult:
        result = await self.checkout.settle(settlement)
        try:
            await run_in_threadpool(self.refresh_catalog)
        except Exception as e:
            # The sale is recorded; a stale snapshot is refreshed on next use
            logger.warning("Catalog refresh after checkout failed: %s", e)
            self.catalog = []
        return result

    def cancel_checkout(self) -> None:
        with self._lock:
            self.checkout.cancel()


class SessionRegistry:
    def __init__(self, store: CatalogStore = catalog_store):
        self.store = store
        self._sessions: Dict[int, PosSession] = {}
        self._lock = threading.Lock()

    def get(self, user_id: int) -> PosSession:
        with self._lock:
            session = self._sessions.get(user_id)
            if session is None:
                session = PosSession(user_id, self.store)
                self._sessions[user_id] = session
            return session

    def discard(self, user_id: int) -> None:
        with self._lock:
            self._sessions.pop(user_id, None)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()


pos_sessions = SessionRegistry()
