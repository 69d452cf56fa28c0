"""
Payment capture: cash change, mock references, QRIS and the Midtrans
token client.
"""

import asyncio
import base64
import json
import re

import httpx
import pytest

from services.cart import CartLine, ProductSnapshot
from services.payments import (
    CashPayment, GatewayError, GatewayOutcome, GatewayPayment, InstantPayment,
    PaymentRejected, ScanCodePayment, DEFAULT_CUSTOMER, payment_method_for,
)
from utils.midtrans_client import MidtransClient, MidtransError


class TestCash:

    def test_change_is_paid_minus_total(self):
        s = CashPayment().settle(20000, 25000)
        assert (s.payment_method, s.amount_paid, s.change_given) == ("cash", 25000, 5000)
        assert s.reference is None

    def test_exact_amount(self):
        assert CashPayment().settle(20000, 20000).change_given == 0

    def test_insufficient(self):
        with pytest.raises(PaymentRejected, match="Insufficient"):
            CashPayment().settle(20000, 19999)

    @pytest.mark.parametrize("paid", [None, 0, -5])
    def test_invalid_amount(self, paid):
        with pytest.raises(PaymentRejected, match="Invalid"):
            CashPayment().settle(20000, paid)


class TestOtherMethods:

    def test_card_settles_exact_total_with_mock_reference(self):
        s = InstantPayment("card").settle(15000)
        assert s.amount_paid == 15000
        assert s.change_given == 0
        assert s.reference.startswith("MOCK-")

    def test_qris_stays_pending_until_confirmed(self):
        method = ScanCodePayment()
        assert method.settle(15000) is None
        s = method.confirm(15000, success=True)
        assert s.reference.startswith("FAKE_QRIS_")
        with pytest.raises(PaymentRejected):
            method.confirm(15000, success=False)

    def test_method_lookup(self):
        assert isinstance(payment_method_for("Cash"), CashPayment)
        assert isinstance(payment_method_for("qris"), ScanCodePayment)
        assert isinstance(payment_method_for("midtrans"), GatewayPayment)
        assert payment_method_for("card").name == "card"
        with pytest.raises(PaymentRejected):
            payment_method_for("  ")


class FakeGatewayClient:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    async def create_transaction(self, order_id, gross_amount, item_details, customer_details):
        self.calls.append((order_id, gross_amount, item_details, customer_details))
        if self.error:
            raise self.error
        return {"snap_token": "snap-token", "redirect_url": "https://pay.example.com/snap"}


class TestGateway:

    def test_order_id_format(self):
        assert re.match(r"^TRX-\d+-[0-9a-f]{9}$", GatewayPayment.new_order_id())

    def test_token_request_carries_cart_lines_and_default_customer(self):
        client = FakeGatewayClient()
        line = CartLine(ProductSnapshot(id=3, name="Widget", price=10000, stock=5), quantity=2)
        token = asyncio.run(GatewayPayment(client).request_token("TRX-1-abc", 20000, [line]))

        assert token["snap_token"] == "snap-token"
        order_id, gross, items, customer = client.calls[0]
        assert (order_id, gross) == ("TRX-1-abc", 20000)
        assert items == [{"id": 3, "name": "Widget", "price": 10000, "quantity": 2}]
        assert customer == DEFAULT_CUSTOMER

    def test_provider_error_becomes_gateway_error(self):
        client = FakeGatewayClient(error=MidtransError("denied", status_code=401))
        with pytest.raises(GatewayError):
            asyncio.run(GatewayPayment(client).request_token("TRX-1-abc", 1000, []))

    def test_resolve_outcomes(self):
        method = GatewayPayment(FakeGatewayClient())
        s = method.resolve(20000, GatewayOutcome.SUCCESS, "TRX-1-abc")
        assert (s.payment_method, s.amount_paid, s.reference) == ("midtrans", 20000, "TRX-1-abc")
        assert method.resolve(20000, GatewayOutcome.PENDING) is None
        assert method.resolve(20000, GatewayOutcome.CLOSE) is None
        with pytest.raises(GatewayError):
            method.resolve(20000, GatewayOutcome.ERROR)


class TestMidtransClient:

    def test_posts_snap_request_with_basic_auth(self):
        seen = {}

        def handler(request: httpx.Request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"token": "tok-1", "redirect_url": "https://x/tok-1"})

        client = MidtransClient(
            server_key="SB-server-key", base_url="https://app.sandbox.midtrans.com",
            transport=httpx.MockTransport(handler),
        )
        result = asyncio.run(client.create_transaction(
            "TRX-1-abc", 20000, [{"id": 1, "name": "Widget", "price": 10000, "quantity": 2}], DEFAULT_CUSTOMER,
        ))

        assert result == {"snap_token": "tok-1", "redirect_url": "https://x/tok-1"}
        assert seen["url"] == "https://app.sandbox.midtrans.com/snap/v1/transactions"
        assert seen["auth"] == "Basic " + base64.b64encode(b"SB-server-key:").decode()
        assert seen["body"]["transaction_details"] == {"order_id": "TRX-1-abc", "gross_amount": 20000}
        assert seen["body"]["item_details"][0]["id"] == "1"

    def test_error_response_raises(self):
        def handler(request):
            return httpx.Response(401, json={"error_messages": ["Access denied"]})

        client = MidtransClient(server_key="bad", base_url="https://example.test",
                                transport=httpx.MockTransport(handler))
        with pytest.raises(MidtransError) as exc:
            asyncio.run(client.create_transaction("TRX-1-abc", 1000, [], {}))
        assert exc.value.status_code == 401
