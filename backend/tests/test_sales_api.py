"""
Sales ledger: history filters, latest sales, transactions and quick sale.
"""

import uuid
from datetime import datetime

import pytest

from models.product import Product
from models.sale import Sale


@pytest.fixture
def add_sale(db_session):
    def _add(product_id, quantity=1, price=10000, when=None, transaction_id=None):
        sale = Sale(
            product_id=product_id, quantity=quantity, sale_price=price,
            transaction_id=transaction_id or str(uuid.uuid4()),
            sale_date=when or datetime.now(),
            payment_method="cash", amount_paid=price * quantity, change_given=0,
        )
        db_session.add(sale)
        db_session.commit()
        return sale
    return _add


class TestHistory:

    def test_date_range_includes_whole_end_day(self, client, manager_headers, widget, add_sale):
        add_sale(widget.id, when=datetime(2026, 3, 1, 9, 0))
        add_sale(widget.id, when=datetime(2026, 3, 5, 23, 59))
        add_sale(widget.id, when=datetime(2026, 3, 6, 0, 0))

        resp = client.get("/sales", params={"start_date": "2026-03-01", "end_date": "2026-03-05"},
                          headers=manager_headers)
        assert resp.status_code == 200
        assert resp.json()["total"] == 2

    def test_search_by_product_name(self, client, manager_headers, widget, make_product, add_sale):
        gadget = make_product("Gadget", barcode="222")
        add_sale(widget.id)
        add_sale(gadget.id)

        body = client.get("/sales", params={"q": "gadg"}, headers=manager_headers).json()
        assert [s["product_name"] for s in body["items"]] == ["Gadget"]

    def test_bad_date(self, client, manager_headers):
        assert client.get("/sales", params={"start_date": "03/01/2026"}, headers=manager_headers).status_code == 400

    def test_newest_first_with_line_totals(self, client, admin_headers, widget, add_sale):
        add_sale(widget.id, quantity=1, when=datetime(2026, 1, 1))
        add_sale(widget.id, quantity=3, when=datetime(2026, 2, 1))
        items = client.get("/sales", headers=admin_headers).json()["items"]
        assert [s["line_total"] for s in items] == [30000, 10000]


class TestLatest:

    def test_rows_without_product_are_dropped(self, client, cashier_headers, widget, add_sale):
        add_sale(widget.id)
        add_sale(None)
        items = client.get("/sales/latest", headers=cashier_headers).json()
        assert len(items) == 1
        assert items[0]["product_name"] == "Widget"

    def test_limited_to_ten(self, client, cashier_headers, widget, add_sale):
        for _ in range(12):
            add_sale(widget.id)
        assert len(client.get("/sales/latest", headers=cashier_headers).json()) == 10


class TestTransaction:

    def test_lines_share_transaction_id(self, client, cashier_headers, widget, make_product, add_sale):
        gadget = make_product("Gadget", barcode="222")
        add_sale(widget.id, transaction_id="tx-1")
        add_sale(gadget.id, transaction_id="tx-1")
        add_sale(widget.id, transaction_id="tx-2")

        rows = client.get("/sales/transactions/tx-1", headers=cashier_headers).json()
        assert len(rows) == 2
        assert client.get("/sales/transactions/nope", headers=cashier_headers).status_code == 404


class TestQuickSale:

    def test_sells_and_decrements(self, client, db_session, manager_headers, widget):
        resp = client.post("/sales/quick", json={"product_id": widget.id, "quantity": 2}, headers=manager_headers)
        assert resp.status_code == 201
        assert resp.json()[0]["line_total"] == 20000

        db_session.expire_all()
        assert db_session.query(Product).filter(Product.id == widget.id).one().stock == 3

    def test_cannot_exceed_stock(self, client, manager_headers, widget):
        resp = client.post("/sales/quick", json={"product_id": widget.id, "quantity": 6}, headers=manager_headers)
        assert resp.status_code == 400

    def test_cashier_denied(self, client, cashier_headers, widget):
        resp = client.post("/sales/quick", json={"product_id": widget.id, "quantity": 1}, headers=cashier_headers)
        assert resp.status_code == 403
