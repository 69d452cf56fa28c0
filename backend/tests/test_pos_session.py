"""
Cart edits and begin_checkout on one register session are serialised, so a
frozen total always matches the cart that was frozen.
"""

import threading

import pytest

from services.cart import ProductSnapshot
from services.checkout import CheckoutState, CheckoutStateError
from services.pos_session import PosSession

CHEAP = ProductSnapshot(id=1, name="Pencil", price=100, stock=10, barcode="100")
DEAR = ProductSnapshot(id=2, name="Stapler", price=900, stock=10, barcode="900")


class CatalogOnlyStore:
    def list_products(self):
        return [CHEAP, DEAR]

    def insert_sales(self, rows):
        return list(range(1, len(rows) + 1))

    def update_stock(self, product_id, stock):
        pass


@pytest.fixture
def session():
    session = PosSession(1, CatalogOnlyStore())
    session.add_product(CHEAP.id)
    return session


class TestEditLock:

    def test_begin_waits_for_edit_in_flight(self, session):
        entered, release = threading.Event(), threading.Event()
        original_add = session.cart.add

        def slow_add(product):
            entered.set()
            release.wait(timeout=5)
            return original_add(product)

        session.cart.add = slow_add
        totals = []

        editor = threading.Thread(target=session.add_product, args=(DEAR.id,))
        editor.start()
        assert entered.wait(timeout=5)

        checkout = threading.Thread(target=lambda: totals.append(session.begin_checkout()))
        checkout.start()
        checkout.join(timeout=0.2)
        assert checkout.is_alive()

        release.set()
        editor.join(timeout=5)
        checkout.join(timeout=5)

        assert totals == [1000]
        assert session.checkout.total == session.cart.total() == 1000

    def test_edits_rejected_after_begin(self, session):
        session.begin_checkout()
        with pytest.raises(CheckoutStateError):
            session.add_product(DEAR.id)
        with pytest.raises(CheckoutStateError):
            session.clear_cart()
        assert session.cart.total() == 100

    def test_cancel_unlocks_cart(self, session):
        session.begin_checkout()
        session.cancel_checkout()
        assert session.checkout.state == CheckoutState.IDLE
        session.add_product(DEAR.id)
        assert session.cart.total() == 1000

    def test_failed_edit_releases_lock(self, session):
        session.begin_checkout()
        with pytest.raises(CheckoutStateError):
            session.remove(CHEAP.id)
        session.cancel_checkout()
        session.remove(CHEAP.id)
        assert session.cart.is_empty()
