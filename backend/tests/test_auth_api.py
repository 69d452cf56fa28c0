"""
Login, session identity and role gating across the API.
"""

import pytest

from models.log import Log

DEFAULT_PASSWORD = "secret123"


class TestLogin:

    def test_login_is_case_insensitive_on_email(self, client, cashier):
        resp = client.post("/login", json={"email": "Cashier@Example.com", "password": DEFAULT_PASSWORD})
        assert resp.status_code == 200
        body = resp.json()
        assert body["token_type"] == "bearer"
        assert body["user"]["role"] == "cashier"
        assert "password_hash" not in body["user"]

    def test_wrong_password_is_logged(self, client, db_session, cashier):
        resp = client.post("/login", json={"email": cashier.email, "password": "nope-nope"})
        assert resp.status_code == 401
        entry = db_session.query(Log).filter(Log.action == "LOGIN").one()
        assert entry.status == "FAIL"

    def test_me_returns_current_user(self, client, manager, manager_headers):
        resp = client.get("/me", headers=manager_headers)
        assert resp.status_code == 200
        assert resp.json()["email"] == manager.email

    def test_bad_token(self, client, db_session):
        resp = client.get("/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401


class TestRoleMatrix:

    @pytest.mark.parametrize("method,path", [
        ("GET", "/products"),
        ("GET", "/pos/cart"),
        ("GET", "/stats/summary"),
        ("GET", "/sales/latest"),
    ])
    def test_requires_auth(self, client, db_session, method, path):
        resp = client.request(method, path)
        assert resp.status_code in (401, 403)

    @pytest.mark.parametrize("path", ["/pos/cart", "/stats/summary", "/products", "/sales/latest"])
    def test_cashier_reaches_dashboard_and_register(self, client, cashier_headers, path):
        assert client.get(path, headers=cashier_headers).status_code == 200

    @pytest.mark.parametrize("path", ["/sales", "/users", "/logs"])
    def test_cashier_denied_back_office(self, client, cashier_headers, path):
        assert client.get(path, headers=cashier_headers).status_code == 403

    def test_manager_sees_sales_history_but_not_users(self, client, manager_headers):
        assert client.get("/sales", headers=manager_headers).status_code == 200
        assert client.get("/users", headers=manager_headers).status_code == 403

    def test_cashier_cannot_edit_products(self, client, cashier_headers):
        resp = client.post("/products", json={"name": "X", "price": 1, "stock": 1, "barcode": "X1"},
                           headers=cashier_headers)
        assert resp.status_code == 403


class TestLogout:

    def test_logout_drops_register_session(self, client, cashier_headers, widget):
        client.post("/pos/cart/items", json={"product_id": widget.id}, headers=cashier_headers)
        assert client.post("/logout", headers=cashier_headers).status_code == 200
        assert client.get("/pos/cart", headers=cashier_headers).json()["items"] == []
