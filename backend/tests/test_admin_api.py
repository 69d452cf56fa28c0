"""
Staff account management and the audit log (admin only).
"""

import pytest

from models.log import Log


class TestUsers:

    def test_create_defaults_to_cashier(self, client, db_session, admin_headers):
        resp = client.post("/users", json={"username": "Budi", "email": "Budi@Example.com", "password": "secret1"},
                           headers=admin_headers)
        assert resp.status_code == 201
        body = resp.json()
        assert body["role"] == "cashier"
        assert body["email"] == "budi@example.com"
        assert "password" not in body and "password_hash" not in body

    def test_duplicate_email(self, client, admin, admin_headers):
        resp = client.post("/users", json={"username": "x", "email": admin.email, "password": "secret1"},
                           headers=admin_headers)
        assert resp.status_code == 409

    @pytest.mark.parametrize("body", [
        {"username": "x", "email": "x@example.com", "password": "short"},
        {"username": "x", "email": "not-an-email", "password": "secret1"},
        {"username": "x", "email": "x@example.com", "password": "secret1", "role": "owner"},
    ])
    def test_validation(self, client, admin_headers, body):
        assert client.post("/users", json=body, headers=admin_headers).status_code == 422

    def test_new_account_can_log_in(self, client, admin_headers):
        client.post("/users", json={"username": "Sari", "email": "sari@example.com", "password": "secret1",
                                    "role": "manager"}, headers=admin_headers)
        resp = client.post("/login", json={"email": "sari@example.com", "password": "secret1"})
        assert resp.status_code == 200
        assert resp.json()["user"]["role"] == "manager"

    def test_change_role(self, client, admin_headers, cashier):
        resp = client.put(f"/users/{cashier.id}/role", json={"role": "manager"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["role"] == "manager"

    def test_list_and_search(self, client, admin_headers, cashier, manager):
        body = client.get("/users", params={"q": "manager"}, headers=admin_headers).json()
        assert [u["email"] for u in body["items"]] == [manager.email]
        body = client.get("/users", params={"role": "cashier"}, headers=admin_headers).json()
        assert body["total"] == 1

    def test_cannot_delete_self(self, client, admin, admin_headers):
        resp = client.delete(f"/users/{admin.id}", headers=admin_headers)
        assert resp.status_code == 400

    def test_delete_other(self, client, admin_headers, cashier):
        assert client.delete(f"/users/{cashier.id}", headers=admin_headers).status_code == 200
        assert client.delete(f"/users/{cashier.id}", headers=admin_headers).status_code == 404


class TestLogs:

    def test_admin_reads_filtered_logs(self, client, db_session, admin, admin_headers):
        client.post("/login", json={"email": admin.email, "password": "wrong-password"})
        client.post("/login", json={"email": admin.email, "password": "secret123"})

        body = client.get("/logs", params={"action": "LOGIN", "status": "fail"}, headers=admin_headers).json()
        assert body["total"] == 1
        assert body["items"][0]["meta"]["email"] == admin.email

    def test_manager_denied(self, client, manager_headers):
        assert client.get("/logs", headers=manager_headers).status_code == 403
