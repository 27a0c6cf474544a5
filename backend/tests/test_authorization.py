"""
Authorization tests.

Verifies:
- Unauthenticated requests return 401
- Clerk role denied product management and debt creation (403, logged)
- Clerk role can record payments, sales and expenses but not delete expenses
- Login, logout and session revocation
"""

import pytest

from trackey.models import Expense, SecurityEvent, SessionToken
from trackey.services import debt_service, expense_service, inventory_service

from conftest import IMEI_1, PASSWORD, auth_headers, get_auth_token


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/debts"),
            ("POST", "/api/debts"),
            ("GET", "/api/debts/1"),
            ("GET", "/api/debts/1/payments"),
            ("POST", "/api/debts/1/payments"),
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("GET", "/api/products/1"),
            ("PUT", "/api/products/1"),
            ("DELETE", "/api/products/1"),
            ("DELETE", f"/api/products/1/devices/{IMEI_1}"),
            ("POST", "/api/devices/status"),
            ("POST", "/api/sales"),
            ("GET", "/api/expenses"),
            ("POST", "/api/expenses"),
            ("GET", "/api/expenses/1"),
            ("PUT", "/api/expenses/1"),
            ("DELETE", "/api/expenses/1"),
            ("POST", "/api/auth/logout"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/debts", headers=auth_headers("not-a-token"))
        assert resp.status_code == 401

    def test_health_is_public(self, client, db_session):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "healthy"


# =============================================================================
# LOGIN / LOGOUT
# =============================================================================


class TestLogin:

    def test_login_returns_token_and_tenant(self, client, admin_a, org_a, store_a):
        resp = client.post("/api/auth/login", json={
            "org_code": org_a.code, "username": admin_a.username, "password": PASSWORD,
        })

        assert resp.status_code == 200
        assert resp.json["token"]
        assert resp.json["store_id"] == store_a.id
        assert "MANAGE_PRODUCTS" in resp.json["permissions"]

    def test_wrong_password_logged(self, client, db_session, admin_a, org_a):
        resp = client.post("/api/auth/login", json={
            "org_code": org_a.code, "username": admin_a.username, "password": "Wrong1234",
        })

        assert resp.status_code == 401
        event = db_session.query(SecurityEvent).filter_by(event_type="LOGIN_FAILED").one()
        assert event.org_id == org_a.id

    def test_wrong_org_code(self, client, admin_a, org_b):
        assert get_auth_token(client, org_b.code, admin_a.username) is None

    def test_missing_fields(self, client, db_session):
        resp = client.post("/api/auth/login", json={"username": "x"})
        assert resp.status_code == 400

    def test_logout_revokes_token(self, client, db_session, admin_a, org_a):
        token = get_auth_token(client, org_a.code, admin_a.username)

        assert client.post("/api/auth/logout", headers=auth_headers(token)).status_code == 200
        assert client.get("/api/debts", headers=auth_headers(token)).status_code == 401
        assert db_session.query(SessionToken).filter_by(is_revoked=True).count() == 1

    def test_deactivated_user_loses_session(self, client, db_session, admin_a, org_a):
        token = get_auth_token(client, org_a.code, admin_a.username)
        admin_a.is_active = False
        db_session.commit()

        assert client.get("/api/debts", headers=auth_headers(token)).status_code == 401

    def test_me(self, client, clerk_a_headers, store_a):
        resp = client.get("/api/auth/me", headers=clerk_a_headers)

        assert resp.status_code == 200
        assert resp.json["user"]["role"] == "clerk"
        assert "MANAGE_PRODUCTS" not in resp.json["permissions"]


# =============================================================================
# CLERK PERMISSIONS (403)
# =============================================================================


class TestClerkPermissions:

    def test_cannot_create_products(self, client, db_session, clerk_a_headers):
        resp = client.post("/api/products", json={"name": "iPhone", "device_ids": [IMEI_1]}, headers=clerk_a_headers)

        assert resp.status_code == 403
        assert resp.json["required_permission"] == "MANAGE_PRODUCTS"
        assert db_session.query(SecurityEvent).filter_by(event_type="PERMISSION_DENIED").count() == 1

    def test_cannot_create_debts(self, client, clerk_a_headers):
        resp = client.post("/api/debts", json={"owed": "100", "customer_name": "Ada"}, headers=clerk_a_headers)
        assert resp.status_code == 403

    def test_cannot_delete_products(self, client, tenant_a, clerk_a_headers):
        product = inventory_service.create_products(tenant_a, [{"name": "iPhone", "device_ids": [IMEI_1]}])[0]
        resp = client.delete(f"/api/products/{product.id}", headers=clerk_a_headers)
        assert resp.status_code == 403

    def test_can_record_payment(self, client, tenant_a, clerk_a_headers):
        row = debt_service.create_debt(tenant_a, owed="100", customer_name="Ada")

        resp = client.post(f"/api/debts/{row.debt.id}/payments", json={"amount": "40"}, headers=clerk_a_headers)

        assert resp.status_code == 201
        assert resp.json["debt"]["remaining"] == "60.00"

    def test_can_record_sale(self, client, tenant_a, clerk_a_headers):
        inventory_service.create_products(tenant_a, [{"name": "iPhone", "device_ids": [IMEI_1]}])

        resp = client.post("/api/sales", json={"device_id": IMEI_1}, headers=clerk_a_headers)

        assert resp.status_code == 201

    def test_can_record_and_edit_expense(self, client, clerk_a_headers):
        resp = client.post(
            "/api/expenses", json={"expense_date": "2026-03-01", "expense_type": "Fuel", "amount": "40"},
            headers=clerk_a_headers,
        )
        assert resp.status_code == 201

        resp = client.put(f"/api/expenses/{resp.json['expense']['id']}", json={"amount": "45"}, headers=clerk_a_headers)
        assert resp.status_code == 200

    def test_cannot_delete_expense(self, client, db_session, tenant_a, clerk_a_headers):
        expense = expense_service.create_expense(
            tenant_a, {"expense_date": "2026-03-01", "expense_type": "Rent", "amount": "1500"}
        )

        resp = client.delete(f"/api/expenses/{expense.id}", headers=clerk_a_headers)

        assert resp.status_code == 403
        assert resp.json["required_permission"] == "DELETE_EXPENSES"
        assert db_session.query(Expense).count() == 1
