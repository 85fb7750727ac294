"""Tests for the FastAPI layer: role gate, error mapping and the order endpoints."""

from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from ventas.app import app, get_store
from ventas.auth import create_access_token
from ventas.memory import InMemoryOrderStore
from ventas.repository import SqlOrderStore

ORDER = {
    "date": "2025-01-15T10:30:00",
    "customer": "Acme",
    "details": [
        {"product": "Widget", "quantity": 5, "unit_price": "100.00"},
        {"product": "Gadget", "quantity": 3, "unit_price": "150.00"},
    ],
}


def auth(role, sub="someone@test.com"):
    token = create_access_token({"sub": sub, "role": role})
    return {"Authorization": f"Bearer {token}"}


ADMIN = auth("Admin", "admin@test.com")
VENDOR = auth("Vendor", "vendedor@test.com")


@pytest.fixture(params=["sql", "memory"])
def client(request, session_factory):
    if request.param == "sql":
        def override():
            db = session_factory()
            try:
                yield SqlOrderStore(db)
            finally:
                db.close()
    else:
        store = InMemoryOrderStore()

        def override():
            yield store

    app.dependency_overrides[get_store] = override
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestLogin:
    def test_demo_admin(self, client):
        response = client.post("/login", json={"username": "admin@test.com", "password": "admin123"})
        assert response.status_code == 200
        data = response.json()
        assert data["role"] == "Admin"
        assert data["token_type"] == "bearer"

        headers = {"Authorization": f"Bearer {data['access_token']}"}
        assert client.get("/orders", headers=headers).status_code == 200

    def test_bad_credentials(self, client):
        response = client.post("/login", json={"username": "admin@test.com", "password": "nope"})
        assert response.status_code == 401

    def test_blank_credentials(self, client):
        response = client.post("/login", json={"username": " ", "password": ""})
        assert response.status_code == 400


class TestRoleGate:
    def test_missing_token(self, client):
        assert client.get("/orders").status_code == 401

    def test_garbage_token(self, client):
        response = client.get("/orders", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_expired_token(self, client):
        token = create_access_token({"sub": "a", "role": "Admin"}, expires_delta=timedelta(minutes=-1))
        response = client.get("/orders", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Token expired"

    def test_unknown_role_cannot_read(self, client):
        assert client.get("/orders", headers=auth("Guest")).status_code == 403

    def test_vendor_can_create_and_read(self, client):
        created = client.post("/orders", json=ORDER, headers=VENDOR)
        assert created.status_code == 201
        order_id = created.json()["id"]
        assert client.get(f"/orders/{order_id}", headers=VENDOR).status_code == 200

    def test_vendor_cannot_update_or_delete(self, client):
        order_id = client.post("/orders", json=ORDER, headers=ADMIN).json()["id"]
        assert client.put(f"/orders/{order_id}", json=ORDER, headers=VENDOR).status_code == 403
        assert client.delete(f"/orders/{order_id}", headers=VENDOR).status_code == 403
        assert client.get(f"/orders/{order_id}", headers=ADMIN).status_code == 200


class TestOrders:
    def test_full_flow(self, client):
        created = client.post("/orders", json=ORDER, headers=ADMIN)
        assert created.status_code == 201
        body = created.json()
        assert Decimal(body["total"]) == Decimal("950.00")
        assert body["status"] == "Pending"
        order_id = body["id"]

        fetched = client.get(f"/orders/{order_id}", headers=ADMIN).json()
        assert fetched["customer"] == "Acme"
        assert Decimal(fetched["total"]) == Decimal("950.00")
        assert len(fetched["details"]) == 2

        update = dict(ORDER, details=[{"id": fetched["details"][0]["id"], "product": "Widget", "quantity": 2, "unit_price": "100.00"}])
        updated = client.put(f"/orders/{order_id}", json=update, headers=ADMIN)
        assert updated.status_code == 200
        assert Decimal(updated.json()["total"]) == Decimal("200.00")
        assert len(updated.json()["details"]) == 1

        assert client.delete(f"/orders/{order_id}", headers=ADMIN).status_code == 204
        missing = client.get(f"/orders/{order_id}", headers=ADMIN)
        assert missing.status_code == 404
        assert missing.json()["error_type"] == "NotFoundError"

    def test_duplicate_is_409(self, client):
        assert client.post("/orders", json=ORDER, headers=ADMIN).status_code == 201
        again = client.post("/orders", json=dict(ORDER, date="2025-01-15T18:00:00"), headers=ADMIN)
        assert again.status_code == 409
        assert again.json()["error_type"] == "ConflictError"

    def test_empty_details_is_400(self, client):
        response = client.post("/orders", json=dict(ORDER, details=[]), headers=ADMIN)
        assert response.status_code == 400
        assert response.json()["error_type"] == "ValidationError"

    def test_malformed_body_is_422(self, client):
        response = client.post("/orders", json={"customer": "Acme"}, headers=ADMIN)
        assert response.status_code == 422

    def test_update_and_delete_missing_are_404(self, client):
        assert client.put("/orders/77", json=ORDER, headers=ADMIN).status_code == 404
        assert client.delete("/orders/77", headers=ADMIN).status_code == 404

    def test_paging_and_filters(self, client):
        for day, customer in [(10, "Acme"), (11, "Globex"), (12, "Acme Labs"), (13, "Initech")]:
            order = dict(ORDER, customer=customer, date=f"2025-01-{day}T09:00:00")
            assert client.post("/orders", json=order, headers=VENDOR).status_code == 201

        page = client.get("/orders", params={"page_number": 1, "page_size": 3}, headers=VENDOR).json()
        assert page["total_count"] == 4
        assert page["total_pages"] == 2
        assert page["has_next"] is True
        assert page["has_previous"] is False
        assert [o["customer"] for o in page["items"]] == ["Initech", "Acme Labs", "Globex"]

        filtered = client.get(
            "/orders",
            params={"customer_filter": "acme", "date_from": "2025-01-11T00:00:00"},
            headers=VENDOR,
        ).json()
        assert [o["customer"] for o in filtered["items"]] == ["Acme Labs"]

    def test_page_number_must_be_positive(self, client):
        assert client.get("/orders", params={"page_number": 0}, headers=ADMIN).status_code == 422


def test_health():
    assert TestClient(app).get("/health").json()["ok"] is True
