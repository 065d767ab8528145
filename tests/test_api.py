"""
Tests for the HTTP layer in `api/`.

Runs the FastAPI app against in-memory stores through
`app.dependency_overrides[get_container]`, and checks the status codes the
error handlers assign to each error family.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from api.dependencies import Container, get_container
from api.main import app

TENANT_ID = "tenant-a"
OTHER_TENANT_ID = "tenant-b"
HEADERS = {"X-Tenant-ID": TENANT_ID, "X-User-ID": "user-1"}


@pytest.fixture
def container(customer_store, product_store, stock_store, sale_store, publisher) -> Container:
    return Container(
        customer_store=customer_store,
        product_store=product_store,
        stock_store=stock_store,
        sale_store=sale_store,
        publisher=publisher,
    )


@pytest.fixture
def client(container):
    app.dependency_overrides[get_container] = lambda: container
    yield TestClient(app)
    app.dependency_overrides.clear()


def _seed_catalog(client: TestClient, quantity: int = 10) -> dict:
    customer = client.post(
        "/api/v1/customers",
        json={"name": "Maria Souza", "email": "maria@example.com"},
        headers=HEADERS,
    )
    assert customer.status_code == 201

    product = client.post(
        "/api/v1/products",
        json={"name": "Keyboard", "sku": "kb-01", "price": "100.00", "cost_price": "60.00"},
        headers=HEADERS,
    )
    assert product.status_code == 201

    stock = client.post(
        "/api/v1/stocks",
        json={
            "product_id": product.json()["product_id"],
            "location_name": "Main warehouse",
            "location_code": "wh-1",
            "location_type": "WAREHOUSE",
            "initial_quantity": quantity,
            "minimum_quantity": 2,
        },
        headers=HEADERS,
    )
    assert stock.status_code == 201

    return {
        "customer_id": customer.json()["customer_id"],
        "product_id": product.json()["product_id"],
        "stock_id": stock.json()["stock_id"],
    }


def _open_sale(client: TestClient, customer_id: str) -> str:
    response = client.post("/api/v1/sales", json={"customer_id": customer_id}, headers=HEADERS)
    assert response.status_code == 201
    return response.json()["sale_id"]


def test_health_and_root(client) -> None:
    health = client.get("/health")

    assert health.status_code == 200
    assert health.json()["status"] == "healthy"
    assert client.get("/").json()["docs"] == "/docs"


def test_full_sale_lifecycle(client, publisher) -> None:
    """Create, discount, confirm and pay a sale; stock moves once."""

    ids = _seed_catalog(client)
    sale_id = _open_sale(client, ids["customer_id"])

    response = client.post(
        f"/api/v1/sales/{sale_id}/items",
        json={"product_id": ids["product_id"], "quantity": 1},
        headers=HEADERS,
    )
    assert response.status_code == 200
    assert response.json()["items"][0]["product_sku"] == "KB-01"

    response = client.put(f"/api/v1/sales/{sale_id}/discount", json={"discount_percentage": "10"}, headers=HEADERS)
    assert response.json()["total"] == "90.00"

    response = client.post(f"/api/v1/sales/{sale_id}/confirm", headers=HEADERS)
    assert response.status_code == 200
    assert response.json()["status"] == "CONFIRMED"

    response = client.post(
        f"/api/v1/sales/{sale_id}/payments",
        json={"method": "CASH", "amount": "90.00"},
        headers=HEADERS,
    )
    body = response.json()
    assert body["status"] == "PAID"
    assert body["total_paid"] == "90.00"
    assert body["remaining_amount"] == "0.00"

    movements = client.get(f"/api/v1/stocks/{ids['stock_id']}/movements", headers=HEADERS).json()
    assert [(m["reason"], m["quantity"], m["reference_id"]) for m in movements] == [("SALE", 1, sale_id)]
    assert "SalePaid" in publisher.event_types()


def test_item_update_discount_and_removal(client) -> None:
    ids = _seed_catalog(client)
    sale_id = _open_sale(client, ids["customer_id"])
    item_id = client.post(
        f"/api/v1/sales/{sale_id}/items",
        json={"product_id": ids["product_id"], "quantity": 1},
        headers=HEADERS,
    ).json()["items"][0]["item_id"]

    response = client.patch(f"/api/v1/sales/{sale_id}/items/{item_id}", json={"quantity": 2}, headers=HEADERS)
    assert response.json()["subtotal"] == "200.00"

    response = client.put(
        f"/api/v1/sales/{sale_id}/items/{item_id}/discount",
        json={"discount_fixed": "25.00"},
        headers=HEADERS,
    )
    assert response.json()["items"][0]["discount"] == "25.00"

    response = client.delete(f"/api/v1/sales/{sale_id}/items/{item_id}", headers=HEADERS)
    assert response.json()["items"] == []


def test_cancel_confirmed_sale_over_http(client) -> None:
    ids = _seed_catalog(client)
    sale_id = _open_sale(client, ids["customer_id"])
    client.post(f"/api/v1/sales/{sale_id}/items", json={"product_id": ids["product_id"], "quantity": 3}, headers=HEADERS)
    client.post(f"/api/v1/sales/{sale_id}/confirm", headers=HEADERS)

    response = client.post(f"/api/v1/sales/{sale_id}/cancel", json={"reason": "wrong address"}, headers=HEADERS)

    assert response.status_code == 200
    assert response.json()["status"] == "CANCELLED"

    low = client.get("/api/v1/stocks/low", headers=HEADERS).json()
    assert low == []


def test_stock_endpoints(client) -> None:
    ids = _seed_catalog(client)
    client.post(
        "/api/v1/stocks",
        json={"product_id": ids["product_id"], "location_name": "Store", "location_code": "ST-1", "minimum_quantity": 1},
        headers=HEADERS,
    )

    response = client.post(
        f"/api/v1/stocks/{ids['stock_id']}/add",
        json={"product_id": ids["product_id"], "quantity": 5},
        headers=HEADERS,
    )
    assert response.json()["quantity"] == 15

    response = client.post(
        f"/api/v1/stocks/{ids['stock_id']}/remove",
        json={"product_id": ids["product_id"], "quantity": 2, "reason": "LOSS"},
        headers=HEADERS,
    )
    assert response.json()["quantity"] == 13

    response = client.post(f"/api/v1/stocks/{ids['stock_id']}/adjust", json={"new_quantity": 12}, headers=HEADERS)
    assert response.json()["quantity"] == 12

    response = client.post(
        "/api/v1/stocks/transfer",
        json={"product_id": ids["product_id"], "from_location_code": "WH-1", "to_location_code": "ST-1", "quantity": 4},
        headers=HEADERS,
    )
    assert response.status_code == 200
    assert response.json()["source"]["quantity"] == 8
    assert response.json()["destination"]["quantity"] == 4


@pytest.mark.parametrize(
    "path, payload, status, code",
    [
        ("/api/v1/sales/missing/items", {"product_id": "p", "quantity": 1}, 404, "NOT_FOUND"),
        ("/api/v1/customers", {"name": "", "email": "x@example.com"}, 400, "VALIDATION_ERROR"),
        ("/api/v1/customers", {"email": "x@example.com"}, 400, "VALIDATION_ERROR"),
    ],
)
def test_error_mapping(client, path, payload, status, code) -> None:
    response = client.post(path, json=payload, headers=HEADERS)

    assert response.status_code == status
    assert response.json()["code"] == code
    assert set(response.json()) == {"error", "message", "code"}


def test_insufficient_stock_maps_to_422(client) -> None:
    ids = _seed_catalog(client, quantity=3)
    sale_id = _open_sale(client, ids["customer_id"])

    response = client.post(
        f"/api/v1/sales/{sale_id}/items",
        json={"product_id": ids["product_id"], "quantity": 5},
        headers=HEADERS,
    )

    assert response.status_code == 422
    assert response.json() == {
        "error": "InsufficientStockError",
        "message": "Insufficient stock. Available: 3, Requested: 5",
        "code": "INSUFFICIENT_STOCK",
    }


def test_business_rule_maps_to_422(client) -> None:
    ids = _seed_catalog(client)
    sale_id = _open_sale(client, ids["customer_id"])

    response = client.post(f"/api/v1/sales/{sale_id}/confirm", headers=HEADERS)

    assert response.status_code == 422
    assert response.json()["code"] == "BUSINESS_RULE_ERROR"


def test_tenant_header_is_required_and_isolates_data(client) -> None:
    ids = _seed_catalog(client)

    assert client.get(f"/api/v1/customers/{ids['customer_id']}").status_code == 400
    response = client.get(
        f"/api/v1/customers/{ids['customer_id']}",
        headers={"X-Tenant-ID": OTHER_TENANT_ID},
    )
    assert response.status_code == 404


def test_product_update_and_listing_leave_sale_lines_alone(client) -> None:
    ids = _seed_catalog(client)
    sale_id = _open_sale(client, ids["customer_id"])
    client.post(
        f"/api/v1/sales/{sale_id}/items",
        json={"product_id": ids["product_id"], "quantity": 2},
        headers=HEADERS,
    )

    response = client.patch(f"/api/v1/products/{ids['product_id']}", json={"price": "150.00"}, headers=HEADERS)
    assert response.status_code == 200
    assert response.json()["price"] == "150.00"

    response = client.patch(f"/api/v1/products/{ids['product_id']}", json={"price": "0"}, headers=HEADERS)
    assert response.status_code == 400

    response = client.patch(f"/api/v1/products/{ids['product_id']}", json={}, headers=HEADERS)
    assert response.status_code == 400

    products = client.get("/api/v1/products", params={"search": "kb"}, headers=HEADERS).json()
    assert [p["sku"] for p in products] == ["KB-01"]
    assert client.get("/api/v1/products", params={"is_active": "false"}, headers=HEADERS).json() == []

    sale = client.get(f"/api/v1/sales/{sale_id}", headers=HEADERS).json()
    assert sale["items"][0]["unit_price"] == "100.00"
    assert sale["total"] == "200.00"

    history = client.get(f"/api/v1/customers/{ids['customer_id']}/sales", headers=HEADERS).json()
    assert [s["sale_id"] for s in history] == [sale_id]
