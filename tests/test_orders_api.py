import pytest


def _headers(tenant, user="waiter-3"):
    return {"X-Tenant-ID": str(tenant.id), "X-User-ID": user}


@pytest.fixture
def dine_in_order(client, tenant):
    response = client.post(
        "/api/orders",
        json={
            "order_type": "DINE_IN",
            "table_id": tenant.tables["1"],
            "items": [{"product_id": tenant.products["Burger"], "quantity": 2}],
        },
        headers=_headers(tenant),
    )
    assert response.status_code == 201
    return response.get_json()["data"]


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json()["status"] == "ok"


def test_create_order(client, tenant, dine_in_order):
    assert dine_in_order["order_number"] == 1
    assert dine_in_order["order_type"] == "dine_in"
    assert dine_in_order["status"] == "pending"
    assert dine_in_order["total"] == "17.00"
    assert dine_in_order["user_id"] == "waiter-3"
    assert dine_in_order["table"]["status"] == "occupied"
    assert dine_in_order["items"][0]["line_total"] == "17.00"


def test_missing_tenant_header(client):
    response = client.get("/api/orders")
    assert response.status_code == 400
    body = response.get_json()
    assert body["status"] == "error"
    assert "X-Tenant-ID" in body["error"]


def test_non_numeric_tenant_header(client):
    response = client.get("/api/orders", headers={"X-Tenant-ID": "abc"})
    assert response.status_code == 400


def test_invalid_body_is_a_400(client, tenant):
    response = client.post(
        "/api/orders", json={"order_type": "takeaway", "items": []}, headers=_headers(tenant)
    )
    assert response.status_code == 400
    assert response.get_json()["details"]["code"] == "VALIDATION_ERROR"


def test_missing_table_is_a_400(client, tenant):
    response = client.post(
        "/api/orders",
        json={"order_type": "dine_in", "items": [{"product_id": tenant.products["Soda"]}]},
        headers=_headers(tenant),
    )
    assert response.status_code == 400
    assert response.get_json()["details"]["code"] == "MISSING_TABLE"


def test_order_of_another_tenant_is_a_404(client, other_tenant, dine_in_order):
    response = client.get(f"/api/orders/{dine_in_order['id']}", headers=_headers(other_tenant))
    assert response.status_code == 404
    assert response.get_json()["details"]["code"] == "ORDER_NOT_FOUND"


def test_add_items(client, tenant, dine_in_order):
    response = client.post(
        f"/api/orders/{dine_in_order['id']}/items",
        json={"items": [{"product_id": tenant.products["Fries"]}]},
        headers=_headers(tenant),
    )
    assert response.status_code == 200
    assert response.get_json()["data"]["total"] == "20.00"


def test_invalid_transition_is_a_409(client, tenant, dine_in_order):
    response = client.patch(
        f"/api/orders/{dine_in_order['id']}/status",
        json={"status": "served"},
        headers=_headers(tenant),
    )
    assert response.status_code == 409
    details = response.get_json()["details"]
    assert details["code"] == "INVALID_TRANSITION"
    assert details["current"] == "pending"
    assert details["requested"] == "served"


def test_update_item_status(client, tenant, dine_in_order):
    item_id = dine_in_order["items"][0]["id"]
    response = client.patch(
        f"/api/orders/{dine_in_order['id']}/items/{item_id}/status",
        json={"status": "preparing"},
        headers=_headers(tenant),
    )
    assert response.status_code == 200
    assert response.get_json()["data"]["items"][0]["status"] == "preparing"


def test_pay_order_flow(client, tenant, dine_in_order):
    url = f"/api/orders/{dine_in_order['id']}/pay"

    short = client.post(
        url,
        json={
            "payment_method": "mixed",
            "payments": [
                {"method": "cash", "amount": "10.00"},
                {"method": "card", "amount": "6.99"},
            ],
        },
        headers=_headers(tenant),
    )
    assert short.status_code == 422
    assert short.get_json()["details"] == {
        "code": "INSUFFICIENT_PAYMENT",
        "paid": "16.99",
        "total": "17.00",
    }

    paid = client.post(url, json={"payment_method": "cash"}, headers=_headers(tenant))
    assert paid.status_code == 200
    data = paid.get_json()["data"]
    assert data["status"] == "paid"
    assert data["table"]["status"] == "cleaning"
    assert data["payments"] == [{"method": "cash", "amount": "17.00"}]

    again = client.post(url, json={"payment_method": "cash"}, headers=_headers(tenant))
    assert again.status_code == 409
    assert again.get_json()["details"]["code"] == "ALREADY_PAID"


def test_cancel_order(client, tenant, dine_in_order):
    response = client.post(
        f"/api/orders/{dine_in_order['id']}/cancel",
        json={"reason": "customer left"},
        headers=_headers(tenant),
    )
    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data["status"] == "cancelled"
    assert data["notes"] == "Cancelled: customer left"
    assert data["table"]["status"] == "available"

    closed = client.post(
        f"/api/orders/{dine_in_order['id']}/cancel", json={}, headers=_headers(tenant)
    )
    assert closed.status_code == 400
    assert closed.get_json()["details"]["code"] == "ORDER_CLOSED"


def test_list_and_views(client, tenant, dine_in_order):
    listing = client.get("/api/orders?per_page=5&status=PENDING", headers=_headers(tenant))
    assert listing.status_code == 200
    assert listing.headers["Cache-Control"].startswith("no-cache")
    body = listing.get_json()["data"]
    assert [order["id"] for order in body["orders"]] == [dine_in_order["id"]]
    assert body["meta"]["per_page"] == 5

    active = client.get("/api/orders/active", headers=_headers(tenant)).get_json()["data"]
    assert len(active) == 1

    kitchen = client.get("/api/orders/kitchen", headers=_headers(tenant)).get_json()["data"]
    assert kitchen[0]["table"] == "1"
    assert kitchen[0]["items"][0]["name"] == "Burger"


def test_daily_summary_endpoint(client, tenant, dine_in_order):
    client.post(
        f"/api/orders/{dine_in_order['id']}/pay",
        json={"payment_method": "card"},
        headers=_headers(tenant),
    )
    response = client.get("/api/orders/summary/daily", headers=_headers(tenant))
    assert response.status_code == 200
    summary = response.get_json()["data"]
    assert summary["total_orders"] == 1
    assert summary["total_revenue"] == "17.00"
    assert summary["top_products"][0]["product_name"] == "Burger"


def test_tables_endpoints(client, tenant):
    created = client.post(
        "/api/tables", json={"number": "10", "capacity": 6}, headers=_headers(tenant)
    )
    assert created.status_code == 201
    assert created.get_json()["data"]["status"] == "available"

    duplicate = client.post("/api/tables", json={"number": "10"}, headers=_headers(tenant))
    assert duplicate.status_code == 409

    listing = client.get("/api/tables", headers=_headers(tenant)).get_json()["data"]
    assert sorted(table["number"] for table in listing) == ["1", "10", "2", "3"]

    missing = client.get("/api/tables/9999", headers=_headers(tenant))
    assert missing.status_code == 404


def test_kitchen_stats_endpoint(client, tenant, dine_in_order):
    response = client.get("/api/orders/kitchen/stats", headers=_headers(tenant))
    assert response.status_code == 200
    assert response.get_json()["data"] == {
        "pending": 1,
        "preparing": 0,
        "ready": 0,
        "served": 0,
        "total": 1,
    }


def test_oversized_ids_never_reach_the_database(client, tenant):
    too_big = 2**63

    header = client.get("/api/orders", headers={"X-Tenant-ID": str(too_big)})
    assert header.status_code == 400

    order = client.post(
        f"/api/orders/{too_big}/pay", json={"payment_method": "cash"}, headers=_headers(tenant)
    )
    assert order.status_code == 404
    assert order.get_json()["details"]["code"] == "ORDER_NOT_FOUND"

    item = client.post(
        "/api/orders",
        json={
            "order_type": "takeaway",
            "items": [{"product_id": tenant.products["Soda"], "quantity": too_big}],
        },
        headers=_headers(tenant),
    )
    assert item.status_code == 400
