"""HTTP surface for checkout, sale listing and sale lookup."""

import pytest

from grocerpos.models import ProductBatch, Sale


@pytest.fixture
def stocked(make_product, make_batch):
    product = make_product(selling_price_cents=1000, tax_rate_bps=1000)
    make_batch(product, 5, purchase_price_cents=600, expires_in_days=2)
    make_batch(product, 20, purchase_price_cents=650)
    return product


def test_checkout_returns_sale_with_lines(client, db_session, auth_headers, stocked):
    resp = client.post(
        "/api/sales/",
        json={"items": [{"product_id": stocked.id, "quantity": 8}], "payment_method": "CASH"},
        headers=auth_headers("CASHIER"),
    )

    assert resp.status_code == 201
    body = resp.get_json()
    assert body["sale"]["total_cents"] == 8800
    assert body["sale"]["tax_cents"] == 800
    assert body["cost_of_goods_sold_cents"] == 4950
    assert body["gross_profit_cents"] == 3850
    assert [line["quantity"] for line in body["sale"]["lines"]] == [5, 3]
    assert resp.headers["X-RateLimit-Limit"] == "100"


def test_checkout_validation_errors_are_400(client, db_session, auth_headers, stocked):
    headers = auth_headers("CASHIER")

    for payload in (
        {"items": [], "payment_method": "CASH"},
        {"items": [{"product_id": stocked.id, "quantity": 0}], "payment_method": "CASH"},
        {"items": [{"product_id": stocked.id, "quantity": -1}], "payment_method": "CASH"},
        {"items": [{"product_id": stocked.id, "quantity": 1.5}], "payment_method": "CASH"},
        {"items": [{"product_id": stocked.id, "quantity": 1}], "payment_method": "BARTER"},
        {"items": [{"product_id": stocked.id, "quantity": 1}], "payment_method": "CASH", "discount_cents": -5},
        {"items": [{"product_id": stocked.id, "quantity": 1}], "payment_method": "CASH", "surprise": True},
    ):
        resp = client.post("/api/sales/", json=payload, headers=headers)
        assert resp.status_code == 400, payload

    assert db_session.query(Sale).count() == 0


def test_checkout_insufficient_stock_reports_details(client, db_session, auth_headers, stocked):
    resp = client.post(
        "/api/sales/",
        json={"items": [{"product_id": stocked.id, "quantity": 26}], "payment_method": "CASH"},
        headers=auth_headers("CASHIER"),
    )

    assert resp.status_code == 400
    body = resp.get_json()
    assert body["details"]["available"] == 25
    assert body["details"]["requested"] == 26
    total = sum(b.quantity for b in db_session.query(ProductBatch).filter_by(product_id=stocked.id))
    assert total == 25


def test_checkout_unknown_product_is_404(client, db_session, auth_headers):
    resp = client.post(
        "/api/sales/",
        json={"items": [{"product_id": 31337, "quantity": 1}], "payment_method": "CASH"},
        headers=auth_headers("CASHIER"),
    )
    assert resp.status_code == 404


def test_accountant_cannot_checkout(client, db_session, auth_headers, stocked):
    resp = client.post(
        "/api/sales/",
        json={"items": [{"product_id": stocked.id, "quantity": 1}], "payment_method": "CASH"},
        headers=auth_headers("ACCOUNTANT"),
    )
    assert resp.status_code == 403


def test_list_and_get_sales(client, db_session, auth_headers, stocked):
    headers = auth_headers("MANAGER")
    for _ in range(3):
        client.post(
            "/api/sales/",
            json={"items": [{"product_id": stocked.id, "quantity": 1}], "payment_method": "CARD"},
            headers=headers,
        )

    resp = client.get("/api/sales/?page=1&limit=2", headers=headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "total_pages": 2}
    assert len(body["sales"]) == 2

    sale_id = body["sales"][0]["id"]
    resp = client.get(f"/api/sales/{sale_id}", headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()["sale"]["lines"][0]["product_id"] == stocked.id

    assert client.get("/api/sales/999999", headers=headers).status_code == 404
    assert client.get("/api/sales/?limit=0", headers=headers).status_code == 400
    assert client.get("/api/sales/?start_date=yesterday", headers=headers).status_code == 400


def test_unexpected_error_is_500_without_internals(client, db_session, auth_headers, stocked, monkeypatch):
    from grocerpos.services import sales_service

    def boom(**kwargs):
        raise RuntimeError("database exploded")

    monkeypatch.setattr(sales_service, "create_sale", boom)

    resp = client.post(
        "/api/sales/",
        json={"items": [{"product_id": stocked.id, "quantity": 1}], "payment_method": "CASH"},
        headers=auth_headers("CASHIER"),
    )
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Internal server error"}


def test_checkout_is_rate_limited(client, db_session, auth_headers, stocked, app):
    headers = auth_headers("CASHIER")
    limiter = app.extensions["rate_limiter"]
    for _ in range(app.config["RATE_LIMIT_API_MAX"]):
        limiter.check("api", "127.0.0.1")

    resp = client.post(
        "/api/sales/",
        json={"items": [{"product_id": stocked.id, "quantity": 1}], "payment_method": "CASH"},
        headers=headers,
    )
    assert resp.status_code == 429
    assert "Retry-After" in resp.headers
