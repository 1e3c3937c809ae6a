from conftest import CALZADO_URL, HOGAR_URL, SYNC_SECRET
from retail_panel.services import catalog


PRODUCT = {
    "sku": "SKU-1",
    "name": "Desk Lamp",
    "category": "Lighting",
    "cost_price": 50,
    "public_price": 100,
    "stock": 10,
    "type": "hogar",
}


def create_product(client, **overrides):
    resp = client.post("/v1/products", json={**PRODUCT, **overrides})
    assert resp.status_code == 201, resp.text
    return resp.json()


# ---------- Products ----------
def test_create_product_pushes_to_matching_storefront(client, storefront_http):
    body = create_product(client)

    assert body["margin"] == {"amount": 50.0, "percentage": 50.0}
    assert storefront_http.urls() == [f"{HOGAR_URL}/sync/products"]
    assert storefront_http.calls[0]["json"]["price"] == 103


def test_product_saved_even_if_storefronts_are_down(client, storefront_http):
    storefront_http.down.update({HOGAR_URL, CALZADO_URL})

    body = create_product(client, type=None)

    assert client.get(f"/v1/products/{body['id']}").status_code == 200
    assert len(storefront_http.calls) == 2


def test_update_product_pushes_new_stock(client, storefront_http):
    body = create_product(client)

    resp = client.put(f"/v1/products/{body['id']}", json={"stock": 3})

    assert resp.status_code == 200
    assert resp.json()["stock"] == 3
    assert storefront_http.calls[-1]["json"]["stock"] == 3


def test_duplicate_sku_is_a_conflict(client):
    create_product(client)

    resp = client.post("/v1/products", json=PRODUCT)

    assert resp.status_code == 409
    assert resp.json()["code"] == "DUPLICATE_SKU"


def test_unknown_product_is_404(client):
    resp = client.get("/v1/products/999")

    assert resp.status_code == 404
    assert resp.json()["detail"] == "Product not found: 999"


# ---------- Sales ----------
def test_sale_lifecycle(client):
    product = create_product(client)

    resp = client.post(
        "/v1/sales",
        json={
            "products": [{"product": {"_id": product["id"], "name": "Desk Lamp"}, "quantity": 3, "unitPrice": 100}],
            "payment_method": "Cash",
            "channel": "Store",
            "customer": {"name": "Ana"},
        },
    )
    assert resp.status_code == 201, resp.text
    sale = resp.json()
    assert (sale["total_amount"], sale["total_profit"]) == (300.0, 150.0)
    assert sale["lines"][0]["sku"] == "SKU-1"
    assert client.get(f"/v1/products/{product['id']}").json()["stock"] == 7

    resp = client.put(f"/v1/sales/{sale['id']}", json={"lines": [{"product": product["id"], "quantity": 1, "unit_price": 100}]})
    assert resp.status_code == 200
    assert client.get(f"/v1/products/{product['id']}").json()["stock"] == 9

    by_product = client.get("/v1/sales/by-product").json()
    assert by_product[0]["sku"] == "SKU-1"
    assert by_product[0]["total_quantity"] == 1

    resp = client.delete(f"/v1/sales/{sale['id']}")
    assert resp.status_code == 200
    assert client.get(f"/v1/products/{product['id']}").json()["stock"] == 10
    assert client.get(f"/v1/sales/{sale['id']}").status_code == 404


def test_insufficient_stock_is_400(client):
    product = create_product(client, stock=2)

    resp = client.post(
        "/v1/sales",
        json={
            "lines": [{"product_id": product["id"], "quantity": 5, "unit_price": 100}],
            "payment_method": "Cash",
            "channel": "Store",
        },
    )

    assert resp.status_code == 400
    assert resp.json()["code"] == "INSUFFICIENT_STOCK"
    assert "Desk Lamp" in resp.json()["detail"]
    assert client.get(f"/v1/products/{product['id']}").json()["stock"] == 2


def test_sale_without_lines_is_rejected(client):
    resp = client.post("/v1/sales", json={"lines": [], "payment_method": "Cash", "channel": "Store"})

    assert resp.status_code == 422


# ---------- Sync ----------
def test_storefront_sale_wrong_secret(client, db_session):
    create_product(client)

    resp = client.post(
        "/v1/sync/sales",
        json={"products": [{"sku": "SKU-1", "quantity": 1, "price": 100}]},
        headers={"x-sync-secret": "nope"},
    )

    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid sync secret"
    assert catalog.get_product_by_sku(db_session, "SKU-1").stock == 10


def test_storefront_sale_missing_secret(client):
    resp = client.post("/v1/sync/sales", json={"products": []})

    assert resp.status_code == 401


def test_storefront_sale_partial_then_redelivered(client):
    create_product(client)
    payload = {
        "orderId": "WEB-7",
        "products": [{"sku": "SKU-1", "quantity": 2, "price": 100}, {"sku": "GHOST", "quantity": 1, "price": 5}],
        "origin": "Hogar Store",
    }
    headers = {"x-sync-secret": SYNC_SECRET}

    first = client.post("/v1/sync/sales", json=payload, headers=headers)
    second = client.post("/v1/sync/sales", json=payload, headers=headers)

    assert first.status_code == 201
    assert first.json()["skipped_skus"] == ["GHOST"]
    assert first.json()["channel"] == "Hogar Store"
    assert second.status_code == 200
    assert second.json()["id"] == first.json()["id"]
    assert client.get("/v1/products").json()[0]["stock"] == 8


# ---------- Dashboard ----------
def test_dashboard(client):
    product = create_product(client)
    client.post(
        "/v1/sales",
        json={
            "lines": [{"product_id": product["id"], "quantity": 2, "unit_price": 100}],
            "payment_method": "Card",
            "channel": "Store",
        },
    )

    resp = client.get("/v1/dashboard", params={"type": "hogar", "days": 3})

    assert resp.status_code == 200
    stats = resp.json()
    assert stats["total_sales"] == 200.0
    assert stats["low_stock_count"] == 0
    assert len(stats["sales_trend"]) == 3
    assert stats["sales_by_payment_method"] == [{"name": "Card", "value": 200.0}]
    assert stats["recent_activity"][0]["payment_method"] == "Card"
