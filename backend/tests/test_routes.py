# Overview: Pytest coverage for the sales and inventory HTTP routes.

from saleflow.events import SaleCompleted
from saleflow.services import stock_ledger


def _sale_body(tenant, *items, **extra):
    body = {
        "tenant_id": tenant.id,
        "payment_method": "card",
        "items": [{"product_id": p.id, "quantity": q} for p, q in items],
    }
    body.update(extra)
    return body


class TestSalesRoutes:
    def test_create_sale(self, client, db_session, drain, recorder, tenant_a, product_a, product_b):
        events = recorder(SaleCompleted)

        response = client.post("/api/sales", json=_sale_body(tenant_a, (product_a, 2), (product_b, 1)))

        assert response.status_code == 201
        sale = response.json["sale"]
        assert sale["total_cents"] == 250
        assert sale["status"] == "completed"
        assert [line["line_number"] for line in sale["lines"]] == [1, 2]

        drain()
        assert len(events.events) == 1
        event = events.events[0]
        assert event.transaction_id == sale["id"]
        assert event.total_amount == sale["total_cents"]
        assert [item.to_payload() for item in event.items] == [
            {"productId": product_a.id, "quantity": 2, "price": 100},
            {"productId": product_b.id, "quantity": 1, "price": 50},
        ]
        assert [item.to_payload() for item in event.items] == [
            {"productId": line["product_id"], "quantity": line["quantity"], "price": line["unit_price_cents"]}
            for line in sale["lines"]
        ]
        assert stock_ledger.get_quantity(product_a.id, tenant_a.id) == 8

    def test_get_sale(self, client, db_session, tenant_a, product_a):
        created = client.post("/api/sales", json=_sale_body(tenant_a, (product_a, 1))).json["sale"]

        response = client.get(f"/api/sales/{created['id']}?tenant_id={tenant_a.id}")

        assert response.status_code == 200
        assert response.json["sale"]["transaction_number"] == created["transaction_number"]

    def test_get_sale_other_tenant_is_not_found(self, client, db_session, tenant_a, tenant_b, product_a):
        created = client.post("/api/sales", json=_sale_body(tenant_a, (product_a, 1))).json["sale"]

        response = client.get(f"/api/sales/{created['id']}?tenant_id={tenant_b.id}")
        assert response.status_code == 404

    def test_empty_items_is_400(self, client, db_session, tenant_a):
        response = client.post("/api/sales", json=_sale_body(tenant_a))
        assert response.status_code == 400
        assert "at least one item" in response.json["error"]

    def test_missing_tenant_is_400(self, client, db_session, product_a):
        response = client.post("/api/sales", json={
            "payment_method": "cash",
            "items": [{"product_id": product_a.id, "quantity": 1}],
        })
        assert response.status_code == 400

    def test_non_integer_quantity_is_400(self, client, db_session, tenant_a, product_a):
        body = _sale_body(tenant_a)
        body["items"] = [{"product_id": product_a.id, "quantity": 1.5}]

        response = client.post("/api/sales", json=body)
        assert response.status_code == 400

    def test_unknown_product_is_404(self, client, db_session, tenant_a):
        body = _sale_body(tenant_a)
        body["items"] = [{"product_id": "missing", "quantity": 1}]

        response = client.post("/api/sales", json=body)
        assert response.status_code == 404
        assert response.json["details"]["product_id"] == "missing"

    def test_insufficient_stock_is_409(self, client, db_session, tenant_a, product_a):
        response = client.post("/api/sales", json=_sale_body(tenant_a, (product_a, 11)))

        assert response.status_code == 409
        assert response.json["error"] == "Insufficient stock for product: Product A"
        assert response.json["details"]["available_quantity"] == 10


class TestInventoryRoutes:
    def test_show_stock(self, client, db_session, tenant_a, product_a):
        response = client.get(f"/api/inventory/{product_a.id}?tenant_id={tenant_a.id}")

        assert response.status_code == 200
        assert response.json["quantity_on_hand"] == 10
        assert len(response.json["movements"]) == 1

    def test_show_stock_requires_tenant(self, client, db_session, product_a):
        assert client.get(f"/api/inventory/{product_a.id}").status_code == 400

    def test_restock(self, client, db_session, tenant_a, product_a):
        response = client.post("/api/inventory/adjust", json={
            "tenant_id": tenant_a.id,
            "product_id": product_a.id,
            "delta": 5,
        })

        assert response.status_code == 200
        assert response.json["movement"]["reason"] == "restock"
        assert response.json["movement"]["new_quantity"] == 15

    def test_adjust_below_zero_is_409(self, client, db_session, tenant_a, product_a):
        response = client.post("/api/inventory/adjust", json={
            "tenant_id": tenant_a.id,
            "product_id": product_a.id,
            "delta": -20,
        })

        assert response.status_code == 409
        assert response.json["details"]["available_quantity"] == 10

    def test_zero_delta_is_400(self, client, db_session, tenant_a, product_a):
        response = client.post("/api/inventory/adjust", json={
            "tenant_id": tenant_a.id,
            "product_id": product_a.id,
            "delta": 0,
        })
        assert response.status_code == 400

    def test_set_stock(self, client, db_session, tenant_a, product_a):
        response = client.put("/api/inventory/stock", json={
            "tenant_id": tenant_a.id,
            "product_id": product_a.id,
            "quantity": 3,
        })

        assert response.status_code == 200
        assert response.json["movement"]["reason"] == "adjustment"
        assert stock_ledger.get_quantity(product_a.id, tenant_a.id) == 3

    def test_set_negative_stock_is_400(self, client, db_session, tenant_a, product_a):
        response = client.put("/api/inventory/stock", json={
            "tenant_id": tenant_a.id,
            "product_id": product_a.id,
            "quantity": -1,
        })
        assert response.status_code == 400

    def test_set_stock_unknown_product_is_404(self, client, db_session, tenant_a):
        response = client.put("/api/inventory/stock", json={
            "tenant_id": tenant_a.id,
            "product_id": "no-such-product",
            "quantity": 5,
        })
        assert response.status_code == 404

    def test_adjust_other_tenants_product_is_404(self, client, db_session, tenant_a, tenant_b, product_a):
        response = client.post("/api/inventory/adjust", json={
            "tenant_id": tenant_b.id,
            "product_id": product_a.id,
            "delta": 3,
        })

        assert response.status_code == 404
        assert stock_ledger.get_quantity(product_a.id, tenant_b.id) is None
        assert stock_ledger.get_quantity(product_a.id, tenant_a.id) == 10

    def test_adjust_with_sale_reason_is_400(self, client, db_session, tenant_a, product_a):
        response = client.post("/api/inventory/adjust", json={
            "tenant_id": tenant_a.id,
            "product_id": product_a.id,
            "delta": -1,
            "reason": "sale",
        })

        assert response.status_code == 400
        assert stock_ledger.get_quantity(product_a.id, tenant_a.id) == 10
