"""Integration tests for the storefront API via TestClient."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from protean.exceptions import ExpectedVersionError

from storefront.api import coupon_router, discount_router, order_router, pricing_router, register_error_handlers
from storefront.coupon.coupon import Coupon


@pytest.fixture()
def client(catalogue, gateway):
    app = FastAPI()
    app.include_router(discount_router)
    app.include_router(coupon_router)
    app.include_router(pricing_router)
    app.include_router(order_router)
    register_error_handlers(app)
    return TestClient(app)


def _rings_discount(client):
    response = client.post(
        "/discounts", json={"name": "Rings 10%", "scope": "category", "category": "rings", "kind": "percentage", "value": 10}
    )
    assert response.status_code == 201
    return response.json()["discount_id"]


def _flat500(client, **overrides):
    payload = {"code": "flat500", "kind": "flat", "value": 500, "min_purchase": 1000}
    payload.update(overrides)
    response = client.post("/coupons", json=payload)
    assert response.status_code == 201
    return response.json()["coupon_id"]


def _place(client, **overrides):
    payload = {"customer_id": "cust-001", "items": [{"product_id": "ring-001", "quantity": 2}], "payment_method": "online"}
    payload.update(overrides)
    response = client.post("/orders", json=payload)
    assert response.status_code == 201, response.json()
    return response.json()["order_id"]


class TestDiscountEndpoints:
    def test_crud(self, client):
        discount_id = _rings_discount(client)

        response = client.get(f"/discounts/{discount_id}")
        assert response.status_code == 200
        assert response.json()["category"] == "rings"

        assert client.put(f"/discounts/{discount_id}", json={"value": 15}).status_code == 200
        assert client.get(f"/discounts/{discount_id}").json()["value"] == 15

        assert client.delete(f"/discounts/{discount_id}").status_code == 200
        assert client.get(f"/discounts/{discount_id}").status_code == 404

    def test_active_list(self, client):
        _rings_discount(client)
        client.post("/discounts", json={"name": "Off", "scope": "global", "kind": "flat", "value": 5, "active": False})
        names = [discount["name"] for discount in client.get("/discounts/active").json()]
        assert names == ["Rings 10%"]

    def test_invalid_discount_is_400(self, client):
        response = client.post(
            "/discounts", json={"name": "Too much", "scope": "global", "kind": "percentage", "value": 150}
        )
        assert response.status_code == 400

    def test_unknown_scope_is_400(self, client):
        response = client.post("/discounts", json={"name": "Odd", "scope": "brand", "kind": "flat", "value": 5})
        assert response.status_code == 400


class TestCouponEndpoints:
    def test_create_and_get(self, client):
        coupon_id = _flat500(client, applicable_categories=["rings"])
        body = client.get(f"/coupons/{coupon_id}").json()
        assert body["code"] == "FLAT500"
        assert body["used_count"] == 0
        assert body["applicable_categories"] == ["rings"]

    def test_duplicate_code_is_400_with_code(self, client):
        _flat500(client)
        response = client.post("/coupons", json={"code": "FLAT500", "kind": "flat", "value": 100})
        assert response.status_code == 400
        assert response.json()["code"] == "DuplicateCode"

    def test_validate_valid(self, client):
        _flat500(client)
        response = client.post(
            "/coupons/validate",
            json={"code": "flat500", "cart_items": [{"price": 900, "quantity": 2, "category": "rings"}]},
        )
        body = response.json()
        assert response.status_code == 200
        assert body["valid"] is True
        assert body["discount_amount"] == 500
        assert body["coupon_details"]["code"] == "FLAT500"

    def test_validate_below_minimum(self, client):
        _flat500(client)
        response = client.post("/coupons/validate", json={"code": "FLAT500", "cart_items": [{"price": 200, "quantity": 1}]})
        body = response.json()
        assert body["valid"] is False
        assert body["reason"] == "BelowMinimumPurchase"
        assert body["message"] == "Minimum purchase of 1000.00 required for this coupon"

    def test_validate_unknown(self, client):
        body = client.post("/coupons/validate", json={"code": "NOPE", "cart_items": []}).json()
        assert body["valid"] is False
        assert body["reason"] == "NotFound"

    def test_validate_does_not_consume(self, client):
        coupon_id = _flat500(client, usage_limit=1)
        client.post("/coupons/validate", json={"code": "FLAT500", "cart_items": [{"price": 2000}]})
        assert client.get(f"/coupons/{coupon_id}").json()["used_count"] == 0

    def test_confirm_usage_until_limit(self, client):
        _flat500(client, usage_limit=1)
        response = client.post("/coupons/confirm-usage", json={"code": "flat500"})
        assert response.status_code == 200
        assert response.json() == {"code": "FLAT500", "used_count": 1}

        response = client.post("/coupons/confirm-usage", json={"code": "FLAT500"})
        assert response.status_code == 400
        assert response.json()["code"] == "UsageLimitReached"

    def test_active_excludes_exhausted(self, client):
        _flat500(client, usage_limit=1)
        client.post("/coupons/confirm-usage", json={"code": "FLAT500"})
        assert client.get("/coupons/active").json() == []

    def test_validate_with_cart_total(self, client):
        _flat500(client)
        body = client.post("/coupons/validate", json={"code": "FLAT500", "cart_total": 1200}).json()
        assert body["valid"] is True
        assert body["discount_amount"] == 500

        body = client.post("/coupons/validate", json={"code": "FLAT500", "cart_total": 800}).json()
        assert body["valid"] is False
        assert body["reason"] == "BelowMinimumPurchase"

    def test_validate_with_cart_categories(self, client):
        _flat500(client, applicable_categories=["rings"])
        payload = {"code": "FLAT500", "cart_total": 1500, "cart_categories": ["necklaces"]}
        body = client.post("/coupons/validate", json=payload).json()
        assert body["valid"] is False
        assert body["reason"] == "CategoryMismatch"

        payload["cart_categories"] = ["necklaces", "rings"]
        assert client.post("/coupons/validate", json=payload).json()["valid"] is True

    def test_cart_items_win_over_cart_total(self, client):
        _flat500(client)
        payload = {"code": "FLAT500", "cart_total": 5000, "cart_items": [{"price": 300, "quantity": 1}]}
        body = client.post("/coupons/validate", json=payload).json()
        assert body["valid"] is False
        assert body["reason"] == "BelowMinimumPurchase"

    def test_update_can_clear_the_usage_limit(self, client):
        coupon_id = _flat500(client, usage_limit=1)
        response = client.put(f"/coupons/{coupon_id}", json={"clear_fields": ["usage_limit"]})
        assert response.status_code == 200
        assert client.get(f"/coupons/{coupon_id}").json()["usage_limit"] is None

    def test_clearing_a_required_field_is_400(self, client):
        coupon_id = _flat500(client)
        response = client.put(f"/coupons/{coupon_id}", json={"clear_fields": ["value"]})
        assert response.status_code == 400

    def test_version_conflict_is_409(self, client, monkeypatch):
        coupon_id = _flat500(client)

        def conflicting_update(self, clear=(), **changes):
            raise ExpectedVersionError("Wrong expected version")

        monkeypatch.setattr(Coupon, "update", conflicting_update)
        response = client.put(f"/coupons/{coupon_id}", json={"description": "Festive"})
        assert response.status_code == 409
        assert "retry" in response.json()["error"]


class TestQuoteEndpoint:
    def test_quote_breakdown(self, client):
        _rings_discount(client)
        _flat500(client)
        response = client.post(
            "/pricing/quote", json={"items": [{"product_id": "ring-001", "quantity": 2}], "coupon_code": "FLAT500"}
        )
        body = response.json()
        assert response.status_code == 200
        assert body["subtotal"] == 2000
        assert body["product_discount_total"] == 200
        assert body["subtotal_after_product_discounts"] == 1800
        assert body["coupon_discount_total"] == 500
        assert body["final_amount"] == 1300
        assert body["coupon_valid"] is True
        assert body["lines"][0]["discount_name"] == "Rings 10%"

    def test_quote_reports_rejected_coupon(self, client):
        _flat500(client)
        body = client.post(
            "/pricing/quote", json={"items": [{"product_id": "ear-001"}], "coupon_code": "FLAT500"}
        ).json()
        assert body["coupon_valid"] is False
        assert body["coupon_reason"] == "BelowMinimumPurchase"
        assert body["final_amount"] == 150

    def test_unknown_product_is_400(self, client):
        response = client.post("/pricing/quote", json={"items": [{"product_id": "ghost"}]})
        assert response.status_code == 400
        assert response.json()["code"] == "UnknownProduct"


class TestOrderEndpoints:
    def test_place_and_get(self, client):
        order_id = _place(client)
        body = client.get(f"/orders/{order_id}").json()
        assert body["order_status"] == "pending"
        assert body["final_amount"] == 2000
        assert body["can_cancel"] is True
        assert body["refund"]["status"] == "none"
        assert [entry["event"] for entry in body["timeline"]] == ["Order Placed"]

    def test_price_mismatch_is_400(self, client):
        response = client.post(
            "/orders",
            json={
                "customer_id": "cust-001",
                "items": [{"product_id": "ring-001", "quantity": 2}],
                "payment_method": "online",
                "expected_final_amount": 1999,
            },
        )
        assert response.status_code == 400
        assert response.json()["code"] == "PriceMismatch"

    def test_bad_payment_method_is_400(self, client):
        response = client.post(
            "/orders",
            json={"customer_id": "cust-001", "items": [{"product_id": "ring-001"}], "payment_method": "barter"},
        )
        assert response.status_code == 400

    def test_unknown_order_is_404(self, client):
        assert client.get("/orders/does-not-exist").status_code == 404

    def test_status_update(self, client):
        order_id = _place(client, payment_method="cod")
        response = client.put(f"/orders/{order_id}/status", json={"status": "shipped", "tracking_number": "TRK-9"})
        assert response.status_code == 200
        body = client.get(f"/orders/{order_id}").json()
        assert body["order_status"] == "shipped"
        assert body["tracking_number"] == "TRK-9"
        assert body["can_cancel"] is False

    def test_backward_status_is_400(self, client):
        order_id = _place(client, payment_method="cod")
        client.put(f"/orders/{order_id}/status", json={"status": "shipped"})
        response = client.put(f"/orders/{order_id}/status", json={"status": "confirmed"})
        assert response.status_code == 400
        assert response.json()["code"] == "IllegalTransition"

    def test_stale_expected_status_is_409(self, client):
        order_id = _place(client, payment_method="cod")
        response = client.put(
            f"/orders/{order_id}/status", json={"status": "shipped", "expected_status": "pending"}
        )
        assert response.status_code == 409
        assert response.json()["actual"] == "confirmed"

    def test_customer_cancel(self, client):
        order_id = _place(client)
        response = client.post(f"/orders/{order_id}/cancel", json={"reason": "Ordered by mistake"})
        assert response.status_code == 200
        body = client.get(f"/orders/{order_id}").json()
        assert body["order_status"] == "cancelled"
        assert body["cancelled_by"] == "customer"

    def test_customer_cancel_needs_listed_reason(self, client):
        order_id = _place(client)
        response = client.post(f"/orders/{order_id}/cancel", json={"reason": "Meh"})
        assert response.status_code == 400

    def test_payment_and_refund_lifecycle(self, client, gateway):
        order_id = _place(client)
        assert client.post(f"/orders/{order_id}/payment/success", json={"payment_reference": "pay_1"}).status_code == 200

        response = client.post(f"/orders/{order_id}/refund", json={"amount": 400, "reason": "Scratched"})
        assert response.status_code == 200
        assert response.json()["refund_id"].startswith("fake_rfnd_")

        client.put(f"/orders/{order_id}/refund-status", json={"refund_status": "processing"})
        client.put(f"/orders/{order_id}/refund-status", json={"refund_status": "completed"})
        body = client.get(f"/orders/{order_id}").json()
        assert body["refund"]["status"] == "completed"
        assert body["refund"]["amount"] == 400
        assert body["payment_status"] == "refunded"

        response = client.put(f"/orders/{order_id}/refund-status", json={"refund_status": "processing"})
        assert response.status_code == 400
        assert response.json()["code"] == "UndoNotConfirmed"

    def test_refund_of_unpaid_order_is_400(self, client):
        order_id = _place(client)
        response = client.post(f"/orders/{order_id}/refund", json={})
        assert response.status_code == 400
        assert response.json()["code"] == "PaymentNotSuccessful"

    def test_listing_and_pending_refunds(self, client):
        paid = _place(client)
        unpaid = _place(client)
        client.post(f"/orders/{paid}/payment/success", json={"payment_reference": "pay_1"})
        client.post(f"/orders/{paid}/cancel", json={"reason": "Changed my mind"})
        client.post(f"/orders/{unpaid}/cancel", json={"reason": "Changed my mind"})

        cancelled = client.get("/orders", params={"status": "cancelled"}).json()
        assert {summary["order_id"] for summary in cancelled} == {paid, unpaid}

        pending = client.get("/orders/pending-refunds").json()
        assert [record["order_id"] for record in pending] == [paid]

        client.post(f"/orders/{paid}/refund", json={})
        assert client.get("/orders/pending-refunds").json() == []

    def test_stale_sweep_keeps_fresh_orders(self, client):
        order_id = _place(client)
        response = client.post("/orders/maintenance/cancel-stale", json={"older_than_hours": 1})
        assert response.status_code == 200
        assert response.json() == {"cancelled": 0}
        assert client.get(f"/orders/{order_id}").json()["order_status"] == "pending"

    def test_stale_sweep_rejects_zero_threshold(self, client):
        response = client.post("/orders/maintenance/cancel-stale", json={"older_than_hours": 0})
        assert response.status_code == 422
