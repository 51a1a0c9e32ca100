"""
test_routers_inquiries.py — Tests for inquiry, order and review endpoints

Covers: guest inquiry submission, vendor inbox and quoting, customer
confirm/cancel, checkout, customer order history and cancellation, reviews.

Called by: pytest
Depends on: wedstay/routers/inquiries.py, wedstay/routers/orders.py, conftest.py
"""

import pytest


def _inquiry_body(*product_ids):
    return {
        "email": "bride@example.com",
        "full_name": "Jane Doe",
        "products": [{"product_id": pid, "quantity": 2} for pid in product_ids],
    }


@pytest.fixture()
def inquiry_id(client, customer, product, rival_product):
    client.sign_in(customer)
    resp = client.post("/api/inquiries", json=_inquiry_body(product.id, rival_product.id))
    assert resp.status_code == 201
    client.sign_out()
    return resp.json()["id"]


# ── Inquiries ─────────────────────────────────────────────────────────


class TestInquiryEndpoints:
    def test_guest_submit(self, client, product):
        resp = client.post("/api/inquiries", json=_inquiry_body(product.id))
        assert resp.status_code == 201
        data = resp.json()
        assert data["status"] == "pending"
        assert data["user_id"] is None
        assert data["products"][0]["productId"] == product.id

    def test_submit_without_products(self, client):
        resp = client.post("/api/inquiries", json=_inquiry_body())
        assert resp.status_code == 422

    def test_inbox_and_quote(self, client, vendor_owner, vendor, inquiry_id):
        client.sign_in(vendor_owner)
        inbox = client.get("/api/inquiries/inbox").json()
        assert [i["id"] for i in inbox] == [inquiry_id]

        resp = client.post(f"/api/inquiries/{inquiry_id}/respond", json={"quoted_price": "480.00", "message": "Yes"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "quoted"
        assert data["vendor_responses"][0]["vendorId"] == vendor.id

        again = client.post(f"/api/inquiries/{inquiry_id}/respond", json={"quoted_price": "1"})
        assert again.status_code == 409
        assert again.json()["kind"] == "already_exists"

    def test_unreferenced_vendor_cannot_quote(self, client, make_profile, make_vendor, inquiry_id):
        outsider = make_profile("olga")
        make_vendor(outsider, "Unrelated Co")
        client.sign_in(outsider)
        resp = client.post(f"/api/inquiries/{inquiry_id}/respond", json={"quoted_price": "1"})
        assert resp.status_code == 403

    def test_customer_confirms_quote(self, client, customer, vendor_owner, vendor, inquiry_id):
        client.sign_in(vendor_owner)
        client.post(f"/api/inquiries/{inquiry_id}/respond", json={"quoted_price": "10"})
        client.sign_in(customer)
        resp = client.post(f"/api/inquiries/{inquiry_id}/confirm")
        assert resp.status_code == 200
        assert resp.json()["status"] == "booked"

    def test_cancel_then_confirm_conflicts(self, client, customer, inquiry_id):
        client.sign_in(customer)
        assert client.post(f"/api/inquiries/{inquiry_id}/cancel").json()["status"] == "cancelled"
        resp = client.post(f"/api/inquiries/{inquiry_id}/confirm")
        assert resp.status_code == 409
        assert resp.json()["kind"] == "invalid_transition"

    def test_anonymous_cannot_cancel(self, client, inquiry_id):
        assert client.post(f"/api/inquiries/{inquiry_id}/cancel").status_code == 401

    def test_unknown_inquiry(self, client, customer):
        client.sign_in(customer)
        assert client.post("/api/inquiries/999/cancel").status_code == 404


# ── Orders & reviews ──────────────────────────────────────────────────


class TestOrderEndpoints:
    def test_checkout_and_history(self, client, customer, product):
        client.sign_in(customer)
        resp = client.post(
            "/api/orders",
            json={"customer_email": "carol@example.com", "items": [{"product_id": product.id, "quantity": 3}]},
        )
        assert resp.status_code == 201
        order = resp.json()
        assert order["status"] == "pending"
        assert order["items"][0]["price"] == "100.00"
        assert order["order_number"].startswith("WS-")

        history = client.get("/api/orders/mine").json()
        assert [o["id"] for o in history] == [order["id"]]

    def test_guest_checkout(self, client, product):
        resp = client.post(
            "/api/orders", json={"customer_email": "guest@example.com", "items": [{"product_id": product.id}]}
        )
        assert resp.status_code == 201
        assert resp.json()["user_id"] is None

    def test_cancel_own_order(self, client, customer, product):
        client.sign_in(customer)
        order = client.post(
            "/api/orders", json={"customer_email": "carol@example.com", "items": [{"product_id": product.id}]}
        ).json()
        resp = client.post(f"/api/orders/{order['id']}/cancel")
        assert resp.status_code == 200
        assert resp.json()["status"] == "cancelled"

    def test_history_requires_sign_in(self, client):
        assert client.get("/api/orders/mine").status_code == 401


class TestReviewEndpoint:
    def test_create(self, client, customer, product, vendor):
        client.sign_in(customer)
        resp = client.post("/api/reviews", json={"product_id": product.id, "rating": 5, "content": "Lovely"})
        assert resp.status_code == 201
        assert resp.json()["vendor_id"] == vendor.id

    def test_rating_out_of_range(self, client, customer, product):
        client.sign_in(customer)
        resp = client.post("/api/reviews", json={"product_id": product.id, "rating": 9, "content": "x"})
        assert resp.status_code == 422

    def test_anonymous(self, client, product):
        resp = client.post("/api/reviews", json={"product_id": product.id, "rating": 5, "content": "x"})
        assert resp.status_code == 401
