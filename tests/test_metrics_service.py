"""
test_metrics_service.py — Tests for the metrics aggregator

Covers: apply_event (applied, duplicate id no-op, unknown target, bad
deltas, revenue up/down), record_product_view / record_cart_add (ledger +
analytics row), revenue_by_vendor, and reconciliation (drift correction,
idempotent second pass, sources of truth per counter).

Called by: pytest
Depends on: conftest fixtures (vendors, products)
"""

from decimal import Decimal

from wedstay.models import (
    AnalyticsEvent,
    Inquiry,
    InquiryStatus,
    MetricEvent,
    MetricKind,
    Order,
    OrderStatus,
    Product,
    Review,
    Vendor,
)
from wedstay.schemas.results import ErrorKind
from wedstay.services.metrics_service import (
    apply_event,
    reconcile_all,
    reconcile_product_counters,
    reconcile_vendor_aggregates,
    record_cart_add,
    record_product_view,
    revenue_by_vendor,
)


# ── apply_event ───────────────────────────────────────────────────────


class TestApplyEvent:
    def test_applies_once(self, db_session, product):
        first = apply_event(db_session, "view:1", MetricKind.PRODUCT_VIEW, product.id)
        second = apply_event(db_session, "view:1", MetricKind.PRODUCT_VIEW, product.id)
        assert first.data == {"applied": True}
        assert second.data == {"applied": False}
        db_session.refresh(product)
        assert product.views == 1
        assert db_session.query(MetricEvent).count() == 1

    def test_distinct_ids_accumulate(self, db_session, product):
        for i in range(5):
            apply_event(db_session, f"cart:{i}", MetricKind.PRODUCT_CART_ADD, product.id)
        db_session.refresh(product)
        assert product.cart_adds == 5

    def test_accepts_kind_string(self, db_session, product):
        result = apply_event(db_session, "view:s", "product_view", product.id)
        assert result.success

    def test_unknown_target(self, db_session):
        result = apply_event(db_session, "view:x", MetricKind.PRODUCT_VIEW, 999)
        assert result.error == ErrorKind.NOT_FOUND
        assert db_session.query(MetricEvent).count() == 0

    def test_unknown_kind(self, db_session, product):
        result = apply_event(db_session, "x:1", "product_like", product.id)
        assert result.error == ErrorKind.VALIDATION_FAILED

    def test_blank_event_id(self, db_session, product):
        assert apply_event(db_session, "", MetricKind.PRODUCT_VIEW, product.id).error == ErrorKind.VALIDATION_FAILED

    def test_counters_never_decrease(self, db_session, product):
        result = apply_event(db_session, "view:neg", MetricKind.PRODUCT_VIEW, product.id, -1)
        assert result.error == ErrorKind.VALIDATION_FAILED
        result = apply_event(db_session, "view:frac", MetricKind.PRODUCT_VIEW, product.id, "0.5")
        assert result.error == ErrorKind.VALIDATION_FAILED

    def test_revenue_moves_both_ways(self, db_session, vendor):
        apply_event(db_session, "rev:1", MetricKind.VENDOR_REVENUE, vendor.id, Decimal("250.50"))
        apply_event(db_session, "rev:2", MetricKind.VENDOR_REVENUE, vendor.id, Decimal("-50.25"))
        apply_event(db_session, "rev:1", MetricKind.VENDOR_REVENUE, vendor.id, Decimal("250.50"))
        db_session.refresh(vendor)
        assert Decimal(vendor.total_revenue) == Decimal("200.25")


class TestTracking:
    def test_view_writes_analytics_row(self, db_session, product, customer):
        result = record_product_view(db_session, product.id, "view:abc", customer.id, "sess-1")
        assert result.data["applied"] is True
        row = db_session.query(AnalyticsEvent).one()
        assert row.event_type == "product_view"
        assert row.user_id == customer.id
        assert row.event_data["productId"] == product.id

    def test_duplicate_view_writes_nothing(self, db_session, product):
        record_product_view(db_session, product.id, "view:abc")
        record_product_view(db_session, product.id, "view:abc")
        assert db_session.query(AnalyticsEvent).count() == 1

    def test_cart_add(self, db_session, product):
        record_cart_add(db_session, product.id, "cart:abc")
        db_session.refresh(product)
        assert product.cart_adds == 1
        assert db_session.query(AnalyticsEvent).one().event_type == "add_to_cart"


class TestRevenueByVendor:
    def test_groups_line_totals(self):
        items = [
            {"productId": 1, "price": "10.00", "quantity": 3, "vendorId": 7},
            {"productId": 2, "price": "2.50", "quantity": 2, "vendorId": 7},
            {"productId": 3, "price": "99.99", "quantity": 1, "vendorId": 8},
        ]
        assert revenue_by_vendor(items) == {7: Decimal("35.00"), 8: Decimal("99.99")}

    def test_empty(self):
        assert revenue_by_vendor([]) == {}


# ── Reconciliation ────────────────────────────────────────────────────


class TestReconciliation:
    def test_hundred_views_then_reconcile(self, db_session, product):
        for i in range(100):
            record_product_view(db_session, product.id, f"view:{i}")
        summary = reconcile_product_counters(db_session)
        db_session.refresh(product)
        assert product.views == 100
        assert summary["products_corrected"] == 0

        again = reconcile_product_counters(db_session)
        db_session.refresh(product)
        assert product.views == 100
        assert again["products_corrected"] == 0

    def test_drift_corrected_from_ledger(self, db_session, product):
        for i in range(3):
            apply_event(db_session, f"view:{i}", MetricKind.PRODUCT_VIEW, product.id)
        db_session.query(Product).filter(Product.id == product.id).update({"views": 42})
        db_session.commit()

        summary = reconcile_product_counters(db_session)
        db_session.refresh(product)
        assert product.views == 3
        assert summary["products_corrected"] == 1
        assert reconcile_product_counters(db_session)["products_corrected"] == 0

    def test_inquiry_and_order_counts_from_tables(self, db_session, product, rival_product):
        db_session.add(Inquiry(
            email="a@example.com", full_name="A", status=InquiryStatus.PENDING,
            products=[{"productId": product.id, "quantity": 1}, {"productId": rival_product.id, "quantity": 2}],
        ))
        db_session.add(Order(
            order_number="WS-20260101-AAAAAA", subtotal=100, total=100, customer_email="a@example.com",
            items=[{"productId": product.id, "price": "100.00", "quantity": 1, "vendorId": product.vendor_id}],
            status=OrderStatus.PENDING,
        ))
        db_session.commit()

        reconcile_product_counters(db_session)
        db_session.refresh(product)
        db_session.refresh(rival_product)
        assert (product.inquiries, product.orders) == (1, 1)
        assert (rival_product.inquiries, rival_product.orders) == (1, 0)

    def test_vendor_aggregates(self, db_session, make_product, vendor, rival_product, customer):
        p1 = make_product(vendor, "Chair")
        p2 = make_product(vendor, "Table", price="40.00")
        db_session.add(Inquiry(
            email="a@example.com", full_name="A", status=InquiryStatus.PENDING,
            products=[{"productId": p1.id, "quantity": 1}, {"productId": p2.id, "quantity": 1}],
        ))
        db_session.add(Order(
            order_number="WS-20260101-BBBBBB", subtotal=140, total=140, customer_email="a@example.com",
            items=[
                {"productId": p1.id, "price": "100.00", "quantity": 1, "vendorId": vendor.id},
                {"productId": p2.id, "price": "40.00", "quantity": 1, "vendorId": vendor.id},
            ],
            status=OrderStatus.COMPLETED,
        ))
        # Refunded orders do not count as revenue
        db_session.add(Order(
            order_number="WS-20260101-CCCCCC", subtotal=100, total=100, customer_email="a@example.com",
            items=[{"productId": p1.id, "price": "100.00", "quantity": 1, "vendorId": vendor.id}],
            status=OrderStatus.REFUNDED,
        ))
        db_session.add(Review(user_id=customer.id, vendor_id=vendor.id, rating=5, content="Lovely"))
        db_session.add(Review(user_id=customer.id, vendor_id=vendor.id, rating=4, content="Good"))
        db_session.commit()

        reconcile_vendor_aggregates(db_session)
        db_session.refresh(vendor)
        assert vendor.total_products == 2
        assert vendor.total_inquiries == 1  # one inquiry, two of its products
        assert Decimal(vendor.total_revenue) == Decimal("140.00")
        assert Decimal(vendor.average_rating) == Decimal("4.50")
        assert reconcile_vendor_aggregates(db_session)["vendors_corrected"] == 0

    def test_reconcile_all_summary(self, db_session, product):
        db_session.query(Vendor).filter(Vendor.id == product.vendor_id).update({"total_products": 9})
        db_session.commit()
        summary = reconcile_all(db_session)
        assert summary["products_checked"] == 1
        assert summary["vendors_checked"] == 1
        assert summary["vendors_corrected"] == 1
