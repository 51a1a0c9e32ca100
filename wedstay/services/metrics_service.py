"""Metrics aggregator — denormalized counters with at-most-once event application.

Product.views / cart_adds / inquiries / orders and Vendor.total_inquiries /
total_revenue are caches over underlying events. Every increment goes
through apply_event(), which records the event id in the metric_events
ledger in the same transaction as the counter update. A repeated event id
is a no-op.

Update discipline:
- High-frequency counters (views, cart adds, inquiry/order counts) use an
  in-SQL "col = col + delta" update; no row lock.
- Revenue uses a row-locked read-modify-write (SELECT ... FOR UPDATE).

Reconciliation recomputes every counter from its source of truth and
overwrites drift. Running it twice in a row changes nothing the second time.
  - views, cart_adds       ← sum of ledger deltas
  - inquiries, orders      ← inquiries / orders tables
  - total_products         ← products table
  - total_inquiries        ← distinct inquiries referencing the vendor's products
  - total_revenue          ← line totals of completed orders (refunded excluded)
  - average_rating         ← published reviews

Usage:
    apply_event(db, "view:abc123", MetricKind.PRODUCT_VIEW, product.id)
    reconcile_all(db)   # scheduled job, see scheduler.py
"""

import logging
from collections import defaultdict
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models import (
    AnalyticsEvent,
    Inquiry,
    MetricEvent,
    MetricKind,
    Order,
    OrderStatus,
    Product,
    Review,
    Vendor,
)
from ..schemas.results import ErrorKind, ServiceResult

log = logging.getLogger("wedstay.metrics")

_CENT = Decimal("0.01")

_COUNTERS = {
    MetricKind.PRODUCT_VIEW: (Product, "views"),
    MetricKind.PRODUCT_CART_ADD: (Product, "cart_adds"),
    MetricKind.PRODUCT_INQUIRY: (Product, "inquiries"),
    MetricKind.PRODUCT_ORDER: (Product, "orders"),
    MetricKind.VENDOR_INQUIRY: (Vendor, "total_inquiries"),
    MetricKind.VENDOR_REVENUE: (Vendor, "total_revenue"),
}

# Read-modify-write under a row lock; may go down (refunds)
_STRICT_KINDS = frozenset({MetricKind.VENDOR_REVENUE})


# ── Event application ─────────────────────────────────────────────────


def apply_event(db: Session, event_id: str, kind, target_id: int, delta=1, commit: bool = True) -> ServiceResult:
    """Apply one counter event. Returns data={"applied": bool}.

    applied=False means the event id was seen before and nothing changed.
    With commit=False the ledger row and counter change join the caller's
    transaction; the caller commits them together with its own writes.
    """
    try:
        kind = MetricKind(kind)
    except ValueError:
        return ServiceResult.fail(ErrorKind.VALIDATION_FAILED, f"Unknown metric kind: {kind}")
    if not event_id:
        return ServiceResult.fail(ErrorKind.VALIDATION_FAILED, "An event id is required")

    delta = Decimal(str(delta))
    if kind not in _STRICT_KINDS:
        if delta < 0 or delta != delta.to_integral_value():
            return ServiceResult.fail(
                ErrorKind.VALIDATION_FAILED,
                f"{kind.value} counters only move up by whole numbers",
            )

    if db.query(MetricEvent.id).filter(MetricEvent.event_id == event_id).first():
        return ServiceResult.ok({"applied": False})

    model, column = _COUNTERS[kind]
    if not db.query(model.id).filter(model.id == target_id).first():
        return ServiceResult.fail(ErrorKind.NOT_FOUND, f"{model.__name__} #{target_id} not found")

    event = MetricEvent(event_id=event_id, kind=kind, target_id=target_id, delta=delta)
    if commit:
        db.add(event)
        try:
            db.flush()
        except IntegrityError:
            # Same event id committed by a concurrent request between check and insert
            db.rollback()
            return ServiceResult.ok({"applied": False})
    else:
        # A duplicate id rolls back this savepoint only
        try:
            with db.begin_nested():
                db.add(event)
        except IntegrityError:
            return ServiceResult.ok({"applied": False})

    if kind in _STRICT_KINDS:
        row = (
            db.query(model).filter(model.id == target_id)
            .with_for_update().populate_existing().one()
        )
        current = Decimal(getattr(row, column) or 0)
        setattr(row, column, (current + delta).quantize(_CENT))
    else:
        attr = getattr(model, column)
        db.query(model).filter(model.id == target_id).update(
            {attr: attr + int(delta)}, synchronize_session=False
        )

    if commit:
        db.commit()
    else:
        db.flush()
    return ServiceResult.ok({"applied": True})


def _record_tracking(
    db: Session,
    kind: MetricKind,
    analytics_type: str,
    product_id: int,
    event_id: str,
    profile_id: int | None,
    session_id: str | None,
) -> ServiceResult:
    result = apply_event(db, event_id, kind, product_id)
    if result.success and result.data["applied"]:
        db.add(
            AnalyticsEvent(
                user_id=profile_id,
                session_id=session_id,
                event_type=analytics_type,
                event_data={"productId": product_id, "eventId": event_id},
            )
        )
        db.commit()
    return result


def record_product_view(
    db: Session, product_id: int, event_id: str,
    profile_id: int | None = None, session_id: str | None = None,
) -> ServiceResult:
    return _record_tracking(
        db, MetricKind.PRODUCT_VIEW, "product_view", product_id, event_id, profile_id, session_id
    )


def record_cart_add(
    db: Session, product_id: int, event_id: str,
    profile_id: int | None = None, session_id: str | None = None,
) -> ServiceResult:
    return _record_tracking(
        db, MetricKind.PRODUCT_CART_ADD, "add_to_cart", product_id, event_id, profile_id, session_id
    )


# ── Revenue helpers ───────────────────────────────────────────────────


def revenue_by_vendor(items: list[dict]) -> dict[int, Decimal]:
    """Sum price * quantity per vendor over an order's item snapshot."""
    totals: dict[int, Decimal] = defaultdict(Decimal)
    for item in items or []:
        vendor_id = item.get("vendorId")
        if vendor_id is None:
            continue
        price = Decimal(str(item.get("price") or 0))
        totals[int(vendor_id)] += price * int(item.get("quantity") or 0)
    return {vid: amount.quantize(_CENT) for vid, amount in totals.items()}


def _product_ids(lines: list[dict]) -> set[int]:
    return {int(line["productId"]) for line in lines or [] if line.get("productId") is not None}


# ── Reconciliation ────────────────────────────────────────────────────


def _ledger_sums(db: Session, kind: MetricKind) -> dict[int, int]:
    rows = (
        db.query(MetricEvent.target_id, func.sum(MetricEvent.delta))
        .filter(MetricEvent.kind == kind)
        .group_by(MetricEvent.target_id)
        .all()
    )
    return {target_id: int(total or 0) for target_id, total in rows}


def reconcile_product_counters(db: Session) -> dict:
    """Overwrite product counters with values recomputed from their sources."""
    views = _ledger_sums(db, MetricKind.PRODUCT_VIEW)
    cart_adds = _ledger_sums(db, MetricKind.PRODUCT_CART_ADD)

    inquiry_counts: dict[int, int] = defaultdict(int)
    for (lines,) in db.query(Inquiry.products).all():
        for pid in _product_ids(lines):
            inquiry_counts[pid] += 1

    order_counts: dict[int, int] = defaultdict(int)
    for (items,) in db.query(Order.items).all():
        for pid in _product_ids(items):
            order_counts[pid] += 1

    checked = corrected = 0
    for product in db.query(Product).populate_existing().all():
        checked += 1
        expected = {
            "views": views.get(product.id, 0),
            "cart_adds": cart_adds.get(product.id, 0),
            "inquiries": inquiry_counts.get(product.id, 0),
            "orders": order_counts.get(product.id, 0),
        }
        drift = {k: (getattr(product, k), v) for k, v in expected.items() if getattr(product, k) != v}
        if drift:
            corrected += 1
            for k, (_, v) in drift.items():
                setattr(product, k, v)
            log.info(f"Reconciled product #{product.id}: {drift}")

    db.commit()
    return {"products_checked": checked, "products_corrected": corrected}


def reconcile_vendor_aggregates(db: Session) -> dict:
    """Overwrite vendor aggregates with values recomputed from their sources."""
    product_vendor = dict(db.query(Product.id, Product.vendor_id).all())

    product_counts = dict(
        db.query(Product.vendor_id, func.count(Product.id)).group_by(Product.vendor_id).all()
    )

    inquiry_counts: dict[int, int] = defaultdict(int)
    for (lines,) in db.query(Inquiry.products).all():
        vendor_ids = {product_vendor[pid] for pid in _product_ids(lines) if pid in product_vendor}
        for vid in vendor_ids:
            inquiry_counts[vid] += 1

    revenue: dict[int, Decimal] = defaultdict(Decimal)
    for (items,) in db.query(Order.items).filter(Order.status == OrderStatus.COMPLETED).all():
        for vid, amount in revenue_by_vendor(items).items():
            revenue[vid] += amount

    ratings = dict(
        db.query(Review.vendor_id, func.avg(Review.rating))
        .filter(Review.vendor_id.isnot(None), Review.is_published.is_(True))
        .group_by(Review.vendor_id)
        .all()
    )

    checked = corrected = 0
    for vendor in db.query(Vendor).with_for_update().populate_existing().all():
        checked += 1
        avg = ratings.get(vendor.id)
        expected = {
            "total_products": product_counts.get(vendor.id, 0),
            "total_inquiries": inquiry_counts.get(vendor.id, 0),
            "total_revenue": revenue.get(vendor.id, Decimal("0")).quantize(_CENT),
            "average_rating": Decimal(str(avg)).quantize(_CENT) if avg is not None else None,
        }
        drift = {}
        for k, v in expected.items():
            current = getattr(vendor, k)
            if isinstance(v, Decimal) and current is not None:
                current = Decimal(current).quantize(_CENT)
            if current != v:
                drift[k] = (current, v)
        if drift:
            corrected += 1
            for k, (_, v) in drift.items():
                setattr(vendor, k, v)
            log.info(f"Reconciled vendor #{vendor.id}: {drift}")

    db.commit()
    return {"vendors_checked": checked, "vendors_corrected": corrected}


def reconcile_all(db: Session) -> dict:
    """Run both reconciliation passes. Returns a combined summary."""
    result = {**reconcile_product_counters(db), **reconcile_vendor_aggregates(db)}
    log.info(f"Counter reconciliation complete: {result}")
    return result


def refresh_vendor_product_count(db: Session, vendor_id: int) -> None:
    """Recount a vendor's products. total_products is a gauge, not an event counter."""
    count = db.query(func.count(Product.id)).filter(Product.vendor_id == vendor_id).scalar() or 0
    db.query(Vendor).filter(Vendor.id == vendor_id).update(
        {Vendor.total_products: count}, synchronize_session=False
    )


def refresh_vendor_rating(db: Session, vendor_id: int) -> None:
    avg = (
        db.query(func.avg(Review.rating))
        .filter(Review.vendor_id == vendor_id, Review.is_published.is_(True))
        .scalar()
    )
    value = Decimal(str(avg)).quantize(_CENT) if avg is not None else None
    db.query(Vendor).filter(Vendor.id == vendor_id).update(
        {Vendor.average_rating: value}, synchronize_session=False
    )
