"""Order service — checkout records and their fulfilment lifecycle.

Payment settlement happens elsewhere; this module records the order with an
immutable snapshot of what was bought and drives its status.

Flow:
  place_order → pending → (admin) confirmed → processing → completed → refunded
                        ↘ cancel_order (customer or admin, before completion)

Business Rules:
- Items are snapshotted (name, price, vendorId) from approved products
- order_number = <prefix>-<YYYYMMDD>-<6 hex>, regenerated on collision
- Completion credits each vendor its line totals; refund debits the same.
  The status change and the revenue posting commit as one transaction
- Revenue event ids are derived from the order, so replays never double-count

Called by: routers/orders.py, routers/admin.py
Depends on: guard, lifecycle, metrics_service, schemas/orders
"""

import logging
import secrets
from datetime import datetime, timezone
from decimal import Decimal

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import settings
from ..models import MetricKind, Order, OrderStatus, Product, ProductStatus
from ..schemas.auth import Principal
from ..schemas.orders import OrderAdvance, OrderCreate
from ..schemas.results import ErrorKind, ServiceResult, validate_input, validation_failure
from .guard import Decision, check_admin, check_customer_record, deny, resolve_context
from .lifecycle import ORDER_MACHINE, Actor, LifecycleError, apply_transition, transition_failure
from .metrics_service import apply_event, revenue_by_vendor

log = logging.getLogger("wedstay.orders")

_CENT = Decimal("0.01")
_NUMBER_ATTEMPTS = 5

# Targets reachable through advance_order; cancel and refund have their own entry points
_ADVANCE_TARGETS = frozenset({OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.COMPLETED})


def find_order(db: Session, order_id: int) -> Order | None:
    return db.get(Order, order_id)


def generate_order_number(now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"{settings.order_number_prefix}-{now:%Y%m%d}-{secrets.token_hex(3).upper()}"


# ── Checkout ──────────────────────────────────────────────────────────


def place_order(db: Session, principal: Principal | None, payload: OrderCreate | dict) -> ServiceResult:
    """Record a paid checkout as a pending order. Guests allowed."""
    try:
        data = validate_input(OrderCreate, payload)
    except ValidationError as e:
        return validation_failure(e)

    ctx = resolve_context(db, principal)
    profile_id = ctx.profile_id if ctx is not None else None

    product_ids = {item.product_id for item in data.items}
    products = {p.id: p for p in db.query(Product).filter(Product.id.in_(product_ids)).all()}
    missing = sorted(product_ids - products.keys())
    if missing:
        return ServiceResult.fail(ErrorKind.NOT_FOUND, f"Products not found: {missing}")
    unavailable = sorted(pid for pid, p in products.items() if p.status != ProductStatus.APPROVED)
    if unavailable:
        return ServiceResult.fail(
            ErrorKind.VALIDATION_FAILED, f"Products not available for purchase: {unavailable}"
        )

    items = []
    subtotal = Decimal("0")
    for line in data.items:
        product = products[line.product_id]
        price = Decimal(product.base_price or 0).quantize(_CENT)
        subtotal += price * line.quantity
        items.append({
            "productId": product.id,
            "name": product.name,
            "price": str(price),
            "quantity": line.quantity,
            "vendorId": product.vendor_id,
            "customization": line.customization,
        })
    total = subtotal + data.tax + data.shipping - data.discount
    if total < 0:
        return ServiceResult.fail(ErrorKind.VALIDATION_FAILED, "Discount exceeds the order amount")

    order = None
    for _ in range(_NUMBER_ATTEMPTS):
        order = Order(
            user_id=profile_id,
            order_number=generate_order_number(),
            subtotal=subtotal.quantize(_CENT),
            tax=data.tax,
            shipping=data.shipping,
            discount=data.discount,
            total=total.quantize(_CENT),
            currency="USD",
            items=items,
            customer_email=data.customer_email,
            customer_name=data.customer_name,
            customer_phone=data.customer_phone,
            event_date=data.event_date,
            event_location=data.event_location,
            event_type=data.event_type,
            customer_notes=data.customer_notes,
            status=OrderStatus.PENDING,
        )
        db.add(order)
        try:
            db.flush()
        except IntegrityError:
            db.rollback()
            order = None
            continue
        break
    if order is None:
        return ServiceResult.fail(ErrorKind.CONFLICT, "Could not allocate a unique order number, please retry")

    for pid in sorted(product_ids):
        apply_event(db, f"order:{order.id}:product:{pid}", MetricKind.PRODUCT_ORDER, pid, commit=False)
    db.commit()
    db.refresh(order)
    log.info(f"Order {order.order_number} placed: {len(items)} line(s), total {order.total}")
    return ServiceResult.ok(order)


# ── Lifecycle ─────────────────────────────────────────────────────────


def _post_revenue(db: Session, order: Order, phase: str, sign: int) -> ServiceResult | None:
    """Stage each vendor's revenue change in the open transaction. Returns the first failure."""
    for vendor_id, amount in sorted(revenue_by_vendor(order.items).items()):
        result = apply_event(
            db, f"order:{order.id}:{phase}:vendor:{vendor_id}",
            MetricKind.VENDOR_REVENUE, vendor_id, amount * sign, commit=False,
        )
        if not result.success:
            return result
    return None


def _move_with_revenue(db: Session, order: Order, target: OrderStatus, changes: dict, phase: str, sign: int):
    """Status change and revenue posting, committed together or not at all."""
    try:
        moved = apply_transition(db, order, ORDER_MACHINE, target, {Actor.ADMIN}, changes, commit=False)
    except LifecycleError as e:
        return transition_failure(e)
    if moved:
        failure = _post_revenue(db, order, phase, sign)
        if failure:
            db.rollback()
            db.refresh(order)
            return failure
    db.commit()
    db.refresh(order)
    return ServiceResult.ok(order)


def _admin_order(db: Session, principal: Principal | None, order_id: int):
    ctx = resolve_context(db, principal)
    decision = check_admin(ctx)
    if decision is not Decision.ALLOWED:
        return None, deny(decision, "Order fulfilment requires the admin role")
    order = find_order(db, order_id)
    if order is None:
        return None, ServiceResult.fail(ErrorKind.NOT_FOUND, "Order not found")
    return order, None


def advance_order(
    db: Session, principal: Principal | None, order_id: int, payload: OrderAdvance | dict
) -> ServiceResult:
    """Move an order forward (confirmed, processing, completed). Admin only."""
    order, failure = _admin_order(db, principal, order_id)
    if failure:
        return failure
    try:
        target = validate_input(OrderAdvance, payload).status
    except ValidationError as e:
        return validation_failure(e)
    if target not in _ADVANCE_TARGETS:
        return ServiceResult.fail(
            ErrorKind.INVALID_TRANSITION,
            f"Use the cancel or refund operation to move an order to '{target.value}'",
        )

    if target == OrderStatus.COMPLETED:
        return _move_with_revenue(
            db, order, target, {"completed_at": datetime.now(timezone.utc)}, "completed", 1
        )
    try:
        apply_transition(db, order, ORDER_MACHINE, target, {Actor.ADMIN})
    except LifecycleError as e:
        return transition_failure(e)
    return ServiceResult.ok(order)


def cancel_order(db: Session, principal: Principal | None, order_id: int) -> ServiceResult:
    """Cancel before completion (the customer who ordered, or admin)."""
    ctx = resolve_context(db, principal)
    if ctx is None:
        return deny(Decision.DENIED_UNAUTHENTICATED)
    order = find_order(db, order_id)
    if order is None:
        return ServiceResult.fail(ErrorKind.NOT_FOUND, "Order not found")
    decision = check_customer_record(ctx, order)
    if decision is not Decision.ALLOWED:
        return deny(decision, f"Profile {ctx.profile_id} does not own order #{order_id}")

    actors = set()
    if ctx.is_admin:
        actors.add(Actor.ADMIN)
    if order.user_id is not None and order.user_id == ctx.profile_id:
        actors.add(Actor.OWNER)
    try:
        apply_transition(
            db, order, ORDER_MACHINE, OrderStatus.CANCELLED, actors,
            {"cancelled_at": datetime.now(timezone.utc)} if order.cancelled_at is None else None,
        )
    except LifecycleError as e:
        return transition_failure(e)
    return ServiceResult.ok(order)


def refund_order(db: Session, principal: Principal | None, order_id: int) -> ServiceResult:
    """completed → refunded. Reverses the revenue credited on completion."""
    order, failure = _admin_order(db, principal, order_id)
    if failure:
        return failure
    return _move_with_revenue(
        db, order, OrderStatus.REFUNDED, {"refunded_at": datetime.now(timezone.utc)}, "refunded", -1
    )


# ── Queries ───────────────────────────────────────────────────────────


def list_customer_orders(db: Session, principal: Principal | None) -> ServiceResult:
    ctx = resolve_context(db, principal)
    if ctx is None:
        return deny(Decision.DENIED_UNAUTHENTICATED)
    if ctx.profile is None:
        return ServiceResult.ok([])
    orders = (
        db.query(Order)
        .filter(Order.user_id == ctx.profile_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )
    return ServiceResult.ok(orders)
