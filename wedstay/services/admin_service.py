"""Admin service — role management, moderation queues, marketplace stats."""

import logging
from decimal import Decimal

from pydantic import ValidationError
from sqlalchemy import func as sqlfunc
from sqlalchemy.orm import Session

from ..config import APP_VERSION
from ..models import (
    Inquiry,
    InquiryStatus,
    Order,
    OrderStatus,
    Product,
    ProductStatus,
    Profile,
    Vendor,
    VendorStatus,
)
from ..schemas.auth import Principal, RoleUpdate
from ..schemas.results import ErrorKind, ServiceResult, validate_input, validation_failure
from .guard import Decision, check_admin, deny, resolve_context
from .metrics_service import reconcile_all

log = logging.getLogger("wedstay.admin")


def _require_admin(db: Session, principal: Principal | None):
    ctx = resolve_context(db, principal)
    decision = check_admin(ctx)
    if decision is not Decision.ALLOWED:
        return None, deny(decision, "Admin role required")
    return ctx, None


# ── Roles ─────────────────────────────────────────────────────────────


def set_profile_role(
    db: Session, principal: Principal | None, profile_id: int, payload: RoleUpdate | dict
) -> ServiceResult:
    """Change another profile's role. Admins cannot change their own role."""
    ctx, failure = _require_admin(db, principal)
    if failure:
        return failure
    try:
        update = validate_input(RoleUpdate, payload)
    except ValidationError as e:
        return validation_failure(e)

    target = db.get(Profile, profile_id)
    if target is None:
        return ServiceResult.fail(ErrorKind.NOT_FOUND, "Profile not found")
    if target.id == ctx.profile_id:
        return ServiceResult.fail(ErrorKind.FORBIDDEN, "Cannot change your own role")

    old_role = target.role
    target.role = update.role
    db.commit()
    db.refresh(target)
    log.info(
        f"Admin {ctx.profile.email} changed {target.email} role: {old_role.value} -> {update.role.value}"
    )
    return ServiceResult.ok(target)


# ── Moderation queues ─────────────────────────────────────────────────


def list_pending_vendors(db: Session, principal: Principal | None) -> ServiceResult:
    _, failure = _require_admin(db, principal)
    if failure:
        return failure
    vendors = (
        db.query(Vendor)
        .filter(Vendor.status == VendorStatus.PENDING)
        .order_by(Vendor.created_at, Vendor.id)
        .all()
    )
    return ServiceResult.ok(vendors)


def list_pending_products(db: Session, principal: Principal | None) -> ServiceResult:
    _, failure = _require_admin(db, principal)
    if failure:
        return failure
    products = (
        db.query(Product)
        .filter(Product.status == ProductStatus.PENDING)
        .order_by(Product.updated_at, Product.id)
        .all()
    )
    return ServiceResult.ok(products)


# ── Stats ─────────────────────────────────────────────────────────────


def _counts_by_status(db: Session, model, statuses) -> dict[str, int]:
    counts = {s.value: 0 for s in statuses}
    for status, n in db.query(model.status, sqlfunc.count(model.id)).group_by(model.status).all():
        counts[statuses(status).value] = n
    return counts


def get_marketplace_stats(db: Session, principal: Principal | None) -> ServiceResult:
    """Counts by status for every lifecycle entity, plus recognised revenue."""
    _, failure = _require_admin(db, principal)
    if failure:
        return failure
    revenue = db.query(sqlfunc.coalesce(sqlfunc.sum(Vendor.total_revenue), 0)).scalar()
    return ServiceResult.ok({
        "version": APP_VERSION,
        "profiles": db.query(sqlfunc.count(Profile.id)).scalar() or 0,
        "vendors": _counts_by_status(db, Vendor, VendorStatus),
        "products": _counts_by_status(db, Product, ProductStatus),
        "inquiries": _counts_by_status(db, Inquiry, InquiryStatus),
        "orders": _counts_by_status(db, Order, OrderStatus),
        "total_revenue": str(Decimal(str(revenue)).quantize(Decimal("0.01"))),
    })


def run_reconciliation(db: Session, principal: Principal | None) -> ServiceResult:
    """On-demand counter reconciliation (the scheduler runs the same pass)."""
    ctx, failure = _require_admin(db, principal)
    if failure:
        return failure
    summary = reconcile_all(db)
    log.info(f"Reconciliation triggered by {ctx.profile.email}: {summary}")
    return ServiceResult.ok(summary)
