"""Vendor service — onboarding, self-service settings, and approval lifecycle.

Flow:
  onboard_vendor → pending → (admin) approve_vendor → approved → suspend_vendor
                           → (admin) reject_vendor  → rejected → (owner) reapply_vendor → pending

Vendors are never deleted, only suspended. Approval promotes the owner's
profile role to "vendor" (admins keep their role).

Called by: routers/vendors.py, routers/admin.py
Depends on: guard, lifecycle, metrics_service, schemas/vendors
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal

from pydantic import ValidationError
from slugify import slugify
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import settings
from ..models import Product, ProductStatus, Profile, ProfileRole, Vendor, VendorStatus
from ..schemas.auth import Principal
from ..schemas.results import ErrorKind, ServiceResult, validate_input, validation_failure
from ..schemas.vendors import VendorOnboarding, VendorRejection, VendorSettingsUpdate
from .guard import (
    Decision,
    check_admin,
    check_authenticated,
    check_vendor_mutation,
    check_vendor_owner,
    deny,
    find_vendor_by_user,
    resolve_context,
)
from .lifecycle import VENDOR_MACHINE, Actor, LifecycleError, apply_transition, transition_failure

log = logging.getLogger("wedstay.vendors")

_SLUG_ATTEMPTS = 5


# ── Lookups ───────────────────────────────────────────────────────────


def find_vendor(db: Session, vendor_id: int) -> Vendor | None:
    return db.get(Vendor, vendor_id)


def get_my_vendor(db: Session, principal: Principal | None) -> ServiceResult:
    ctx = resolve_context(db, principal)
    decision = check_authenticated(ctx)
    if decision is not Decision.ALLOWED:
        return deny(decision)
    if ctx.vendor is None:
        return ServiceResult.fail(ErrorKind.NOT_FOUND, "Vendor not found")
    return ServiceResult.ok(ctx.vendor)


# ── Slugs ─────────────────────────────────────────────────────────────


def unique_slug(db: Session, base: str, *columns) -> str:
    """Return base, or base-2, base-3, ... whichever is first not already in any of columns."""
    base = slugify(base) or "item"
    taken = set()
    for column in columns:
        taken.update(
            row[0]
            for row in db.query(column).filter(
                (column == base) | (column.like(f"{base}-%"))
            ).all()
        )
    if base not in taken:
        return base
    n = 2
    while f"{base}-{n}" in taken:
        n += 1
    return f"{base}-{n}"


# ── Onboarding ────────────────────────────────────────────────────────


def onboard_vendor(db: Session, principal: Principal | None, payload: VendorOnboarding | dict) -> ServiceResult:
    """Create the caller's vendor record in `pending`.

    Fails with already_exists if the principal already owns a vendor.
    """
    ctx = resolve_context(db, principal)
    decision = check_authenticated(ctx)
    if decision is not Decision.ALLOWED:
        return deny(decision, "Sign in with a complete profile to apply as a vendor")

    try:
        details = validate_input(VendorOnboarding, payload)
    except ValidationError as e:
        return validation_failure(e)

    if ctx.vendor is not None:
        return ServiceResult.fail(ErrorKind.ALREADY_EXISTS, "Vendor account already exists")

    for _ in range(_SLUG_ATTEMPTS):
        vendor = Vendor(
            user_id=ctx.profile.id,
            company_name=details.company_name,
            slug=unique_slug(db, details.company_name, Vendor.slug),
            description=details.description,
            phone=details.phone,
            email=details.email,
            website=details.website,
            service_areas=details.service_areas,
            years_in_business=details.years_in_business,
            business_license=details.business_license,
            insurance_verified=details.insurance_verified,
            commission_rate=Decimal(str(settings.default_commission_rate)),
            status=VendorStatus.PENDING,
        )
        db.add(vendor)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            # Either the slug was taken concurrently (retry) or this profile onboarded twice
            if find_vendor_by_user(db, ctx.profile.id) is not None:
                return ServiceResult.fail(ErrorKind.ALREADY_EXISTS, "Vendor account already exists")
            continue
        db.refresh(vendor)
        log.info(f"Vendor onboarded: '{vendor.company_name}' (#{vendor.id}, slug={vendor.slug})")
        return ServiceResult.ok(vendor)

    return ServiceResult.fail(ErrorKind.CONFLICT, "Could not allocate a unique vendor slug, please retry")


def update_vendor_settings(
    db: Session, principal: Principal | None, vendor_id: int, payload: VendorSettingsUpdate | dict
) -> ServiceResult:
    """Edit profile fields of a vendor (owner or admin). The slug never changes."""
    ctx = resolve_context(db, principal)
    if ctx is None:
        return deny(Decision.DENIED_UNAUTHENTICATED)
    vendor = find_vendor(db, vendor_id)
    if vendor is None:
        return ServiceResult.fail(ErrorKind.NOT_FOUND, "Vendor not found")
    decision = check_vendor_mutation(ctx, vendor)
    if decision is not Decision.ALLOWED:
        return deny(decision, f"Profile {ctx.profile_id} cannot edit vendor #{vendor_id}")

    try:
        updates = validate_input(VendorSettingsUpdate, payload)
    except ValidationError as e:
        return validation_failure(e)

    for field, value in updates.model_dump(exclude_unset=True).items():
        if field == "website":
            value = (value or "").strip() or None
        setattr(vendor, field, value)
    db.commit()
    db.refresh(vendor)
    return ServiceResult.ok(vendor)


# ── Approval lifecycle ────────────────────────────────────────────────


def _transition(db: Session, vendor: Vendor, target: VendorStatus, actors, changes=None) -> ServiceResult:
    try:
        apply_transition(db, vendor, VENDOR_MACHINE, target, actors, changes)
    except LifecycleError as e:
        return transition_failure(e)
    return ServiceResult.ok(vendor)


def _admin_vendor(db: Session, principal: Principal | None, vendor_id: int):
    ctx = resolve_context(db, principal)
    decision = check_admin(ctx)
    if decision is not Decision.ALLOWED:
        return None, deny(decision, "Vendor moderation requires the admin role")
    vendor = find_vendor(db, vendor_id)
    if vendor is None:
        return None, ServiceResult.fail(ErrorKind.NOT_FOUND, "Vendor not found")
    return vendor, None


def approve_vendor(db: Session, principal: Principal | None, vendor_id: int) -> ServiceResult:
    vendor, failure = _admin_vendor(db, principal, vendor_id)
    if failure:
        return failure
    result = _transition(
        db, vendor, VendorStatus.APPROVED, {Actor.ADMIN},
        {"approved_at": datetime.now(timezone.utc), "rejection_reason": None},
    )
    if result.success:
        owner = db.get(Profile, vendor.user_id)
        if owner is not None and owner.role == ProfileRole.CUSTOMER:
            owner.role = ProfileRole.VENDOR
            db.commit()
    return result


def reject_vendor(
    db: Session, principal: Principal | None, vendor_id: int, payload: VendorRejection | dict
) -> ServiceResult:
    vendor, failure = _admin_vendor(db, principal, vendor_id)
    if failure:
        return failure
    try:
        rejection = validate_input(VendorRejection, payload)
    except ValidationError as e:
        return validation_failure(e)
    return _transition(
        db, vendor, VendorStatus.REJECTED, {Actor.ADMIN}, {"rejection_reason": rejection.reason}
    )


def suspend_vendor(db: Session, principal: Principal | None, vendor_id: int) -> ServiceResult:
    vendor, failure = _admin_vendor(db, principal, vendor_id)
    if failure:
        return failure
    return _transition(db, vendor, VendorStatus.SUSPENDED, {Actor.ADMIN})


def reapply_vendor(db: Session, principal: Principal | None, vendor_id: int) -> ServiceResult:
    """Owner resubmits a rejected application (rejected → pending)."""
    ctx = resolve_context(db, principal)
    if ctx is None:
        return deny(Decision.DENIED_UNAUTHENTICATED)
    vendor = find_vendor(db, vendor_id)
    if vendor is None:
        return ServiceResult.fail(ErrorKind.NOT_FOUND, "Vendor not found")
    decision = check_vendor_owner(ctx, vendor)
    if decision is not Decision.ALLOWED:
        return deny(decision, "Only the applicant can reapply")
    return _transition(db, vendor, VendorStatus.PENDING, {Actor.OWNER}, {"rejection_reason": None})


# ── Analytics ─────────────────────────────────────────────────────────


def get_vendor_analytics(db: Session, principal: Principal | None) -> ServiceResult:
    """Totals across the caller's products plus a views→inquiries conversion rate."""
    ctx = resolve_context(db, principal)
    decision = check_authenticated(ctx)
    if decision is not Decision.ALLOWED:
        return deny(decision)
    vendor = ctx.vendor
    if vendor is None:
        return ServiceResult.fail(ErrorKind.NOT_FOUND, "Vendor not found")

    totals = (
        db.query(
            func.coalesce(func.sum(Product.views), 0),
            func.coalesce(func.sum(Product.inquiries), 0),
            func.coalesce(func.sum(Product.cart_adds), 0),
            func.coalesce(func.sum(Product.orders), 0),
        )
        .filter(Product.vendor_id == vendor.id)
        .one()
    )
    views, inquiries, cart_adds, orders = (int(v) for v in totals)
    by_status = {s.value: 0 for s in ProductStatus}
    for status, count in (
        db.query(Product.status, func.count(Product.id))
        .filter(Product.vendor_id == vendor.id)
        .group_by(Product.status)
        .all()
    ):
        by_status[ProductStatus(status).value] = count

    return ServiceResult.ok({
        "vendor_id": vendor.id,
        "status": vendor.status.value,
        "total_views": views,
        "total_inquiries": inquiries,
        "total_cart_adds": cart_adds,
        "total_orders": orders,
        "conversion_rate": round(inquiries / views * 100, 1) if views else 0.0,
        "products_by_status": by_status,
        "total_revenue": str(Decimal(vendor.total_revenue or 0)),
        "average_rating": str(vendor.average_rating) if vendor.average_rating is not None else None,
    })
