"""Inquiry service — customer quote requests and vendor responses.

Flow:
  submit_inquiry → pending → respond_to_inquiry (vendor) → quoted → confirm_inquiry → booked
                                                                 ↘ cancel_inquiry → cancelled
                                                        (admin) complete_inquiry → completed

Business Rules:
- Every referenced product must exist and be approved
- Guests may submit (user_id is null); signed-in customers are linked
- A vendor may respond only when one of its products is referenced, once
- vendor_responses is append-only; later vendors append while quoted
- cancelled and completed are terminal

Called by: routers/inquiries.py, routers/admin.py
Depends on: guard, lifecycle, metrics_service, schemas/inquiries
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal

from pydantic import ValidationError
from sqlalchemy.orm import Session

from ..config import settings
from ..models import Inquiry, InquiryStatus, MetricKind, Product, ProductStatus
from ..schemas.auth import Principal
from ..schemas.inquiries import InquirySubmit, VendorQuote
from ..schemas.results import ErrorKind, ServiceResult, validate_input, validation_failure
from .guard import (
    AccessContext,
    Decision,
    check_admin,
    check_authenticated,
    check_customer_record,
    check_inquiry_response,
    deny,
    resolve_context,
)
from .lifecycle import (
    INQUIRY_MACHINE,
    Actor,
    LifecycleError,
    apply_transition,
    transition_failure,
)
from .metrics_service import apply_event

log = logging.getLogger("wedstay.inquiries")


def find_inquiry(db: Session, inquiry_id: int) -> Inquiry | None:
    return db.get(Inquiry, inquiry_id)


def inquiry_vendor_ids(db: Session, inquiry: Inquiry) -> set[int]:
    """Vendors owning the products an inquiry references (may span several)."""
    product_ids = {int(line["productId"]) for line in inquiry.products or []}
    if not product_ids:
        return set()
    rows = db.query(Product.vendor_id).filter(Product.id.in_(product_ids)).distinct().all()
    return {vid for (vid,) in rows}


def _customer_actors(ctx: AccessContext, inquiry: Inquiry) -> set[Actor]:
    actors = set()
    if ctx.is_admin:
        actors.add(Actor.ADMIN)
    if inquiry.user_id is not None and inquiry.user_id == ctx.profile_id:
        actors.add(Actor.OWNER)
    return actors


# ── Submission ────────────────────────────────────────────────────────


def submit_inquiry(db: Session, principal: Principal | None, payload: InquirySubmit | dict) -> ServiceResult:
    """Create a pending inquiry. Guests allowed; every product must be approved."""
    try:
        data = validate_input(InquirySubmit, payload)
    except ValidationError as e:
        return validation_failure(e)
    if len(data.products) > settings.max_inquiry_items:
        return ServiceResult.fail(
            ErrorKind.VALIDATION_FAILED,
            f"An inquiry can reference at most {settings.max_inquiry_items} products",
        )

    ctx = resolve_context(db, principal)
    profile_id = ctx.profile_id if ctx is not None else None

    product_ids = {item.product_id for item in data.products}
    products = {
        p.id: p for p in db.query(Product).filter(Product.id.in_(product_ids)).all()
    }
    missing = sorted(product_ids - products.keys())
    if missing:
        return ServiceResult.fail(ErrorKind.NOT_FOUND, f"Products not found: {missing}")
    unavailable = sorted(pid for pid, p in products.items() if p.status != ProductStatus.APPROVED)
    if unavailable:
        return ServiceResult.fail(
            ErrorKind.VALIDATION_FAILED, f"Products not available for inquiry: {unavailable}"
        )

    total = sum(
        (Decimal(products[item.product_id].base_price or 0) * item.quantity for item in data.products),
        Decimal("0"),
    )
    inquiry = Inquiry(
        user_id=profile_id,
        email=data.email,
        phone=data.phone,
        full_name=data.full_name.strip(),
        event_date=data.event_date,
        event_type=data.event_type,
        venue_name=data.venue_name,
        venue_location=data.venue_location,
        guest_count=data.guest_count,
        products=[
            {"productId": item.product_id, "quantity": item.quantity, "notes": item.notes}
            for item in data.products
        ],
        total_value=total,
        status=InquiryStatus.PENDING,
        vendor_responses=[],
        customer_notes=data.customer_notes,
        source=data.source,
    )
    db.add(inquiry)
    db.commit()
    db.refresh(inquiry)
    log.info(f"Inquiry #{inquiry.id} submitted for {len(product_ids)} product(s)")

    for pid in sorted(product_ids):
        apply_event(db, f"inquiry:{inquiry.id}:product:{pid}", MetricKind.PRODUCT_INQUIRY, pid)
    for vid in sorted({p.vendor_id for p in products.values()}):
        apply_event(db, f"inquiry:{inquiry.id}:vendor:{vid}", MetricKind.VENDOR_INQUIRY, vid)

    return ServiceResult.ok(inquiry)


# ── Vendor response ───────────────────────────────────────────────────


def respond_to_inquiry(
    db: Session, principal: Principal | None, inquiry_id: int, payload: VendorQuote | dict
) -> ServiceResult:
    """Append the caller's quote. The first response moves pending → quoted."""
    ctx = resolve_context(db, principal)
    if ctx is None:
        return deny(Decision.DENIED_UNAUTHENTICATED)
    inquiry = find_inquiry(db, inquiry_id)
    if inquiry is None:
        return ServiceResult.fail(ErrorKind.NOT_FOUND, "Inquiry not found")
    decision = check_inquiry_response(ctx, inquiry_vendor_ids(db, inquiry))
    if decision is not Decision.ALLOWED:
        return deny(decision, f"Vendor {ctx.vendor_id} is not referenced by inquiry #{inquiry_id}")

    try:
        quote = validate_input(VendorQuote, payload)
    except ValidationError as e:
        return validation_failure(e)

    if _has_responded(inquiry, ctx.vendor_id):
        return ServiceResult.fail(ErrorKind.ALREADY_EXISTS, "You have already responded to this inquiry")

    response = {
        "vendorId": ctx.vendor_id,
        "quotedPrice": str(quote.quoted_price),
        "message": quote.message,
        "respondedAt": datetime.now(timezone.utc).isoformat(),
    }

    try:
        moved = False
        if inquiry.status == InquiryStatus.PENDING:
            moved = apply_transition(
                db, inquiry, INQUIRY_MACHINE, InquiryStatus.QUOTED, {Actor.RESPONDER},
                {"vendor_responses": list(inquiry.vendor_responses or []) + [response]},
            )
        if not moved:
            # Already quoted, possibly by a concurrent first responder
            failure = _append_response(db, inquiry, response)
            if failure:
                return failure
    except LifecycleError as e:
        return transition_failure(e)

    log.info(f"Vendor #{ctx.vendor_id} quoted inquiry #{inquiry.id}")
    return ServiceResult.ok(inquiry)


def _has_responded(inquiry: Inquiry, vendor_id: int) -> bool:
    return any(r.get("vendorId") == vendor_id for r in inquiry.vendor_responses or [])


def _append_response(db: Session, inquiry: Inquiry, response: dict) -> ServiceResult | None:
    """Append under a row lock so concurrent responders never overwrite each other."""
    locked = (
        db.query(Inquiry).filter(Inquiry.id == inquiry.id)
        .with_for_update().populate_existing().one()
    )
    if locked.status != InquiryStatus.QUOTED:
        db.rollback()
        return ServiceResult.fail(
            ErrorKind.INVALID_TRANSITION,
            f"Inquiry is '{locked.status.value}' and no longer accepts quotes",
        )
    if _has_responded(locked, response["vendorId"]):
        db.rollback()
        return ServiceResult.fail(ErrorKind.ALREADY_EXISTS, "You have already responded to this inquiry")
    locked.vendor_responses = list(locked.vendor_responses or []) + [response]
    locked.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(locked)
    return None


# ── Customer / admin transitions ──────────────────────────────────────


def _customer_transition(
    db: Session, principal: Principal | None, inquiry_id: int, target: InquiryStatus
) -> ServiceResult:
    ctx = resolve_context(db, principal)
    if ctx is None:
        return deny(Decision.DENIED_UNAUTHENTICATED)
    inquiry = find_inquiry(db, inquiry_id)
    if inquiry is None:
        return ServiceResult.fail(ErrorKind.NOT_FOUND, "Inquiry not found")
    decision = check_customer_record(ctx, inquiry)
    if decision is not Decision.ALLOWED:
        return deny(decision, f"Profile {ctx.profile_id} does not own inquiry #{inquiry_id}")
    try:
        apply_transition(db, inquiry, INQUIRY_MACHINE, target, _customer_actors(ctx, inquiry))
    except LifecycleError as e:
        return transition_failure(e)
    return ServiceResult.ok(inquiry)


def confirm_inquiry(db: Session, principal: Principal | None, inquiry_id: int) -> ServiceResult:
    """quoted → booked (the customer who asked, or admin)."""
    return _customer_transition(db, principal, inquiry_id, InquiryStatus.BOOKED)


def cancel_inquiry(db: Session, principal: Principal | None, inquiry_id: int) -> ServiceResult:
    """pending|quoted → cancelled (the customer who asked, or admin)."""
    return _customer_transition(db, principal, inquiry_id, InquiryStatus.CANCELLED)


def complete_inquiry(db: Session, principal: Principal | None, inquiry_id: int) -> ServiceResult:
    """booked → completed (admin, typically once the event date has passed)."""
    ctx = resolve_context(db, principal)
    decision = check_admin(ctx)
    if decision is not Decision.ALLOWED:
        return deny(decision, "Completing inquiries requires the admin role")
    inquiry = find_inquiry(db, inquiry_id)
    if inquiry is None:
        return ServiceResult.fail(ErrorKind.NOT_FOUND, "Inquiry not found")
    try:
        apply_transition(db, inquiry, INQUIRY_MACHINE, InquiryStatus.COMPLETED, {Actor.ADMIN})
    except LifecycleError as e:
        return transition_failure(e)
    return ServiceResult.ok(inquiry)


# ── Queries ───────────────────────────────────────────────────────────


def list_vendor_inquiries(
    db: Session, principal: Principal | None, status: InquiryStatus | None = None
) -> ServiceResult:
    """Inquiries that reference at least one of the caller's products, newest first."""
    ctx = resolve_context(db, principal)
    decision = check_authenticated(ctx)
    if decision is not Decision.ALLOWED:
        return deny(decision)
    if ctx.vendor is None:
        return ServiceResult.fail(ErrorKind.NOT_FOUND, "Vendor not found")

    own_ids = {pid for (pid,) in db.query(Product.id).filter(Product.vendor_id == ctx.vendor.id).all()}
    q = db.query(Inquiry)
    if status is not None:
        q = q.filter(Inquiry.status == status)
    matches = [
        inq for inq in q.order_by(Inquiry.created_at.desc(), Inquiry.id.desc()).all()
        if any(int(line["productId"]) in own_ids for line in inq.products or [])
    ]
    return ServiceResult.ok(matches)
