"""Product service — vendor catalog CRUD and moderation.

Flow:
  create_product → draft → submit_product → pending → (admin) approve → approved → archive
                                                   → (admin) reject  → rejected → edit + submit

Every mutation resolves the caller, looks up the product, and asks the
guard before touching the store. vendor_id and handle are fixed at
creation; update payloads that carry them are rejected by the schema.
Issued handles are recorded in product_handles and never handed out again,
even after the product is deleted.

Called by: routers/products.py, routers/admin.py
Depends on: guard, lifecycle, metrics_service, schemas/products
"""

import logging
from datetime import datetime, timezone

from pydantic import ValidationError
from slugify import slugify
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models import Product, ProductHandle, ProductStatus, VendorStatus
from ..schemas.auth import Principal
from ..schemas.products import ProductCreate, ProductRejection, ProductUpdate
from ..schemas.results import ErrorKind, ServiceResult, validate_input, validation_failure
from .guard import (
    AccessContext,
    Decision,
    check_admin,
    check_authenticated,
    check_product_mutation,
    deny,
    resolve_context,
)
from .lifecycle import (
    DELETABLE_PRODUCT_STATES,
    PRODUCT_MACHINE,
    Actor,
    LifecycleError,
    apply_transition,
    transition_failure,
)
from .metrics_service import refresh_vendor_product_count
from .vendor_service import unique_slug

log = logging.getLogger("wedstay.products")

_HANDLE_ATTEMPTS = 5


def find_product(db: Session, product_id: int) -> Product | None:
    return db.get(Product, product_id)


def find_product_by_handle(db: Session, handle: str) -> Product | None:
    return db.query(Product).filter(Product.handle == handle).first()


def _actors(ctx: AccessContext, product: Product) -> set[Actor]:
    actors = set()
    if ctx.is_admin:
        actors.add(Actor.ADMIN)
    if ctx.vendor_id is not None and product.vendor_id == ctx.vendor_id:
        actors.add(Actor.OWNER)
    return actors


def _guarded_product(db: Session, principal: Principal | None, product_id: int, action: str):
    """Resolve caller + product and run the ownership check. Returns (ctx, product, failure)."""
    ctx = resolve_context(db, principal)
    if ctx is None:
        return None, None, deny(Decision.DENIED_UNAUTHENTICATED)
    product = find_product(db, product_id)
    if product is None:
        return ctx, None, ServiceResult.fail(ErrorKind.NOT_FOUND, "Product not found")
    decision = check_product_mutation(ctx, product)
    if decision is not Decision.ALLOWED:
        return ctx, None, deny(
            decision, f"Profile {ctx.profile_id} cannot {action} product #{product_id}"
        )
    return ctx, product, None


# ── Create / update / delete ──────────────────────────────────────────


def create_product(db: Session, principal: Principal | None, payload: ProductCreate | dict) -> ServiceResult:
    """Create a draft product for the caller's approved vendor.

    With submit=True the draft is submitted for review in the same call.
    """
    ctx = resolve_context(db, principal)
    decision = check_authenticated(ctx)
    if decision is not Decision.ALLOWED:
        return deny(decision)
    vendor = ctx.vendor
    if vendor is None or vendor.status != VendorStatus.APPROVED:
        return deny(Decision.DENIED_FORBIDDEN, "Vendor not found or not approved")

    try:
        data = validate_input(ProductCreate, payload)
    except ValidationError as e:
        return validation_failure(e)

    fields = data.model_dump(exclude={"submit"})
    slug = slugify(data.name) or "product"
    product = None
    for _ in range(_HANDLE_ATTEMPTS):
        # The ledger keeps handles of deleted products, so they stay taken
        issued = ProductHandle(handle=unique_slug(db, slug, ProductHandle.handle, Product.handle))
        product = Product(
            vendor_id=vendor.id,
            slug=slug,
            handle=issued.handle,
            status=ProductStatus.DRAFT,
            currency="USD",
            **fields,
        )
        db.add_all([issued, product])
        try:
            db.flush()
        except IntegrityError:
            db.rollback()
            product = None
            continue
        issued.product_id = product.id
        break
    if product is None:
        return ServiceResult.fail(ErrorKind.CONFLICT, "Could not allocate a unique product handle, please retry")

    refresh_vendor_product_count(db, vendor.id)
    db.commit()
    db.refresh(product)
    log.info(f"Product created: '{product.name}' (#{product.id}, handle={product.handle})")

    if data.submit:
        return submit_product(db, principal, product.id)
    return ServiceResult.ok(product)


def update_product(
    db: Session, principal: Principal | None, product_id: int, payload: ProductUpdate | dict
) -> ServiceResult:
    """Edit catalog fields. Status is untouched; archived products are read-only."""
    ctx, product, failure = _guarded_product(db, principal, product_id, "edit")
    if failure:
        return failure

    try:
        updates = validate_input(ProductUpdate, payload)
    except ValidationError as e:
        return validation_failure(e)

    if product.status == ProductStatus.ARCHIVED:
        return ServiceResult.fail(
            ErrorKind.INVALID_TRANSITION, "Archived products cannot be edited"
        )

    changes = updates.model_dump(exclude_unset=True)
    if "name" in changes:
        changes["slug"] = slugify(changes["name"]) or product.slug
    for field, value in changes.items():
        setattr(product, field, value)
    db.commit()
    db.refresh(product)
    return ServiceResult.ok(product)


def delete_product(db: Session, principal: Principal | None, product_id: int) -> ServiceResult:
    """Hard-delete a draft or archived product (owner or admin)."""
    ctx, product, failure = _guarded_product(db, principal, product_id, "delete")
    if failure:
        return failure
    if product.status not in DELETABLE_PRODUCT_STATES:
        return ServiceResult.fail(
            ErrorKind.INVALID_TRANSITION,
            f"Only draft or archived products can be deleted (this one is '{product.status.value}')",
        )

    vendor_id = product.vendor_id
    deleted = (
        db.query(Product)
        .filter(Product.id == product.id, Product.status == product.status)
        .delete(synchronize_session=False)
    )
    if deleted != 1:
        db.rollback()
        return ServiceResult.fail(ErrorKind.CONFLICT, "Product changed while deleting; reload and retry")
    db.expunge(product)
    refresh_vendor_product_count(db, vendor_id)
    db.commit()
    log.info(f"Product #{product_id} deleted by profile {ctx.profile_id}")
    return ServiceResult.ok({"id": product_id, "deleted": True})


# ── Lifecycle ─────────────────────────────────────────────────────────


def _transition(db, ctx, product, target, changes=None) -> ServiceResult:
    try:
        apply_transition(db, product, PRODUCT_MACHINE, target, _actors(ctx, product), changes)
    except LifecycleError as e:
        return transition_failure(e)
    return ServiceResult.ok(product)


def submit_product(db: Session, principal: Principal | None, product_id: int) -> ServiceResult:
    """draft|rejected → pending. Requires name, description, category and base price."""
    ctx, product, failure = _guarded_product(db, principal, product_id, "submit")
    if failure:
        return failure
    return _transition(db, ctx, product, ProductStatus.PENDING, {"rejection_reason": None})


def archive_product(db: Session, principal: Principal | None, product_id: int) -> ServiceResult:
    ctx, product, failure = _guarded_product(db, principal, product_id, "archive")
    if failure:
        return failure
    return _transition(db, ctx, product, ProductStatus.ARCHIVED)


def _admin_product(db: Session, principal: Principal | None, product_id: int):
    ctx = resolve_context(db, principal)
    decision = check_admin(ctx)
    if decision is not Decision.ALLOWED:
        return None, None, deny(decision, "Product moderation requires the admin role")
    product = find_product(db, product_id)
    if product is None:
        return ctx, None, ServiceResult.fail(ErrorKind.NOT_FOUND, "Product not found")
    return ctx, product, None


def approve_product(db: Session, principal: Principal | None, product_id: int) -> ServiceResult:
    ctx, product, failure = _admin_product(db, principal, product_id)
    if failure:
        return failure
    changes = {"rejection_reason": None}
    if product.published_at is None:
        changes["published_at"] = datetime.now(timezone.utc)
    return _transition(db, ctx, product, ProductStatus.APPROVED, changes)


def reject_product(
    db: Session, principal: Principal | None, product_id: int,
    payload: ProductRejection | dict | None = None,
) -> ServiceResult:
    ctx, product, failure = _admin_product(db, principal, product_id)
    if failure:
        return failure
    try:
        rejection = validate_input(ProductRejection, payload or {})
    except ValidationError as e:
        return validation_failure(e)
    reason = (rejection.reason or "").strip() or None
    return _transition(db, ctx, product, ProductStatus.REJECTED, {"rejection_reason": reason})


# ── Queries ───────────────────────────────────────────────────────────


def list_vendor_products(
    db: Session, principal: Principal | None, status: ProductStatus | None = None
) -> ServiceResult:
    """The caller's own products, newest first."""
    ctx = resolve_context(db, principal)
    decision = check_authenticated(ctx)
    if decision is not Decision.ALLOWED:
        return deny(decision)
    if ctx.vendor is None:
        return ServiceResult.fail(ErrorKind.NOT_FOUND, "Vendor not found")
    q = db.query(Product).filter(Product.vendor_id == ctx.vendor.id)
    if status is not None:
        q = q.filter(Product.status == status)
    return ServiceResult.ok(q.order_by(Product.created_at.desc(), Product.id.desc()).all())
