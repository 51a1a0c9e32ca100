"""Ownership & authorization guard.

Resolves a principal to its Profile and (at most one) Vendor, then answers
allowed / denied-unauthenticated / denied-forbidden for a target entity.
The check_* predicates are pure: they read the resolved AccessContext and
the target row and never write to the store. Callers map a denial to a
ServiceResult with deny().

Usage:
    ctx = resolve_context(db, principal)
    decision = check_product_mutation(ctx, product)
    if decision is not Decision.ALLOWED:
        return deny(decision, "You can only edit your own products")
"""

import logging
from dataclasses import dataclass
from enum import Enum

from sqlalchemy.orm import Session

from ..models import Inquiry, Order, Product, Profile, ProfileRole, Vendor
from ..schemas.auth import Principal
from ..schemas.results import ErrorKind, ServiceResult

log = logging.getLogger("wedstay.guard")


class Decision(str, Enum):
    ALLOWED = "allowed"
    DENIED_UNAUTHENTICATED = "denied_unauthenticated"
    DENIED_FORBIDDEN = "denied_forbidden"


@dataclass(frozen=True)
class AccessContext:
    """Everything the guard knows about the caller for one request."""

    principal: Principal
    profile: Profile | None = None
    vendor: Vendor | None = None

    @property
    def is_admin(self) -> bool:
        return self.profile is not None and self.profile.role == ProfileRole.ADMIN

    @property
    def profile_id(self) -> int | None:
        return self.profile.id if self.profile is not None else None

    @property
    def vendor_id(self) -> int | None:
        return self.vendor.id if self.vendor is not None else None


# ── Resolution ────────────────────────────────────────────────────────


def find_profile(db: Session, auth_id: str) -> Profile | None:
    return db.query(Profile).filter(Profile.auth_id == auth_id).first()


def find_vendor_by_user(db: Session, profile_id: int) -> Vendor | None:
    return db.query(Vendor).filter(Vendor.user_id == profile_id).first()


def resolve_context(db: Session, principal: Principal | None) -> AccessContext | None:
    """Return the caller's access context, or None when nobody is signed in.

    A principal with no Profile row yields a context with profile=None; every
    check then answers DENIED_FORBIDDEN rather than raising.
    """
    if principal is None:
        return None
    profile = find_profile(db, principal.auth_id)
    vendor = find_vendor_by_user(db, profile.id) if profile is not None else None
    return AccessContext(principal=principal, profile=profile, vendor=vendor)


# ── Predicates ────────────────────────────────────────────────────────


def check_authenticated(ctx: AccessContext | None) -> Decision:
    if ctx is None:
        return Decision.DENIED_UNAUTHENTICATED
    if ctx.profile is None:
        return Decision.DENIED_FORBIDDEN
    return Decision.ALLOWED


def check_admin(ctx: AccessContext | None) -> Decision:
    decision = check_authenticated(ctx)
    if decision is not Decision.ALLOWED:
        return decision
    return Decision.ALLOWED if ctx.is_admin else Decision.DENIED_FORBIDDEN


def check_vendor_mutation(ctx: AccessContext | None, vendor: Vendor) -> Decision:
    """Vendor self-service (vendor.user_id == profile.id) or admin."""
    decision = check_authenticated(ctx)
    if decision is not Decision.ALLOWED:
        return decision
    if ctx.is_admin or vendor.user_id == ctx.profile_id:
        return Decision.ALLOWED
    return Decision.DENIED_FORBIDDEN


def check_vendor_owner(ctx: AccessContext | None, vendor: Vendor) -> Decision:
    """Only the owning profile. Used for transitions an admin cannot drive (reapply)."""
    decision = check_authenticated(ctx)
    if decision is not Decision.ALLOWED:
        return decision
    return Decision.ALLOWED if vendor.user_id == ctx.profile_id else Decision.DENIED_FORBIDDEN


def check_product_mutation(ctx: AccessContext | None, product: Product) -> Decision:
    """The product's vendor must be the caller's vendor, or the caller is admin."""
    decision = check_authenticated(ctx)
    if decision is not Decision.ALLOWED:
        return decision
    if ctx.is_admin:
        return Decision.ALLOWED
    if ctx.vendor_id is not None and product.vendor_id == ctx.vendor_id:
        return Decision.ALLOWED
    return Decision.DENIED_FORBIDDEN


def check_inquiry_response(ctx: AccessContext | None, vendor_ids: set[int]) -> Decision:
    """A vendor may respond only to inquiries referencing its own products."""
    decision = check_authenticated(ctx)
    if decision is not Decision.ALLOWED:
        return decision
    if ctx.vendor_id is not None and ctx.vendor_id in vendor_ids:
        return Decision.ALLOWED
    return Decision.DENIED_FORBIDDEN


def check_customer_record(ctx: AccessContext | None, record: Inquiry | Order) -> Decision:
    """The customer who owns an inquiry/order, or admin. Guest records are admin-only."""
    decision = check_authenticated(ctx)
    if decision is not Decision.ALLOWED:
        return decision
    if ctx.is_admin:
        return Decision.ALLOWED
    if record.user_id is not None and record.user_id == ctx.profile_id:
        return Decision.ALLOWED
    return Decision.DENIED_FORBIDDEN


# ── Mapping ───────────────────────────────────────────────────────────


def deny(decision: Decision, reason: str = "") -> ServiceResult:
    """Turn a denial into the failure the caller surfaces to the user."""
    if decision is Decision.DENIED_UNAUTHENTICATED:
        return ServiceResult.fail(ErrorKind.UNAUTHENTICATED, "Please sign in to continue")
    log.warning(f"Guard denied request: {reason or 'forbidden'}")
    return ServiceResult.fail(ErrorKind.FORBIDDEN, reason or "You do not have access to this resource")
