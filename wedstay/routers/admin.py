"""Admin API — moderation, fulfilment, roles, stats, reconciliation.

Every route requires a signed-in principal; the admin role itself is
checked by the guard inside each service call.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import require_principal, unwrap
from ..schemas.auth import Principal, RoleUpdate
from ..schemas.orders import OrderAdvance
from ..schemas.products import ProductRejection
from ..schemas.responses import (
    InquiryOut,
    MarketplaceStats,
    OrderOut,
    ProductOut,
    ProfileOut,
    ReconcileSummary,
    VendorOut,
)
from ..schemas.vendors import VendorRejection
from ..services import (
    admin_service,
    inquiry_service,
    order_service,
    product_service,
    vendor_service,
)

router = APIRouter(tags=["admin"])


# ── Vendors ───────────────────────────────────────────────────────────


@router.get("/api/admin/vendors/pending", response_model=list[VendorOut])
def api_pending_vendors(principal: Principal = Depends(require_principal), db: Session = Depends(get_db)):
    return unwrap(admin_service.list_pending_vendors(db, principal))


@router.post("/api/admin/vendors/{vendor_id}/approve", response_model=VendorOut)
def api_approve_vendor(
    vendor_id: int, principal: Principal = Depends(require_principal), db: Session = Depends(get_db)
):
    return unwrap(vendor_service.approve_vendor(db, principal, vendor_id))


@router.post("/api/admin/vendors/{vendor_id}/reject", response_model=VendorOut)
def api_reject_vendor(
    vendor_id: int,
    body: VendorRejection,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    return unwrap(vendor_service.reject_vendor(db, principal, vendor_id, body))


@router.post("/api/admin/vendors/{vendor_id}/suspend", response_model=VendorOut)
def api_suspend_vendor(
    vendor_id: int, principal: Principal = Depends(require_principal), db: Session = Depends(get_db)
):
    return unwrap(vendor_service.suspend_vendor(db, principal, vendor_id))


# ── Products ──────────────────────────────────────────────────────────


@router.get("/api/admin/products/pending", response_model=list[ProductOut])
def api_pending_products(principal: Principal = Depends(require_principal), db: Session = Depends(get_db)):
    return unwrap(admin_service.list_pending_products(db, principal))


@router.post("/api/admin/products/{product_id}/approve", response_model=ProductOut)
def api_approve_product(
    product_id: int, principal: Principal = Depends(require_principal), db: Session = Depends(get_db)
):
    return unwrap(product_service.approve_product(db, principal, product_id))


@router.post("/api/admin/products/{product_id}/reject", response_model=ProductOut)
def api_reject_product(
    product_id: int,
    body: ProductRejection | None = None,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    return unwrap(product_service.reject_product(db, principal, product_id, body))


@router.post("/api/admin/products/{product_id}/archive", response_model=ProductOut)
def api_admin_archive_product(
    product_id: int, principal: Principal = Depends(require_principal), db: Session = Depends(get_db)
):
    return unwrap(product_service.archive_product(db, principal, product_id))


# ── Inquiries & orders ────────────────────────────────────────────────


@router.post("/api/admin/inquiries/{inquiry_id}/complete", response_model=InquiryOut)
def api_complete_inquiry(
    inquiry_id: int, principal: Principal = Depends(require_principal), db: Session = Depends(get_db)
):
    return unwrap(inquiry_service.complete_inquiry(db, principal, inquiry_id))


@router.post("/api/admin/orders/{order_id}/advance", response_model=OrderOut)
def api_advance_order(
    order_id: int,
    body: OrderAdvance,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    return unwrap(order_service.advance_order(db, principal, order_id, body))


@router.post("/api/admin/orders/{order_id}/refund", response_model=OrderOut)
def api_refund_order(
    order_id: int, principal: Principal = Depends(require_principal), db: Session = Depends(get_db)
):
    return unwrap(order_service.refund_order(db, principal, order_id))


# ── Roles, stats, reconciliation ──────────────────────────────────────


@router.put("/api/admin/profiles/{profile_id}/role", response_model=ProfileOut)
def api_set_profile_role(
    profile_id: int,
    body: RoleUpdate,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    return unwrap(admin_service.set_profile_role(db, principal, profile_id, body))


@router.get("/api/admin/stats", response_model=MarketplaceStats)
def api_marketplace_stats(principal: Principal = Depends(require_principal), db: Session = Depends(get_db)):
    return unwrap(admin_service.get_marketplace_stats(db, principal))


@router.post("/api/admin/reconcile", response_model=ReconcileSummary)
def api_reconcile(principal: Principal = Depends(require_principal), db: Session = Depends(get_db)):
    return unwrap(admin_service.run_reconciliation(db, principal))
