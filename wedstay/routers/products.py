"""Product API — vendor catalog management and public engagement tracking."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..dependencies import get_principal, require_principal, unwrap
from ..models import ProductStatus
from ..rate_limit import limiter
from ..schemas.auth import Principal
from ..schemas.products import ProductCreate, ProductUpdate, TrackEvent
from ..schemas.responses import DeletedResponse, ProductOut, TrackingResponse
from ..services import metrics_service, product_service
from ..services.guard import find_profile

router = APIRouter(tags=["products"])


# ── Vendor catalog ────────────────────────────────────────────────────


@router.post("/api/products", response_model=ProductOut, status_code=201)
def api_create_product(
    body: ProductCreate,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    return unwrap(product_service.create_product(db, principal, body))


@router.get("/api/products/mine", response_model=list[ProductOut])
def api_my_products(
    status: ProductStatus | None = None,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    return unwrap(product_service.list_vendor_products(db, principal, status))


@router.patch("/api/products/{product_id}", response_model=ProductOut)
def api_update_product(
    product_id: int,
    body: ProductUpdate,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    return unwrap(product_service.update_product(db, principal, product_id, body))


@router.post("/api/products/{product_id}/submit", response_model=ProductOut)
def api_submit_product(
    product_id: int,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    return unwrap(product_service.submit_product(db, principal, product_id))


@router.post("/api/products/{product_id}/archive", response_model=ProductOut)
def api_archive_product(
    product_id: int,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    return unwrap(product_service.archive_product(db, principal, product_id))


@router.delete("/api/products/{product_id}", response_model=DeletedResponse)
def api_delete_product(
    product_id: int,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    return unwrap(product_service.delete_product(db, principal, product_id))


# ── Engagement tracking (anonymous allowed) ───────────────────────────


def _profile_id(db: Session, principal: Principal | None) -> int | None:
    if principal is None:
        return None
    profile = find_profile(db, principal.auth_id)
    return profile.id if profile else None


@router.post("/api/products/{product_id}/view", response_model=TrackingResponse)
@limiter.limit(settings.rate_limit_tracking)
def api_track_view(
    request: Request,
    product_id: int,
    body: TrackEvent,
    principal: Principal | None = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return unwrap(
        metrics_service.record_product_view(
            db, product_id, f"view:{body.event_id}", _profile_id(db, principal), body.session_id
        )
    )


@router.post("/api/products/{product_id}/cart-add", response_model=TrackingResponse)
@limiter.limit(settings.rate_limit_tracking)
def api_track_cart_add(
    request: Request,
    product_id: int,
    body: TrackEvent,
    principal: Principal | None = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return unwrap(
        metrics_service.record_cart_add(
            db, product_id, f"cart:{body.event_id}", _profile_id(db, principal), body.session_id
        )
    )
