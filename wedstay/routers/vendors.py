"""Vendor API — onboarding, self-service settings, analytics."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import require_principal, unwrap
from ..schemas.auth import Principal
from ..schemas.responses import VendorAnalytics, VendorOut
from ..schemas.vendors import VendorOnboarding, VendorSettingsUpdate
from ..services import vendor_service

router = APIRouter(tags=["vendors"])


@router.post("/api/vendors", response_model=VendorOut, status_code=201)
def api_onboard_vendor(
    body: VendorOnboarding,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    return unwrap(vendor_service.onboard_vendor(db, principal, body))


@router.get("/api/vendors/me", response_model=VendorOut)
def api_my_vendor(principal: Principal = Depends(require_principal), db: Session = Depends(get_db)):
    return unwrap(vendor_service.get_my_vendor(db, principal))


@router.get("/api/vendors/me/analytics", response_model=VendorAnalytics)
def api_vendor_analytics(principal: Principal = Depends(require_principal), db: Session = Depends(get_db)):
    return unwrap(vendor_service.get_vendor_analytics(db, principal))


@router.patch("/api/vendors/{vendor_id}", response_model=VendorOut)
def api_update_vendor(
    vendor_id: int,
    body: VendorSettingsUpdate,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    return unwrap(vendor_service.update_vendor_settings(db, principal, vendor_id, body))


@router.post("/api/vendors/{vendor_id}/reapply", response_model=VendorOut)
def api_reapply_vendor(
    vendor_id: int,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    return unwrap(vendor_service.reapply_vendor(db, principal, vendor_id))
