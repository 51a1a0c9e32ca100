"""Inquiry API — quote requests (guests welcome) and the vendor inbox."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..dependencies import get_principal, require_principal, unwrap
from ..models import InquiryStatus
from ..rate_limit import limiter
from ..schemas.auth import Principal
from ..schemas.inquiries import InquirySubmit, VendorQuote
from ..schemas.responses import InquiryOut
from ..services import inquiry_service

router = APIRouter(tags=["inquiries"])


@router.post("/api/inquiries", response_model=InquiryOut, status_code=201)
@limiter.limit(settings.rate_limit_inquiry)
def api_submit_inquiry(
    request: Request,
    body: InquirySubmit,
    principal: Principal | None = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return unwrap(inquiry_service.submit_inquiry(db, principal, body))


@router.get("/api/inquiries/inbox", response_model=list[InquiryOut])
def api_vendor_inbox(
    status: InquiryStatus | None = None,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    return unwrap(inquiry_service.list_vendor_inquiries(db, principal, status))


@router.post("/api/inquiries/{inquiry_id}/respond", response_model=InquiryOut)
def api_respond_to_inquiry(
    inquiry_id: int,
    body: VendorQuote,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    return unwrap(inquiry_service.respond_to_inquiry(db, principal, inquiry_id, body))


@router.post("/api/inquiries/{inquiry_id}/confirm", response_model=InquiryOut)
def api_confirm_inquiry(
    inquiry_id: int,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    return unwrap(inquiry_service.confirm_inquiry(db, principal, inquiry_id))


@router.post("/api/inquiries/{inquiry_id}/cancel", response_model=InquiryOut)
def api_cancel_inquiry(
    inquiry_id: int,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    return unwrap(inquiry_service.cancel_inquiry(db, principal, inquiry_id))
