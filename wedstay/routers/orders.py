"""Order & review API — checkout records, cancellation, customer reviews."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_principal, require_principal, unwrap
from ..schemas.auth import Principal
from ..schemas.orders import OrderCreate
from ..schemas.responses import OrderOut, ReviewOut
from ..schemas.reviews import ReviewCreate
from ..services import order_service, review_service

router = APIRouter(tags=["orders"])


@router.post("/api/orders", response_model=OrderOut, status_code=201)
def api_place_order(
    body: OrderCreate,
    principal: Principal | None = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return unwrap(order_service.place_order(db, principal, body))


@router.get("/api/orders/mine", response_model=list[OrderOut])
def api_my_orders(principal: Principal = Depends(require_principal), db: Session = Depends(get_db)):
    return unwrap(order_service.list_customer_orders(db, principal))


@router.post("/api/orders/{order_id}/cancel", response_model=OrderOut)
def api_cancel_order(
    order_id: int,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    return unwrap(order_service.cancel_order(db, principal, order_id))


@router.post("/api/reviews", response_model=ReviewOut, status_code=201)
def api_create_review(
    body: ReviewCreate,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    return unwrap(review_service.create_review(db, principal, body))
