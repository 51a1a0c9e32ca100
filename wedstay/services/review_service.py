"""Review service — customer ratings of products and vendors.

A review carrying an order id is marked as a verified purchase when that
order belongs to the reviewer, is completed, and contains the reviewed
product (or a product of the reviewed vendor). Every accepted review
recomputes the vendor's average rating.

Called by: routers/orders.py (POST /api/reviews)
Depends on: guard, metrics_service, schemas/reviews
"""

import logging

from pydantic import ValidationError
from sqlalchemy.orm import Session

from ..models import Order, OrderStatus, Product, Review, Vendor
from ..schemas.auth import Principal
from ..schemas.results import ErrorKind, ServiceResult, validate_input, validation_failure
from ..schemas.reviews import ReviewCreate
from .guard import Decision, check_authenticated, deny, resolve_context
from .metrics_service import refresh_vendor_rating

log = logging.getLogger("wedstay.reviews")


def _is_verified_purchase(order: Order | None, profile_id: int, product_id, vendor_id) -> bool:
    if order is None or order.user_id != profile_id or order.status != OrderStatus.COMPLETED:
        return False
    for item in order.items or []:
        if product_id is not None and item.get("productId") == product_id:
            return True
        if product_id is None and item.get("vendorId") == vendor_id:
            return True
    return False


def create_review(db: Session, principal: Principal | None, payload: ReviewCreate | dict) -> ServiceResult:
    ctx = resolve_context(db, principal)
    decision = check_authenticated(ctx)
    if decision is not Decision.ALLOWED:
        return deny(decision)

    try:
        data = validate_input(ReviewCreate, payload)
    except ValidationError as e:
        return validation_failure(e)

    vendor_id = data.vendor_id
    if data.product_id is not None:
        product = db.get(Product, data.product_id)
        if product is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Product not found")
        if vendor_id is not None and vendor_id != product.vendor_id:
            return ServiceResult.fail(
                ErrorKind.VALIDATION_FAILED, "vendor_id does not match the product's vendor"
            )
        vendor_id = product.vendor_id
    elif db.get(Vendor, vendor_id) is None:
        return ServiceResult.fail(ErrorKind.NOT_FOUND, "Vendor not found")

    order = db.get(Order, data.order_id) if data.order_id is not None else None
    if data.order_id is not None and order is None:
        return ServiceResult.fail(ErrorKind.NOT_FOUND, "Order not found")

    review = Review(
        user_id=ctx.profile_id,
        product_id=data.product_id,
        vendor_id=vendor_id,
        order_id=data.order_id,
        rating=data.rating,
        title=data.title,
        content=data.content.strip(),
        is_verified_purchase=_is_verified_purchase(order, ctx.profile_id, data.product_id, vendor_id),
        is_published=True,
    )
    db.add(review)
    db.flush()
    refresh_vendor_rating(db, vendor_id)
    db.commit()
    db.refresh(review)
    log.info(
        f"Review #{review.id} ({review.rating}/5) by profile {ctx.profile_id} for vendor #{vendor_id}"
    )
    return ServiceResult.ok(review)


def list_product_reviews(db: Session, product_id: int) -> list[Review]:
    return (
        db.query(Review)
        .filter(Review.product_id == product_id, Review.is_published.is_(True))
        .order_by(Review.created_at.desc(), Review.id.desc())
        .all()
    )
