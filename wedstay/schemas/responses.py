"""
schemas/responses.py — Response models for the HTTP surface

Built straight from ORM rows (from_attributes). Used as response_model= on
router decorators.

Called by: routers/*.py
Depends on: pydantic
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from ..models.enums import InquiryStatus, OrderStatus, ProductStatus, ProfileRole, VendorStatus


class _FromRow(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# ── Base Wrappers ───────────────────────────────────────────────────────


class OkResponse(BaseModel):
    ok: bool = True


class DeletedResponse(BaseModel):
    id: int
    deleted: bool = True


class TrackingResponse(BaseModel):
    applied: bool


# ── Identity ────────────────────────────────────────────────────────────


class ProfileOut(_FromRow):
    id: int
    email: str
    full_name: str | None = None
    role: ProfileRole


# ── Vendors ─────────────────────────────────────────────────────────────


class VendorOut(_FromRow):
    id: int
    user_id: int
    company_name: str
    slug: str
    description: str | None = None
    website: str | None = None
    phone: str | None = None
    email: str | None = None
    service_areas: list[str] | None = None
    years_in_business: int | None = None
    insurance_verified: bool | None = False
    status: VendorStatus
    rejection_reason: str | None = None
    approved_at: datetime | None = None
    total_products: int = 0
    total_inquiries: int = 0
    total_revenue: Decimal = Decimal("0")
    average_rating: Decimal | None = None


class VendorAnalytics(BaseModel):
    vendor_id: int
    status: str
    total_views: int
    total_inquiries: int
    total_cart_adds: int
    total_orders: int
    conversion_rate: float
    products_by_status: dict[str, int]
    total_revenue: str
    average_rating: str | None = None


# ── Products ────────────────────────────────────────────────────────────


class ProductOut(_FromRow):
    id: int
    vendor_id: int
    name: str
    slug: str
    handle: str
    description: str | None = None
    category: str | None = None
    subcategory: str | None = None
    base_price: Decimal | None = None
    compare_at_price: Decimal | None = None
    price_type: str | None = None
    currency: str | None = None
    status: ProductStatus
    rejection_reason: str | None = None
    views: int = 0
    inquiries: int = 0
    cart_adds: int = 0
    orders: int = 0
    published_at: datetime | None = None


# ── Inquiries ───────────────────────────────────────────────────────────


class InquiryOut(_FromRow):
    id: int
    user_id: int | None = None
    email: str
    full_name: str
    event_date: datetime | None = None
    event_type: str | None = None
    products: list[dict] = Field(default_factory=list)
    total_value: Decimal | None = None
    status: InquiryStatus
    vendor_responses: list[dict] = Field(default_factory=list)
    created_at: datetime | None = None


# ── Orders & reviews ────────────────────────────────────────────────────


class OrderOut(_FromRow):
    id: int
    order_number: str
    user_id: int | None = None
    subtotal: Decimal
    tax: Decimal | None = None
    shipping: Decimal | None = None
    discount: Decimal | None = None
    total: Decimal
    currency: str | None = None
    items: list[dict] = Field(default_factory=list)
    customer_email: str
    status: OrderStatus
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    refunded_at: datetime | None = None


class ReviewOut(_FromRow):
    id: int
    product_id: int | None = None
    vendor_id: int | None = None
    order_id: int | None = None
    rating: int
    title: str | None = None
    content: str
    is_verified_purchase: bool = False


# ── Admin ───────────────────────────────────────────────────────────────


class MarketplaceStats(BaseModel):
    version: str
    profiles: int
    vendors: dict[str, int]
    products: dict[str, int]
    inquiries: dict[str, int]
    orders: dict[str, int]
    total_revenue: str


class ReconcileSummary(BaseModel):
    products_checked: int
    products_corrected: int
    vendors_checked: int
    vendors_corrected: int
