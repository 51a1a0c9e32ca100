"""Closed status and role variants stored on marketplace entities."""

from enum import Enum

from sqlalchemy import Enum as SQLEnum


class ProfileRole(str, Enum):
    CUSTOMER = "customer"
    VENDOR = "vendor"
    ADMIN = "admin"


class VendorStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SUSPENDED = "suspended"


class ProductStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ARCHIVED = "archived"


class InquiryStatus(str, Enum):
    PENDING = "pending"
    QUOTED = "quoted"
    BOOKED = "booked"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class MetricKind(str, Enum):
    PRODUCT_VIEW = "product_view"
    PRODUCT_CART_ADD = "product_cart_add"
    PRODUCT_INQUIRY = "product_inquiry"
    PRODUCT_ORDER = "product_order"
    VENDOR_INQUIRY = "vendor_inquiry"
    VENDOR_REVENUE = "vendor_revenue"


def enum_column_type(enum_cls: type[Enum], name: str) -> SQLEnum:
    """Non-native enum column storing the member values (portable across dialects)."""
    return SQLEnum(
        enum_cls,
        name=name,
        native_enum=False,
        length=20,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )
