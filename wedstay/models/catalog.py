"""Product model — a rentable or purchasable item listed by one vendor."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from ..database import UTCDateTime
from .base import Base
from .enums import ProductStatus, enum_column_type


class Product(Base):
    __tablename__ = "products"
    id = Column(Integer, primary_key=True)
    vendor_id = Column(
        Integer, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False
    )

    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False)
    handle = Column(String(300), nullable=False, unique=True)  # immutable once created
    description = Column(Text)
    category = Column(String(100))
    subcategory = Column(String(100))

    base_price = Column(Numeric(10, 2))
    compare_at_price = Column(Numeric(10, 2))
    price_type = Column(String(20), default="rental")  # rental | service | package
    currency = Column(String(3), default="USD")

    quantity = Column(Integer, default=1)
    track_inventory = Column(Boolean, default=False)
    minimum_order = Column(Integer, default=1)

    status = Column(
        enum_column_type(ProductStatus, "product_status"),
        default=ProductStatus.DRAFT,
        nullable=False,
    )
    rejection_reason = Column(Text)
    featured = Column(Boolean, default=False)

    # Performance counters; only metrics_service writes these
    views = Column(Integer, default=0, nullable=False)
    inquiries = Column(Integer, default=0, nullable=False)
    cart_adds = Column(Integer, default=0, nullable=False)
    orders = Column(Integer, default=0, nullable=False)

    published_at = Column(UTCDateTime)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    vendor = relationship("Vendor", back_populates="products")

    __table_args__ = (
        Index("ix_products_vendor", "vendor_id"),
        Index("ix_products_status", "status"),
        Index("ix_products_category", "category"),
    )


class ProductHandle(Base):
    """Every product handle ever issued. Rows outlive their product so a handle is never reissued."""

    __tablename__ = "product_handles"
    id = Column(Integer, primary_key=True)
    handle = Column(String(300), nullable=False, unique=True)
    product_id = Column(Integer)  # no FK; the product may since have been deleted
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
