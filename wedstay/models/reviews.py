"""Review model — a customer's 1-5 rating of a product and/or vendor."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Index, Integer, String, Text

from ..database import UTCDateTime
from .base import Base


class Review(Base):
    __tablename__ = "reviews"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"))
    vendor_id = Column(Integer, ForeignKey("vendors.id", ondelete="CASCADE"))
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="SET NULL"))

    rating = Column(Integer, nullable=False)
    title = Column(String(255))
    content = Column(Text, nullable=False)

    is_verified_purchase = Column(Boolean, default=False)
    is_published = Column(Boolean, default=True)

    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating_range"),
        Index("ix_reviews_product", "product_id"),
        Index("ix_reviews_vendor", "vendor_id"),
    )
