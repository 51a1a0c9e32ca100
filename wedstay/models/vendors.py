"""Vendor model — a company selling or renting through the marketplace."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from ..database import UTCDateTime
from .base import Base
from .enums import VendorStatus, enum_column_type


class Vendor(Base):
    __tablename__ = "vendors"
    id = Column(Integer, primary_key=True)
    user_id = Column(
        Integer, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    company_name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True)
    description = Column(Text)
    website = Column(String(500))
    phone = Column(String(50))
    email = Column(String(255))
    service_areas = Column(JSON, default=list)

    # Business info
    years_in_business = Column(Integer)
    insurance_verified = Column(Boolean, default=False)
    business_license = Column(String(255))

    status = Column(
        enum_column_type(VendorStatus, "vendor_status"),
        default=VendorStatus.PENDING,
        nullable=False,
    )
    approved_at = Column(UTCDateTime)
    rejection_reason = Column(Text)

    commission_rate = Column(Numeric(5, 2), default=15)

    # Denormalized metrics, written by metrics_service and corrected by reconciliation
    total_products = Column(Integer, default=0, nullable=False)
    total_inquiries = Column(Integer, default=0, nullable=False)
    total_revenue = Column(Numeric(12, 2), default=0, nullable=False)
    average_rating = Column(Numeric(3, 2))

    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    user = relationship("Profile", back_populates="vendor")
    products = relationship("Product", back_populates="vendor")

    __table_args__ = (Index("ix_vendors_status", "status"),)
