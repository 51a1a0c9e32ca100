"""Inquiry model — a customer's request for quotes across one or more products."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, ForeignKey, Index, Integer, Numeric, String, Text

from ..database import UTCDateTime
from .base import Base
from .enums import InquiryStatus, enum_column_type


class Inquiry(Base):
    __tablename__ = "inquiries"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("profiles.id", ondelete="SET NULL"))  # guests allowed

    # Contact
    email = Column(String(255), nullable=False)
    phone = Column(String(50))
    full_name = Column(String(255), nullable=False)

    # Event details
    event_date = Column(UTCDateTime)
    event_type = Column(String(100))
    venue_name = Column(String(255))
    venue_location = Column(String(255))
    guest_count = Column(Integer)

    # [{"productId": int, "quantity": int, "notes": str | None}, ...] in submission order
    products = Column(JSON, nullable=False, default=list)
    total_value = Column(Numeric(12, 2))

    status = Column(
        enum_column_type(InquiryStatus, "inquiry_status"),
        default=InquiryStatus.PENDING,
        nullable=False,
    )
    # Append-only: [{"vendorId", "quotedPrice", "message", "respondedAt"}, ...]
    vendor_responses = Column(JSON, nullable=False, default=list)

    customer_notes = Column(Text)
    internal_notes = Column(Text)
    source = Column(String(100))

    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("ix_inquiries_user", "user_id"),
        Index("ix_inquiries_status", "status"),
        Index("ix_inquiries_created", "created_at"),
    )
