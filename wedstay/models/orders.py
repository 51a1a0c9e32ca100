"""Order model — checkout result with an immutable snapshot of purchased items."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, ForeignKey, Index, Integer, Numeric, String, Text

from ..database import UTCDateTime
from .base import Base
from .enums import OrderStatus, enum_column_type


class Order(Base):
    __tablename__ = "orders"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("profiles.id", ondelete="SET NULL"))
    order_number = Column(String(50), nullable=False, unique=True)

    subtotal = Column(Numeric(12, 2), nullable=False)
    tax = Column(Numeric(12, 2), default=0)
    shipping = Column(Numeric(12, 2), default=0)
    discount = Column(Numeric(12, 2), default=0)
    total = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), default="USD")

    # [{"productId", "name", "price", "quantity", "vendorId", "customization"}, ...]
    items = Column(JSON, nullable=False, default=list)

    customer_email = Column(String(255), nullable=False)
    customer_phone = Column(String(50))
    customer_name = Column(String(255))

    event_date = Column(UTCDateTime)
    event_location = Column(String(255))
    event_type = Column(String(100))

    status = Column(
        enum_column_type(OrderStatus, "order_status"),
        default=OrderStatus.PENDING,
        nullable=False,
    )
    customer_notes = Column(Text)
    internal_notes = Column(Text)

    completed_at = Column(UTCDateTime)
    cancelled_at = Column(UTCDateTime)
    refunded_at = Column(UTCDateTime)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("ix_orders_user", "user_id"),
        Index("ix_orders_status", "status"),
        Index("ix_orders_created", "created_at"),
    )
