"""Metric event ledger and raw analytics events."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, ForeignKey, Index, Integer, Numeric, String

from ..database import UTCDateTime
from .base import Base
from .enums import MetricKind, enum_column_type


class MetricEvent(Base):
    """One row per applied counter event. The unique event_id makes application at-most-once."""

    __tablename__ = "metric_events"
    id = Column(Integer, primary_key=True)
    event_id = Column(String(255), nullable=False, unique=True)
    kind = Column(enum_column_type(MetricKind, "metric_kind"), nullable=False)
    target_id = Column(Integer, nullable=False)
    delta = Column(Numeric(12, 2), nullable=False, default=1)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (Index("ix_metric_events_kind_target", "kind", "target_id"),)


class AnalyticsEvent(Base):
    __tablename__ = "analytics_events"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("profiles.id", ondelete="SET NULL"))
    session_id = Column(String(255))
    event_type = Column(String(50), nullable=False)  # product_view | add_to_cart
    event_data = Column(JSON)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_analytics_events_type", "event_type"),
        Index("ix_analytics_events_created", "created_at"),
    )
