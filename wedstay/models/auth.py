"""Profile model — one row per identity-provider principal."""

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from ..database import UTCDateTime
from .base import Base
from .enums import ProfileRole, enum_column_type


class Profile(Base):
    __tablename__ = "profiles"
    id = Column(Integer, primary_key=True)
    auth_id = Column(String(255), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255))
    phone = Column(String(50))
    role = Column(
        enum_column_type(ProfileRole, "profile_role"),
        default=ProfileRole.CUSTOMER,
        nullable=False,
    )
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    vendor = relationship("Vendor", back_populates="user", uselist=False)
