"""
schemas/inquiries.py — Pydantic models for inquiries and vendor quotes

Business Rules:
- At least one product line, each with quantity >= 1
- Contact email must contain @; full name required
- Quoted price non-negative

Called by: services/inquiry_service.py, routers/inquiries.py
Depends on: pydantic
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator


class InquiryItem(BaseModel):
    product_id: int
    quantity: int = Field(default=1, ge=1)
    notes: str | None = None


class InquirySubmit(BaseModel):
    email: str
    full_name: str = Field(..., min_length=1, max_length=255)
    phone: str | None = None
    event_date: datetime | None = None
    event_type: str | None = None
    venue_name: str | None = None
    venue_location: str | None = None
    guest_count: int | None = Field(default=None, ge=0)
    products: list[InquiryItem] = Field(..., min_length=1)
    customer_notes: str | None = None
    source: str | None = None

    @field_validator("email")
    @classmethod
    def clean_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("must be a valid email address")
        return v


class VendorQuote(BaseModel):
    quoted_price: Decimal = Field(..., ge=0)
    message: str = Field(default="", max_length=5000)
