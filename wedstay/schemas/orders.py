"""
schemas/orders.py — Pydantic models for checkout

Called by: services/order_service.py, routers/orders.py
Depends on: pydantic
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from ..models.enums import OrderStatus


class OrderItemIn(BaseModel):
    product_id: int
    quantity: int = Field(default=1, ge=1)
    customization: dict | None = None


class OrderCreate(BaseModel):
    customer_email: str
    customer_name: str | None = None
    customer_phone: str | None = None
    items: list[OrderItemIn] = Field(..., min_length=1)
    tax: Decimal = Field(default=Decimal("0"), ge=0)
    shipping: Decimal = Field(default=Decimal("0"), ge=0)
    discount: Decimal = Field(default=Decimal("0"), ge=0)
    event_date: datetime | None = None
    event_location: str | None = None
    event_type: str | None = None
    customer_notes: str | None = None

    @field_validator("customer_email")
    @classmethod
    def clean_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("must be a valid email address")
        return v


class OrderAdvance(BaseModel):
    status: OrderStatus
