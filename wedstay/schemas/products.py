"""
schemas/products.py — Pydantic models for product create/update

Business Rules:
- Drafts may be incomplete; submission checks the required fields
- Prices are non-negative, quantity at least 1
- Updates forbid unknown keys, so vendor_id and handle can never be changed

Called by: services/product_service.py, routers/products.py
Depends on: pydantic
"""

from __future__ import annotations

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, field_validator

PriceType = Literal["rental", "service", "package"]


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    category: str | None = None
    subcategory: str | None = None
    base_price: Decimal | None = Field(default=None, ge=0)
    compare_at_price: Decimal | None = Field(default=None, ge=0)
    price_type: PriceType = "rental"
    quantity: int = Field(default=1, ge=1)
    track_inventory: bool = False
    minimum_order: int = Field(default=1, ge=1)
    submit: bool = False

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name is required")
        return v


class ProductUpdate(BaseModel, extra="forbid"):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    category: str | None = None
    subcategory: str | None = None
    base_price: Decimal | None = Field(default=None, ge=0)
    compare_at_price: Decimal | None = Field(default=None, ge=0)
    price_type: PriceType | None = None
    quantity: int | None = Field(default=None, ge=1)
    track_inventory: bool | None = None
    minimum_order: int | None = Field(default=None, ge=1)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str | None) -> str:
        # Omit the field to leave the name unchanged; it cannot be cleared
        v = (v or "").strip()
        if not v:
            raise ValueError("name cannot be blank")
        return v


class ProductRejection(BaseModel):
    reason: str | None = None


class TrackEvent(BaseModel):
    """A client-generated id makes view/cart-add tracking safe to retry."""

    event_id: str = Field(..., min_length=8, max_length=200)
    session_id: str | None = Field(default=None, max_length=255)
