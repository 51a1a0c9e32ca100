"""
schemas/reviews.py — Pydantic model for review submission

Business Rules:
- Rating is an integer 1-5 (out-of-range is rejected, not clamped)
- A review targets a product, a vendor, or both
"""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator


class ReviewCreate(BaseModel):
    product_id: int | None = None
    vendor_id: int | None = None
    order_id: int | None = None
    rating: int = Field(..., ge=1, le=5)
    title: str | None = Field(default=None, max_length=255)
    content: str = Field(..., min_length=1, max_length=5000)

    @model_validator(mode="after")
    def require_target(self):
        if self.product_id is None and self.vendor_id is None:
            raise ValueError("a review needs a product_id or vendor_id")
        return self
