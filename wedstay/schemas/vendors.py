"""
schemas/vendors.py — Pydantic models for vendor onboarding & settings

Business Rules:
- Company name is required (2-255 chars); the slug is derived from it
- Contact email must contain @ and is lowercased
- Service areas accept a comma-separated string or a list; blanks dropped
- Rejection requires a non-empty reason

Called by: services/vendor_service.py, routers/vendors.py, routers/admin.py
Depends on: pydantic
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


def _clean_email(v: str | None) -> str | None:
    if v is None:
        return None
    v = str(v).strip().lower()
    if "@" not in v:
        raise ValueError("must be a valid email address")
    return v


class VendorOnboarding(BaseModel):
    company_name: str = Field(..., min_length=2, max_length=255)
    description: str = ""
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    service_areas: list[str] = Field(default_factory=list)
    years_in_business: int | None = Field(default=None, ge=0)
    business_license: str | None = None
    insurance_verified: bool = False

    @field_validator("company_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("company name is required")
        return v

    @field_validator("email")
    @classmethod
    def clean_email(cls, v: str | None) -> str | None:
        return _clean_email(v)

    @field_validator("website")
    @classmethod
    def blank_website(cls, v: str | None) -> str | None:
        return (v or "").strip() or None

    @field_validator("service_areas", mode="before")
    @classmethod
    def split_areas(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split(",")
        return [str(a).strip() for a in v if a and str(a).strip()]


class VendorSettingsUpdate(BaseModel, extra="forbid"):
    company_name: str | None = Field(default=None, min_length=2, max_length=255)
    description: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None

    @field_validator("company_name")
    @classmethod
    def strip_name(cls, v: str | None) -> str:
        v = (v or "").strip()
        if len(v) < 2:
            raise ValueError("company name cannot be cleared")
        return v

    @field_validator("email")
    @classmethod
    def clean_email(cls, v: str | None) -> str | None:
        return _clean_email(v)


class VendorRejection(BaseModel):
    reason: str = Field(..., min_length=1, max_length=2000)

    @field_validator("reason")
    @classmethod
    def strip_reason(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("a rejection reason is required")
        return v
