"""
schemas/auth.py — Authenticated principal and role changes

Principal is what the identity provider hands us per request. It is passed
explicitly into every service call; nothing stores it process-wide.
"""

from __future__ import annotations

from pydantic import BaseModel, field_validator

from ..models.enums import ProfileRole


class Principal(BaseModel):
    auth_id: str
    email: str
    full_name: str | None = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class RoleUpdate(BaseModel):
    role: ProfileRole
