"""
schemas/results.py — Discriminated result returned by every service entry point

Business failures come back as ServiceResult(success=False, error=<ErrorKind>)
with a human-readable message. Infrastructure failures are never wrapped here;
they propagate as SQLAlchemy exceptions.

Called by: services/*.py, dependencies.py (HTTP mapping)
Depends on: pydantic
"""

from __future__ import annotations

from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

_M = TypeVar("_M", bound=BaseModel)


class ErrorKind(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    INVALID_TRANSITION = "invalid_transition"
    VALIDATION_FAILED = "validation_failed"
    CONFLICT = "conflict"
    ALREADY_EXISTS = "already_exists"


class ServiceResult(BaseModel):
    success: bool
    data: Any = None
    error: ErrorKind | None = None
    message: str = ""

    @classmethod
    def ok(cls, data: Any = None, message: str = "") -> ServiceResult:
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, error: ErrorKind, message: str) -> ServiceResult:
        return cls(success=False, error=error, message=message)


def validate_input(schema: type[_M], payload: _M | dict) -> _M:
    """Coerce a raw payload into its input struct. Raises pydantic.ValidationError."""
    if isinstance(payload, schema):
        return payload
    return schema.model_validate(payload)


def validation_failure(exc: ValidationError) -> ServiceResult:
    """Flatten a pydantic ValidationError into a single readable message."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "payload"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return ServiceResult.fail(ErrorKind.VALIDATION_FAILED, "; ".join(parts))
