"""
dependencies.py — Shared FastAPI Dependencies

Reusable dependency functions for identity and for translating service
results into HTTP responses. All routers import from here instead of
defining their own auth logic.

Business Rules:
- authenticate() returns None if nobody is signed in (non-throwing)
- get_principal also makes sure the signed-in principal has a Profile row
- require_principal raises 401 if nobody is signed in
- Ownership and role checks are NOT done here; services ask the guard
- unwrap() maps ErrorKind onto 401/403/404/409/422

Called by: all routers
Depends on: database, schemas/auth, schemas/results, services/profile_service
"""

import logging

from fastapi import Depends, HTTPException, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session

from .database import get_db
from .schemas.auth import Principal
from .schemas.results import ErrorKind, ServiceResult
from .services.profile_service import ensure_profile

log = logging.getLogger("wedstay.http")

STATUS_BY_KIND = {
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_TRANSITION: 409,
    ErrorKind.CONFLICT: 409,
    ErrorKind.ALREADY_EXISTS: 409,
    ErrorKind.VALIDATION_FAILED: 422,
}


# ── Authentication ────────────────────────────────────────────────────


def authenticate(request: Request) -> Principal | None:
    """Return the principal stored in the signed session cookie, or None."""
    auth_id = request.session.get("auth_id")
    email = request.session.get("email")
    if not auth_id or not email:
        return None
    try:
        return Principal(auth_id=auth_id, email=email, full_name=request.session.get("full_name"))
    except ValidationError:
        request.session.clear()
        return None


def get_principal(request: Request, db: Session = Depends(get_db)) -> Principal | None:
    """Dependency: optional principal. First sign-in creates the customer profile."""
    principal = authenticate(request)
    if principal is not None:
        ensure_profile(db, principal)
    return principal


def require_principal(principal: Principal | None = Depends(get_principal)) -> Principal:
    """Dependency: raises 401 if nobody is signed in."""
    if principal is None:
        raise ServiceFailure(ServiceResult.fail(ErrorKind.UNAUTHENTICATED, "Please sign in to continue"))
    return principal


# ── Result mapping ────────────────────────────────────────────────────


class ServiceFailure(HTTPException):
    """A business failure surfaced over HTTP; carries its ErrorKind."""

    def __init__(self, result: ServiceResult):
        super().__init__(STATUS_BY_KIND.get(result.error, 400), result.message)
        self.kind = result.error.value if result.error else ""


def unwrap(result: ServiceResult):
    """Return result.data, or raise the ServiceFailure matching its ErrorKind."""
    if result.success:
        return result.data
    log.debug(f"Service failure ({result.error}): {result.message}")
    raise ServiceFailure(result)
