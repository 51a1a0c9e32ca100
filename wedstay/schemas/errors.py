"""
schemas/errors.py — Structured error response model

Shared by the ServiceResult mapping and the exception handlers in main.py.
"""

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    error: str
    status_code: int
    kind: str = ""
    detail: list | None = None
