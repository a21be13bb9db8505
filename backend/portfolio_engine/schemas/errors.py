# backend/portfolio_engine/schemas/errors.py
"""
Pydantic schemas for error responses.

Every non-2xx response uses one envelope so clients can tell "no data yet"
(a 200 with zeros) from "failed to compute" (a typed error below).
Used by global exception handlers in main.py.
"""

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Standard error response format."""

    error: str = Field(
        ...,
        description="Error type/code (e.g., 'InvestorNotFoundError', 'LedgerUnavailableError')"
    )
    message: str = Field(
        ...,
        description="Human-readable error message"
    )
    details: dict | None = Field(
        default=None,
        description="Additional error context (optional)"
    )


class ValidationErrorDetail(BaseModel):
    """
    Validation error response format.

    Used for request validation errors (422 responses).
    """

    error: str = Field(default="ValidationError")
    message: str = Field(default="Request validation failed")
    details: list[dict] = Field(
        ...,
        description="List of validation errors"
    )
