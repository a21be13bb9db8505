# backend/portfolio_engine/schemas/__init__.py
"""
Pydantic schemas for API responses.

- errors: Error response formats
- portfolio: Investor portfolio documents (camelCase on the wire)
"""

from portfolio_engine.schemas.errors import ErrorDetail, ValidationErrorDetail
from portfolio_engine.schemas.portfolio import (
    PortfolioAnalyticsResponse,
    PortfolioOverviewResponse,
    PortfolioResponse,
    PositionDetailResponse,
)

__all__ = [
    "ErrorDetail",
    "ValidationErrorDetail",
    "PortfolioResponse",
    "PortfolioOverviewResponse",
    "PortfolioAnalyticsResponse",
    "PositionDetailResponse",
]
