# backend/portfolio_engine/services/__init__.py
"""
Service layer for business logic.

Services:
- Have NO knowledge of HTTP (no HTTPException, no status codes)
- Raise domain-specific exceptions
- Receive database sessions as parameters (not via Depends)
- Are easily testable via dependency injection

Usage:
    from portfolio_engine.services import PortfolioAnalyticsService
    from portfolio_engine.services import (
        InvestorNotFoundError,
        LedgerIntegrityError,
    )

Architecture:
    services/
    ├── __init__.py          # This file - main exports
    ├── exceptions.py        # Domain exceptions
    ├── constants.py         # Business constants and limits
    ├── protocols.py         # Interfaces for injected collaborators
    └── portfolio/           # Aggregation and analytics pipeline
"""

from portfolio_engine.services.exceptions import (
    ServiceError,
    ValidationError,
    InvalidTimeframeError,
    NotFoundError,
    InvestorNotFoundError,
    PositionNotFoundError,
    AnalyticsError,
    LedgerIntegrityError,
)
from portfolio_engine.services.portfolio import PortfolioAnalyticsService

__all__ = [
    "PortfolioAnalyticsService",
    # Exceptions
    "ServiceError",
    "ValidationError",
    "InvalidTimeframeError",
    "NotFoundError",
    "InvestorNotFoundError",
    "PositionNotFoundError",
    "AnalyticsError",
    "LedgerIntegrityError",
]
