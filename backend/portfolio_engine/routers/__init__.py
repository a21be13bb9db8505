# backend/portfolio_engine/routers/__init__.py
"""
API routers for the Portfolio Analytics Engine.

- portfolio: Investor portfolio document, overview, analytics and positions
"""

from portfolio_engine.routers.portfolio import router as portfolio_router

__all__ = [
    "portfolio_router",
]
