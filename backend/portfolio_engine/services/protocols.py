# backend/portfolio_engine/services/protocols.py
"""
Protocol interfaces for service dependency injection.

Using typing.Protocol enables structural subtyping:
- Policies and readers satisfy protocols without inheritance
- Test doubles work without explicit inheritance
- The financial policies the engine does not own stay pluggable
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from portfolio_engine.services.portfolio.types import LedgerSnapshot, ProjectRecord


class LedgerReaderProtocol(Protocol):
    """Interface required by PortfolioAnalyticsService."""

    def investor_exists(self, db: Session, investor_id: int) -> bool:
        ...

    def read_snapshot(
        self,
        db: Session,
        investor_id: int,
        as_of: datetime | None = None,
    ) -> LedgerSnapshot:
        ...


class ValuationPolicyProtocol(Protocol):
    """
    Estimates what a running position is worth, for unrealized gains.

    The aggregator takes max(0, signal - invested - max(distributed, 0)) and forces
    the result to zero once a position is completed.
    """

    name: str

    def valuation_signal(
        self,
        project: ProjectRecord,
        invested: Decimal,
        first_investment: date,
        as_of: date,
    ) -> Decimal:
        ...


class BenchmarkPolicyProtocol(Protocol):
    """
    Produces the reference series the monthly returns are compared with.

    Given the invested capital at the end of each month, returns the
    cumulative benchmark return for each month, aligned index by index.
    """

    def cumulative_returns(self, invested_by_month: list[Decimal]) -> list[Decimal]:
        ...
