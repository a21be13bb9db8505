# backend/portfolio_engine/services/portfolio/__init__.py
"""
Portfolio aggregation and analytics engine.

Turns one investor's Investment and ProfitDistribution rows into positions,
portfolio totals, a monthly return series, risk metrics and a health score.

Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │               PortfolioAnalyticsService                  │
    │        (orchestrator, investor check, TTL cache)         │
    └──────────────────────────────────────────────────────────┘
                              │
        ┌──────────┬──────────┼───────────┬────────────┐
        ▼          ▼          ▼           ▼            ▼
    ┌────────┐ ┌─────────┐ ┌─────────┐ ┌──────────┐ ┌────────┐
    │ Ledger │ │Aggregat-│ │  Time   │ │   Risk   │ │ Health │
    │ Reader │ │   or    │ │ Series  │ │Calculator│ │ Score  │
    └────────┘ └─────────┘ └─────────┘ └──────────┘ └────────┘
                   │            │
              ┌─────────┐  ┌─────────┐
              │Lifecycle│  │Benchmark│
              │+Valuat. │  │ Policy  │
              └─────────┘  └─────────┘

Usage:
    from portfolio_engine.services.portfolio import PortfolioAnalyticsService

    service = PortfolioAnalyticsService()
    analytics = service.get_analytics(db, investor_id=1, timeframe="1Y")
    print(f"Health score: {analytics.health.score}")
"""

from portfolio_engine.services.portfolio.aggregator import (
    PortfolioAggregator,
    calculate_investor_payouts,
    calculate_ownership_share,
)
from portfolio_engine.services.portfolio.health import calculate_health_score
from portfolio_engine.services.portfolio.ledger import LedgerReader
from portfolio_engine.services.portfolio.lifecycle import (
    classify_lifecycle,
    parse_project_status,
)
from portfolio_engine.services.portfolio.policies import (
    AccruedExpectedReturnPolicy,
    FixedRateBenchmarkPolicy,
    PrincipalValuationPolicy,
)
from portfolio_engine.services.portfolio.risk import RiskCalculator
from portfolio_engine.services.portfolio.service import (
    AnalyticsCache,
    PortfolioAnalyticsService,
)
from portfolio_engine.services.portfolio.timeseries import (
    VALID_TIMEFRAMES,
    build_monthly_series,
)
from portfolio_engine.services.portfolio.types import (
    HealthBreakdown,
    HealthScore,
    LedgerSnapshot,
    LifecycleStage,
    MonthlyBucket,
    PerformanceMetrics,
    PortfolioAnalytics,
    PortfolioOverview,
    PortfolioTotals,
    Position,
)

__all__ = [
    # Main service
    "PortfolioAnalyticsService",
    "AnalyticsCache",
    # Pipeline components
    "LedgerReader",
    "PortfolioAggregator",
    "RiskCalculator",
    "build_monthly_series",
    "calculate_health_score",
    "classify_lifecycle",
    "parse_project_status",
    "calculate_ownership_share",
    "calculate_investor_payouts",
    "VALID_TIMEFRAMES",
    # Policies
    "PrincipalValuationPolicy",
    "AccruedExpectedReturnPolicy",
    "FixedRateBenchmarkPolicy",
    # Types
    "LedgerSnapshot",
    "LifecycleStage",
    "Position",
    "PortfolioTotals",
    "PortfolioOverview",
    "PortfolioAnalytics",
    "MonthlyBucket",
    "PerformanceMetrics",
    "HealthScore",
    "HealthBreakdown",
]
