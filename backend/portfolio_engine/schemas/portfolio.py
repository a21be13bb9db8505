# backend/portfolio_engine/schemas/portfolio.py
"""
Pydantic schemas for the investor portfolio API.

Design decisions:
- Keys are camelCase on the wire (the dashboard's contract); Python
  attributes stay snake_case via an alias generator
- Numbers are JSON numbers: money and percentages rounded to 2 decimals,
  ratios (Sharpe, ownership share) to 4. The engine computes in Decimal;
  rounding happens once, in the router mappers
- Percentages are on a 0-100 scale (12.5 = 12.5%)
- An investor without investments gets zeros and empty lists, never null
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema serializing field names as camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# =============================================================================
# PORTFOLIO TOTALS
# =============================================================================

class PortfolioTotalsResponse(CamelModel):
    total_value: float = Field(..., description="Current value of all positions plus distributed profits")
    total_invested: float = Field(..., description="Sum of principal across positions")
    total_returns: float = Field(..., description="Distributed profits plus unrealized gains")
    portfolio_return: float = Field(..., description="total_returns / total_invested × 100")
    distributed_profits: float
    pending_profits: float
    unrealized_gains: float
    active_investments: int = Field(..., description="Positions still running or paying out")
    total_investments: int = Field(..., description="Number of positions (projects)")
    investment_records: int = Field(..., description="Number of underlying investment rows")


class SummaryResponse(CamelModel):
    total_investments: int
    total_invested: float
    total_returns: float
    active_investments: int


# =============================================================================
# POSITIONS
# =============================================================================

class PositionResponse(CamelModel):
    """One logical holding: all of an investor's investments in one project."""

    project_id: int
    project_title: str
    category: str | None = None
    risk_level: str | None = None
    status: str | None = Field(None, description="Raw project status")
    lifecycle_stage: str = Field(..., description="Derived lifecycle stage")
    invested_amount: float
    current_funding: float
    funding_goal: float
    current_value: float
    total_return: float
    return_percentage: float
    distributed_profits: float
    pending_profits: float
    unrealized_gains: float
    ownership_share: float = Field(..., description="Fraction (0-1) of the project's capital")
    progress: float = Field(..., description="Project funding progress in percent, not return progress")
    investment_date: datetime = Field(..., description="First investment in the project")
    latest_investment_date: datetime
    investment_count: int = Field(..., description="Investment rows combined into this position")


class InvestmentRecordResponse(CamelModel):
    id: int
    amount: float
    status: str
    investment_date: datetime


class PayoutResponse(CamelModel):
    """The investor's share of one distribution."""

    distribution_id: int
    amount: float = Field(..., description="Investor's share, rounded toward zero")
    distribution_amount: float = Field(..., description="Project-wide distribution amount")
    status: str
    distribution_type: str
    profit_rate: float | None = None
    date: datetime | None = None


class PositionDetailResponse(PositionResponse):
    investment_records: list[InvestmentRecordResponse]
    profit_history: list[PayoutResponse]


# =============================================================================
# TIME SERIES & BREAKDOWNS
# =============================================================================

class MonthlyReturnResponse(CamelModel):
    month: str = Field(..., description="Month key YYYY-MM in the reporting timezone")
    label: str = Field(..., description="Display label, e.g. 'Jan 2024'")
    returns: float = Field(..., description="Realized payouts received in the month")
    cumulative: float = Field(..., description="All-time realized payouts up to the month")
    return_rate: float = Field(..., description="returns / invested capital × 100")
    benchmark: float = Field(..., description="Cumulative benchmark return on the same capital")


class PortfolioGrowthResponse(CamelModel):
    month: str
    label: str
    invested: float
    value: float
    benchmark: float = Field(..., description="Invested capital plus cumulative benchmark return")


class SectorPerformanceResponse(CamelModel):
    sector: str
    invested: float
    returns: float
    return_rate: float
    count: int


class RiskAnalysisResponse(CamelModel):
    risk: str = Field(..., description="Display label, e.g. 'Low Risk'")
    level: str
    allocation: float = Field(..., description="Share of total invested capital in percent")
    returns: float = Field(..., description="Return rate of the bucket in percent")
    invested: float
    count: int


class MonthResultResponse(CamelModel):
    month: str
    label: str
    return_rate: float
    returns: float


class PerformanceMetricsResponse(CamelModel):
    average_return: float
    best_month: MonthResultResponse | None = None
    worst_month: MonthResultResponse | None = None
    volatility: float
    sharpe_ratio: float
    max_drawdown: float = Field(..., description="Non-positive percentage")
    win_rate: float


class HealthBreakdownResponse(CamelModel):
    win_rate: float = Field(..., description="0-30 points")
    sharpe_ratio: float = Field(..., description="0-30 points")
    volatility: float = Field(..., description="0-20 points")
    average_return: float = Field(..., description="0-20 points")


# =============================================================================
# DOCUMENTS
# =============================================================================

class PortfolioOverviewResponse(CamelModel):
    investor_id: int
    as_of: datetime
    portfolio: PortfolioTotalsResponse
    investments: list[PositionResponse]
    summary: SummaryResponse
    warnings: list[str] = Field(default_factory=list)


class PortfolioAnalyticsResponse(CamelModel):
    investor_id: int
    timeframe: str
    as_of: datetime
    monthly_returns: list[MonthlyReturnResponse]
    portfolio_growth: list[PortfolioGrowthResponse]
    sector_performance: list[SectorPerformanceResponse]
    risk_analysis: list[RiskAnalysisResponse]
    performance_metrics: PerformanceMetricsResponse
    health_score: int = Field(..., ge=0, le=100)
    health_breakdown: HealthBreakdownResponse
    summary: SummaryResponse
    warnings: list[str] = Field(default_factory=list)


class PortfolioResponse(PortfolioAnalyticsResponse):
    """Full document: totals and positions plus the analytics sections."""

    portfolio: PortfolioTotalsResponse
    investments: list[PositionResponse]
