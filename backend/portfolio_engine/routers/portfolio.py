# backend/portfolio_engine/routers/portfolio.py
"""
Investor portfolio endpoints.

Provides the investor's portfolio document and its parts:
- GET /investors/{id}/portfolio - Full document (positions + analytics)
- GET /investors/{id}/portfolio/overview - Positions and totals only
- GET /investors/{id}/portfolio/analytics - Time series, breakdowns, metrics
- GET /investors/{id}/portfolio/positions/{project_id} - One position in detail

Optional parameters:
- timeframe: 1M, 3M, 6M (default), 1Y or ALL
- allow_partial: Exclude positions in missing projects instead of failing

Every response is computed from one ledger snapshot, so totals, positions
and the time series always agree with each other.
"""

from decimal import Decimal

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from portfolio_engine.database import get_db
from portfolio_engine.dependencies import get_portfolio_service
from portfolio_engine.middleware.rate_limit import limiter, RATE_LIMIT_ANALYTICS
from portfolio_engine.schemas.portfolio import (
    HealthBreakdownResponse,
    InvestmentRecordResponse,
    MonthlyReturnResponse,
    MonthResultResponse,
    PayoutResponse,
    PerformanceMetricsResponse,
    PortfolioAnalyticsResponse,
    PortfolioGrowthResponse,
    PortfolioOverviewResponse,
    PortfolioResponse,
    PortfolioTotalsResponse,
    PositionDetailResponse,
    PositionResponse,
    RiskAnalysisResponse,
    SectorPerformanceResponse,
    SummaryResponse,
)
from portfolio_engine.services.constants import (
    DEFAULT_TIMEFRAME,
    DISPLAY_PERCENTAGE_PRECISION,
    RATIO_PRECISION,
)
from portfolio_engine.services.portfolio import PortfolioAnalyticsService
from portfolio_engine.services.portfolio.types import (
    HealthScore,
    InvestmentRecord,
    MonthlyBucket,
    MonthResult,
    Payout,
    PerformanceMetrics,
    PortfolioAnalytics,
    PortfolioTotals,
    Position,
    RiskBucket,
    SectorPerformance,
)
from portfolio_engine.utils.context import set_request_context

# =============================================================================
# ROUTER SETUP
# =============================================================================

router = APIRouter(
    prefix="/investors",
    tags=["Portfolio"],
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def _decimal_to_float(
        value: Decimal | int | None,
        precision: Decimal = DISPLAY_PERCENTAGE_PRECISION,
) -> float | None:
    """Round a Decimal once, at the API boundary, and emit a JSON number."""
    if value is None:
        return None
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    if not value.is_finite():
        return 0.0
    return float(value.quantize(precision))


def _ratio(value: Decimal) -> float:
    return _decimal_to_float(value, RATIO_PRECISION)


# =============================================================================
# MAPPER FUNCTIONS (Internal Types -> Pydantic Schemas)
# =============================================================================

def _map_totals(totals: PortfolioTotals) -> PortfolioTotalsResponse:
    return PortfolioTotalsResponse(
        total_value=_decimal_to_float(totals.total_value),
        total_invested=_decimal_to_float(totals.total_invested),
        total_returns=_decimal_to_float(totals.total_returns),
        portfolio_return=_decimal_to_float(totals.portfolio_return),
        distributed_profits=_decimal_to_float(totals.distributed_profits),
        pending_profits=_decimal_to_float(totals.pending_profits),
        unrealized_gains=_decimal_to_float(totals.unrealized_gains),
        active_investments=totals.active_investments,
        total_investments=totals.total_investments,
        investment_records=totals.investment_records,
    )


def _map_summary(totals: PortfolioTotals) -> SummaryResponse:
    return SummaryResponse(
        total_investments=totals.total_investments,
        total_invested=_decimal_to_float(totals.total_invested),
        total_returns=_decimal_to_float(totals.total_returns),
        active_investments=totals.active_investments,
    )


def _position_fields(position: Position) -> dict:
    """Shared fields of the list and detail views of a position."""
    return dict(
        project_id=position.project_id,
        project_title=position.project_title,
        category=position.category,
        risk_level=position.risk_level,
        status=position.project_status,
        lifecycle_stage=position.lifecycle_stage.value,
        invested_amount=_decimal_to_float(position.invested_amount),
        current_funding=_decimal_to_float(position.current_funding),
        funding_goal=_decimal_to_float(position.funding_goal),
        current_value=_decimal_to_float(position.current_value),
        total_return=_decimal_to_float(position.total_return),
        return_percentage=_decimal_to_float(position.return_percentage),
        distributed_profits=_decimal_to_float(position.distributed_profits),
        pending_profits=_decimal_to_float(position.pending_profits),
        unrealized_gains=_decimal_to_float(position.unrealized_gains),
        ownership_share=_ratio(position.ownership_share),
        progress=_decimal_to_float(position.progress),
        investment_date=position.first_investment_date,
        latest_investment_date=position.latest_investment_date,
        investment_count=position.investment_count,
    )


def _map_position(position: Position) -> PositionResponse:
    return PositionResponse(**_position_fields(position))


def _map_investment_record(record: InvestmentRecord) -> InvestmentRecordResponse:
    return InvestmentRecordResponse(
        id=record.id,
        amount=_decimal_to_float(record.amount),
        status=record.status,
        investment_date=record.investment_date,
    )


def _map_payout(payout: Payout) -> PayoutResponse:
    return PayoutResponse(
        distribution_id=payout.distribution_id,
        amount=_decimal_to_float(payout.amount),
        distribution_amount=_decimal_to_float(payout.distribution_amount),
        status=payout.status,
        distribution_type=payout.distribution_type,
        profit_rate=_decimal_to_float(payout.profit_rate),
        date=payout.date,
    )


def _map_position_detail(position: Position) -> PositionDetailResponse:
    return PositionDetailResponse(
        **_position_fields(position),
        investment_records=[_map_investment_record(r) for r in position.investments],
        profit_history=[_map_payout(p) for p in position.payouts],
    )


def _map_monthly_return(bucket: MonthlyBucket) -> MonthlyReturnResponse:
    return MonthlyReturnResponse(
        month=bucket.month,
        label=bucket.label,
        returns=_decimal_to_float(bucket.returns),
        cumulative=_decimal_to_float(bucket.cumulative),
        return_rate=_decimal_to_float(bucket.return_rate),
        benchmark=_decimal_to_float(bucket.benchmark),
    )


def _map_growth(bucket: MonthlyBucket) -> PortfolioGrowthResponse:
    return PortfolioGrowthResponse(
        month=bucket.month,
        label=bucket.label,
        invested=_decimal_to_float(bucket.invested),
        value=_decimal_to_float(bucket.value),
        benchmark=_decimal_to_float(bucket.invested + bucket.benchmark),
    )


def _map_sector(sector: SectorPerformance) -> SectorPerformanceResponse:
    return SectorPerformanceResponse(
        sector=sector.sector,
        invested=_decimal_to_float(sector.invested),
        returns=_decimal_to_float(sector.returns),
        return_rate=_decimal_to_float(sector.return_rate),
        count=sector.count,
    )


def _map_risk_bucket(bucket: RiskBucket) -> RiskAnalysisResponse:
    return RiskAnalysisResponse(
        risk=bucket.label,
        level=bucket.level,
        allocation=_decimal_to_float(bucket.allocation),
        returns=_decimal_to_float(bucket.return_rate),
        invested=_decimal_to_float(bucket.invested),
        count=bucket.count,
    )


def _map_month_result(month: MonthResult | None) -> MonthResultResponse | None:
    if month is None:
        return None
    return MonthResultResponse(
        month=month.month,
        label=month.label,
        return_rate=_decimal_to_float(month.return_rate),
        returns=_decimal_to_float(month.returns),
    )


def _map_performance(perf: PerformanceMetrics) -> PerformanceMetricsResponse:
    return PerformanceMetricsResponse(
        average_return=_decimal_to_float(perf.average_return),
        best_month=_map_month_result(perf.best_month),
        worst_month=_map_month_result(perf.worst_month),
        volatility=_decimal_to_float(perf.volatility),
        sharpe_ratio=_ratio(perf.sharpe_ratio),
        max_drawdown=_decimal_to_float(perf.max_drawdown),
        win_rate=_decimal_to_float(perf.win_rate),
    )


def _map_health_breakdown(health: HealthScore) -> HealthBreakdownResponse:
    breakdown = health.breakdown
    return HealthBreakdownResponse(
        win_rate=_decimal_to_float(breakdown.win_rate),
        sharpe_ratio=_decimal_to_float(breakdown.sharpe_ratio),
        volatility=_decimal_to_float(breakdown.volatility),
        average_return=_decimal_to_float(breakdown.average_return),
    )


def _analytics_fields(result: PortfolioAnalytics) -> dict:
    """Sections shared by the analytics view and the full document."""
    return dict(
        investor_id=result.investor_id,
        timeframe=result.timeframe,
        as_of=result.as_of,
        monthly_returns=[_map_monthly_return(b) for b in result.monthly_returns],
        portfolio_growth=[_map_growth(b) for b in result.monthly_returns],
        sector_performance=[_map_sector(s) for s in result.sector_performance],
        risk_analysis=[_map_risk_bucket(r) for r in result.risk_analysis],
        performance_metrics=_map_performance(result.performance),
        health_score=result.health.score,
        health_breakdown=_map_health_breakdown(result.health),
        summary=_map_summary(result.totals),
        warnings=list(result.warnings),
    )


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get(
    "/{investor_id}/portfolio",
    response_model=PortfolioResponse,
    response_model_by_alias=True,
    summary="Get the investor's portfolio",
    response_description="Positions, totals, time series, breakdowns and health score",
)
@limiter.limit(RATE_LIMIT_ANALYTICS)
def get_portfolio(
        request: Request,  # Required for rate limiting
        investor_id: int,
        timeframe: str = Query(
            default=DEFAULT_TIMEFRAME,
            description="Trailing window of the monthly series: 1M, 3M, 6M, 1Y or ALL",
        ),
        allow_partial: bool = Query(
            default=False,
            description="Exclude positions in missing projects and report a warning instead of failing",
        ),
        db: Session = Depends(get_db),
        service: PortfolioAnalyticsService = Depends(get_portfolio_service),
) -> PortfolioResponse:
    """
    Get the complete portfolio document for an investor.

    Returns:
    - **portfolio**: Totals (value, invested, returns, active positions)
    - **investments**: One entry per project the investor holds
    - **monthlyReturns / portfolioGrowth**: Calendar-month series for the timeframe
    - **sectorPerformance / riskAnalysis**: Breakdowns of the positions
    - **performanceMetrics / healthScore**: Derived statistics

    An investor without investments gets zeros and empty lists.

    Raises **400** for an unknown timeframe, **404** for an unknown investor
    and **500** when the ledger references a project that does not exist.
    """
    set_request_context("investor_id", investor_id)

    result = service.get_analytics(
        db=db,
        investor_id=investor_id,
        timeframe=timeframe,
        allow_partial=allow_partial,
    )

    return PortfolioResponse(
        portfolio=_map_totals(result.totals),
        investments=[_map_position(p) for p in result.positions],
        **_analytics_fields(result),
    )


@router.get(
    "/{investor_id}/portfolio/overview",
    response_model=PortfolioOverviewResponse,
    response_model_by_alias=True,
    summary="Get positions and totals only",
)
@limiter.limit(RATE_LIMIT_ANALYTICS)
def get_portfolio_overview(
        request: Request,  # Required for rate limiting
        investor_id: int,
        allow_partial: bool = Query(default=False),
        db: Session = Depends(get_db),
        service: PortfolioAnalyticsService = Depends(get_portfolio_service),
) -> PortfolioOverviewResponse:
    """
    Get the investor's positions and portfolio totals.

    Lighter than the full document: no time series and no risk metrics.
    """
    set_request_context("investor_id", investor_id)

    overview = service.get_overview(db, investor_id, allow_partial=allow_partial)

    return PortfolioOverviewResponse(
        investor_id=overview.investor_id,
        as_of=overview.as_of,
        portfolio=_map_totals(overview.totals),
        investments=[_map_position(p) for p in overview.positions],
        summary=_map_summary(overview.totals),
        warnings=list(overview.warnings),
    )


@router.get(
    "/{investor_id}/portfolio/analytics",
    response_model=PortfolioAnalyticsResponse,
    response_model_by_alias=True,
    summary="Get portfolio analytics only",
)
@limiter.limit(RATE_LIMIT_ANALYTICS)
def get_portfolio_analytics(
        request: Request,  # Required for rate limiting
        investor_id: int,
        timeframe: str = Query(default=DEFAULT_TIMEFRAME),
        allow_partial: bool = Query(default=False),
        db: Session = Depends(get_db),
        service: PortfolioAnalyticsService = Depends(get_portfolio_service),
) -> PortfolioAnalyticsResponse:
    """Monthly series, sector and risk breakdowns, metrics and health score."""
    set_request_context("investor_id", investor_id)

    result = service.get_analytics(
        db=db,
        investor_id=investor_id,
        timeframe=timeframe,
        allow_partial=allow_partial,
    )

    return PortfolioAnalyticsResponse(**_analytics_fields(result))


@router.get(
    "/{investor_id}/portfolio/positions/{project_id}",
    response_model=PositionDetailResponse,
    response_model_by_alias=True,
    summary="Get one position with its history",
)
@limiter.limit(RATE_LIMIT_ANALYTICS)
def get_position(
        request: Request,  # Required for rate limiting
        investor_id: int,
        project_id: int,
        db: Session = Depends(get_db),
        service: PortfolioAnalyticsService = Depends(get_portfolio_service),
) -> PositionDetailResponse:
    """
    Get one position with its investment records and payout history.

    Raises **404** if the investor holds nothing in the project.
    """
    set_request_context("investor_id", investor_id)

    position = service.get_position(db, investor_id, project_id)
    return _map_position_detail(position)
