# backend/portfolio_engine/services/portfolio/types.py
"""
Data types for the portfolio analytics pipeline.

All types are frozen dataclasses over Decimal values. Snapshot types are
the rows read from the ledger; result types are derived, never persisted,
and safe to share between requests once built.

Architecture:
    - ProjectRecord / InvestmentRecord / DistributionRecord: ledger rows
    - LedgerSnapshot: everything read for one investor in one transaction
    - Payout: one investor's share of one distribution
    - Position: an investor's combined holding in one project
    - PortfolioTotals: sums over all positions
    - MonthlyBucket: one calendar month of the return series
    - SectorPerformance / RiskBucket: breakdowns of positions
    - PerformanceMetrics / HealthScore: derived statistics
    - PortfolioAnalytics: the full result for one request
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from portfolio_engine.services.constants import ZERO


class LifecycleStage(str, Enum):
    """
    Derived life-cycle stage of a position.

    UNKNOWN is an explicit variant for missing or unrecognized project
    status so that bad data is visible rather than shown as ACTIVE.
    """
    ACTIVE = "ACTIVE"
    PROFITS_PENDING = "PROFITS_PENDING"
    PROFITS_DISTRIBUTED = "PROFITS_DISTRIBUTED"
    COMPLETED_WITH_PROFITS = "COMPLETED_WITH_PROFITS"
    COMPLETED = "COMPLETED"
    UNKNOWN = "UNKNOWN"


# Stages counted as "active investments" in portfolio totals
ACTIVE_STAGES: frozenset[LifecycleStage] = frozenset({
    LifecycleStage.ACTIVE,
    LifecycleStage.PROFITS_PENDING,
    LifecycleStage.PROFITS_DISTRIBUTED,
})

# Stages where all value is realized and unrealized gains are zero
COMPLETED_STAGES: frozenset[LifecycleStage] = frozenset({
    LifecycleStage.COMPLETED,
    LifecycleStage.COMPLETED_WITH_PROFITS,
})


# =============================================================================
# LEDGER SNAPSHOT
# =============================================================================

@dataclass(frozen=True)
class ProjectRecord:
    id: int
    title: str
    category: str | None
    status: str | None
    risk_level: str | None
    funding_goal: Decimal
    current_funding: Decimal
    expected_return: Decimal | None = None
    duration: int | None = None
    start_date: date | None = None
    end_date: date | None = None


@dataclass(frozen=True)
class InvestmentRecord:
    id: int
    project_id: int
    amount: Decimal
    status: str
    investment_date: datetime


@dataclass(frozen=True)
class DistributionRecord:
    """
    A project-wide profit distribution.

    Attributes:
        amount: Total paid on the project; negative for a loss
        status: "PENDING" or "APPROVED" (rejected rows never enter a snapshot)
    """
    id: int
    project_id: int
    amount: Decimal
    status: str
    distribution_type: str
    profit_rate: Decimal | None = None
    distribution_date: datetime | None = None
    approved_at: datetime | None = None

    @property
    def effective_date(self) -> datetime | None:
        """When the payout counts as received for monthly bucketing."""
        return self.distribution_date or self.approved_at


@dataclass(frozen=True)
class LedgerSnapshot:
    """
    Point-in-time view of one investor's ledger.

    Attributes:
        investor_id: Investor the snapshot was read for
        as_of: Instant of the read, the end of every time series
        investments: The investor's non-cancelled investments
        distributions: Pending and approved distributions on those projects
        projects: Referenced projects by id (missing ids are absent)
        project_principal: Non-cancelled principal from ALL investors, per project
    """
    investor_id: int
    as_of: datetime
    investments: tuple[InvestmentRecord, ...] = ()
    distributions: tuple[DistributionRecord, ...] = ()
    projects: dict[int, ProjectRecord] = field(default_factory=dict)
    project_principal: dict[int, Decimal] = field(default_factory=dict)

    @property
    def referenced_project_ids(self) -> set[int]:
        ids = {inv.project_id for inv in self.investments}
        ids.update(dist.project_id for dist in self.distributions)
        return ids

    @property
    def missing_project_ids(self) -> list[int]:
        """Project ids referenced by ledger rows but absent from ``projects``."""
        return sorted(pid for pid in self.referenced_project_ids if pid not in self.projects)


# =============================================================================
# POSITIONS
# =============================================================================

@dataclass(frozen=True)
class Payout:
    """One investor's share of one distribution."""
    distribution_id: int
    project_id: int
    amount: Decimal
    distribution_amount: Decimal
    status: str
    distribution_type: str
    profit_rate: Decimal | None
    date: datetime | None


@dataclass(frozen=True)
class Position:
    """
    An investor's aggregated holding in a single project.

    Money fields are in the ledger currency, rounded to cents.
    Percentages are 0-100 scale.

    Attributes:
        ownership_share: Fraction (0-1) of the project's capital held
        progress: Project funding progress, NOT return progress
        return_percentage: total_return / invested_amount × 100
    """
    project_id: int
    project_title: str
    category: str | None
    risk_level: str | None
    project_status: str | None
    funding_goal: Decimal
    current_funding: Decimal
    expected_return: Decimal | None
    invested_amount: Decimal
    investment_count: int
    first_investment_date: datetime
    latest_investment_date: datetime
    ownership_share: Decimal
    distributed_profits: Decimal
    pending_profits: Decimal
    unrealized_gains: Decimal
    current_value: Decimal
    total_return: Decimal
    return_percentage: Decimal
    progress: Decimal
    lifecycle_stage: LifecycleStage
    investments: tuple[InvestmentRecord, ...] = ()
    payouts: tuple[Payout, ...] = ()


@dataclass(frozen=True)
class PortfolioTotals:
    total_value: Decimal = ZERO
    total_invested: Decimal = ZERO
    total_returns: Decimal = ZERO
    portfolio_return: Decimal = ZERO
    distributed_profits: Decimal = ZERO
    pending_profits: Decimal = ZERO
    unrealized_gains: Decimal = ZERO
    active_investments: int = 0
    total_investments: int = 0
    investment_records: int = 0


@dataclass(frozen=True)
class AggregationResult:
    positions: tuple[Position, ...]
    totals: PortfolioTotals
    warnings: tuple[str, ...] = ()


# =============================================================================
# TIME SERIES & RISK
# =============================================================================

@dataclass(frozen=True)
class MonthlyBucket:
    """
    One calendar month of the investor's return series.

    Attributes:
        month: Month key "YYYY-MM" in the reporting timezone
        returns: Realized payouts received during the month
        cumulative: All-time realized payouts up to and including the month
        return_rate: returns / invested × 100
        invested: Capital committed up to and including the month
        value: invested + cumulative
        benchmark: Reference value for the same capital
    """
    month: str
    label: str
    returns: Decimal
    cumulative: Decimal
    return_rate: Decimal
    invested: Decimal
    value: Decimal
    benchmark: Decimal


@dataclass(frozen=True)
class MonthResult:
    month: str
    label: str
    return_rate: Decimal
    returns: Decimal


@dataclass(frozen=True)
class SectorPerformance:
    sector: str
    invested: Decimal
    returns: Decimal
    return_rate: Decimal
    count: int


@dataclass(frozen=True)
class RiskBucket:
    """
    Positions grouped by project risk level.

    Attributes:
        allocation: Share of total invested capital, 0-100
        return_rate: realized returns / invested × 100 within the bucket
    """
    level: str
    label: str
    allocation: Decimal
    return_rate: Decimal
    invested: Decimal
    returns: Decimal
    count: int


@dataclass(frozen=True)
class PerformanceMetrics:
    average_return: Decimal = ZERO
    best_month: MonthResult | None = None
    worst_month: MonthResult | None = None
    volatility: Decimal = ZERO
    sharpe_ratio: Decimal = ZERO
    max_drawdown: Decimal = ZERO
    win_rate: Decimal = ZERO


@dataclass(frozen=True)
class HealthBreakdown:
    """Points contributed by each band of the health score."""
    win_rate: Decimal = ZERO
    sharpe_ratio: Decimal = ZERO
    volatility: Decimal = ZERO
    average_return: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.win_rate + self.sharpe_ratio + self.volatility + self.average_return


@dataclass(frozen=True)
class HealthScore:
    score: int
    breakdown: HealthBreakdown


@dataclass(frozen=True)
class PortfolioOverview:
    investor_id: int
    as_of: datetime
    totals: PortfolioTotals
    positions: tuple[Position, ...]
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class PortfolioAnalytics:
    """Combined result for one investor, timeframe and snapshot."""
    investor_id: int
    timeframe: str
    as_of: datetime
    totals: PortfolioTotals
    positions: tuple[Position, ...]
    monthly_returns: tuple[MonthlyBucket, ...]
    sector_performance: tuple[SectorPerformance, ...]
    risk_analysis: tuple[RiskBucket, ...]
    performance: PerformanceMetrics
    health: HealthScore
    warnings: tuple[str, ...] = ()
