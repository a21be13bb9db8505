# backend/portfolio_engine/services/portfolio/risk.py
"""
Risk & performance calculations over the monthly series and positions.

This module contains pure functions for:
- Average return: mean of monthly return rates
- Best/Worst month: max/min monthly return rate (ties → earliest month)
- Volatility: POPULATION standard deviation of monthly return rates
- Sharpe Ratio: excess monthly return per unit of volatility
- Max Drawdown: largest peak-to-trough fall of cumulative returns
- Win Rate: share of positions whose realized return is not negative
- Sector and risk-level breakdowns of positions

All functions are stateless and operate on Decimal values. Degenerate
inputs (no months, no positions, zero volatility) yield zero, never an
error, NaN or infinity.

Formulas:
    Volatility   = sqrt(Σ(r - mean)² / n)

    Sharpe Ratio = (mean - R_f / 12) / Volatility,   0 when Volatility = 0

    Max Drawdown = min((C_t - peak_t) / peak_t) × 100 over t with peak_t > 0
"""

import logging
from collections.abc import Sequence
from decimal import Decimal

from portfolio_engine.services.constants import (
    DEFAULT_RISK_LEVEL,
    DEFAULT_SECTOR,
    HUNDRED,
    MONTHS_PER_YEAR,
    PERCENTAGE_PRECISION,
    RATIO_PRECISION,
    RISK_BUCKET_LABELS,
    ZERO,
)
from portfolio_engine.services.portfolio.types import (
    MonthlyBucket,
    MonthResult,
    PerformanceMetrics,
    Position,
    RiskBucket,
    SectorPerformance,
)

logger = logging.getLogger(__name__)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def _decimal_mean(values: Sequence[Decimal]) -> Decimal:
    if not values:
        return ZERO
    return sum(values, ZERO) / Decimal(len(values))


def _rate(returns: Decimal, invested: Decimal) -> Decimal:
    if invested <= ZERO:
        return ZERO
    return (returns / invested * HUNDRED).quantize(PERCENTAGE_PRECISION)


# =============================================================================
# MONTHLY STATISTICS
# =============================================================================

def calculate_average_return(rates: Sequence[Decimal]) -> Decimal:
    """Mean monthly return rate in percent (0 for an empty window)."""
    return _decimal_mean(rates).quantize(PERCENTAGE_PRECISION)


def find_best_month(buckets: Sequence[MonthlyBucket]) -> MonthResult | None:
    """Month with the highest return rate; the earliest one wins ties."""
    best: MonthlyBucket | None = None
    for bucket in buckets:
        if best is None or bucket.return_rate > best.return_rate:
            best = bucket
    return _month_result(best)


def find_worst_month(buckets: Sequence[MonthlyBucket]) -> MonthResult | None:
    """Month with the lowest return rate; the earliest one wins ties."""
    worst: MonthlyBucket | None = None
    for bucket in buckets:
        if worst is None or bucket.return_rate < worst.return_rate:
            worst = bucket
    return _month_result(worst)


def _month_result(bucket: MonthlyBucket | None) -> MonthResult | None:
    if bucket is None:
        return None
    return MonthResult(
        month=bucket.month,
        label=bucket.label,
        return_rate=bucket.return_rate,
        returns=bucket.returns,
    )


def calculate_volatility(rates: Sequence[Decimal]) -> Decimal:
    """
    Population standard deviation of monthly return rates.

    The population form (divide by n) is used so that a window of one
    month has a defined volatility of zero.
    """
    if not rates:
        return ZERO
    mean = _decimal_mean(rates)
    variance = sum(((r - mean) ** 2 for r in rates), ZERO) / Decimal(len(rates))
    return variance.sqrt().quantize(PERCENTAGE_PRECISION)


def calculate_sharpe_ratio(
        average_return: Decimal,
        volatility: Decimal,
        risk_free_rate: Decimal,
) -> Decimal:
    """
    Monthly Sharpe ratio.

    Args:
        average_return: Mean monthly return in percent
        volatility: Standard deviation of monthly returns in percent
        risk_free_rate: ANNUAL risk-free rate in percent (2 = 2%)

    Returns:
        Sharpe ratio, 0 when volatility is zero
    """
    if volatility <= ZERO:
        return ZERO
    monthly_risk_free = risk_free_rate / Decimal(MONTHS_PER_YEAR)
    return ((average_return - monthly_risk_free) / volatility).quantize(RATIO_PRECISION)


def calculate_max_drawdown(cumulative: Sequence[Decimal]) -> Decimal:
    """
    Largest peak-to-trough decline of the cumulative returns series.

    Returns:
        Non-positive percentage of the running peak (0 when it never falls)
    """
    peak: Decimal | None = None
    max_drawdown = ZERO
    for value in cumulative:
        if peak is None or value > peak:
            peak = value
        if peak > ZERO:
            drawdown = (value - peak) / peak * HUNDRED
            if drawdown < max_drawdown:
                max_drawdown = drawdown
    return max_drawdown.quantize(PERCENTAGE_PRECISION)


# =============================================================================
# POSITION STATISTICS
# =============================================================================

def calculate_win_rate(positions: Sequence[Position]) -> Decimal:
    """
    Percent of individual investments whose realized return is >= 0.

    Every investment record shares its position's outcome, so a topped-up
    position weighs as many times as it has records.
    """
    records = sum(p.investment_count for p in positions)
    if records == 0:
        return ZERO
    wins = sum(p.investment_count for p in positions if p.distributed_profits >= ZERO)
    return (Decimal(wins) / Decimal(records) * HUNDRED).quantize(PERCENTAGE_PRECISION)


def calculate_sector_performance(positions: Sequence[Position]) -> list[SectorPerformance]:
    """Group positions by category; missing categories fall under "Other"."""
    sectors: dict[str, dict] = {}
    for position in positions:
        sector = position.category or DEFAULT_SECTOR
        data = sectors.setdefault(sector, {"invested": ZERO, "returns": ZERO, "count": 0})
        data["invested"] += position.invested_amount
        data["returns"] += position.distributed_profits
        data["count"] += 1

    return [
        SectorPerformance(
            sector=sector,
            invested=data["invested"],
            returns=data["returns"],
            return_rate=_rate(data["returns"], data["invested"]),
            count=data["count"],
        )
        for sector, data in sectors.items()
    ]


def calculate_risk_analysis(
        positions: Sequence[Position],
        total_invested: Decimal,
) -> list[RiskBucket]:
    """
    Group positions by risk level (LOW, MEDIUM, HIGH).

    Missing or unrecognized levels count as MEDIUM. Buckets without
    positions are omitted.
    """
    buckets = {level: {"invested": ZERO, "returns": ZERO, "count": 0} for level in RISK_BUCKET_LABELS}
    for position in positions:
        level = (position.risk_level or DEFAULT_RISK_LEVEL).upper()
        if level not in buckets:
            level = DEFAULT_RISK_LEVEL
        data = buckets[level]
        data["invested"] += position.invested_amount
        data["returns"] += position.distributed_profits
        data["count"] += 1

    result = []
    for level, data in buckets.items():
        if data["count"] == 0:
            continue
        allocation = _rate(data["invested"], total_invested)
        result.append(RiskBucket(
            level=level,
            label=RISK_BUCKET_LABELS[level],
            allocation=allocation,
            return_rate=_rate(data["returns"], data["invested"]),
            invested=data["invested"],
            returns=data["returns"],
            count=data["count"],
        ))
    return result


# =============================================================================
# RISK CALCULATOR (Combines all calculations)
# =============================================================================

class RiskCalculator:
    """Computes all performance metrics for one window."""

    @staticmethod
    def calculate_all(
            buckets: Sequence[MonthlyBucket],
            positions: Sequence[Position],
            risk_free_rate: Decimal,
    ) -> PerformanceMetrics:
        """
        Args:
            buckets: Visible monthly buckets (already truncated to the timeframe)
            positions: All positions of the investor
            risk_free_rate: Annual risk-free rate in percent

        Returns:
            PerformanceMetrics; all zeros/None for empty input
        """
        rates = [b.return_rate for b in buckets]
        average = calculate_average_return(rates)
        volatility = calculate_volatility(rates)

        metrics = PerformanceMetrics(
            average_return=average,
            best_month=find_best_month(buckets),
            worst_month=find_worst_month(buckets),
            volatility=volatility,
            sharpe_ratio=calculate_sharpe_ratio(average, volatility, risk_free_rate),
            max_drawdown=calculate_max_drawdown([b.cumulative for b in buckets]),
            win_rate=calculate_win_rate(positions),
        )
        logger.debug(
            f"Risk metrics over {len(buckets)} months: avg={metrics.average_return}, "
            f"vol={metrics.volatility}, sharpe={metrics.sharpe_ratio}"
        )
        return metrics
