# backend/portfolio_engine/services/portfolio/health.py
"""
Health Score: one bounded 0-100 number summarizing a portfolio.

Weight bands (sum to 100):

    band             points   formula
    --------------   ------   ------------------------------------
    win rate         0-30     min(win_rate, 100) × 0.3
    Sharpe ratio     0-30     clamp(sharpe × 10, 0, 30)
    volatility       0-20     clamp(20 - volatility, 0, 20)
    average return   0-20     clamp(average_return × 2, 0, 20)

Score = round-half-up of the sum, clamped to [0, 100]. An investor with
no positions scores 0.
"""

from decimal import Decimal, ROUND_HALF_UP

from portfolio_engine.services.constants import (
    HEALTH_RETURN_FACTOR,
    HEALTH_RETURN_MAX,
    HEALTH_SCORE_MAX,
    HEALTH_SCORE_MIN,
    HEALTH_SHARPE_FACTOR,
    HEALTH_SHARPE_MAX,
    HEALTH_VOLATILITY_MAX,
    HEALTH_WIN_RATE_FACTOR,
    HEALTH_WIN_RATE_MAX,
    PERCENTAGE_PRECISION,
    ZERO,
)
from portfolio_engine.services.portfolio.types import HealthBreakdown, HealthScore


def _finite(value: Decimal | float | int | None) -> Decimal:
    """Coerce to Decimal, mapping None, NaN and infinities to zero."""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value if value.is_finite() else ZERO


def _clamp(value: Decimal, low: Decimal, high: Decimal) -> Decimal:
    return min(max(value, low), high)


def calculate_health_score(
        win_rate: Decimal | float,
        sharpe_ratio: Decimal | float,
        volatility: Decimal | float,
        average_return: Decimal | float,
        has_positions: bool = True,
) -> HealthScore:
    """
    Combine performance metrics into a 0-100 score.

    Args:
        win_rate: Percent of winning positions (0-100)
        sharpe_ratio: Monthly Sharpe ratio
        volatility: Monthly volatility in percent
        average_return: Mean monthly return in percent
        has_positions: False for an empty portfolio, which scores 0

    Returns:
        HealthScore with the integer score and the points per band
    """
    if not has_positions:
        return HealthScore(score=HEALTH_SCORE_MIN, breakdown=HealthBreakdown())

    win_points = _clamp(
        min(_finite(win_rate), Decimal(100)) * HEALTH_WIN_RATE_FACTOR, ZERO, HEALTH_WIN_RATE_MAX
    )
    sharpe_points = _clamp(_finite(sharpe_ratio) * HEALTH_SHARPE_FACTOR, ZERO, HEALTH_SHARPE_MAX)
    volatility_points = _clamp(
        HEALTH_VOLATILITY_MAX - _finite(volatility), ZERO, HEALTH_VOLATILITY_MAX
    )
    return_points = _clamp(
        _finite(average_return) * HEALTH_RETURN_FACTOR, ZERO, HEALTH_RETURN_MAX
    )

    breakdown = HealthBreakdown(
        win_rate=win_points.quantize(PERCENTAGE_PRECISION),
        sharpe_ratio=sharpe_points.quantize(PERCENTAGE_PRECISION),
        volatility=volatility_points.quantize(PERCENTAGE_PRECISION),
        average_return=return_points.quantize(PERCENTAGE_PRECISION),
    )

    score = int(breakdown.total.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    score = max(HEALTH_SCORE_MIN, min(score, HEALTH_SCORE_MAX))
    return HealthScore(score=score, breakdown=breakdown)
