# backend/portfolio_engine/services/portfolio/timeseries.py
"""
Time-Series Builder: calendar-month buckets of realized returns.

Events:
    - Approved payouts to the investor → realized returns, dated by the
      distribution date (falling back to the approval timestamp)
    - Investments → invested capital, dated by the investment date

Rules:
    - Buckets are calendar months in the reporting timezone.
    - The series is continuous from the first event month to the as_of
      month; months without events appear with zero returns.
    - Cumulative returns are a simple running sum (no compounding).
    - The whole history is built first and then truncated to the
      timeframe, so the first visible bucket carries the all-time
      cumulative up to that month.
    - Events dated after the as_of month are scheduled, not realized,
      and are left out.
"""

import logging
from collections import defaultdict
from datetime import datetime, tzinfo
from decimal import Decimal

from portfolio_engine.models import DistributionStatus
from portfolio_engine.services.constants import (
    CURRENCY_PRECISION,
    DEFAULT_TIMEFRAME,
    HUNDRED,
    PERCENTAGE_PRECISION,
    TIMEFRAME_MONTHS,
    ZERO,
)
from portfolio_engine.services.exceptions import InvalidTimeframeError
from portfolio_engine.services.portfolio.types import MonthlyBucket, Position
from portfolio_engine.services.protocols import BenchmarkPolicyProtocol
from portfolio_engine.utils.date_utils import (
    MonthKey,
    format_month,
    iter_months,
    month_key,
    month_label,
)

logger = logging.getLogger(__name__)

VALID_TIMEFRAMES: tuple[str, ...] = tuple(TIMEFRAME_MONTHS)


def validate_timeframe(timeframe: str | None) -> str:
    """
    Normalize a timeframe string.

    Returns:
        The upper-cased timeframe, or the default for None/empty input

    Raises:
        InvalidTimeframeError: If the timeframe is not supported
    """
    if not timeframe:
        return DEFAULT_TIMEFRAME
    normalized = timeframe.strip().upper()
    if normalized not in TIMEFRAME_MONTHS:
        raise InvalidTimeframeError(timeframe, VALID_TIMEFRAMES)
    return normalized


def _collect_events(
        positions: tuple[Position, ...] | list[Position],
        tz: tzinfo,
) -> tuple[dict[MonthKey, Decimal], dict[MonthKey, Decimal]]:
    returns_by_month: dict[MonthKey, Decimal] = defaultdict(lambda: ZERO)
    invested_by_month: dict[MonthKey, Decimal] = defaultdict(lambda: ZERO)

    for position in positions:
        for inv in position.investments:
            invested_by_month[month_key(inv.investment_date, tz)] += inv.amount
        for payout in position.payouts:
            if payout.status != DistributionStatus.APPROVED.value or payout.date is None:
                continue
            returns_by_month[month_key(payout.date, tz)] += payout.amount

    return returns_by_month, invested_by_month


def build_monthly_series(
        positions: tuple[Position, ...] | list[Position],
        as_of: datetime,
        benchmark_policy: BenchmarkPolicyProtocol,
        tz: tzinfo,
        timeframe: str = DEFAULT_TIMEFRAME,
) -> list[MonthlyBucket]:
    """
    Build the monthly return series for an investor.

    Args:
        positions: Aggregated positions (their investments and payouts are the events)
        as_of: Snapshot instant; the last bucket is its month
        benchmark_policy: Produces the aligned cumulative benchmark returns
        tz: Reporting timezone
        timeframe: 1M, 3M, 6M, 1Y or ALL

    Returns:
        Buckets in chronological order; empty when there are no events

    Raises:
        InvalidTimeframeError: If the timeframe is not supported
    """
    timeframe = validate_timeframe(timeframe)

    returns_by_month, invested_by_month = _collect_events(positions, tz)
    event_months = set(returns_by_month) | set(invested_by_month)
    if not event_months:
        return []

    first = min(event_months)
    last = month_key(as_of, tz)
    months = list(iter_months(first, last))
    if not months:
        logger.debug(f"All events fall after {format_month(last)}; series is empty")
        return []

    invested_series: list[Decimal] = []
    invested = ZERO
    for key in months:
        invested += invested_by_month.get(key, ZERO)
        invested_series.append(invested)

    benchmark_series = benchmark_policy.cumulative_returns(invested_series)

    buckets: list[MonthlyBucket] = []
    cumulative = ZERO
    for key, capital, benchmark in zip(months, invested_series, benchmark_series):
        returns = returns_by_month.get(key, ZERO)
        cumulative += returns
        if capital > ZERO:
            return_rate = (returns / capital * HUNDRED).quantize(PERCENTAGE_PRECISION)
        else:
            return_rate = ZERO
        buckets.append(MonthlyBucket(
            month=format_month(key),
            label=month_label(key),
            returns=returns,
            cumulative=cumulative,
            return_rate=return_rate,
            invested=capital,
            value=capital + cumulative,
            benchmark=benchmark.quantize(CURRENCY_PRECISION),
        ))

    window = TIMEFRAME_MONTHS[timeframe]
    if window is not None:
        buckets = buckets[-window:]

    return buckets
