# backend/portfolio_engine/services/portfolio/policies.py
"""
Valuation and benchmark policies.

Neither the unrealized-gains model nor the benchmark series is owned by
this engine; both are injected through the protocols in
services/protocols.py. The defaults here are deliberately simple:

- PrincipalValuationPolicy: a running deal is worth its principal, so
  unrealized gains are always zero (the conservative default).
- AccruedExpectedReturnPolicy: principal plus the project's expected
  annual return accrued linearly over elapsed months, capped at the
  project duration.
- FixedRateBenchmarkPolicy: what the same capital would have earned at a
  fixed annual reference rate, accrued monthly without compounding.
"""

from datetime import date
from decimal import Decimal

from portfolio_engine.services.constants import HUNDRED, MONTHS_PER_YEAR, ZERO
from portfolio_engine.services.portfolio.types import ProjectRecord


def months_between(start: date, end: date) -> int:
    """Whole calendar months elapsed from ``start`` to ``end`` (never negative)."""
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if end.day < start.day:
        months -= 1
    return max(months, 0)


class PrincipalValuationPolicy:
    name = "principal"

    def valuation_signal(
            self,
            project: ProjectRecord,
            invested: Decimal,
            first_investment: date,
            as_of: date,
    ) -> Decimal:
        return invested


class AccruedExpectedReturnPolicy:
    """
    Accrue the project's expected annual return on the invested principal.

    Accrual starts at the project start date (or the first investment when
    the project has none) and stops after ``duration`` months. Projects
    without an expected return are valued at principal.
    """

    name = "accrued_expected_return"

    def valuation_signal(
            self,
            project: ProjectRecord,
            invested: Decimal,
            first_investment: date,
            as_of: date,
    ) -> Decimal:
        if project.expected_return is None or project.expected_return <= ZERO:
            return invested

        start = project.start_date or first_investment
        elapsed = months_between(start, as_of)
        if project.duration is not None:
            elapsed = min(elapsed, project.duration)

        annual_rate = project.expected_return / HUNDRED
        accrued = invested * annual_rate * Decimal(elapsed) / Decimal(MONTHS_PER_YEAR)
        return invested + accrued


class FixedRateBenchmarkPolicy:
    """
    Simple monthly accrual at a fixed annual rate.

    Args:
        annual_rate: Annual reference return in percent (8 = 8%)
    """

    def __init__(self, annual_rate: Decimal) -> None:
        self.annual_rate = annual_rate
        self._monthly_rate = annual_rate / HUNDRED / Decimal(MONTHS_PER_YEAR)

    def cumulative_returns(self, invested_by_month: list[Decimal]) -> list[Decimal]:
        cumulative = ZERO
        series: list[Decimal] = []
        for invested in invested_by_month:
            cumulative += invested * self._monthly_rate
            series.append(cumulative)
        return series


_VALUATION_POLICIES = {
    PrincipalValuationPolicy.name: PrincipalValuationPolicy,
    AccruedExpectedReturnPolicy.name: AccruedExpectedReturnPolicy,
}


def get_valuation_policy(name: str):
    """
    Build a valuation policy by its configured name.

    Raises:
        ValueError: If no policy has that name
    """
    try:
        return _VALUATION_POLICIES[name]()
    except KeyError:
        raise ValueError(
            f"Unknown valuation policy: '{name}'. "
            f"Valid options: {', '.join(_VALUATION_POLICIES)}"
        ) from None
