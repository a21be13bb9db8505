# backend/tests/services/portfolio/test_timeseries.py
"""
Tests for the monthly time-series builder.

Covers:
- Continuous calendar months from the first event to the as_of month
- Running cumulative (no compounding), kept all-time under truncation
- Timeframe validation and windowing
- Reporting timezone bucketing
- Events after the as_of month
"""

from datetime import datetime, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest

from portfolio_engine.services.exceptions import InvalidTimeframeError
from portfolio_engine.services.portfolio.aggregator import PortfolioAggregator
from portfolio_engine.services.portfolio.policies import FixedRateBenchmarkPolicy
from portfolio_engine.services.portfolio.timeseries import (
    build_monthly_series,
    validate_timeframe,
)
from tests.conftest import (
    make_distribution_record,
    make_investment_record,
    make_project_record,
    make_snapshot,
    utc,
)

UTC = ZoneInfo("UTC")
BENCHMARK = FixedRateBenchmarkPolicy(Decimal("8"))


def build_positions(investments, distributions=()):
    """Aggregate a single fully owned project (share 1)."""
    snapshot = make_snapshot(
        investments=investments,
        distributions=distributions,
        projects=[make_project_record(current_funding="1000")],
    )
    return PortfolioAggregator().aggregate(snapshot).positions


@pytest.fixture
def simple_positions():
    """1000 invested in January 2024, 100 paid out in March 2024."""
    return build_positions(
        [make_investment_record(amount="1000", investment_date=utc(2024, 1, 15))],
        [make_distribution_record(amount="100", distribution_date=utc(2024, 3, 10))],
    )


class TestValidateTimeframe:
    """Tests for validate_timeframe."""

    @pytest.mark.parametrize("timeframe", ["1M", "3M", "6M", "1Y", "ALL"])
    def test_valid_timeframes(self, timeframe):
        assert validate_timeframe(timeframe) == timeframe

    def test_normalizes_case(self):
        assert validate_timeframe("1y") == "1Y"

    def test_defaults_to_six_months(self):
        assert validate_timeframe(None) == "6M"
        assert validate_timeframe("") == "6M"

    def test_invalid_timeframe_raises(self):
        with pytest.raises(InvalidTimeframeError) as exc_info:
            validate_timeframe("5Y")

        assert exc_info.value.timeframe == "5Y"
        assert "ALL" in exc_info.value.valid_options
        assert exc_info.value.field == "timeframe"


class TestBuildMonthlySeries:
    """Tests for build_monthly_series."""

    def test_full_history(self, simple_positions):
        buckets = build_monthly_series(simple_positions, utc(2024, 5, 20), BENCHMARK, UTC, timeframe="ALL")

        assert [b.month for b in buckets] == ["2024-01", "2024-02", "2024-03", "2024-04", "2024-05"]
        assert [b.returns for b in buckets] == [Decimal("0"), Decimal("0"), Decimal("100"), Decimal("0"), Decimal("0")]
        assert [b.cumulative for b in buckets] == [Decimal("0"), Decimal("0"), Decimal("100"), Decimal("100"), Decimal("100")]
        assert buckets[2].return_rate == Decimal("10.0000")
        assert buckets[0].label == "Jan 2024"

    def test_value_is_invested_plus_cumulative(self, simple_positions):
        buckets = build_monthly_series(simple_positions, utc(2024, 5, 20), BENCHMARK, UTC, timeframe="ALL")

        assert all(b.invested == Decimal("1000") for b in buckets)
        assert buckets[-1].value == Decimal("1100.00")

    def test_benchmark_accrues_on_invested_capital(self, simple_positions):
        buckets = build_monthly_series(simple_positions, utc(2024, 5, 20), BENCHMARK, UTC, timeframe="ALL")

        assert buckets[0].benchmark == Decimal("6.67")
        assert buckets[1].benchmark == Decimal("13.33")
        assert buckets[2].benchmark == Decimal("20.00")

    def test_cumulative_is_monotonic_without_losses(self, simple_positions):
        buckets = build_monthly_series(simple_positions, utc(2024, 5, 20), BENCHMARK, UTC, timeframe="ALL")

        cumulative = [b.cumulative for b in buckets]
        assert cumulative == sorted(cumulative)

    def test_one_month_window_keeps_all_time_cumulative(self, simple_positions):
        buckets = build_monthly_series(simple_positions, utc(2024, 5, 20), BENCHMARK, UTC, timeframe="1M")

        assert len(buckets) == 1
        assert buckets[0].month == "2024-05"
        assert buckets[0].returns == Decimal("0")
        assert buckets[0].cumulative == Decimal("100")

    def test_one_year_window_on_three_year_history(self):
        positions = build_positions(
            [make_investment_record(amount="1000", investment_date=utc(2021, 1, 15))],
            [
                make_distribution_record(distribution_id=1, amount="50", distribution_date=utc(2021, 6, 10)),
                make_distribution_record(distribution_id=2, amount="50", distribution_date=utc(2022, 6, 10)),
                make_distribution_record(distribution_id=3, amount="50", distribution_date=utc(2023, 6, 10)),
            ],
        )

        full = build_monthly_series(positions, utc(2023, 12, 20), BENCHMARK, UTC, timeframe="ALL")
        year = build_monthly_series(positions, utc(2023, 12, 20), BENCHMARK, UTC, timeframe="1Y")

        assert len(full) == 36
        assert len(year) == 12
        assert year[0].month == "2023-01"
        assert year[0].cumulative == Decimal("100")
        assert year[-1].cumulative == Decimal("150")
        assert year == full[-12:]

    def test_default_timeframe_is_six_months(self, simple_positions):
        buckets = build_monthly_series(simple_positions, utc(2024, 9, 1), BENCHMARK, UTC)

        assert [b.month for b in buckets][0] == "2024-04"
        assert len(buckets) == 6

    def test_short_history_is_not_padded(self, simple_positions):
        buckets = build_monthly_series(simple_positions, utc(2024, 2, 1), BENCHMARK, UTC, timeframe="1Y")

        assert [b.month for b in buckets] == ["2024-01", "2024-02"]

    def test_no_positions(self):
        assert build_monthly_series((), utc(2024, 5, 20), BENCHMARK, UTC, timeframe="ALL") == []

    def test_events_after_as_of_are_excluded(self):
        positions = build_positions(
            [make_investment_record(amount="1000", investment_date=utc(2024, 1, 15))],
            [make_distribution_record(amount="100", distribution_date=utc(2024, 7, 1))],
        )

        buckets = build_monthly_series(positions, utc(2024, 5, 20), BENCHMARK, UTC, timeframe="ALL")

        assert buckets[-1].month == "2024-05"
        assert buckets[-1].cumulative == Decimal("0")

    def test_all_events_after_as_of(self):
        positions = build_positions(
            [make_investment_record(amount="1000", investment_date=utc(2024, 8, 1))],
        )

        assert build_monthly_series(positions, utc(2024, 5, 20), BENCHMARK, UTC, timeframe="ALL") == []

    def test_pending_and_undated_payouts_are_not_realized(self):
        positions = build_positions(
            [make_investment_record(amount="1000", investment_date=utc(2024, 1, 15))],
            [
                make_distribution_record(distribution_id=1, amount="100", status="PENDING",
                                         distribution_date=utc(2024, 2, 1)),
                make_distribution_record(distribution_id=2, amount="100", distribution_date=None),
            ],
        )

        buckets = build_monthly_series(positions, utc(2024, 3, 1), BENCHMARK, UTC, timeframe="ALL")

        assert all(b.returns == Decimal("0") for b in buckets)

    def test_reporting_timezone_decides_the_month(self):
        positions = build_positions(
            [make_investment_record(amount="1000", investment_date=utc(2024, 1, 15))],
            [make_distribution_record(
                amount="100",
                distribution_date=datetime(2024, 3, 31, 23, 30, tzinfo=timezone.utc),
            )],
        )

        in_utc = build_monthly_series(positions, utc(2024, 5, 1), BENCHMARK, UTC, timeframe="ALL")
        in_amsterdam = build_monthly_series(
            positions, utc(2024, 5, 1), BENCHMARK, ZoneInfo("Europe/Amsterdam"), timeframe="ALL"
        )

        assert {b.month: b.returns for b in in_utc}["2024-03"] == Decimal("100")
        assert {b.month: b.returns for b in in_amsterdam}["2024-04"] == Decimal("100")

    def test_invalid_timeframe_raises(self, simple_positions):
        with pytest.raises(InvalidTimeframeError):
            build_monthly_series(simple_positions, utc(2024, 5, 20), BENCHMARK, UTC, timeframe="2W")
