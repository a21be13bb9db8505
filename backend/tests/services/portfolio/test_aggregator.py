# backend/tests/services/portfolio/test_aggregator.py
"""
Tests for the Portfolio Aggregator.

Snapshots are built in memory, so these tests cover the aggregation
rules without a database:
- One position per project, top-ups combined
- Pro-rata payouts, rounded toward zero
- Pending vs distributed profits, each distribution counted once
- Missing projects: integrity error, or warning in partial mode
- Totals
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from portfolio_engine.services.exceptions import LedgerIntegrityError
from portfolio_engine.services.portfolio.aggregator import (
    PortfolioAggregator,
    calculate_investor_payouts,
    calculate_ownership_share,
    calculate_payout,
    calculate_progress,
)
from portfolio_engine.services.portfolio.policies import AccruedExpectedReturnPolicy
from portfolio_engine.services.portfolio.types import LifecycleStage
from tests.conftest import (
    make_distribution_record,
    make_investment_record,
    make_project_record,
    make_snapshot,
    utc,
)


@pytest.fixture
def aggregator() -> PortfolioAggregator:
    return PortfolioAggregator()


# =============================================================================
# PURE HELPERS
# =============================================================================

class TestOwnershipShare:
    """Tests for calculate_ownership_share."""

    def test_share_of_current_funding(self):
        share = calculate_ownership_share(Decimal("250"), Decimal("1000"))
        assert share == Decimal("0.25")

    def test_uses_total_principal_when_funding_lags(self):
        share = calculate_ownership_share(Decimal("250"), Decimal("500"), Decimal("2000"))
        assert share == Decimal("0.125")

    def test_never_exceeds_one(self):
        """Funding recorded below the investor's own principal still caps the share at 1."""
        share = calculate_ownership_share(Decimal("1000"), Decimal("500"))
        assert share == Decimal("1")

    def test_zero_capital(self):
        assert calculate_ownership_share(Decimal("0"), Decimal("0")) == Decimal("0")


class TestPayouts:
    """Tests for payout rounding and splitting."""

    def test_payout_rounds_toward_zero(self):
        assert calculate_payout(Decimal("100"), Decimal(1) / Decimal(3)) == Decimal("33.33")

    def test_negative_payout_rounds_toward_zero(self):
        assert calculate_payout(Decimal("-100"), Decimal(1) / Decimal(3)) == Decimal("-33.33")

    def test_split_never_exceeds_distribution(self):
        payouts = calculate_investor_payouts(
            Decimal("100.00"),
            {"a": Decimal("1000"), "b": Decimal("1000"), "c": Decimal("1000")},
            current_funding=Decimal("3000"),
        )

        assert all(p == Decimal("33.33") for p in payouts.values())
        assert sum(payouts.values()) <= Decimal("100.00")

    def test_split_with_funding_lagging_the_ledger(self):
        """Recorded funding below the summed principal must not over-pay."""
        payouts = calculate_investor_payouts(
            Decimal("900.00"),
            {1: Decimal("600"), 2: Decimal("400")},
            current_funding=Decimal("500"),
        )

        assert payouts == {1: Decimal("540.00"), 2: Decimal("360.00")}

    def test_split_of_loss_is_bounded(self):
        payouts = calculate_investor_payouts(
            Decimal("-50.00"),
            {1: Decimal("1"), 2: Decimal("2")},
        )

        assert abs(sum(payouts.values())) <= Decimal("50.00")


class TestProgress:
    """Tests for calculate_progress."""

    def test_partial_progress(self):
        assert calculate_progress(Decimal("1000"), Decimal("10000")) == Decimal("10.0000")

    def test_clamped_at_hundred(self):
        assert calculate_progress(Decimal("12000"), Decimal("10000")) == Decimal("100.0000")

    def test_no_goal(self):
        assert calculate_progress(Decimal("1000"), Decimal("0")) == Decimal("0")


# =============================================================================
# AGGREGATION
# =============================================================================

class TestAggregate:
    """Tests for PortfolioAggregator.aggregate."""

    def test_single_investment_with_distribution(self, aggregator):
        """1000 invested, 100 distributed on a fully owned project → 10% return."""
        snapshot = make_snapshot(
            investments=[make_investment_record(amount="1000")],
            distributions=[make_distribution_record(amount="100", distribution_date=utc(2024, 3, 10))],
            projects=[make_project_record(current_funding="1000")],
        )

        result = aggregator.aggregate(snapshot)

        assert len(result.positions) == 1
        position = result.positions[0]
        assert position.invested_amount == Decimal("1000")
        assert position.distributed_profits == Decimal("100.00")
        assert position.return_percentage == Decimal("10.0000")
        assert position.lifecycle_stage == LifecycleStage.PROFITS_DISTRIBUTED

        totals = result.totals
        assert totals.total_invested == Decimal("1000")
        assert totals.total_returns == Decimal("100.00")
        assert totals.total_value == Decimal("1100.00")
        assert totals.portfolio_return == Decimal("10.0000")
        assert totals.active_investments == 1

    def test_top_ups_form_one_position(self, aggregator):
        """600 + 400 into the same project is one position of 1000 with count 2."""
        snapshot = make_snapshot(
            investments=[
                make_investment_record(investment_id=1, amount="600", investment_date=utc(2024, 2, 1)),
                make_investment_record(investment_id=2, amount="400", investment_date=utc(2024, 1, 10)),
            ],
            projects=[make_project_record(current_funding="1000")],
        )

        result = aggregator.aggregate(snapshot)

        assert len(result.positions) == 1
        position = result.positions[0]
        assert position.invested_amount == Decimal("1000")
        assert position.investment_count == 2
        assert position.first_investment_date == utc(2024, 1, 10)
        assert position.latest_investment_date == utc(2024, 2, 1)
        assert [inv.id for inv in position.investments] == [2, 1]
        assert result.totals.total_investments == 1
        assert result.totals.investment_records == 2

    def test_distribution_counted_once_across_top_ups(self, aggregator):
        snapshot = make_snapshot(
            investments=[
                make_investment_record(investment_id=1, amount="600"),
                make_investment_record(investment_id=2, amount="400"),
            ],
            distributions=[make_distribution_record(amount="100")],
            projects=[make_project_record(current_funding="1000")],
        )

        position = aggregator.aggregate(snapshot).positions[0]

        assert position.distributed_profits == Decimal("100.00")
        assert len(position.payouts) == 1

    def test_pro_rata_share_with_co_investors(self, aggregator):
        snapshot = make_snapshot(
            investments=[make_investment_record(amount="1000")],
            distributions=[
                make_distribution_record(distribution_id=1, amount="200", status="APPROVED"),
                make_distribution_record(distribution_id=2, amount="100", status="PENDING"),
            ],
            projects=[make_project_record(current_funding="4000")],
            project_principal={1: Decimal("4000")},
        )

        position = aggregator.aggregate(snapshot).positions[0]

        assert position.ownership_share == Decimal("0.2500")
        assert position.distributed_profits == Decimal("50.00")
        assert position.pending_profits == Decimal("25.00")
        assert position.total_return == Decimal("50.00")

    def test_pending_only_is_not_distributed(self, aggregator):
        snapshot = make_snapshot(
            investments=[make_investment_record(amount="1000")],
            distributions=[make_distribution_record(amount="100", status="PENDING")],
            projects=[make_project_record(current_funding="1000")],
        )

        result = aggregator.aggregate(snapshot)
        position = result.positions[0]

        assert position.distributed_profits == Decimal("0")
        assert position.pending_profits == Decimal("100.00")
        assert position.lifecycle_stage == LifecycleStage.PROFITS_PENDING
        assert result.totals.total_returns == Decimal("0")

    def test_completed_position_is_not_active(self, aggregator):
        snapshot = make_snapshot(
            investments=[make_investment_record(amount="1000")],
            distributions=[make_distribution_record(amount="150", distribution_type="FINAL")],
            projects=[make_project_record(status="COMPLETED", current_funding="1000")],
        )

        result = aggregator.aggregate(snapshot)

        assert result.positions[0].lifecycle_stage == LifecycleStage.COMPLETED_WITH_PROFITS
        assert result.totals.active_investments == 0
        assert result.totals.total_investments == 1

    def test_positions_ordered_by_first_investment(self, aggregator):
        snapshot = make_snapshot(
            investments=[
                make_investment_record(investment_id=1, project_id=1, investment_date=utc(2024, 3, 1)),
                make_investment_record(investment_id=2, project_id=2, investment_date=utc(2024, 1, 1)),
            ],
            projects=[make_project_record(project_id=1), make_project_record(project_id=2)],
        )

        result = aggregator.aggregate(snapshot)

        assert [p.project_id for p in result.positions] == [2, 1]

    def test_naive_and_aware_dates_sort_together(self, aggregator):
        snapshot = make_snapshot(
            investments=[
                make_investment_record(investment_id=1, project_id=1, investment_date=utc(2024, 3, 1)),
                make_investment_record(
                    investment_id=2, project_id=2, investment_date=datetime(2024, 2, 1, 12)
                ),
            ],
            projects=[make_project_record(project_id=1), make_project_record(project_id=2)],
        )

        result = aggregator.aggregate(snapshot)

        assert [p.project_id for p in result.positions] == [2, 1]

    def test_empty_snapshot(self, aggregator):
        result = aggregator.aggregate(make_snapshot())

        assert result.positions == ()
        assert result.totals.total_value == Decimal("0")
        assert result.totals.portfolio_return == Decimal("0")
        assert result.totals.total_investments == 0
        assert result.warnings == ()

    def test_losses_reduce_returns(self, aggregator):
        snapshot = make_snapshot(
            investments=[make_investment_record(amount="1000")],
            distributions=[make_distribution_record(amount="-50")],
            projects=[make_project_record(current_funding="1000")],
        )

        position = aggregator.aggregate(snapshot).positions[0]

        assert position.distributed_profits == Decimal("-50.00")
        assert position.return_percentage == Decimal("-5.0000")
        assert position.unrealized_gains == Decimal("0")


class TestSnapshotInstant:
    """Rows dated after as_of do not exist yet for any part of the result."""

    def test_later_investment_is_left_out(self, aggregator):
        snapshot = make_snapshot(
            investments=[
                make_investment_record(investment_id=1, amount="1000", investment_date=utc(2024, 1, 15)),
                make_investment_record(investment_id=2, amount="5000", investment_date=utc(2024, 9, 1)),
            ],
            projects=[make_project_record(current_funding="6000")],
            as_of=utc(2024, 6, 15),
        )

        result = aggregator.aggregate(snapshot)

        assert result.totals.total_invested == Decimal("1000")
        assert result.totals.investment_records == 1
        assert result.positions[0].latest_investment_date == utc(2024, 1, 15)

    def test_later_distribution_is_left_out(self, aggregator):
        snapshot = make_snapshot(
            investments=[make_investment_record(amount="1000")],
            distributions=[
                make_distribution_record(distribution_id=1, amount="100", distribution_date=utc(2024, 3, 1)),
                make_distribution_record(distribution_id=2, amount="200", distribution_date=utc(2024, 8, 1)),
                make_distribution_record(distribution_id=3, amount="50", status="PENDING"),
            ],
            projects=[make_project_record()],
            as_of=utc(2024, 6, 15),
        )

        position = aggregator.aggregate(snapshot).positions[0]

        assert position.distributed_profits == Decimal("100.00")
        assert position.pending_profits == Decimal("50.00")
        assert [p.distribution_id for p in position.payouts] == [1, 3]

    def test_position_opened_after_as_of_does_not_exist(self, aggregator):
        snapshot = make_snapshot(
            investments=[make_investment_record(project_id=7, investment_date=utc(2024, 9, 1))],
            as_of=utc(2024, 6, 15),
        )

        result = aggregator.aggregate(snapshot)

        assert result.positions == ()
        assert result.warnings == ()


class TestMissingProjects:
    """Positions in projects that no longer exist."""

    @pytest.fixture
    def snapshot(self):
        return make_snapshot(
            investments=[
                make_investment_record(investment_id=1, project_id=1, amount="1000"),
                make_investment_record(investment_id=2, project_id=99, amount="500"),
            ],
            projects=[make_project_record(project_id=1)],
        )

    def test_raises_integrity_error(self, aggregator, snapshot):
        with pytest.raises(LedgerIntegrityError) as exc_info:
            aggregator.aggregate(snapshot)

        assert exc_info.value.missing_project_ids == [99]
        assert exc_info.value.investor_id == 1

    def test_partial_mode_excludes_with_warning(self, aggregator, snapshot):
        result = aggregator.aggregate(snapshot, allow_partial=True)

        assert [p.project_id for p in result.positions] == [1]
        assert result.totals.total_invested == Decimal("1000")
        assert len(result.warnings) == 1
        assert "99" in result.warnings[0]


class TestValuationPolicy:
    """Unrealized gains under the accrued expected return policy."""

    def test_principal_policy_has_no_unrealized_gains(self, aggregator):
        snapshot = make_snapshot(
            investments=[make_investment_record(amount="1000")],
            projects=[make_project_record(expected_return="12", duration=24)],
        )

        position = aggregator.aggregate(snapshot).positions[0]

        assert position.unrealized_gains == Decimal("0")
        assert position.current_value == Decimal("1000")

    def test_accrued_gains(self):
        aggregator = PortfolioAggregator(AccruedExpectedReturnPolicy())
        snapshot = make_snapshot(
            investments=[make_investment_record(amount="1000")],
            projects=[make_project_record(expected_return="12", duration=24, start_date=date(2024, 1, 1))],
            as_of=utc(2024, 7, 1),
        )

        result = aggregator.aggregate(snapshot)
        position = result.positions[0]

        assert position.unrealized_gains == Decimal("60.00")
        assert position.current_value == Decimal("1060.00")
        assert position.return_percentage == Decimal("6.0000")
        assert result.totals.total_value == Decimal("1060.00")

    def test_distributions_are_not_counted_twice(self):
        """Paid-out profits reduce the unrealized part of the valuation."""
        aggregator = PortfolioAggregator(AccruedExpectedReturnPolicy())
        snapshot = make_snapshot(
            investments=[make_investment_record(amount="1000")],
            distributions=[make_distribution_record(amount="40")],
            projects=[make_project_record(expected_return="12", duration=24, start_date=date(2024, 1, 1))],
            as_of=utc(2024, 7, 1),
        )

        position = aggregator.aggregate(snapshot).positions[0]

        assert position.distributed_profits == Decimal("40.00")
        assert position.unrealized_gains == Decimal("20.00")
        assert position.total_return == Decimal("60.00")

    def test_completed_position_has_no_unrealized_gains(self):
        aggregator = PortfolioAggregator(AccruedExpectedReturnPolicy())
        snapshot = make_snapshot(
            investments=[make_investment_record(amount="1000")],
            projects=[make_project_record(
                status="COMPLETED", expected_return="12", duration=24, start_date=date(2024, 1, 1)
            )],
            as_of=utc(2024, 7, 1),
        )

        position = aggregator.aggregate(snapshot).positions[0]

        assert position.lifecycle_stage == LifecycleStage.COMPLETED
        assert position.unrealized_gains == Decimal("0")
