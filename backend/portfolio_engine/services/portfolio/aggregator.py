# backend/portfolio_engine/services/portfolio/aggregator.py
"""
Portfolio Aggregator: folds an investor's ledger into positions and totals.

Algorithm:
    1. Group investments by project id (one Position per project).
    2. Ownership share = investor principal / project capital, where
       project capital is the larger of the project's current funding and
       the principal committed by all investors. Shares of all investors
       therefore sum to at most 1.
    3. Each distribution pays amount × share to the investor, rounded
       toward zero to cents. Approved payouts are distributed profits,
       pending payouts are pending profits. Each distribution is counted
       exactly once, in exactly one of the two.
    4. Unrealized gains = max(0, valuation signal - invested - distributed),
       where losses paid out are not added back, and zero once the
       position is completed.
    5. Progress = current funding / funding goal × 100, clamped to [0, 100].
    6. Totals are straight sums over positions.

Rows dated after the snapshot instant (investments by investment date,
distributions by effective date) are left out before any of the above;
undated distributions stay in.

Formulas:
    current_value     = invested + unrealized
    total_return      = distributed + unrealized
    return_percentage = total_return / invested × 100
    total_value       = Σ current_value + Σ distributed
    portfolio_return  = total_returns / total_invested × 100 (0 if nothing invested)
"""

import logging
from collections.abc import Mapping
from dataclasses import replace
from datetime import datetime
from decimal import Decimal, ROUND_DOWN
from typing import Hashable

from portfolio_engine.models import DistributionStatus
from portfolio_engine.services.constants import (
    CURRENCY_PRECISION,
    HUNDRED,
    PERCENTAGE_PRECISION,
    RATIO_PRECISION,
    ZERO,
)
from portfolio_engine.services.exceptions import LedgerIntegrityError
from portfolio_engine.services.portfolio.lifecycle import classify_from_distributions
from portfolio_engine.services.portfolio.policies import PrincipalValuationPolicy
from portfolio_engine.services.portfolio.types import (
    ACTIVE_STAGES,
    COMPLETED_STAGES,
    AggregationResult,
    DistributionRecord,
    InvestmentRecord,
    LedgerSnapshot,
    Payout,
    PortfolioTotals,
    Position,
    ProjectRecord,
)
from portfolio_engine.services.protocols import ValuationPolicyProtocol
from portfolio_engine.utils.date_utils import as_utc

logger = logging.getLogger(__name__)


# =============================================================================
# PURE HELPERS
# =============================================================================

def calculate_ownership_share(
        invested: Decimal,
        current_funding: Decimal,
        total_principal: Decimal = ZERO,
) -> Decimal:
    """
    Fraction of a project's capital held by one investor.

    The denominator is never smaller than the investor's own principal, so
    the share is within [0, 1] even when current funding lags the ledger.
    """
    capital = max(current_funding, total_principal, invested)
    if capital <= ZERO or invested <= ZERO:
        return ZERO
    return invested / capital


def calculate_payout(amount: Decimal, share: Decimal) -> Decimal:
    """Investor payout of one distribution, rounded toward zero to cents."""
    return (amount * share).quantize(CURRENCY_PRECISION, rounding=ROUND_DOWN)


def calculate_investor_payouts(
        distribution_amount: Decimal,
        holdings: Mapping[Hashable, Decimal],
        current_funding: Decimal = ZERO,
) -> dict[Hashable, Decimal]:
    """
    Split one distribution across every holder of a project.

    Args:
        distribution_amount: Project-wide amount (negative for a loss)
        holdings: Principal per investor key
        current_funding: Project's recorded funding

    Returns:
        Payout per investor key. The absolute sum never exceeds the
        absolute distribution amount.
    """
    total_principal = sum(holdings.values(), ZERO)
    capital = max(current_funding, total_principal)
    payouts = {}
    for key, invested in holdings.items():
        share = calculate_ownership_share(invested, capital)
        payouts[key] = calculate_payout(distribution_amount, share)
    return payouts


def calculate_progress(current_funding: Decimal, funding_goal: Decimal) -> Decimal:
    """Funding progress in percent, clamped to [0, 100]; 0 without a goal."""
    if funding_goal is None or funding_goal <= ZERO:
        return ZERO
    progress = current_funding / funding_goal * HUNDRED
    return min(max(progress, ZERO), HUNDRED).quantize(PERCENTAGE_PRECISION)


def _percentage(numerator: Decimal, denominator: Decimal) -> Decimal:
    if denominator == ZERO:
        return ZERO
    return (numerator / denominator * HUNDRED).quantize(PERCENTAGE_PRECISION)


def _is_due(moment: datetime | None, as_of: datetime) -> bool:
    return moment is None or as_utc(moment) <= as_of


def clip_to_as_of(snapshot: LedgerSnapshot) -> LedgerSnapshot:
    """Drop investments and dated distributions later than the snapshot instant."""
    as_of = as_utc(snapshot.as_of)
    investments = tuple(
        inv for inv in snapshot.investments if _is_due(inv.investment_date, as_of)
    )
    distributions = tuple(
        dist for dist in snapshot.distributions if _is_due(dist.effective_date, as_of)
    )
    if (
            len(investments) == len(snapshot.investments)
            and len(distributions) == len(snapshot.distributions)
    ):
        return snapshot

    logger.debug(
        f"Clipped snapshot for investor {snapshot.investor_id} to {as_of.isoformat()}: "
        f"{len(snapshot.investments) - len(investments)} investments, "
        f"{len(snapshot.distributions) - len(distributions)} distributions dated later"
    )
    return replace(snapshot, investments=investments, distributions=distributions)


# =============================================================================
# AGGREGATOR
# =============================================================================

class PortfolioAggregator:
    """
    Builds positions and totals from a LedgerSnapshot.

    Attributes:
        valuation_policy: Source of the unrealized gains signal
    """

    def __init__(self, valuation_policy: ValuationPolicyProtocol | None = None):
        self.valuation_policy = valuation_policy or PrincipalValuationPolicy()

    def aggregate(
            self,
            snapshot: LedgerSnapshot,
            allow_partial: bool = False,
    ) -> AggregationResult:
        """
        Fold the snapshot into positions and portfolio totals.

        Args:
            snapshot: Ledger rows for one investor
            allow_partial: Skip positions whose project is missing and report
                           them as warnings instead of failing

        Returns:
            AggregationResult (positions ordered by first investment)

        Raises:
            LedgerIntegrityError: If a referenced project is missing and
                                  allow_partial is False
        """
        snapshot = clip_to_as_of(snapshot)
        warnings: list[str] = []
        missing = snapshot.missing_project_ids
        if missing:
            if not allow_partial:
                logger.error(
                    f"Ledger integrity fault for investor {snapshot.investor_id}: "
                    f"missing projects {missing}"
                )
                raise LedgerIntegrityError(snapshot.investor_id, missing)
            logger.warning(
                f"Skipping {len(missing)} orphaned position(s) for investor "
                f"{snapshot.investor_id}: projects {missing}"
            )
            warnings.append(
                "Positions in unknown project(s) "
                f"{', '.join(str(pid) for pid in missing)} were excluded; "
                "totals are understated"
            )

        grouped: dict[int, list[InvestmentRecord]] = {}
        for inv in snapshot.investments:
            if inv.project_id in snapshot.projects:
                grouped.setdefault(inv.project_id, []).append(inv)

        distributions_by_project: dict[int, list[DistributionRecord]] = {}
        for dist in snapshot.distributions:
            distributions_by_project.setdefault(dist.project_id, []).append(dist)

        positions = [
            self._build_position(
                project=snapshot.projects[project_id],
                investments=records,
                distributions=distributions_by_project.get(project_id, []),
                total_principal=snapshot.project_principal.get(project_id, ZERO),
                as_of=snapshot.as_of,
            )
            for project_id, records in grouped.items()
        ]
        positions.sort(key=lambda p: (as_utc(p.first_investment_date), p.project_id))

        return AggregationResult(
            positions=tuple(positions),
            totals=self.calculate_totals(positions),
            warnings=tuple(warnings),
        )

    def _build_position(
            self,
            project: ProjectRecord,
            investments: list[InvestmentRecord],
            distributions: list[DistributionRecord],
            total_principal: Decimal,
            as_of,
    ) -> Position:
        invested = sum((inv.amount for inv in investments), ZERO)
        ordered = sorted(investments, key=lambda inv: (as_utc(inv.investment_date), inv.id))

        share = calculate_ownership_share(invested, project.current_funding, total_principal)

        payouts = []
        distributed = ZERO
        pending = ZERO
        for dist in distributions:
            amount = calculate_payout(dist.amount, share)
            if dist.status == DistributionStatus.APPROVED.value:
                distributed += amount
            elif dist.status == DistributionStatus.PENDING.value:
                pending += amount
            else:
                continue
            payouts.append(Payout(
                distribution_id=dist.id,
                project_id=dist.project_id,
                amount=amount,
                distribution_amount=dist.amount,
                status=dist.status,
                distribution_type=dist.distribution_type,
                profit_rate=dist.profit_rate,
                date=dist.effective_date,
            ))

        stage = classify_from_distributions(project.status, distributions)

        if stage in COMPLETED_STAGES:
            unrealized = ZERO
        else:
            signal = self.valuation_policy.valuation_signal(
                project,
                invested,
                as_utc(ordered[0].investment_date).date(),
                as_utc(as_of).date(),
            )
            unrealized = max(signal - invested - max(distributed, ZERO), ZERO).quantize(
                CURRENCY_PRECISION, rounding=ROUND_DOWN
            )

        total_return = distributed + unrealized

        return Position(
            project_id=project.id,
            project_title=project.title,
            category=project.category,
            risk_level=project.risk_level,
            project_status=project.status,
            funding_goal=project.funding_goal,
            current_funding=project.current_funding,
            expected_return=project.expected_return,
            invested_amount=invested,
            investment_count=len(investments),
            first_investment_date=ordered[0].investment_date,
            latest_investment_date=ordered[-1].investment_date,
            ownership_share=share.quantize(RATIO_PRECISION, rounding=ROUND_DOWN),
            distributed_profits=distributed,
            pending_profits=pending,
            unrealized_gains=unrealized,
            current_value=invested + unrealized,
            total_return=total_return,
            return_percentage=_percentage(total_return, invested),
            progress=calculate_progress(project.current_funding, project.funding_goal),
            lifecycle_stage=stage,
            investments=tuple(ordered),
            payouts=tuple(payouts),
        )

    @staticmethod
    def calculate_totals(positions: list[Position] | tuple[Position, ...]) -> PortfolioTotals:
        """Sum positions into portfolio totals (all zeros for no positions)."""
        total_invested = sum((p.invested_amount for p in positions), ZERO)
        distributed = sum((p.distributed_profits for p in positions), ZERO)
        pending = sum((p.pending_profits for p in positions), ZERO)
        unrealized = sum((p.unrealized_gains for p in positions), ZERO)
        current_value = sum((p.current_value for p in positions), ZERO)
        total_returns = distributed + unrealized

        return PortfolioTotals(
            total_value=current_value + distributed,
            total_invested=total_invested,
            total_returns=total_returns,
            portfolio_return=_percentage(total_returns, total_invested),
            distributed_profits=distributed,
            pending_profits=pending,
            unrealized_gains=unrealized,
            active_investments=sum(1 for p in positions if p.lifecycle_stage in ACTIVE_STAGES),
            total_investments=len(positions),
            investment_records=sum(p.investment_count for p in positions),
        )
