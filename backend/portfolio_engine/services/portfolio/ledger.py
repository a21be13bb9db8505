# backend/portfolio_engine/services/portfolio/ledger.py
"""
Ledger Reader: loads one investor's rows into an immutable snapshot.

All queries run in the caller's session transaction, so on PostgreSQL
(REPEATABLE READ, see database.py) they observe a single point in time:
a distribution approved between the investment query and the
distribution query is either seen by both or by neither.

No business logic lives here beyond the exclusions every consumer
needs: cancelled investments carry no capital, rejected distributions
never pay out, and investments dated after as_of do not exist yet (also
for the all-investor principal behind ownership shares). Dangling
project references are NOT raised here; they are left
visible on the snapshot for the aggregator to judge.

Read failures (sqlalchemy.exc.OperationalError and friends) propagate
unchanged; retry policy belongs to the caller.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from portfolio_engine.models import (
    DistributionStatus,
    Investment,
    InvestmentStatus,
    ProfitDistribution,
    Project,
    User,
)
from portfolio_engine.services.constants import ZERO
from portfolio_engine.services.portfolio.types import (
    DistributionRecord,
    InvestmentRecord,
    LedgerSnapshot,
    ProjectRecord,
)
from portfolio_engine.utils.date_utils import as_utc

logger = logging.getLogger(__name__)


def _to_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _enum_value(value) -> str:
    return value.value if hasattr(value, "value") else str(value)


class LedgerReader:
    """Reads Investment, ProfitDistribution and Project rows for one investor."""

    def investor_exists(self, db: Session, investor_id: int) -> bool:
        return db.execute(
            select(User.id).where(User.id == investor_id)
        ).scalar_one_or_none() is not None

    def read_snapshot(
            self,
            db: Session,
            investor_id: int,
            as_of: datetime | None = None,
    ) -> LedgerSnapshot:
        """
        Read everything the pipeline needs for one investor.

        Args:
            db: Database session (one transaction for all queries)
            investor_id: Investor to read
            as_of: Snapshot instant; defaults to now (UTC)

        Returns:
            LedgerSnapshot with investments, distributions, referenced
            projects and per-project total principal
        """
        as_of = as_of or datetime.now(timezone.utc)
        # Compare in UTC: SQLite keeps timestamps as naive UTC strings
        cutoff = as_utc(as_of)

        investment_rows = db.execute(
            select(Investment)
            .where(
                Investment.investor_id == investor_id,
                Investment.status != InvestmentStatus.CANCELLED,
                Investment.investment_date <= cutoff,
            )
            .order_by(Investment.investment_date, Investment.id)
        ).scalars().all()

        investments = tuple(
            InvestmentRecord(
                id=row.id,
                project_id=row.project_id,
                amount=_to_decimal(row.amount),
                status=_enum_value(row.status),
                investment_date=row.investment_date,
            )
            for row in investment_rows
        )

        project_ids = sorted({inv.project_id for inv in investments})
        if not project_ids:
            logger.debug(f"Investor {investor_id} has no investments")
            return LedgerSnapshot(investor_id=investor_id, as_of=as_of)

        project_rows = db.execute(
            select(Project).where(Project.id.in_(project_ids))
        ).scalars().all()

        projects = {
            row.id: ProjectRecord(
                id=row.id,
                title=row.title,
                category=row.category,
                status=row.status,
                risk_level=_enum_value(row.risk_level) if row.risk_level is not None else None,
                funding_goal=_to_decimal(row.funding_goal),
                current_funding=_to_decimal(row.current_funding),
                expected_return=(
                    _to_decimal(row.expected_return) if row.expected_return is not None else None
                ),
                duration=row.duration,
                start_date=row.start_date,
                end_date=row.end_date,
            )
            for row in project_rows
        }

        distribution_rows = db.execute(
            select(ProfitDistribution)
            .where(
                ProfitDistribution.project_id.in_(project_ids),
                ProfitDistribution.status != DistributionStatus.REJECTED,
            )
            .order_by(ProfitDistribution.id)
        ).scalars().all()

        distributions = tuple(
            DistributionRecord(
                id=row.id,
                project_id=row.project_id,
                amount=_to_decimal(row.amount),
                status=_enum_value(row.status),
                distribution_type=_enum_value(row.distribution_type),
                profit_rate=_to_decimal(row.profit_rate) if row.profit_rate is not None else None,
                distribution_date=row.distribution_date,
                approved_at=row.approved_at,
            )
            for row in distribution_rows
        )

        principal_rows = db.execute(
            select(Investment.project_id, func.sum(Investment.amount))
            .where(
                Investment.project_id.in_(project_ids),
                Investment.status != InvestmentStatus.CANCELLED,
                Investment.investment_date <= cutoff,
            )
            .group_by(Investment.project_id)
        ).all()
        project_principal = {pid: _to_decimal(total) for pid, total in principal_rows}

        logger.debug(
            f"Read snapshot for investor {investor_id}: "
            f"{len(investments)} investments, {len(projects)} projects, "
            f"{len(distributions)} distributions"
        )

        return LedgerSnapshot(
            investor_id=investor_id,
            as_of=as_of,
            investments=investments,
            distributions=distributions,
            projects=projects,
            project_principal=project_principal,
        )
