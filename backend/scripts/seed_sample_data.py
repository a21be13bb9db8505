#!/usr/bin/env python3
# backend/scripts/seed_sample_data.py
"""
Seed a demo investor with a small but varied ledger.

Covers every lifecycle stage the dashboard shows: a running project, one
with a pending distribution, one paying out, a completed one, plus a
top-up and a cancelled investment.

Usage:
    cd backend
    python -m scripts.seed_sample_data
"""

import logging
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from portfolio_engine.database import SessionLocal, engine
from portfolio_engine.models import (
    Base,
    DistributionStatus,
    DistributionType,
    Investment,
    InvestmentStatus,
    ProfitDistribution,
    Project,
    ProjectStatus,
    RiskLevel,
    User,
    UserRole,
)

logger = logging.getLogger(__name__)

DEMO_EMAIL = "demo.investor@example.com"


def _utc(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, 10, 0, tzinfo=timezone.utc)


def seed(db: Session) -> User:
    """
    Create the demo investor and their ledger, once.

    Returns:
        The demo investor (existing or newly created)
    """
    logger.info("Starting database seeding")

    investor = db.query(User).filter(User.email == DEMO_EMAIL).first()
    if investor:
        logger.info(f"Demo investor exists: {investor.email} (id={investor.id})")
        return investor

    investor = User(email=DEMO_EMAIL, name="Demo Investor", role=UserRole.INVESTOR)
    co_investor = User(email="co.investor@example.com", name="Co Investor", role=UserRole.INVESTOR)
    db.add_all([investor, co_investor])
    db.flush()
    logger.info(f"Created investor: {investor.email}")

    projects = {
        "solar": Project(
            title="Solar Farm Andalusia",
            category="Energy",
            status=ProjectStatus.ACTIVE.value,
            risk_level=RiskLevel.LOW,
            funding_goal=Decimal("50000.00"),
            current_funding=Decimal("40000.00"),
            expected_return=Decimal("8.0"),
            duration=24,
            start_date=date(2024, 1, 1),
        ),
        "lofts": Project(
            title="Harbour Lofts",
            category="Real Estate",
            status=ProjectStatus.FUNDED.value,
            risk_level=RiskLevel.MEDIUM,
            funding_goal=Decimal("20000.00"),
            current_funding=Decimal("20000.00"),
            expected_return=Decimal("12.0"),
            duration=18,
            start_date=date(2024, 2, 1),
        ),
        "bakery": Project(
            title="Craft Bakery Expansion",
            category="Food & Beverage",
            status=ProjectStatus.COMPLETED.value,
            risk_level=RiskLevel.HIGH,
            funding_goal=Decimal("10000.00"),
            current_funding=Decimal("10000.00"),
            expected_return=Decimal("15.0"),
            duration=12,
            start_date=date(2023, 9, 1),
            end_date=date(2024, 9, 1),
        ),
        "vineyard": Project(
            title="Vineyard Replanting",
            category=None,
            status=ProjectStatus.ACTIVE.value,
            risk_level=None,
            funding_goal=Decimal("30000.00"),
            current_funding=Decimal("5000.00"),
            expected_return=Decimal("10.0"),
            duration=36,
        ),
    }
    db.add_all(projects.values())
    db.flush()
    logger.info(f"Created {len(projects)} projects")

    investments = [
        Investment(investor_id=investor.id, project_id=projects["solar"].id,
                   amount=Decimal("4000.00"), investment_date=_utc(2024, 1, 15)),
        Investment(investor_id=investor.id, project_id=projects["lofts"].id,
                   amount=Decimal("1500.00"), investment_date=_utc(2024, 2, 10)),
        # Top-up into the same project
        Investment(investor_id=investor.id, project_id=projects["lofts"].id,
                   amount=Decimal("500.00"), investment_date=_utc(2024, 4, 2)),
        Investment(investor_id=investor.id, project_id=projects["bakery"].id,
                   amount=Decimal("1000.00"), investment_date=_utc(2023, 9, 5)),
        Investment(investor_id=investor.id, project_id=projects["vineyard"].id,
                   amount=Decimal("2500.00"), investment_date=_utc(2024, 5, 20),
                   status=InvestmentStatus.CANCELLED),
        Investment(investor_id=co_investor.id, project_id=projects["solar"].id,
                   amount=Decimal("36000.00"), investment_date=_utc(2024, 1, 20)),
    ]
    db.add_all(investments)

    distributions = [
        ProfitDistribution(
            project_id=projects["lofts"].id,
            amount=Decimal("1200.00"),
            profit_rate=Decimal("6.0"),
            distribution_type=DistributionType.PARTIAL,
            status=DistributionStatus.APPROVED,
            distribution_date=_utc(2024, 8, 1),
            approved_at=_utc(2024, 7, 28),
        ),
        ProfitDistribution(
            project_id=projects["solar"].id,
            amount=Decimal("800.00"),
            profit_rate=Decimal("2.0"),
            distribution_type=DistributionType.PARTIAL,
            status=DistributionStatus.PENDING,
        ),
        ProfitDistribution(
            project_id=projects["bakery"].id,
            amount=Decimal("1500.00"),
            profit_rate=Decimal("15.0"),
            distribution_type=DistributionType.FINAL,
            status=DistributionStatus.APPROVED,
            distribution_date=_utc(2024, 9, 15),
            approved_at=_utc(2024, 9, 10),
        ),
    ]
    db.add_all(distributions)

    db.commit()
    db.refresh(investor)
    logger.info(
        f"Seeding complete: investor id={investor.id}, "
        f"{len(investments)} investments, {len(distributions)} distributions"
    )
    return investor


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        seed(db)
    except Exception as e:
        logger.error(f"Seeding failed: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
