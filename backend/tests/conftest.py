# backend/tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- Database session fixtures (in-memory SQLite)
- API client with database and service overrides
- Sample data factories for the ledger tables
"""

import os

# Set required environment variables BEFORE importing portfolio_engine modules
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("ANALYTICS_CACHE_TTL_SECONDS", "0")

from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

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
)
from portfolio_engine.services.portfolio.types import (
    DistributionRecord,
    InvestmentRecord,
    LedgerSnapshot,
    ProjectRecord,
)


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def db(db_engine) -> Iterator[Session]:
    """Create a database session for testing."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# =============================================================================
# API CLIENT
# =============================================================================

@pytest.fixture(scope="function")
def client(db: Session):
    """Create TestClient with database dependency override."""
    from fastapi.testclient import TestClient

    from portfolio_engine.database import get_db
    from portfolio_engine.dependencies import clear_service_caches
    from portfolio_engine.main import app

    def override_get_db():
        try:
            yield db
        finally:
            pass

    clear_service_caches()
    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
    clear_service_caches()


# =============================================================================
# SAMPLE DATA FACTORIES
# =============================================================================

def utc(year: int, month: int, day: int, hour: int = 12) -> datetime:
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


def create_investor(
        db: Session,
        email: str = "investor@example.com",
        name: str = "Test Investor",
) -> User:
    """Factory function for creating investor (User) entities in the database."""
    user = User(email=email, name=name)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_project(
        db: Session,
        title: str = "Test Project",
        category: str | None = "Real Estate",
        status: str | None = ProjectStatus.ACTIVE.value,
        risk_level: RiskLevel | None = RiskLevel.MEDIUM,
        funding_goal: Decimal = Decimal("10000.00"),
        current_funding: Decimal = Decimal("1000.00"),
        expected_return: Decimal | None = Decimal("10.0"),
        duration: int | None = 12,
) -> Project:
    """Factory function for creating Project entities in the database."""
    project = Project(
        title=title,
        category=category,
        status=status,
        risk_level=risk_level,
        funding_goal=funding_goal,
        current_funding=current_funding,
        expected_return=expected_return,
        duration=duration,
    )
    db.add(project)
    db.commit()
    db.refresh(project)
    return project


def create_investment(
        db: Session,
        investor: User,
        project_id: int,
        amount: Decimal = Decimal("1000.00"),
        investment_date: datetime | None = None,
        status: InvestmentStatus = InvestmentStatus.ACTIVE,
) -> Investment:
    """Factory function for creating Investment entities in the database."""
    investment = Investment(
        investor_id=investor.id,
        project_id=project_id,
        amount=amount,
        investment_date=investment_date or utc(2024, 1, 15),
        status=status,
    )
    db.add(investment)
    db.commit()
    db.refresh(investment)
    return investment


def create_distribution(
        db: Session,
        project_id: int,
        amount: Decimal = Decimal("100.00"),
        status: DistributionStatus = DistributionStatus.APPROVED,
        distribution_date: datetime | None = None,
        distribution_type: DistributionType = DistributionType.PARTIAL,
) -> ProfitDistribution:
    """Factory function for creating ProfitDistribution entities in the database."""
    distribution = ProfitDistribution(
        project_id=project_id,
        amount=amount,
        status=status,
        distribution_type=distribution_type,
        distribution_date=distribution_date,
    )
    db.add(distribution)
    db.commit()
    db.refresh(distribution)
    return distribution


# =============================================================================
# FIXTURE EXPORTS (for convenience imports in tests)
# =============================================================================

@pytest.fixture
def sample_investor(db: Session) -> User:
    """Provide a sample investor for tests."""
    return create_investor(db)


@pytest.fixture
def sample_project(db: Session) -> Project:
    """Provide a sample ACTIVE project funded with 1000."""
    return create_project(db)


# =============================================================================
# SNAPSHOT RECORD FACTORIES (no database)
# =============================================================================

def make_project_record(
        project_id: int = 1,
        title: str = "Project",
        category: str | None = "Real Estate",
        status: str | None = "ACTIVE",
        risk_level: str | None = "MEDIUM",
        funding_goal: str = "10000",
        current_funding: str = "1000",
        expected_return: str | None = None,
        duration: int | None = None,
        start_date=None,
):
    return ProjectRecord(
        id=project_id,
        title=title,
        category=category,
        status=status,
        risk_level=risk_level,
        funding_goal=Decimal(funding_goal),
        current_funding=Decimal(current_funding),
        expected_return=Decimal(expected_return) if expected_return is not None else None,
        duration=duration,
        start_date=start_date,
    )


def make_investment_record(
        investment_id: int = 1,
        project_id: int = 1,
        amount: str = "1000",
        investment_date: datetime | None = None,
):
    return InvestmentRecord(
        id=investment_id,
        project_id=project_id,
        amount=Decimal(amount),
        status="ACTIVE",
        investment_date=investment_date or utc(2024, 1, 15),
    )


def make_distribution_record(
        distribution_id: int = 1,
        project_id: int = 1,
        amount: str = "100",
        status: str = "APPROVED",
        distribution_date: datetime | None = None,
        distribution_type: str = "PARTIAL",
):
    return DistributionRecord(
        id=distribution_id,
        project_id=project_id,
        amount=Decimal(amount),
        status=status,
        distribution_type=distribution_type,
        distribution_date=distribution_date,
    )


def make_snapshot(
        investments=(),
        distributions=(),
        projects=(),
        project_principal: dict | None = None,
        investor_id: int = 1,
        as_of: datetime | None = None,
):
    """Build a LedgerSnapshot; per-project principal defaults to the investor's own."""
    if project_principal is None:
        project_principal = {}
        for inv in investments:
            project_principal[inv.project_id] = project_principal.get(inv.project_id, Decimal(0)) + inv.amount

    return LedgerSnapshot(
        investor_id=investor_id,
        as_of=as_of or utc(2024, 6, 15),
        investments=tuple(investments),
        distributions=tuple(distributions),
        projects={p.id: p for p in projects},
        project_principal=project_principal,
    )
