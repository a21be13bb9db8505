# backend/portfolio_engine/models.py
import enum
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Date, DateTime, ForeignKey, Enum, Numeric, Boolean, Integer, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class UserRole(str, enum.Enum):
    INVESTOR = "INVESTOR"
    PARTNER = "PARTNER"
    ADMIN = "ADMIN"


class ProjectStatus(str, enum.Enum):
    """
    Deal status as written by the listing workflow.

    Stored as a plain string on Project so that values written by older
    or newer workflows stay readable; see lifecycle.parse_project_status.
    """
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    PUBLISHED = "PUBLISHED"
    ACTIVE = "ACTIVE"
    FUNDED = "FUNDED"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class RiskLevel(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class InvestmentStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    FUNDED = "FUNDED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"  # Carries no capital


class DistributionType(str, enum.Enum):
    PARTIAL = "PARTIAL"
    FINAL = "FINAL"


class DistributionStatus(str, enum.Enum):
    """
    Approval state of a profit distribution.

    State transitions:
        PENDING → APPROVED
        PENDING → REJECTED
    """
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    email: Mapped[str] = mapped_column(String, unique=True, index=True)
    name: Mapped[str | None] = mapped_column(String)
    role: Mapped[UserRole] = mapped_column(Enum(UserRole), default=UserRole.INVESTOR)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    # Relationship: One investor has Many Investments
    investments: Mapped[list["Investment"]] = relationship(back_populates="investor")


class Project(Base):
    """
    A deal listed on the platform. Read-only reference data for analytics.

    current_funding is maintained by the investment placement workflow and
    may lag or lead the sum of Investment rows.
    """
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String)
    category: Mapped[str | None] = mapped_column(String, index=True)  # Sector, e.g. "Real Estate"
    status: Mapped[str | None] = mapped_column(String, index=True)
    risk_level: Mapped[RiskLevel | None] = mapped_column(Enum(RiskLevel), nullable=True)
    funding_goal: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal(0))
    current_funding: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal(0))
    expected_return: Mapped[Decimal | None] = mapped_column(Numeric(9, 4))  # Annual %, e.g. 12.5
    duration: Mapped[int | None] = mapped_column(Integer)  # Months
    start_date: Mapped[date | None] = mapped_column(Date)
    end_date: Mapped[date | None] = mapped_column(Date)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    distributions: Mapped[list["ProfitDistribution"]] = relationship(back_populates="project")


class Investment(Base):
    """
    One commitment of capital by an investor into a project.

    Several rows for the same (investor, project) pair are top-ups and are
    folded into a single position by the analytics engine.
    """
    __tablename__ = "investments"
    __table_args__ = (
        Index("ix_investments_investor_project", "investor_id", "project_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    investor_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    # No FK constraint: rows imported from the legacy platform can point
    # at projects that were hard-deleted, and the engine reports those.
    project_id: Mapped[int] = mapped_column(Integer, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2))
    status: Mapped[InvestmentStatus] = mapped_column(Enum(InvestmentStatus), default=InvestmentStatus.ACTIVE)
    investment_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    investor: Mapped["User"] = relationship(back_populates="investments")


class ProfitDistribution(Base):
    """
    A profit (or loss, when amount is negative) paid out on a project.

    The amount is the project-wide total; each investor receives the
    pro-rata share of their principal.
    """
    __tablename__ = "profit_distributions"
    __table_args__ = (
        Index("ix_profit_distributions_project_status", "project_id", "status"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    project_id: Mapped[int] = mapped_column(ForeignKey("projects.id"), index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2))
    profit_rate: Mapped[Decimal | None] = mapped_column(Numeric(9, 4))  # % of funded capital
    distribution_type: Mapped[DistributionType] = mapped_column(Enum(DistributionType), default=DistributionType.PARTIAL)
    status: Mapped[DistributionStatus] = mapped_column(Enum(DistributionStatus), default=DistributionStatus.PENDING)
    distribution_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    approved_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    project: Mapped["Project"] = relationship(back_populates="distributions")
