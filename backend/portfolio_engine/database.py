# backend/portfolio_engine/database.py
"""
Database connection and session management.

This module configures SQLAlchemy with:
- Connection pooling for production performance
- REPEATABLE READ isolation on PostgreSQL so one session sees one
  point-in-time view of the ledger
- Health check capabilities

Pool Configuration (configurable via environment variables):
- DB_POOL_SIZE: Persistent connections (default: 5)
- DB_POOL_MAX_OVERFLOW: Burst capacity (default: 10)
- DB_POOL_RECYCLE: Connection lifetime (default: 3600s)
- DB_POOL_PRE_PING: Health checks (default: True)
"""

import logging
from collections.abc import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool, QueuePool

from portfolio_engine.config import settings

logger = logging.getLogger(__name__)

# Isolation level for ledger reads on PostgreSQL.
# Every statement in a transaction observes the same snapshot.
SNAPSHOT_ISOLATION_LEVEL = "REPEATABLE READ"


def _create_engine():
    """
    Create SQLAlchemy engine with environment-appropriate configuration.

    Returns:
        Engine: Configured SQLAlchemy engine

    Configuration varies by database type:
    - SQLite (test only): Uses StaticPool for in-memory database sharing
    - PostgreSQL: Uses QueuePool with snapshot isolation
    """
    if settings.is_sqlite:
        # StaticPool keeps a single connection for in-memory SQLite
        logger.info("Configuring SQLite database (test mode)")
        return create_engine(
            settings.database_url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
            echo=settings.debug,
        )

    logger.info(
        f"Configuring PostgreSQL database pool: "
        f"size={settings.db_pool_size}, "
        f"max_overflow={settings.db_pool_max_overflow}, "
        f"recycle={settings.db_pool_recycle}s, "
        f"pre_ping={settings.db_pool_pre_ping}, "
        f"isolation={SNAPSHOT_ISOLATION_LEVEL}"
    )

    return create_engine(
        settings.database_url,
        poolclass=QueuePool,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_pool_max_overflow,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=settings.db_pool_pre_ping,
        pool_timeout=30,
        isolation_level=SNAPSHOT_ISOLATION_LEVEL,
        echo=settings.debug,
    )


engine = _create_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency that provides a database session.

    Yields:
        Session: A SQLAlchemy database session that auto-closes after use.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_database_health() -> dict:
    """
    Check database connectivity.

    Returns:
        dict: Health status with backend type, or the error on failure
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))

        return {
            "status": "healthy",
            "database": "sqlite" if settings.is_sqlite else "postgresql",
        }
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {
            "status": "unhealthy",
            "error": str(e),
        }
