# tests/test_config.py
"""
Tests for settings validation.
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from portfolio_engine.config import Settings


class TestDatabaseConfig:
    def test_test_environment_defaults_to_sqlite(self):
        settings = Settings(environment="test", database_url=None)

        assert settings.database_url == "sqlite:///:memory:"
        assert settings.is_sqlite
        assert settings.is_test

    def test_production_requires_postgres(self):
        with pytest.raises(ValidationError, match="requires PostgreSQL"):
            Settings(environment="production", database_url="sqlite:///ledger.db")

    def test_production_accepts_postgres(self):
        settings = Settings(
            environment="production",
            database_url="postgresql://user:secret@db:5432/ledger",
        )

        assert settings.is_production
        assert not settings.is_sqlite

    def test_database_url_required_outside_test(self):
        with pytest.raises(ValidationError, match="DATABASE_URL is required"):
            Settings(environment="development", database_url=None)


class TestAnalyticsConfig:
    def test_defaults(self):
        settings = Settings(environment="test")

        assert settings.risk_free_rate == Decimal("2")
        assert settings.benchmark_annual_rate == Decimal("8")
        assert settings.valuation_policy == "principal"

    def test_unknown_valuation_policy(self):
        with pytest.raises(ValidationError, match="Invalid VALUATION_POLICY"):
            Settings(environment="test", valuation_policy="mark_to_market")

    def test_unknown_timezone(self):
        with pytest.raises(ValidationError, match="Invalid REPORTING_TIMEZONE"):
            Settings(environment="test", reporting_timezone="Mars/Olympus")

    def test_negative_cache_ttl(self):
        with pytest.raises(ValidationError):
            Settings(environment="test", analytics_cache_ttl_seconds=-1)
