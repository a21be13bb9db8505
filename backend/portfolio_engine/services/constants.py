# backend/portfolio_engine/services/constants.py
"""
Centralized constants for the portfolio analytics services.

Single source of truth for business constants: precision levels,
timeframe windows, health score weights and rate limits. Rates that
operators tune per deployment (risk-free rate, benchmark rate) live in
config.Settings instead.

Usage:
    from portfolio_engine.services.constants import (
        ZERO,
        CURRENCY_PRECISION,
        TIMEFRAME_MONTHS,
    )
"""

from decimal import Decimal


# =============================================================================
# CALENDAR CONSTANTS
# =============================================================================

# Used to de-annualize the risk-free rate and the benchmark rate
MONTHS_PER_YEAR: int = 12


# =============================================================================
# TIMEFRAMES
# =============================================================================

# Number of trailing calendar months kept for each timeframe
# None = keep full history
TIMEFRAME_MONTHS: dict[str, int | None] = {
    "1M": 1,
    "3M": 3,
    "6M": 6,
    "1Y": 12,
    "ALL": None,
}

DEFAULT_TIMEFRAME: str = "6M"


# =============================================================================
# CLASSIFICATION DEFAULTS
# =============================================================================

# Sector label for projects without a category
DEFAULT_SECTOR: str = "Other"

# Risk bucket for projects without a risk level
DEFAULT_RISK_LEVEL: str = "MEDIUM"

# Display order and labels of risk buckets
RISK_BUCKET_LABELS: dict[str, str] = {
    "LOW": "Low Risk",
    "MEDIUM": "Medium Risk",
    "HIGH": "High Risk",
}


# =============================================================================
# HEALTH SCORE WEIGHTS
# =============================================================================
# Four bands that sum to 100 so the score always reads "out of 100"

# Win rate (0-100%) multiplied by this factor, up to 30 points
HEALTH_WIN_RATE_FACTOR: Decimal = Decimal("0.3")
HEALTH_WIN_RATE_MAX: Decimal = Decimal("30")

# Sharpe ratio multiplied by this factor, clamped to 0-30 points
HEALTH_SHARPE_FACTOR: Decimal = Decimal("10")
HEALTH_SHARPE_MAX: Decimal = Decimal("30")

# Points for low volatility: max(0, 20 - volatility)
HEALTH_VOLATILITY_MAX: Decimal = Decimal("20")

# Average monthly return (%) multiplied by this factor, clamped to 0-20 points
HEALTH_RETURN_FACTOR: Decimal = Decimal("2")
HEALTH_RETURN_MAX: Decimal = Decimal("20")

HEALTH_SCORE_MIN: int = 0
HEALTH_SCORE_MAX: int = 100


# =============================================================================
# DECIMAL PRECISION CONSTANTS
# =============================================================================

# Currency amounts: 2 decimal places (e.g., 1234.56)
# Used for: payouts, invested amounts, position values
CURRENCY_PRECISION: Decimal = Decimal("0.01")

# Percentage values in intermediate calculations: 4 decimal places
PERCENTAGE_PRECISION: Decimal = Decimal("0.0001")

# Display percentage: 2 decimal places (e.g., 12.34%)
DISPLAY_PERCENTAGE_PRECISION: Decimal = Decimal("0.01")

# Ratios such as Sharpe and ownership share in responses
RATIO_PRECISION: Decimal = Decimal("0.0001")


# =============================================================================
# UTILITY CONSTANTS
# =============================================================================

ZERO: Decimal = Decimal("0")
ONE: Decimal = Decimal("1")
HUNDRED: Decimal = Decimal("100")


# =============================================================================
# CACHE SETTINGS
# =============================================================================

# Maximum number of cached portfolio results
# Bounded so that enumerating investor ids cannot grow memory without limit
ANALYTICS_CACHE_MAX_SIZE: int = 1000


# =============================================================================
# RATE LIMITING CONSTANTS
# =============================================================================
# Format follows slowapi/limits syntax: "100/minute", "10/hour", etc.

# Default rate limit for endpoints without an explicit limit
RATE_LIMIT_DEFAULT: str = "100/minute"

# Rate limit for health check endpoints
# Higher limit for monitoring tools that poll frequently
RATE_LIMIT_HEALTH: str = "300/minute"

# Rate limit for portfolio analytics endpoints
# Each uncached request reads the full ledger for one investor
RATE_LIMIT_ANALYTICS: str = "30/minute"

# Seconds a client is told to wait after exceeding a limit
RATE_LIMIT_RETRY_AFTER_SECONDS: int = 60

# Seconds a client is told to wait when the ledger is unreachable
LEDGER_RETRY_AFTER_SECONDS: int = 5
