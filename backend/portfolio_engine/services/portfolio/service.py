# backend/portfolio_engine/services/portfolio/service.py
"""
Portfolio Analytics Service orchestrator.

This is the main entry point of the engine. Per request it:
1. Checks that the investor exists
2. Reads one ledger snapshot (LedgerReader)
3. Aggregates positions and totals (PortfolioAggregator)
4. Builds the monthly series (build_monthly_series)
5. Computes risk metrics and breakdowns (RiskCalculator)
6. Computes the health score (calculate_health_score)

The pipeline is a pure function of the snapshot, the timeframe and the
as_of instant. Results may be cached for a short TTL; cache entries are
immutable and replaced whole, never updated in place.

Architecture:
    PortfolioAnalyticsService
        ├── uses → LedgerReader (one snapshot per request)
        ├── uses → PortfolioAggregator (+ ValuationPolicy)
        ├── uses → build_monthly_series (+ BenchmarkPolicy)
        ├── uses → RiskCalculator
        ├── uses → calculate_health_score
        └── uses → AnalyticsCache (TTL cache keyed by investor + timeframe)

Usage:
    from portfolio_engine.services.portfolio import PortfolioAnalyticsService

    service = PortfolioAnalyticsService()

    overview = service.get_overview(db, investor_id=7)
    analytics = service.get_analytics(db, investor_id=7, timeframe="1Y")
    position = service.get_position(db, investor_id=7, project_id=3)
"""

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from portfolio_engine.config import settings
from portfolio_engine.services.constants import (
    ANALYTICS_CACHE_MAX_SIZE,
    DEFAULT_TIMEFRAME,
)
from portfolio_engine.services.exceptions import (
    InvestorNotFoundError,
    PositionNotFoundError,
)
from portfolio_engine.services.portfolio.aggregator import PortfolioAggregator
from portfolio_engine.services.portfolio.health import calculate_health_score
from portfolio_engine.services.portfolio.ledger import LedgerReader
from portfolio_engine.services.portfolio.policies import (
    FixedRateBenchmarkPolicy,
    get_valuation_policy,
)
from portfolio_engine.services.portfolio.risk import (
    RiskCalculator,
    calculate_risk_analysis,
    calculate_sector_performance,
)
from portfolio_engine.services.portfolio.timeseries import (
    build_monthly_series,
    validate_timeframe,
)
from portfolio_engine.services.portfolio.types import (
    PortfolioAnalytics,
    PortfolioOverview,
    Position,
)
from portfolio_engine.services.protocols import (
    BenchmarkPolicyProtocol,
    LedgerReaderProtocol,
    ValuationPolicyProtocol,
)

logger = logging.getLogger(__name__)


# =============================================================================
# CACHE
# =============================================================================

class AnalyticsCache:
    """
    Thread-safe bounded LRU cache with TTL for portfolio results.

    Entries are frozen result objects; a refresh replaces the entry whole.

    Cache key format: "portfolio:{investor_id}:{timeframe}:{partial|strict}"
    """

    def __init__(
            self,
            ttl_seconds: int = settings.analytics_cache_ttl_seconds,
            max_size: int = ANALYTICS_CACHE_MAX_SIZE,
            clock: Callable[[], float] = time.monotonic,
    ):
        self._cache: OrderedDict[str, tuple[float, PortfolioAnalytics]] = OrderedDict()
        self._ttl = ttl_seconds
        self._max_size = max_size
        self._clock = clock
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._ttl > 0

    def _make_key(self, investor_id: int, timeframe: str, allow_partial: bool) -> str:
        mode = "partial" if allow_partial else "strict"
        return f"portfolio:{investor_id}:{timeframe}:{mode}"

    def get(
            self,
            investor_id: int,
            timeframe: str,
            allow_partial: bool = False,
    ) -> PortfolioAnalytics | None:
        """Return the cached result, or None if missing or expired."""
        key = self._make_key(investor_id, timeframe, allow_partial)

        with self._lock:
            if key in self._cache:
                stored_at, result = self._cache[key]
                if self._clock() - stored_at < self._ttl:
                    self._cache.move_to_end(key)
                    logger.debug(f"Cache hit for {key}")
                    return result
                del self._cache[key]
                logger.debug(f"Cache expired for {key}")

        return None

    def set(
            self,
            investor_id: int,
            timeframe: str,
            allow_partial: bool,
            result: PortfolioAnalytics,
    ) -> None:
        """Store a result, evicting the least recently used entry when full."""
        key = self._make_key(investor_id, timeframe, allow_partial)
        with self._lock:
            if key in self._cache:
                del self._cache[key]
            while len(self._cache) >= self._max_size:
                oldest_key = next(iter(self._cache))
                del self._cache[oldest_key]
                logger.debug(f"Cache evicted {oldest_key} (LRU)")
            self._cache[key] = (self._clock(), result)
        logger.debug(f"Cached result for {key}")

    def invalidate(self, investor_id: int) -> int:
        """
        Drop every cached result of one investor.

        Returns:
            Number of entries invalidated
        """
        prefix = f"portfolio:{investor_id}:"
        with self._lock:
            keys_to_delete = [k for k in self._cache if k.startswith(prefix)]
            for key in keys_to_delete:
                del self._cache[key]

        if keys_to_delete:
            logger.debug(f"Invalidated {len(keys_to_delete)} cache entries for investor {investor_id}")

        return len(keys_to_delete)

    def clear(self) -> None:
        with self._lock:
            count = len(self._cache)
            self._cache.clear()
        logger.debug(f"Cleared {count} cache entries")

    def size(self) -> int:
        with self._lock:
            return len(self._cache)


# =============================================================================
# PORTFOLIO ANALYTICS SERVICE
# =============================================================================

class PortfolioAnalyticsService:
    """
    Orchestrates the read → aggregate → series → risk → health pipeline.

    Attributes:
        _reader: Ledger access
        _aggregator: Position and totals builder (owns the valuation policy)
        _benchmark_policy: Reference series for the monthly buckets
        _risk_free_rate: Annual risk-free rate in percent
        _tz: Reporting timezone for month buckets
        _cache: AnalyticsCache for result caching
    """

    # Shared cache instance (singleton pattern)
    _shared_cache: AnalyticsCache | None = None

    def __init__(
            self,
            ledger_reader: LedgerReaderProtocol | None = None,
            valuation_policy: ValuationPolicyProtocol | None = None,
            benchmark_policy: BenchmarkPolicyProtocol | None = None,
            cache: AnalyticsCache | None = None,
            risk_free_rate: Decimal | None = None,
            reporting_timezone: str | None = None,
    ):
        self._reader: LedgerReaderProtocol = ledger_reader or LedgerReader()
        self._aggregator = PortfolioAggregator(
            valuation_policy or get_valuation_policy(settings.valuation_policy)
        )
        self._benchmark_policy: BenchmarkPolicyProtocol = (
            benchmark_policy or FixedRateBenchmarkPolicy(settings.benchmark_annual_rate)
        )
        self._risk_free_rate = (
            risk_free_rate if risk_free_rate is not None else settings.risk_free_rate
        )
        self._tz = ZoneInfo(reporting_timezone or settings.reporting_timezone)

        if cache is not None:
            self._cache = cache
        else:
            if PortfolioAnalyticsService._shared_cache is None:
                PortfolioAnalyticsService._shared_cache = AnalyticsCache()
            self._cache = PortfolioAnalyticsService._shared_cache

        logger.info(
            f"PortfolioAnalyticsService initialized: "
            f"valuation={self._aggregator.valuation_policy.name}, "
            f"risk_free_rate={self._risk_free_rate}, tz={self._tz.key}"
        )

    @property
    def cache(self) -> AnalyticsCache:
        return self._cache

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def get_overview(
            self,
            db: Session,
            investor_id: int,
            allow_partial: bool = False,
            as_of: datetime | None = None,
    ) -> PortfolioOverview:
        """
        Positions and totals only, without the time series.

        Raises:
            InvestorNotFoundError: If the investor does not exist
            LedgerIntegrityError: If a referenced project is missing
                                  and allow_partial is False
        """
        self._ensure_investor(db, investor_id)
        snapshot = self._reader.read_snapshot(db, investor_id, as_of)
        aggregation = self._aggregator.aggregate(snapshot, allow_partial=allow_partial)

        return PortfolioOverview(
            investor_id=investor_id,
            as_of=snapshot.as_of,
            totals=aggregation.totals,
            positions=aggregation.positions,
            warnings=aggregation.warnings,
        )

    def get_analytics(
            self,
            db: Session,
            investor_id: int,
            timeframe: str = DEFAULT_TIMEFRAME,
            allow_partial: bool = False,
            as_of: datetime | None = None,
    ) -> PortfolioAnalytics:
        """
        Full analytics document for one investor.

        Results for the current instant are served from the cache when a
        fresh entry exists. Requests pinned to an explicit as_of bypass it.

        Args:
            db: Database session
            investor_id: Investor to analyze
            timeframe: 1M, 3M, 6M, 1Y or ALL
            allow_partial: Exclude positions in missing projects with a warning
            as_of: Snapshot instant (default: now)

        Raises:
            InvalidTimeframeError: If the timeframe is not supported
            InvestorNotFoundError: If the investor does not exist
            LedgerIntegrityError: If a referenced project is missing
                                  and allow_partial is False
        """
        timeframe = validate_timeframe(timeframe)
        use_cache = as_of is None and self._cache.enabled

        if use_cache:
            cached = self._cache.get(investor_id, timeframe, allow_partial)
            if cached is not None:
                return cached

        self._ensure_investor(db, investor_id)

        logger.info(
            f"Computing portfolio analytics for investor {investor_id} "
            f"(timeframe={timeframe}, allow_partial={allow_partial})"
        )

        snapshot = self._reader.read_snapshot(db, investor_id, as_of)
        aggregation = self._aggregator.aggregate(snapshot, allow_partial=allow_partial)
        positions = aggregation.positions

        buckets = build_monthly_series(
            positions,
            snapshot.as_of,
            self._benchmark_policy,
            self._tz,
            timeframe=timeframe,
        )
        performance = RiskCalculator.calculate_all(buckets, positions, self._risk_free_rate)
        health = calculate_health_score(
            win_rate=performance.win_rate,
            sharpe_ratio=performance.sharpe_ratio,
            volatility=performance.volatility,
            average_return=performance.average_return,
            has_positions=bool(positions),
        )

        result = PortfolioAnalytics(
            investor_id=investor_id,
            timeframe=timeframe,
            as_of=snapshot.as_of,
            totals=aggregation.totals,
            positions=positions,
            monthly_returns=tuple(buckets),
            sector_performance=tuple(calculate_sector_performance(positions)),
            risk_analysis=tuple(
                calculate_risk_analysis(positions, aggregation.totals.total_invested)
            ),
            performance=performance,
            health=health,
            warnings=aggregation.warnings,
        )

        logger.info(
            f"Portfolio analytics for investor {investor_id}: "
            f"{len(positions)} positions, {len(buckets)} months, "
            f"health={health.score}"
        )

        if use_cache:
            self._cache.set(investor_id, timeframe, allow_partial, result)

        return result

    def get_position(
            self,
            db: Session,
            investor_id: int,
            project_id: int,
            as_of: datetime | None = None,
    ) -> Position:
        """
        One position with its investment records and payout history.

        Other positions with missing projects do not block this view; a
        missing project for the requested position is an integrity fault.

        Raises:
            InvestorNotFoundError: If the investor does not exist
            PositionNotFoundError: If the investor holds nothing in the project
            LedgerIntegrityError: If the requested project itself is missing
        """
        self._ensure_investor(db, investor_id)
        snapshot = self._reader.read_snapshot(db, investor_id, as_of)

        if not any(inv.project_id == project_id for inv in snapshot.investments):
            raise PositionNotFoundError(investor_id, project_id)

        allow_partial = project_id not in snapshot.missing_project_ids
        aggregation = self._aggregator.aggregate(snapshot, allow_partial=allow_partial)

        for position in aggregation.positions:
            if position.project_id == project_id:
                return position

        raise PositionNotFoundError(investor_id, project_id)

    def invalidate(self, investor_id: int) -> int:
        """Drop cached results for an investor after their ledger changed."""
        return self._cache.invalidate(investor_id)

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _ensure_investor(self, db: Session, investor_id: int) -> None:
        if not self._reader.investor_exists(db, investor_id):
            logger.warning(f"Investor {investor_id} not found")
            raise InvestorNotFoundError(investor_id)
