# backend/portfolio_engine/services/exceptions.py
"""
Service layer exceptions.

These exceptions represent domain-specific errors and contain NO HTTP knowledge.
The application layer (main.py) maps them to HTTP responses.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError
    │   └── InvalidTimeframeError
    ├── NotFoundError
    │   ├── InvestorNotFoundError
    │   └── PositionNotFoundError
    └── AnalyticsError
        └── LedgerIntegrityError

Degenerate inputs (no investments, no months, zero volatility) are never
errors; the calculators define those metrics as zero.
"""


class ServiceError(Exception):
    """
    Base exception for all service layer errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(ServiceError):
    """
    Raised when input validation fails.

    This is for programmatic validation errors (invalid parameters),
    NOT for request body validation which is handled by Pydantic.

    Attributes:
        field: The field that failed validation (optional)
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class InvalidTimeframeError(ValidationError):
    """
    Raised when an unsupported timeframe is requested for the monthly series.

    Valid timeframes are: 1M, 3M, 6M, 1Y, ALL
    """

    def __init__(self, timeframe: str, valid_options: tuple[str, ...]) -> None:
        self.timeframe = timeframe
        self.valid_options = valid_options
        super().__init__(
            f"Invalid timeframe: '{timeframe}'. Valid options: {', '.join(valid_options)}",
            field="timeframe"
        )


# =============================================================================
# NOT FOUND ERRORS
# =============================================================================


class NotFoundError(ServiceError):
    """
    Base exception for resource not found errors.

    Attributes:
        resource_type: Type of resource (e.g., "Investor", "Position")
        resource_id: Identifier of the resource
    """

    def __init__(
            self,
            message: str,
            resource_type: str | None = None,
            resource_id: int | str | None = None,
    ) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(message)


class InvestorNotFoundError(NotFoundError):
    """
    Raised when the investor id does not resolve to a user.

    An existing investor with no investments is NOT this error; that is the
    empty portfolio state.
    """

    def __init__(self, investor_id: int) -> None:
        self.investor_id = investor_id
        super().__init__(
            f"Investor {investor_id} not found",
            resource_type="Investor",
            resource_id=investor_id,
        )


class PositionNotFoundError(NotFoundError):
    """Raised when an investor holds no investment in the requested project."""

    def __init__(self, investor_id: int, project_id: int) -> None:
        self.investor_id = investor_id
        self.project_id = project_id
        super().__init__(
            f"Investor {investor_id} has no position in project {project_id}",
            resource_type="Position",
            resource_id=project_id,
        )


# =============================================================================
# ANALYTICS ERRORS
# =============================================================================


class AnalyticsError(ServiceError):
    """Base exception for analytics computation failures."""
    pass


class LedgerIntegrityError(AnalyticsError):
    """
    Raised when ledger rows reference projects that cannot be resolved.

    Dropping such positions silently would understate the investor's
    holdings, so the aggregator fails instead unless the caller opted
    into partial results.

    Attributes:
        investor_id: Investor whose ledger was being aggregated
        missing_project_ids: Referenced project ids with no Project row
    """

    def __init__(self, investor_id: int, missing_project_ids: list[int]) -> None:
        self.investor_id = investor_id
        self.missing_project_ids = sorted(missing_project_ids)
        ids = ", ".join(str(pid) for pid in self.missing_project_ids)
        super().__init__(
            f"Ledger for investor {investor_id} references unknown project(s): {ids}"
        )
