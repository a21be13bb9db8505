# backend/portfolio_engine/services/portfolio/lifecycle.py
"""
Lifecycle classification for positions.

The stage is a pure function of three facts: the project status, whether
any pending distribution exists, and whether any approved distribution
exists. It is recomputed on every call and never stored, so it cannot
drift from the ledger and does not depend on the order events arrived in.

Decision table (first matching row wins):

    status            approved  pending   stage
    ----------------  --------  -------   -----------------------
    missing/unknown   any       any       UNKNOWN
    COMPLETED         yes       any       COMPLETED_WITH_PROFITS
    COMPLETED         no        any       COMPLETED
    any               yes       any       PROFITS_DISTRIBUTED
    any               no        yes       PROFITS_PENDING
    PUBLISHED/ACTIVE/ no        no        ACTIVE
    FUNDED
    anything else     no        no        UNKNOWN
"""

from collections.abc import Iterable

from portfolio_engine.models import ProjectStatus, DistributionStatus
from portfolio_engine.services.portfolio.types import DistributionRecord, LifecycleStage

# Project statuses in which capital is deployed and the deal is running
RUNNING_STATUSES: frozenset[ProjectStatus] = frozenset({
    ProjectStatus.PUBLISHED,
    ProjectStatus.ACTIVE,
    ProjectStatus.FUNDED,
})


def parse_project_status(raw: str | None) -> ProjectStatus | None:
    """
    Parse a stored project status, case-insensitively.

    Returns:
        The ProjectStatus, or None when missing or unrecognized
    """
    if raw is None:
        return None
    try:
        return ProjectStatus(raw.strip().upper())
    except ValueError:
        return None


def classify_lifecycle(
        project_status: str | ProjectStatus | None,
        has_pending: bool,
        has_approved: bool,
) -> LifecycleStage:
    """
    Derive the lifecycle stage of a position.

    Args:
        project_status: Raw or parsed project status
        has_pending: Any PENDING distribution exists for the project
        has_approved: Any APPROVED distribution exists for the project

    Returns:
        The LifecycleStage; UNKNOWN for missing or unrecognized status
    """
    status = (
        project_status
        if isinstance(project_status, ProjectStatus)
        else parse_project_status(project_status)
    )

    if status is None:
        return LifecycleStage.UNKNOWN

    if status == ProjectStatus.COMPLETED:
        if has_approved:
            return LifecycleStage.COMPLETED_WITH_PROFITS
        return LifecycleStage.COMPLETED

    if has_approved:
        return LifecycleStage.PROFITS_DISTRIBUTED

    if has_pending:
        return LifecycleStage.PROFITS_PENDING

    if status in RUNNING_STATUSES:
        return LifecycleStage.ACTIVE

    return LifecycleStage.UNKNOWN


def classify_from_distributions(
        project_status: str | None,
        distributions: Iterable[DistributionRecord],
) -> LifecycleStage:
    """Classify a position from its project's distribution records."""
    has_pending = False
    has_approved = False
    for dist in distributions:
        if dist.status == DistributionStatus.APPROVED.value:
            has_approved = True
        elif dist.status == DistributionStatus.PENDING.value:
            has_pending = True
    return classify_lifecycle(project_status, has_pending, has_approved)
