"""Dashboard service — headline complaint counts for the admin dashboard."""

from datetime import datetime
from typing import Optional

import structlog

from app.domain.models.complaint import (
    STATUS_SUBMITTED,
    STATUS_IN_PROGRESS,
    STATUS_RESOLVED,
    STATUS_CLOSED,
)
from app.domain.repositories.complaint_repository import ComplaintRepository
from app.domain.schemas.complaint import DashboardFilter, DashboardStats
from app.application.services.sla_monitor import SLAPolicy, is_sla_breached

logger = structlog.get_logger(__name__)


def get_dashboard_stats(
    repo: ComplaintRepository,
    filters: Optional[DashboardFilter] = None,
    now: Optional[datetime] = None,
    policy: Optional[SLAPolicy] = None,
) -> DashboardStats:
    complaints = repo.get_for_stats(filters or DashboardFilter())

    stats = DashboardStats(
        total_issues=len(complaints),
        resolved=sum(1 for c in complaints if c.status == STATUS_RESOLVED),
        pending=sum(1 for c in complaints if c.status in (STATUS_SUBMITTED, STATUS_IN_PROGRESS)),
        closed=sum(1 for c in complaints if c.status == STATUS_CLOSED),
        escalated=sum(1 for c in complaints if c.escalated_at is not None),
        sla_breached=sum(1 for c in complaints if is_sla_breached(c, now, policy)),
    )
    logger.debug("Dashboard stats computed", **stats.model_dump())
    return stats
