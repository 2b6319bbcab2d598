"""Dashboard API — complaint counts, SLA breaches and notification stats."""

from datetime import datetime
from typing import Optional

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.interfaces.api.deps import get_current_user, require_admin
from app.infrastructure.database import get_db
from app.interfaces.deps import get_complaint_repository, get_escalation_notifier
from app.domain.repositories.complaint_repository import ComplaintRepository
from app.domain.models.user import User
from app.domain.schemas.complaint import DashboardFilter, PriorityLiteral
from app.application.services.dashboard_service import get_dashboard_stats
from app.application.services.notification_log_service import get_notification_stats
from app.application.services.sla_monitor import check_and_escalate_breaches, get_policy
from app.infrastructure.escalation import EscalationNotifier

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])


@router.get("/summary")
def dashboard_summary(
    department: Optional[str] = None,
    category: Optional[str] = None,
    priority: Optional[PriorityLiteral] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    db: Session = Depends(get_db),
    repo: ComplaintRepository = Depends(get_complaint_repository),
    user: User = Depends(get_current_user),
):
    """Unified dashboard data: complaint stats + notification stats."""
    filters = DashboardFilter(
        department=department,
        category=category,
        priority=priority,
        date_from=date_from,
        date_to=date_to,
    )
    policy = get_policy()

    return {
        "stats": get_dashboard_stats(repo, filters, policy=policy),
        "sla_policy": policy.name,
        "notifications": get_notification_stats(db),
    }


@router.post("/sla/check")
async def run_sla_check(
    repo: ComplaintRepository = Depends(get_complaint_repository),
    notifier: EscalationNotifier = Depends(get_escalation_notifier),
    user: User = Depends(require_admin),
):
    """Run the SLA escalation sweep now."""
    result = await check_and_escalate_breaches(repo, notifier)
    logger.info("Manual SLA check", requested_by=user.email, escalated=result["escalated"])
    return result
