"""SLA monitor — time-to-resolution thresholds and escalation.

Two threshold policies exist in the portal's history and neither is clearly
authoritative, so both are presets selected by SLA_POLICY:

- "priority": high 24h, medium 72h, low 168h (unknown priority → medium)
- "fixed":    48 seconds for every complaint (demo setting)

All checks are pure functions of the complaint and `now`. Escalation persists
`escalated_at` on the complaint so a breach is escalated once, across restarts.
"""

import math
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import structlog
from pydantic import BaseModel

from app.config import get_settings
from app.core.clock import ensure_aware, local_display, utcnow
from app.core.exceptions import InvalidArgumentException
from app.domain.models.complaint import Complaint, STATUS_RESOLVED, STATUS_CLOSED
from app.domain.repositories.complaint_repository import ComplaintRepository
from app.application.services.civic_directory_service import find_higher_authority
from app.infrastructure.escalation import EscalationNotifier

settings = get_settings()
logger = structlog.get_logger(__name__)

DONE_STATUSES = (STATUS_RESOLVED, STATUS_CLOSED)


class SLAPolicy(BaseModel):
    name: str
    thresholds: Dict[str, timedelta] = {}
    default: timedelta

    model_config = {"frozen": True}

    def threshold_for(self, priority: Optional[str]) -> timedelta:
        return self.thresholds.get((priority or "").lower(), self.default)


PRIORITY_POLICY = SLAPolicy(
    name="priority",
    thresholds={
        "high": timedelta(hours=24),
        "medium": timedelta(hours=72),
        "low": timedelta(hours=168),
    },
    default=timedelta(hours=72),
)

FIXED_POLICY = SLAPolicy(name="fixed", default=timedelta(seconds=48))

POLICIES = {p.name: p for p in (PRIORITY_POLICY, FIXED_POLICY)}


def get_policy(name: Optional[str] = None) -> SLAPolicy:
    name = name or settings.SLA_POLICY
    try:
        return POLICIES[name]
    except KeyError:
        raise InvalidArgumentException(
            f"Unknown SLA policy: {name}",
            details={"allowed": sorted(POLICIES)},
        ) from None


def _elapsed_seconds(complaint: Complaint, now: datetime) -> float:
    created_at = ensure_aware(complaint.created_at)
    return (ensure_aware(now) - created_at).total_seconds()


def is_sla_breached(complaint: Complaint, now: Optional[datetime] = None, policy: Optional[SLAPolicy] = None) -> bool:
    """Breached when still open and older than the threshold. Resolved/closed never breach."""
    if complaint.status in DONE_STATUSES or complaint.created_at is None:
        return False
    policy = policy or get_policy()
    threshold = policy.threshold_for(complaint.priority).total_seconds()
    return _elapsed_seconds(complaint, now or utcnow()) > threshold


def get_seconds_until_deadline(complaint: Complaint, now: Optional[datetime] = None, policy: Optional[SLAPolicy] = None) -> float:
    """Seconds left before the SLA deadline; 0 at or past the deadline, never negative."""
    policy = policy or get_policy()
    threshold = policy.threshold_for(complaint.priority).total_seconds()
    if complaint.created_at is None:
        return threshold
    return max(0.0, threshold - _elapsed_seconds(complaint, now or utcnow()))


def format_remaining(seconds: float) -> str:
    if seconds < 60:
        return f"{math.ceil(seconds)}s left"
    if seconds < 3600:
        return f"{math.ceil(seconds / 60)}m left"
    hours, rest = divmod(int(seconds), 3600)
    return f"{hours}h {rest // 60}m left"


def get_sla_status_display(complaint: Complaint, now: Optional[datetime] = None, policy: Optional[SLAPolicy] = None) -> Dict[str, str]:
    """Badge text and level: resolved, breached, critical (<25% left), warning (<50%), ok."""
    if complaint.status in DONE_STATUSES:
        return {"text": complaint.status.capitalize(), "level": "resolved"}

    policy = policy or get_policy()
    now = now or utcnow()
    if is_sla_breached(complaint, now, policy):
        return {"text": "Breached", "level": "breached"}

    remaining = get_seconds_until_deadline(complaint, now, policy)
    fraction = remaining / policy.threshold_for(complaint.priority).total_seconds()
    if fraction < 0.25:
        level = "critical"
    elif fraction < 0.5:
        level = "warning"
    else:
        level = "ok"
    return {"text": format_remaining(remaining), "level": level}


def build_breach_notice(complaint: Complaint, contact: str, policy: SLAPolicy, now: datetime) -> Dict[str, Any]:
    threshold = policy.threshold_for(complaint.priority)
    lines = [
        f"Dear {contact},",
        "",
        f"The following complaint has breached its {format_threshold(threshold)} SLA:",
        "",
        f"Complaint ID: {complaint.id}",
        f"Department: {complaint.department or 'Unassigned'}",
        f"City: {complaint.city or 'N/A'}",
        f"Category: {complaint.category}",
        f"Status: {complaint.status}",
        f"Created: {local_display(complaint.created_at)}",
        "",
        "Please take immediate action to resolve this issue.",
    ]
    return {
        "to": contact,
        "subject": f"SLA Breached - Complaint {complaint.id}",
        "message": "\n".join(lines),
        "complaintId": complaint.id,
        "timestamp": now.isoformat(),
        "type": "SLA_BREACH",
    }


def format_threshold(threshold: timedelta) -> str:
    seconds = int(threshold.total_seconds())
    if seconds % 3600 == 0:
        return f"{seconds // 3600}-hour"
    return f"{seconds}-second"


async def check_and_escalate_breaches(
    repo: ComplaintRepository,
    notifier: EscalationNotifier,
    now: Optional[datetime] = None,
    policy: Optional[SLAPolicy] = None,
) -> dict:
    """Escalate every open, breached, not-yet-escalated complaint to its higher authority."""
    now = now or utcnow()
    policy = policy or get_policy()

    open_complaints = repo.get_unresolved()
    escalated = 0
    failed = 0
    errors = []

    for complaint in open_complaints:
        if complaint.escalated_at is not None or not is_sla_breached(complaint, now, policy):
            continue

        contact = (
            find_higher_authority(repo.db, complaint.city, complaint.department, complaint.category)
            or settings.DEFAULT_HIGHER_AUTHORITY
        )
        try:
            await notifier.notify(build_breach_notice(complaint, contact, policy, now))
            repo.mark_escalated(complaint, now)
            escalated += 1
            logger.info("Complaint escalated", complaint_id=complaint.id, to=contact)
        except Exception as e:
            failed += 1
            errors.append({"complaintId": complaint.id, "error": str(e)[:200]})
            logger.error("Failed to escalate complaint", complaint_id=complaint.id, error=str(e)[:200])

    return {
        "checked": len(open_complaints),
        "escalated": escalated,
        "failed": failed,
        "errors": errors[:20],
    }
