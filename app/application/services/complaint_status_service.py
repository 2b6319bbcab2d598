"""Complaint status service — validates, persists and notifies status changes.

Flow for every status update:
1. Load the complaint (NotFound if missing — nothing written, nothing sent)
2. Validate the transition and resolution requirements
3. Merge fields + append the status history entry in one commit
4. Dispatch the notification directly (best effort; failures never roll back)

The same commit also queues a complaint write event, so the trigger handler
sees the change; dispatch dedup keeps the two paths to one notification.
"""

from typing import Any, Dict, List, Optional

import structlog

from app.config import get_settings
from app.core.clock import utcnow
from app.core.exceptions import (
    AppError,
    BusinessRuleViolationException,
    EntityNotFoundException,
    InvalidArgumentException,
)
from app.domain.models.complaint import (
    Complaint,
    COMPLAINT_STATUSES,
    STATUS_SUBMITTED,
    STATUS_IN_PROGRESS,
    STATUS_RESOLVED,
    STATUS_CLOSED,
)
from app.domain.models.status_history import StatusHistory
from app.domain.repositories.complaint_repository import ComplaintRepository
from app.domain.schemas.complaint import ComplaintCreate
from app.application.services.notification_dispatch import (
    derive_notification_kind,
    dispatch_notification,
)
from app.infrastructure.fcm import MessagingClient

settings = get_settings()
logger = structlog.get_logger(__name__)

# Same-status updates are allowed so staff can reassign without a transition.
# Closed is terminal.
ALLOWED_TRANSITIONS = {
    STATUS_SUBMITTED: {STATUS_SUBMITTED, STATUS_IN_PROGRESS, STATUS_RESOLVED, STATUS_CLOSED},
    STATUS_IN_PROGRESS: {STATUS_IN_PROGRESS, STATUS_RESOLVED, STATUS_CLOSED},
    STATUS_RESOLVED: {STATUS_RESOLVED, STATUS_IN_PROGRESS, STATUS_CLOSED},
    STATUS_CLOSED: set(),
}


def get_complaint_or_404(repo: ComplaintRepository, complaint_id: str) -> Complaint:
    complaint = repo.get_by_id(complaint_id)
    if complaint is None:
        raise EntityNotFoundException(
            f"Complaint {complaint_id} not found",
            details={"complaintId": complaint_id},
        )
    return complaint


def validate_transition(previous_status: str, new_status: str, notes: Optional[str]) -> None:
    if new_status not in COMPLAINT_STATUSES:
        raise InvalidArgumentException(
            f"Unknown status: {new_status}",
            details={"allowed": list(COMPLAINT_STATUSES)},
        )

    allowed = ALLOWED_TRANSITIONS.get(previous_status, set())
    if new_status not in allowed:
        raise BusinessRuleViolationException(
            f"Cannot move complaint from {previous_status} to {new_status}",
            details={"from": previous_status, "to": new_status, "allowed": sorted(allowed)},
        )

    if new_status == STATUS_RESOLVED and not (notes or "").strip():
        raise InvalidArgumentException("Resolution notes are required to resolve a complaint")


async def _notify(
    repo: ComplaintRepository,
    complaint: Complaint,
    previous_status: Optional[str],
    messaging: Optional[MessagingClient],
    created: bool = False,
) -> None:
    """Direct dispatch after a committed write. Never raises."""
    if messaging is None or not settings.DIRECT_DISPATCH_ENABLED:
        return

    kind = derive_notification_kind(previous_status, complaint.status, created=created)
    if kind is None:
        return

    try:
        await dispatch_notification(repo.db, kind, complaint, messaging, target_status=complaint.status)
    except AppError as e:
        # The status change is already committed; a logging failure must not undo it
        logger.error("Direct notification dispatch failed", complaint_id=complaint.id, kind=kind, error=e.message)


async def submit_complaint(
    repo: ComplaintRepository,
    data: ComplaintCreate,
    messaging: Optional[MessagingClient] = None,
) -> Complaint:
    """Create a complaint in 'submitted' and send the confirmation."""
    if repo.get_by_id(data.id) is not None:
        raise BusinessRuleViolationException(
            f"Complaint {data.id} already exists",
            details={"complaintId": data.id},
        )

    now = utcnow()
    complaint = repo.create({
        **data.model_dump(),
        "status": STATUS_SUBMITTED,
        "created_at": now,
        "updated_at": now,
        "updated_by": data.user_id,
    })
    logger.info("Complaint submitted", complaint_id=complaint.id, category=complaint.category)

    await _notify(repo, complaint, None, messaging, created=True)
    return complaint


async def update_complaint_status(
    repo: ComplaintRepository,
    complaint_id: str,
    status: str,
    updated_by: str,
    assigned_to: Optional[str] = None,
    department: Optional[str] = None,
    notes: Optional[str] = None,
    resolution_image: Optional[str] = None,
    messaging: Optional[MessagingClient] = None,
) -> Complaint:
    """Apply a status change: merge fields, append history, notify."""
    complaint = get_complaint_or_404(repo, complaint_id)
    previous_status = complaint.status or STATUS_SUBMITTED

    validate_transition(previous_status, status, notes)

    now = utcnow()
    fields: Dict[str, Any] = {
        "status": status,
        "updated_at": now,
        "updated_by": updated_by,
    }
    if assigned_to:
        fields["assigned_to"] = assigned_to
    if department:
        fields["department"] = department
    if notes:
        fields["last_update_notes"] = notes

    if status == STATUS_RESOLVED:
        fields["resolution_notes"] = notes.strip()
        fields["resolved_by"] = updated_by
        fields["resolved_at"] = now
        if resolution_image:
            fields["resolution_image"] = resolution_image

    history = StatusHistory(
        complaint_id=complaint_id,
        previous_status=previous_status,
        new_status=status,
        updated_by=updated_by,
        updated_at=now,
        notes=notes,
    )

    complaint = repo.apply_status_change(complaint, fields, history)
    logger.info(
        "Complaint status updated",
        complaint_id=complaint_id,
        previous_status=previous_status,
        new_status=status,
        updated_by=updated_by,
    )

    await _notify(repo, complaint, previous_status, messaging)
    return complaint


async def assign_complaint(
    repo: ComplaintRepository,
    complaint_id: str,
    assigned_to: str,
    department: str,
    assigned_by: str,
    notes: Optional[str] = None,
    messaging: Optional[MessagingClient] = None,
) -> Complaint:
    """Assign to staff/department and move to in-progress (acknowledgment)."""
    return await update_complaint_status(
        repo,
        complaint_id,
        STATUS_IN_PROGRESS,
        assigned_by,
        assigned_to=assigned_to,
        department=department,
        notes=notes or f"Assigned to {assigned_to} in {department} department",
        messaging=messaging,
    )


async def resolve_complaint(
    repo: ComplaintRepository,
    complaint_id: str,
    resolved_by: str,
    resolution_notes: str,
    resolution_image: Optional[str],
    messaging: Optional[MessagingClient] = None,
) -> Complaint:
    """Proof-of-resolution flow: notes and an image reference are both required."""
    if not resolution_image:
        raise InvalidArgumentException("A resolution image is required as proof")

    return await update_complaint_status(
        repo,
        complaint_id,
        STATUS_RESOLVED,
        resolved_by,
        notes=resolution_notes,
        resolution_image=resolution_image,
        messaging=messaging,
    )


def get_status_history(repo: ComplaintRepository, complaint_id: str) -> List[StatusHistory]:
    get_complaint_or_404(repo, complaint_id)
    return repo.get_status_history(complaint_id)
