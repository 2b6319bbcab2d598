"""Notification dispatch — turns complaint status changes into push notifications.

Features:
- Status transition → notification kind mapping
- Fixed per-kind templates (title/body/icon/action)
- Best-effort delivery: no active token means no-op, not an error
- Every attempt logged to notificationLogs (sent or failed); never retried
- Deduplication by complaint id + target status, reserved before the send, so
  the direct path and the trigger handler produce one notification per transition
  even when they run at the same time
- Manual (custom) sends for the admin panel
"""

from typing import Any, Dict, Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.clock import utcnow
from app.core.exceptions import (
    DeliveryFailureException,
    EntityNotFoundException,
    FailedPreconditionException,
    InvalidArgumentException,
)
from app.domain.models.complaint import (
    Complaint,
    STATUS_SUBMITTED,
    STATUS_IN_PROGRESS,
    STATUS_RESOLVED,
)
from app.domain.models.notification_log import (
    NotificationLog,
    KIND_CONFIRMATION,
    KIND_ACKNOWLEDGMENT,
    KIND_RESOLUTION,
    KIND_CUSTOM,
)
from app.application.services.device_token_service import find_token, get_active_token
from app.infrastructure.fcm import MessagingClient
from app.infrastructure.repositories.base_repository import SQLAlchemyRepository

settings = get_settings()
logger = structlog.get_logger(__name__)

# Status a complaint moves into → notification kind
KIND_BY_STATUS = {
    STATUS_IN_PROGRESS: KIND_ACKNOWLEDGMENT,
    STATUS_RESOLVED: KIND_RESOLUTION,
}

TEMPLATES: Dict[str, Dict[str, str]] = {
    KIND_CONFIRMATION: {
        "title": "✅ Complaint Submitted Successfully",
        "body": "Your {category} complaint (#{complaint_id}) has been received and is being processed.",
        "icon": "/icons/confirmation.png",
        "action": "view_complaint",
    },
    KIND_ACKNOWLEDGMENT: {
        "title": "🔄 Complaint Acknowledged",
        "body": "Your {category} complaint (#{complaint_id}) has been assigned and is now in progress.",
        "icon": "/icons/in-progress.png",
        "action": "view_progress",
    },
    KIND_RESOLUTION: {
        "title": "✨ Complaint Resolved",
        "body": "Great news! Your {category} complaint (#{complaint_id}) has been resolved.",
        "icon": "/icons/resolved.png",
        "action": "view_resolution",
    },
}

DEFAULT_TEMPLATE = {
    "title": "Complaint Update",
    "body": "Your complaint (#{complaint_id}) has been updated.",
    "icon": "/icons/notification.png",
    "action": "view_complaint",
}

MAX_ERROR_LENGTH = 500


def derive_notification_kind(
    previous_status: Optional[str],
    new_status: str,
    created: bool = False,
) -> Optional[str]:
    """Map a status transition to a notification kind, or None if nothing is due.

    A newly created complaint in "submitted" gets a confirmation. Moving into
    "in-progress" or "resolved" gets acknowledgment / resolution. Unchanged
    status, "closed", and a return to "submitted" send nothing.
    """
    if created or previous_status is None:
        if new_status == STATUS_SUBMITTED:
            return KIND_CONFIRMATION
        return KIND_BY_STATUS.get(new_status)

    if previous_status == new_status:
        return None
    return KIND_BY_STATUS.get(new_status)


def dedup_key(complaint_id: str, status: str) -> str:
    return f"{complaint_id}:{status}"


def build_notification_content(kind: str, complaint: Complaint) -> Dict[str, str]:
    """Render the fixed template for a kind with the complaint's category and id."""
    template = TEMPLATES.get(kind, DEFAULT_TEMPLATE)
    values = {"category": complaint.category, "complaint_id": complaint.id}
    return {
        "title": template["title"].format(**values),
        "body": template["body"].format(**values),
        "icon": template["icon"],
        "action": template["action"],
    }


def build_message_payload(token: str, complaint_id: str, kind: str, content: Dict[str, str]) -> Dict[str, Any]:
    """Messaging payload: {token, notification: {title, body, icon}, data: {...}}."""
    return {
        "token": token,
        "notification": {
            "title": content["title"],
            "body": content["body"],
            "icon": content["icon"],
        },
        "data": {
            "complaintId": complaint_id,
            "type": kind,
            "action": content["action"],
            "clickAction": f"{settings.APP_URL.rstrip('/')}/complaints/{complaint_id}",
        },
    }


def reserve_notification(db: Session, log: NotificationLog) -> bool:
    """Insert a pending log entry. False when its claim key is already held."""
    db.add(log)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        return False
    SQLAlchemyRepository(db, NotificationLog).commit()
    return True


def _save_log(db: Session, log: NotificationLog) -> NotificationLog:
    db.add(log)
    SQLAlchemyRepository(db, NotificationLog).commit()
    return log


async def dispatch_notification(
    db: Session,
    kind: str,
    complaint: Complaint,
    messaging: MessagingClient,
    user_id: Optional[str] = None,
    target_status: Optional[str] = None,
    source: str = "direct",
) -> Optional[NotificationLog]:
    """Send a status notification for a complaint to its submitter.

    Returns the log entry written, or None when nothing was sent (no active
    token, or the same transition is already sent or in flight).
    Delivery failures are recorded as failed entries and never raised.

    With dedup on, the entry is committed as "pending" under a unique claim
    key before the send, so concurrent callers for one transition cannot both
    reach the messaging client. A failed send releases the claim.
    """
    user_id = user_id or complaint.user_id
    complaint_id = complaint.id
    log_ctx = logger.bind(complaint_id=complaint_id, kind=kind, user_id=user_id, source=source)

    token = get_active_token(db, user_id)
    if token is None:
        log_ctx.info("No active device token, skipping notification")
        return None

    key = dedup_key(complaint_id, target_status or complaint.status)
    content = build_notification_content(kind, complaint)
    payload = build_message_payload(token.token, complaint_id, kind, content)

    log = NotificationLog(
        user_id=user_id,
        complaint_id=complaint_id,
        type=kind,
        title=content["title"],
        body=content["body"],
        status="pending",
        fcm_token=token.token,
        dedup_key=key,
        claim_key=key if settings.NOTIFICATION_DEDUP_ENABLED else None,
        sent_at=utcnow(),
    )
    if not reserve_notification(db, log):
        log_ctx.info("Notification already sent or in flight for this transition, skipping", dedup_key=key)
        return None

    try:
        log.message_id = await messaging.send(payload)
        log.status = "sent"
        log_ctx.info("Notification sent", message_id=log.message_id)
    except Exception as e:
        log.status = "failed"
        log.error = str(e)[:MAX_ERROR_LENGTH]
        log.claim_key = None
        log_ctx.warning("Notification delivery failed", error=log.error)

    return _save_log(db, log)


async def send_custom_notification(
    db: Session,
    messaging: MessagingClient,
    user_id: Optional[str],
    complaint_id: Optional[str],
    title: Optional[str],
    body: Optional[str],
    kind: Optional[str] = None,
    sent_by: Optional[str] = None,
) -> Dict[str, Any]:
    """Manual send from the admin panel.

    Unlike status notifications this one reports failure to the caller:
    invalid-argument, not-found (no token), failed-precondition (inactive
    token) or internal (delivery failed).
    """
    if not user_id or not complaint_id or not title or not body:
        raise InvalidArgumentException(
            "Missing required fields",
            details={"required": ["userId", "complaintId", "title", "body"]},
        )

    token = find_token(db, user_id)
    if token is None:
        raise EntityNotFoundException("FCM token not found for user", details={"userId": user_id})
    if not token.is_active:
        raise FailedPreconditionException("FCM token is inactive", details={"userId": user_id})

    kind = kind or KIND_CUSTOM
    content = {
        "title": title,
        "body": body,
        "icon": DEFAULT_TEMPLATE["icon"],
        "action": DEFAULT_TEMPLATE["action"],
    }
    payload = build_message_payload(token.token, complaint_id, kind, content)

    log = NotificationLog(
        user_id=user_id,
        complaint_id=complaint_id,
        type=kind,
        title=title,
        body=body,
        fcm_token=token.token,
        sent_by=sent_by,
        sent_at=utcnow(),
    )

    try:
        log.message_id = await messaging.send(payload)
        log.status = "sent"
    except Exception as e:
        log.status = "failed"
        log.error = str(e)[:MAX_ERROR_LENGTH]
        _save_log(db, log)
        logger.error("Custom notification failed", user_id=user_id, complaint_id=complaint_id, error=log.error)
        raise DeliveryFailureException(log.error) from e

    _save_log(db, log)
    logger.info("Custom notification sent", user_id=user_id, complaint_id=complaint_id, sent_by=sent_by)
    return {"success": True, "messageId": log.message_id}
