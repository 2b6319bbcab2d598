"""Notifications API routes — logs, manual sends, device tokens, trigger drain, scheduler status."""

from datetime import datetime
from typing import Optional

import pytz
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.config import get_settings
from app.infrastructure.database import get_db
from app.interfaces.api.deps import get_current_user, require_admin
from app.interfaces.deps import get_messaging
from app.domain.models.user import User
from app.domain.schemas.notification import (
    CustomNotificationRequest,
    DeviceTokenCreate,
    DeviceTokenRead,
    NotificationLogRead,
)
from app.application.services.device_token_service import deactivate_tokens, register_token
from app.application.services.notification_dispatch import send_custom_notification
from app.application.services.notification_log_service import list_logs
from app.application.services.trigger_handler import process_pending_writes
from app.infrastructure.fcm import MessagingClient

settings = get_settings()
tz = pytz.timezone(settings.TIMEZONE)
router = APIRouter(prefix="/api/notifications", tags=["Notifications"])


@router.get("")
def list_notifications(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    complaint_id: Optional[str] = None,
    user_id: Optional[str] = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    result = list_logs(db, page=page, page_size=page_size, complaint_id=complaint_id, user_id=user_id)
    result["items"] = [NotificationLogRead.model_validate(n) for n in result["items"]]
    return result


@router.post("/send")
async def send_custom(
    body: CustomNotificationRequest,
    db: Session = Depends(get_db),
    messaging: MessagingClient = Depends(get_messaging),
    user: User = Depends(get_current_user),
):
    """Send a manual notification to a citizen. Returns {success, messageId}."""
    return await send_custom_notification(
        db,
        messaging,
        user_id=body.user_id,
        complaint_id=body.complaint_id,
        title=body.title,
        body=body.body,
        kind=body.type,
        sent_by=user.email,
    )


@router.post("/tokens", response_model=DeviceTokenRead)
def save_device_token(
    body: DeviceTokenCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Register or refresh a device token after the user opts into notifications."""
    return DeviceTokenRead.model_validate(register_token(db, body.user_id, body.token, body.device_type))


@router.delete("/tokens/{user_id}")
def remove_device_tokens(
    user_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Deactivate (not delete) a user's device tokens."""
    return {"user_id": user_id, "deactivated": deactivate_tokens(db, user_id)}


@router.post("/process-triggers")
async def process_triggers(
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
    messaging: MessagingClient = Depends(get_messaging),
    user: User = Depends(require_admin),
):
    """Drain pending complaint writes now instead of waiting for the scheduler."""
    return await process_pending_writes(db, messaging, limit=limit)


@router.get("/scheduler-status")
def scheduler_status(
    user: User = Depends(get_current_user),
):
    """Get scheduler status and next run time."""
    from app.scheduler.jobs import scheduler

    now = datetime.now(tz)
    jobs = []
    for job in scheduler.get_jobs():
        next_run = job.next_run_time
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run": next_run.strftime("%d/%m/%Y %H:%M") if next_run else "N/A",
            "next_run_iso": next_run.isoformat() if next_run else None,
        })

    return {
        "running": scheduler.running,
        "current_time": now.strftime("%d/%m/%Y %H:%M"),
        "timezone": settings.TIMEZONE,
        "jobs": jobs,
    }
