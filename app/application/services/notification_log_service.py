"""Notification log queries and retention."""

from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import structlog
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.clock import utcnow
from app.domain.models.notification_log import NotificationLog
from app.infrastructure.repositories.base_repository import SQLAlchemyRepository

settings = get_settings()
logger = structlog.get_logger(__name__)


def list_logs(
    db: Session,
    page: int = 1,
    page_size: int = 50,
    complaint_id: Optional[str] = None,
    user_id: Optional[str] = None,
) -> Dict[str, Any]:
    query = db.query(NotificationLog)
    if complaint_id:
        query = query.filter(NotificationLog.complaint_id == complaint_id)
    if user_id:
        query = query.filter(NotificationLog.user_id == user_id)

    total = query.count()
    offset = (page - 1) * page_size
    logs = (
        query.order_by(NotificationLog.sent_at.desc(), NotificationLog.id.desc())
        .offset(offset)
        .limit(page_size)
        .all()
    )
    return {
        "items": logs,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": (total + page_size - 1) // page_size,
    }


def get_notification_stats(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Sent/failed counts for the last 7 days, broken down by kind."""
    now = now or utcnow()
    since = now - timedelta(days=7)

    rows = (
        db.query(
            NotificationLog.type,
            NotificationLog.status,
            func.count(NotificationLog.id).label("count"),
        )
        .filter(NotificationLog.sent_at >= since)
        .group_by(NotificationLog.type, NotificationLog.status)
        .all()
    )

    by_type: Dict[str, Dict[str, int]] = {}
    sent_7d = 0
    failed_7d = 0
    for row in rows:
        by_type.setdefault(row.type, {"sent": 0, "failed": 0, "delivered": 0})
        by_type[row.type][row.status] = row.count
        if row.status == "sent":
            sent_7d += row.count
        elif row.status == "failed":
            failed_7d += row.count

    return {"sent_7d": sent_7d, "failed_7d": failed_7d, "by_type": by_type}


def cleanup_notification_logs(
    db: Session,
    now: Optional[datetime] = None,
    retention_days: Optional[int] = None,
) -> int:
    """Delete log entries older than the retention window. Returns the number deleted."""
    now = now or utcnow()
    retention_days = retention_days or settings.NOTIFICATION_LOG_RETENTION_DAYS
    cutoff = now - timedelta(days=retention_days)

    deleted = (
        db.query(NotificationLog)
        .filter(NotificationLog.sent_at < cutoff)
        .delete(synchronize_session=False)
    )
    SQLAlchemyRepository(db, NotificationLog).commit()

    if deleted:
        logger.info("Cleaned up old notification logs", deleted=deleted, cutoff=cutoff.isoformat())
    else:
        logger.info("No old notification logs to clean up")
    return deleted
