"""Trigger handler — notifies citizens on complaint writes from any code path.

Every flush that inserts or updates a Complaint records a ComplaintWriteEvent in
the same transaction. `process_pending_writes` drains those events: it
re-derives the notification kind from the previous and new status and runs
the same lookup/template/send/log sequence as direct dispatch.

Each event is claimed (stamped processed) by exactly one drain before it is
handled. The dispatch claim key then keeps the direct path and the trigger
from both notifying for one transition. Processed events are purged with the
notification logs once past the retention window.
"""

from datetime import datetime, timedelta
from typing import Optional

import structlog
from sqlalchemy import event, inspect, update
from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.clock import utcnow
from app.domain.models.complaint import Complaint, STATUS_SUBMITTED
from app.domain.models.complaint_write import ComplaintWriteEvent
from app.application.services.notification_dispatch import (
    derive_notification_kind,
    dispatch_notification,
)
from app.infrastructure.fcm import MessagingClient
from app.infrastructure.repositories.base_repository import SQLAlchemyRepository

settings = get_settings()
logger = structlog.get_logger(__name__)

DEFAULT_BATCH_SIZE = 100


def _previous_status(complaint: Complaint) -> Optional[str]:
    history = inspect(complaint).attrs.status.history
    if history.deleted:
        return history.deleted[0]
    if history.unchanged:
        return history.unchanged[0]
    return complaint.status


def record_complaint_writes(session: Session, flush_context, instances) -> None:
    """before_flush hook: queue one write event per complaint insert/update."""
    for obj in list(session.new):
        if isinstance(obj, Complaint):
            session.add(ComplaintWriteEvent(
                complaint_id=obj.id,
                previous_status=None,
                new_status=obj.status or STATUS_SUBMITTED,
            ))

    for obj in list(session.dirty):
        if isinstance(obj, Complaint) and session.is_modified(obj, include_collections=False):
            session.add(ComplaintWriteEvent(
                complaint_id=obj.id,
                previous_status=_previous_status(obj),
                new_status=obj.status,
            ))


def register_complaint_write_listener() -> None:
    """Attach the write hook to every Session. Safe to call more than once."""
    if not event.contains(Session, "before_flush", record_complaint_writes):
        event.listen(Session, "before_flush", record_complaint_writes)


async def handle_complaint_write(
    db: Session,
    write: ComplaintWriteEvent,
    messaging: MessagingClient,
) -> bool:
    """Handle one write event. Returns True when a notification was attempted."""
    log_ctx = logger.bind(
        complaint_id=write.complaint_id,
        previous_status=write.previous_status,
        new_status=write.new_status,
    )

    kind = derive_notification_kind(write.previous_status, write.new_status, created=write.created)
    if kind is None:
        log_ctx.debug("No notification needed for complaint write")
        return False

    complaint = db.get(Complaint, write.complaint_id)
    if complaint is None:
        log_ctx.warning("Complaint vanished before trigger ran")
        return False
    if not complaint.user_id:
        log_ctx.warning("No userId on complaint, skipping trigger")
        return False

    entry = await dispatch_notification(
        db,
        kind,
        complaint,
        messaging,
        target_status=write.new_status,
        source="trigger",
    )
    return entry is not None


def claim_write(db: Session, write_id: int) -> bool:
    """Mark one event processed if no other drain has. True when this caller won it."""
    result = db.execute(
        update(ComplaintWriteEvent)
        .where(ComplaintWriteEvent.id == write_id, ComplaintWriteEvent.processed_at.is_(None))
        .values(processed_at=utcnow())
    )
    SQLAlchemyRepository(db, ComplaintWriteEvent).commit()
    return result.rowcount == 1


async def process_pending_writes(
    db: Session,
    messaging: MessagingClient,
    limit: int = DEFAULT_BATCH_SIZE,
) -> dict:
    """Drain unprocessed complaint write events in commit order.

    Each event is claimed before it is handled, so overlapping drains (the
    scheduler and the per-request background task) never handle one event twice.
    """
    pending_ids = [
        row.id
        for row in db.query(ComplaintWriteEvent.id)
        .filter(ComplaintWriteEvent.processed_at.is_(None))
        .order_by(ComplaintWriteEvent.id.asc())
        .limit(limit)
        .all()
    ]

    processed = 0
    notified = 0
    for write_id in pending_ids:
        if not claim_write(db, write_id):
            continue
        processed += 1
        write = db.get(ComplaintWriteEvent, write_id)
        if await handle_complaint_write(db, write, messaging):
            notified += 1

    if processed:
        logger.info("Processed complaint writes", processed=processed, notified=notified)
    return {"processed": processed, "notified": notified}


def cleanup_processed_writes(
    db: Session,
    now: Optional[datetime] = None,
    retention_days: Optional[int] = None,
) -> int:
    """Delete processed write events older than the retention window. Returns the number deleted."""
    now = now or utcnow()
    retention_days = retention_days or settings.NOTIFICATION_LOG_RETENTION_DAYS
    cutoff = now - timedelta(days=retention_days)

    deleted = (
        db.query(ComplaintWriteEvent)
        .filter(
            ComplaintWriteEvent.processed_at.isnot(None),
            ComplaintWriteEvent.processed_at < cutoff,
        )
        .delete(synchronize_session=False)
    )
    SQLAlchemyRepository(db, ComplaintWriteEvent).commit()

    if deleted:
        logger.info("Cleaned up processed complaint writes", deleted=deleted, cutoff=cutoff.isoformat())
    return deleted
