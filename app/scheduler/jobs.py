"""APScheduler jobs — trigger drain, SLA sweep, and daily notification log cleanup."""

from datetime import datetime
from typing import Optional

import pytz
import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from apscheduler.triggers.cron import CronTrigger

from app.config import get_settings
from app.infrastructure.database import SessionLocal
from app.infrastructure.fcm import MessagingClient, get_messaging_client

settings = get_settings()
logger = structlog.get_logger(__name__)
tz = pytz.timezone(settings.TIMEZONE)

scheduler = AsyncIOScheduler(timezone=tz)


async def process_complaint_writes_job(messaging: Optional[MessagingClient] = None) -> dict:
    """Drain queued complaint writes and send any notifications they call for."""
    from app.application.services.trigger_handler import process_pending_writes

    db = SessionLocal()
    try:
        return await process_pending_writes(db, messaging or get_messaging_client())
    except Exception as e:
        logger.error("Complaint write processing failed", error=str(e))
        return {"processed": 0, "notified": 0, "error": str(e)}
    finally:
        db.close()


async def sla_escalation_job():
    """Escalate breached complaints to the higher authority."""
    from app.application.services.sla_monitor import check_and_escalate_breaches
    from app.domain.models.complaint import Complaint
    from app.infrastructure.escalation import WebhookEscalationNotifier
    from app.infrastructure.repositories.complaint_repository import SQLAlchemyComplaintRepository

    logger.info("Running SLA escalation sweep", at=datetime.now(tz).strftime("%d/%m/%Y %H:%M"))

    db = SessionLocal()
    try:
        repo = SQLAlchemyComplaintRepository(db, Complaint)
        result = await check_and_escalate_breaches(repo, WebhookEscalationNotifier())
        logger.info("SLA escalation result", **{k: v for k, v in result.items() if k != "errors"})
    except Exception as e:
        logger.error("SLA escalation job failed", error=str(e))
    finally:
        db.close()


def cleanup_notification_logs_job():
    """Daily job: delete notification logs and processed complaint writes past the retention window."""
    from app.application.services.notification_log_service import cleanup_notification_logs
    from app.application.services.trigger_handler import cleanup_processed_writes

    db = SessionLocal()
    try:
        cleanup_notification_logs(db)
        cleanup_processed_writes(db)
    except Exception as e:
        logger.error("Notification log cleanup failed", error=str(e))
    finally:
        db.close()


def start_scheduler():
    """Start the APScheduler with the trigger drain, SLA sweep and cleanup jobs."""
    scheduler.add_job(
        process_complaint_writes_job,
        trigger=IntervalTrigger(seconds=settings.TRIGGER_POLL_SECONDS, timezone=tz),
        id="complaint_write_trigger",
        name=f"Complaint write trigger (every {settings.TRIGGER_POLL_SECONDS}s)",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    scheduler.add_job(
        sla_escalation_job,
        trigger=IntervalTrigger(minutes=settings.SLA_CHECK_MINUTES, timezone=tz),
        id="sla_escalation",
        name=f"SLA escalation (every {settings.SLA_CHECK_MINUTES} mins)",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    # Midnight UTC, matching the retention window's reference clock
    scheduler.add_job(
        cleanup_notification_logs_job,
        trigger=CronTrigger(hour=0, minute=0, timezone=pytz.utc),
        id="notification_log_cleanup",
        name="Notification log cleanup (daily 00:00 UTC)",
        replace_existing=True,
    )

    scheduler.start()
    logger.info(
        "Scheduler started",
        trigger_poll_seconds=settings.TRIGGER_POLL_SECONDS,
        sla_check_minutes=settings.SLA_CHECK_MINUTES,
        sla_policy=settings.SLA_POLICY,
    )


def stop_scheduler():
    """Stop the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
