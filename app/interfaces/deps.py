"""
API Dependencies.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from app.infrastructure.database import get_db
from app.domain.models.complaint import Complaint
from app.domain.repositories.complaint_repository import ComplaintRepository
from app.infrastructure.repositories.complaint_repository import SQLAlchemyComplaintRepository
from app.infrastructure.escalation import EscalationNotifier, WebhookEscalationNotifier
from app.infrastructure.fcm import MessagingClient, get_messaging_client
from app.infrastructure.image_store import ResolutionImageStore


def get_complaint_repository(db: Session = Depends(get_db)) -> ComplaintRepository:
    """Get complaint repository instance."""
    return SQLAlchemyComplaintRepository(db, Complaint)


def get_messaging() -> MessagingClient:
    """Push messaging client (FCM)."""
    return get_messaging_client()


def get_escalation_notifier() -> EscalationNotifier:
    return WebhookEscalationNotifier()


def get_image_store() -> ResolutionImageStore:
    return ResolutionImageStore()
