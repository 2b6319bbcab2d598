"""Notification log — tracks every push notification attempt."""

from sqlalchemy import Column, Integer, String, Text, DateTime

from app.core.clock import utcnow
from app.infrastructure.database import Base

KIND_CONFIRMATION = "confirmation"
KIND_ACKNOWLEDGMENT = "acknowledgment"
KIND_RESOLUTION = "resolution"
KIND_CUSTOM = "custom"


class NotificationLog(Base):
    __tablename__ = "notificationLogs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(128), nullable=False, index=True)
    complaint_id = Column(String(64), nullable=False, index=True)
    type = Column(String(20), nullable=False)  # confirmation, acknowledgment, resolution, custom
    title = Column(String(300), nullable=False)
    body = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="sent")  # pending, sent, failed, delivered
    fcm_token = Column(String(500), nullable=True)
    message_id = Column(String(300), nullable=True)
    error = Column(Text, nullable=True)
    dedup_key = Column(String(200), nullable=True, index=True)  # {complaint_id}:{status}
    # Held by the one attempt that owns a transition; NULL when released or dedup is off
    claim_key = Column(String(200), nullable=True, unique=True)
    sent_by = Column(String(200), nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def __repr__(self):
        return f"<NotificationLog {self.complaint_id} {self.type} - {self.status}>"
