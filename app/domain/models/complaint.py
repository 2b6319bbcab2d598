"""Complaint domain model — maps to the 'complaints' table."""

from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.orm import column_property

from app.core.clock import utcnow
from app.infrastructure.database import Base

STATUS_SUBMITTED = "submitted"
STATUS_IN_PROGRESS = "in-progress"
STATUS_RESOLVED = "resolved"
STATUS_CLOSED = "closed"

COMPLAINT_STATUSES = (STATUS_SUBMITTED, STATUS_IN_PROGRESS, STATUS_RESOLVED, STATUS_CLOSED)


class Complaint(Base):
    __tablename__ = "complaints"

    id = Column(String(64), primary_key=True)  # e.g. ISS-0001
    user_id = Column(String(128), nullable=False, index=True)  # submitter
    category = Column(String(200), nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    # active_history keeps the previous value available to the write listener
    status = column_property(
        Column(String(20), nullable=False, default=STATUS_SUBMITTED, index=True),
        active_history=True,
    )
    priority = Column(String(10), nullable=False, default="medium")
    city = Column(String(200), nullable=True, index=True)
    location = Column(String(500), nullable=True)

    # Assignment
    assigned_to = Column(String(200), nullable=True)
    department = Column(String(200), nullable=True, index=True)
    last_update_notes = Column(Text, nullable=True)

    # Proof of resolution
    resolution_image = Column(String(1000), nullable=True)  # stored reference, not the blob
    resolution_notes = Column(Text, nullable=True)
    resolved_by = Column(String(200), nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)

    # SLA escalation marker
    escalated_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True)
    updated_by = Column(String(200), nullable=True)

    def __repr__(self):
        return f"<Complaint {self.id} - {self.status}>"
