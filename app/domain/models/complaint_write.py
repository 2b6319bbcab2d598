"""Complaint write events — queue drained by the trigger handler.

A row is added in the same transaction as every complaint insert or update,
so the trigger handler sees writes from any code path.
"""

from sqlalchemy import Column, Integer, String, DateTime

from app.core.clock import utcnow
from app.infrastructure.database import Base


class ComplaintWriteEvent(Base):
    __tablename__ = "complaintWrites"

    id = Column(Integer, primary_key=True, autoincrement=True)
    complaint_id = Column(String(64), nullable=False, index=True)
    previous_status = Column(String(20), nullable=True)  # NULL when the complaint was created
    new_status = Column(String(20), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    processed_at = Column(DateTime(timezone=True), nullable=True, index=True)

    @property
    def created(self) -> bool:
        return self.previous_status is None

    def __repr__(self):
        return f"<ComplaintWriteEvent {self.complaint_id}: {self.previous_status} -> {self.new_status}>"
