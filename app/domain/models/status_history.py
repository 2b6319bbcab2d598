"""Status history — append-only record of complaint status changes."""

from sqlalchemy import Column, Integer, String, Text, DateTime

from app.core.clock import utcnow
from app.infrastructure.database import Base


class StatusHistory(Base):
    __tablename__ = "statusHistory"

    id = Column(Integer, primary_key=True, autoincrement=True)
    complaint_id = Column(String(64), nullable=False, index=True)
    previous_status = Column(String(20), nullable=False)
    new_status = Column(String(20), nullable=False)
    updated_by = Column(String(200), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    notes = Column(Text, nullable=True)

    def __repr__(self):
        return f"<StatusHistory {self.complaint_id}: {self.previous_status} -> {self.new_status}>"
