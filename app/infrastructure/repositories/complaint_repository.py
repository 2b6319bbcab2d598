"""
SQLAlchemy Implementation of Complaint Repository.
"""

from datetime import datetime
from typing import Any, Dict, List

from app.domain.models.complaint import Complaint, STATUS_SUBMITTED, STATUS_IN_PROGRESS
from app.domain.models.status_history import StatusHistory
from app.domain.repositories.complaint_repository import ComplaintRepository
from app.domain.schemas.complaint import ComplaintFilter, DashboardFilter
from app.infrastructure.repositories.base_repository import SQLAlchemyRepository


class SQLAlchemyComplaintRepository(SQLAlchemyRepository[Complaint], ComplaintRepository):
    """Complaint repository implementation using SQLAlchemy."""

    def get_with_filters(self, filters: ComplaintFilter) -> Dict[str, Any]:
        """Get complaints with filtering and pagination."""
        query = self.db.query(Complaint)

        if filters.status:
            query = query.filter(Complaint.status == filters.status)
        if filters.department:
            query = query.filter(Complaint.department == filters.department)
        if filters.category:
            query = query.filter(Complaint.category == filters.category)
        if filters.priority:
            query = query.filter(Complaint.priority == filters.priority)
        if filters.city:
            query = query.filter(Complaint.city == filters.city)

        total = query.count()
        offset = (filters.page - 1) * filters.page_size
        complaints = (
            query.order_by(Complaint.created_at.desc())
            .offset(offset)
            .limit(filters.page_size)
            .all()
        )

        return {
            "items": complaints,
            "total": total,
            "page": filters.page,
            "page_size": filters.page_size,
            "total_pages": (total + filters.page_size - 1) // filters.page_size,
        }

    def get_unresolved(self) -> List[Complaint]:
        return (
            self.db.query(Complaint)
            .filter(Complaint.status.in_((STATUS_SUBMITTED, STATUS_IN_PROGRESS)))
            .order_by(Complaint.created_at.asc())
            .all()
        )

    def get_for_stats(self, filters: DashboardFilter) -> List[Complaint]:
        query = self.db.query(Complaint)

        if filters.department:
            query = query.filter(Complaint.department == filters.department)
        if filters.category:
            query = query.filter(Complaint.category == filters.category)
        if filters.priority:
            query = query.filter(Complaint.priority == filters.priority)
        if filters.date_from:
            query = query.filter(Complaint.created_at >= filters.date_from)
        if filters.date_to:
            query = query.filter(Complaint.created_at <= filters.date_to)

        return query.all()

    def apply_status_change(self, complaint: Complaint, fields: Dict[str, Any], history: StatusHistory) -> Complaint:
        """Merge fields into the complaint and append history in one transaction."""
        for field, value in fields.items():
            setattr(complaint, field, value)

        self.db.add(complaint)
        self.db.add(history)
        self.commit()
        self.db.refresh(complaint)
        return complaint

    def get_status_history(self, complaint_id: str) -> List[StatusHistory]:
        return (
            self.db.query(StatusHistory)
            .filter(StatusHistory.complaint_id == complaint_id)
            .order_by(StatusHistory.updated_at.desc(), StatusHistory.id.desc())
            .all()
        )

    def mark_escalated(self, complaint: Complaint, escalated_at: datetime) -> Complaint:
        complaint.escalated_at = escalated_at
        self.db.add(complaint)
        self.commit()
        return complaint
