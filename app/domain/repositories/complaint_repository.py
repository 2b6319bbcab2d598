"""
Complaint Repository Interface.
Defines specific data access operations for Complaints and their history.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from app.domain.repositories.base import BaseRepository
from app.domain.models.complaint import Complaint
from app.domain.models.status_history import StatusHistory
from app.domain.schemas.complaint import ComplaintFilter, DashboardFilter


class ComplaintRepository(BaseRepository[Complaint]):
    """Interface for Complaint-specific operations."""

    def get_with_filters(self, filters: ComplaintFilter) -> Dict[str, Any]:
        """Get complaints with filtering and pagination."""
        ...

    def get_unresolved(self) -> List[Complaint]:
        """Get complaints still open for SLA tracking (submitted or in-progress)."""
        ...

    def get_for_stats(self, filters: DashboardFilter) -> List[Complaint]:
        """Get complaints matching dashboard filters."""
        ...

    def apply_status_change(self, complaint: Complaint, fields: Dict[str, Any], history: StatusHistory) -> Complaint:
        """Write complaint fields and the history entry in a single commit."""
        ...

    def get_status_history(self, complaint_id: str) -> List[StatusHistory]:
        """Get status history for a complaint, newest first."""
        ...

    def mark_escalated(self, complaint: Complaint, escalated_at: datetime) -> Complaint:
        """Persist the SLA escalation marker."""
        ...
