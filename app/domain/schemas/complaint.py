"""Pydantic schemas for the Complaint domain."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

ComplaintStatusLiteral = Literal["submitted", "in-progress", "resolved", "closed"]
PriorityLiteral = Literal["high", "medium", "low"]


class ComplaintCreate(BaseModel):
    id: str = Field(min_length=1, max_length=64)
    user_id: str = Field(min_length=1)
    category: str = Field(min_length=1)
    description: str = ""
    priority: PriorityLiteral = "medium"
    city: Optional[str] = None
    location: Optional[str] = None


class ComplaintRead(BaseModel):
    id: str
    user_id: str
    category: str
    description: str
    status: str
    priority: str
    city: Optional[str] = None
    location: Optional[str] = None
    assigned_to: Optional[str] = None
    department: Optional[str] = None
    last_update_notes: Optional[str] = None
    resolution_image: Optional[str] = None
    resolution_notes: Optional[str] = None
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    escalated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    updated_by: Optional[str] = None

    model_config = {"from_attributes": True}


class ComplaintFilter(BaseModel):
    status: Optional[ComplaintStatusLiteral] = None
    department: Optional[str] = None
    category: Optional[str] = None
    priority: Optional[PriorityLiteral] = None
    city: Optional[str] = None
    page: int = 1
    page_size: int = 50


class StatusUpdateRequest(BaseModel):
    status: ComplaintStatusLiteral
    notes: Optional[str] = None
    assigned_to: Optional[str] = None
    department: Optional[str] = None
    resolution_image: Optional[str] = None


class AssignRequest(BaseModel):
    assigned_to: str = Field(min_length=1)
    department: str = Field(min_length=1)
    notes: Optional[str] = None


class StatusHistoryRead(BaseModel):
    id: int
    complaint_id: str
    previous_status: str
    new_status: str
    updated_by: str
    updated_at: Optional[datetime] = None
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class SLAStatusRead(BaseModel):
    complaint_id: str
    policy: str
    threshold_seconds: float
    breached: bool
    seconds_remaining: float
    text: str
    level: str
    escalated_at: Optional[datetime] = None


class DashboardFilter(BaseModel):
    department: Optional[str] = None
    category: Optional[str] = None
    priority: Optional[PriorityLiteral] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None


class DashboardStats(BaseModel):
    total_issues: int
    resolved: int
    pending: int
    closed: int
    escalated: int
    sla_breached: int
