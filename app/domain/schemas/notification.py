"""Pydantic schemas for notifications and device tokens."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class DeviceTokenCreate(BaseModel):
    user_id: str = Field(min_length=1)
    token: str = Field(min_length=1)
    device_type: Literal["web", "android", "ios"] = "web"


class DeviceTokenRead(BaseModel):
    id: str
    user_id: str
    device_type: str
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class NotificationLogRead(BaseModel):
    id: int
    user_id: str
    complaint_id: str
    type: str
    title: str
    body: str
    status: str
    error: Optional[str] = None
    message_id: Optional[str] = None
    sent_by: Optional[str] = None
    sent_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CustomNotificationRequest(BaseModel):
    """Manual send payload; field names match the mobile/web clients."""
    user_id: Optional[str] = Field(default=None, alias="userId")
    complaint_id: Optional[str] = Field(default=None, alias="complaintId")
    title: Optional[str] = None
    body: Optional[str] = None
    type: Optional[str] = None

    model_config = {"populate_by_name": True}
