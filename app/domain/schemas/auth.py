"""Pydantic schemas for User and Auth."""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class UserCreate(BaseModel):
    name: str
    email: str
    password: str
    role: str = "staff"
    department: Optional[str] = None
    city: Optional[str] = None


class UserRead(BaseModel):
    id: int
    name: str
    email: str
    role: str
    department: Optional[str] = None
    city: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserRead


class LogoutRequest(BaseModel):
    # Citizen/device user whose push tokens should stop receiving notifications
    user_id: Optional[str] = None
