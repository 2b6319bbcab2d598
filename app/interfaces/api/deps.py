"""FastAPI dependency — JWT auth."""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.core.exceptions import ForbiddenException, UnauthorizedException
from app.infrastructure.database import get_db
from app.application.services.auth_service import decode_access_token
from app.domain.models.user import User, ROLE_SUPER_ADMIN, ROLE_CITY_ADMIN

# auto_error=False so a missing header surfaces as our own 401 "unauthenticated"
security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Extract and validate the current user from the bearer token."""
    if credentials is None:
        raise UnauthorizedException("User must be authenticated")

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise UnauthorizedException("Invalid or expired token")

    email: Optional[str] = payload.get("sub")
    if email is None:
        raise UnauthorizedException("Invalid token")

    user = db.query(User).filter(User.email == email).first()
    if user is None or not user.is_active:
        raise UnauthorizedException("User not found or inactive")

    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    """Require a super or city admin role."""
    if user.role not in (ROLE_SUPER_ADMIN, ROLE_CITY_ADMIN):
        raise ForbiddenException("Only administrators can access this resource")
    return user
