"""Auth API routes — login, register, me, logout."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.exceptions import BusinessRuleViolationException, UnauthorizedException
from app.infrastructure.database import get_db
from app.application.services.auth_service import (
    authenticate_user,
    build_claims,
    create_access_token,
    create_user,
    get_user_by_email,
)
from app.application.services.device_token_service import deactivate_tokens
from app.domain.schemas.auth import LoginRequest, LogoutRequest, TokenResponse, UserCreate, UserRead
from app.interfaces.api.deps import get_current_user, require_admin
from app.domain.models.user import User

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post("/login", response_model=TokenResponse)
def login(body: LoginRequest, db: Session = Depends(get_db)):
    user = authenticate_user(db, body.email, body.password)
    if not user:
        raise UnauthorizedException("Incorrect email or password")

    access_token = create_access_token(data=build_claims(user))

    return TokenResponse(
        access_token=access_token,
        user=UserRead.model_validate(user),
    )


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def register(
    body: UserCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Create a staff account (admins only)."""
    if get_user_by_email(db, body.email):
        raise BusinessRuleViolationException("Email already registered", details={"email": body.email})

    user = create_user(
        db=db,
        name=body.name,
        email=body.email,
        password=body.password,
        role=body.role,
        department=body.department,
        city=body.city,
    )
    return UserRead.model_validate(user)


@router.get("/me", response_model=UserRead)
def get_me(user: User = Depends(get_current_user)):
    return UserRead.model_validate(user)


@router.post("/logout")
def logout(
    body: LogoutRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Stateless JWT logout; optionally deactivates a device user's push tokens."""
    deactivated = deactivate_tokens(db, body.user_id) if body.user_id else 0
    return {"logged_out": True, "tokens_deactivated": deactivated}
