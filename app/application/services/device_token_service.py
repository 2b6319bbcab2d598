"""Device token registry — FCM tokens per user and device class."""

from typing import List, Optional

import structlog
from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.domain.models.device_token import DeviceToken, token_key
from app.infrastructure.repositories.base_repository import SQLAlchemyRepository

logger = structlog.get_logger(__name__)


def _repo(db: Session) -> SQLAlchemyRepository[DeviceToken]:
    return SQLAlchemyRepository(db, DeviceToken)


def register_token(db: Session, user_id: str, token: str, device_type: str = "web") -> DeviceToken:
    """Create or refresh the token for this user/device class and mark it active."""
    repo = _repo(db)
    key = token_key(user_id, device_type)
    existing = repo.get_by_id(key)
    now = utcnow()

    if existing:
        record = repo.update(existing, {"token": token, "is_active": True, "updated_at": now})
        logger.info("Device token refreshed", user_id=user_id, device_type=device_type)
        return record

    record = repo.create({
        "id": key,
        "user_id": user_id,
        "token": token,
        "device_type": device_type,
        "is_active": True,
        "created_at": now,
        "updated_at": now,
    })
    logger.info("Device token registered", user_id=user_id, device_type=device_type)
    return record


def deactivate_tokens(db: Session, user_id: str) -> int:
    """Deactivate (never delete) all tokens of a user. Returns how many changed."""
    tokens = (
        db.query(DeviceToken)
        .filter(DeviceToken.user_id == user_id, DeviceToken.is_active.is_(True))
        .all()
    )
    now = utcnow()
    for t in tokens:
        t.is_active = False
        t.updated_at = now
    _repo(db).commit()

    logger.info("Device tokens deactivated", user_id=user_id, count=len(tokens))
    return len(tokens)


def list_tokens(db: Session, user_id: str) -> List[DeviceToken]:
    return (
        db.query(DeviceToken)
        .filter(DeviceToken.user_id == user_id)
        .order_by(DeviceToken.updated_at.desc())
        .all()
    )


def find_token(db: Session, user_id: str) -> Optional[DeviceToken]:
    """The user's most relevant token: the freshest active one, else the freshest inactive one."""
    tokens = list_tokens(db, user_id)
    for t in tokens:
        if t.is_active:
            return t
    return tokens[0] if tokens else None


def get_active_token(db: Session, user_id: str) -> Optional[DeviceToken]:
    token = find_token(db, user_id)
    if token is None or not token.is_active:
        return None
    return token
