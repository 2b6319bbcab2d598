"""FCM device token — one row per user and device class."""

from sqlalchemy import Column, String, Boolean, DateTime

from app.core.clock import utcnow
from app.infrastructure.database import Base


def token_key(user_id: str, device_type: str = "web") -> str:
    return f"{user_id}_{device_type}"


class DeviceToken(Base):
    __tablename__ = "fcmTokens"

    id = Column(String(200), primary_key=True)  # {user_id}_{device_type}
    user_id = Column(String(128), nullable=False, index=True)
    token = Column(String(500), nullable=False)
    device_type = Column(String(20), nullable=False, default="web")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<DeviceToken {self.id} active={self.is_active}>"
