"""Time helpers shared by services and models."""

from datetime import datetime, timezone
from typing import Optional

import pytz

from app.config import get_settings

settings = get_settings()
tz = pytz.timezone(settings.TIMEZONE)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes (SQLite drops tzinfo) as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def local_display(value: Optional[datetime]) -> str:
    """Format a timestamp in the portal's timezone for messages."""
    if value is None:
        return "N/A"
    return ensure_aware(value).astimezone(tz).strftime("%d/%m/%Y %H:%M")
