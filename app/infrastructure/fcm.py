"""Firebase Cloud Messaging client.

Wraps the firebase-admin SDK behind a small async interface so services can
hand it the portal's message payload:

    {token, notification: {title, body, icon}, data: {complaintId, type, action, clickAction}}

Sends are never retried here; callers log the outcome.
"""

import asyncio
from typing import Any, Dict, Optional, Protocol

import firebase_admin
import structlog
from firebase_admin import credentials, exceptions, messaging

from app.config import get_settings
from app.core.exceptions import DeliveryFailureException

settings = get_settings()
logger = structlog.get_logger(__name__)


class MessagingClient(Protocol):
    """Anything that can deliver a push payload and return a message id."""

    async def send(self, payload: Dict[str, Any]) -> str:
        ...


def build_fcm_message(payload: Dict[str, Any]) -> messaging.Message:
    """Translate the portal payload into an SDK message."""
    notification = payload.get("notification") or {}
    # FCM requires string values in the data map
    data = {k: str(v) for k, v in (payload.get("data") or {}).items() if v is not None}
    link = data.get("clickAction")

    return messaging.Message(
        token=payload["token"],
        notification=messaging.Notification(
            title=notification.get("title"),
            body=notification.get("body"),
        ),
        data=data,
        webpush=messaging.WebpushConfig(
            notification=messaging.WebpushNotification(
                title=notification.get("title"),
                body=notification.get("body"),
                icon=notification.get("icon"),
            ),
            fcm_options=messaging.WebpushFCMOptions(link=link) if link else None,
        ),
    )


class FCMClient:
    """Client for Firebase Cloud Messaging via the Admin SDK."""

    def __init__(self, credentials_file: Optional[str] = None):
        self.credentials_file = credentials_file if credentials_file is not None else settings.FIREBASE_CREDENTIALS_FILE
        self._app: Optional[firebase_admin.App] = None

    def _ensure_app(self) -> firebase_admin.App:
        """Initialize the default Firebase app once per process."""
        if self._app is not None:
            return self._app
        try:
            self._app = firebase_admin.get_app()
        except ValueError:
            try:
                if self.credentials_file:
                    cred = credentials.Certificate(self.credentials_file)
                    self._app = firebase_admin.initialize_app(cred)
                else:
                    # Application Default Credentials (Cloud Run / Functions)
                    self._app = firebase_admin.initialize_app()
            except Exception as e:
                logger.error("Failed to initialize Firebase", error=str(e))
                raise DeliveryFailureException(f"Push provider not configured: {e}") from e
        return self._app

    async def send(self, payload: Dict[str, Any]) -> str:
        """Send one message. Returns the FCM message id.

        Raises DeliveryFailureException when the SDK rejects or fails the send.
        """
        app = self._ensure_app()
        message = build_fcm_message(payload)
        try:
            message_id = await asyncio.to_thread(messaging.send, message, False, app)
        except (exceptions.FirebaseError, ValueError) as e:
            logger.warning("FCM send failed", error=str(e)[:200])
            raise DeliveryFailureException(str(e)[:500]) from e

        logger.info("FCM message sent", message_id=message_id)
        return message_id


_default_client: Optional[FCMClient] = None


def get_messaging_client() -> MessagingClient:
    """Process-wide FCM client; overridden in tests."""
    global _default_client
    if _default_client is None:
        _default_client = FCMClient()
    return _default_client
