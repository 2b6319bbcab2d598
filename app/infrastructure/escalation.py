"""Escalation webhook client — notifies the higher authority of SLA breaches.

When ESCALATION_WEBHOOK_URL is empty the notice is only logged, which is how
the portal runs before a mail/SMS relay is wired in.
"""

from typing import Any, Dict, Optional, Protocol

import httpx
import structlog

from app.config import get_settings
from app.core.exceptions import DeliveryFailureException

settings = get_settings()
logger = structlog.get_logger(__name__)


class EscalationNotifier(Protocol):
    async def notify(self, notice: Dict[str, Any]) -> None:
        ...


class WebhookEscalationNotifier:
    """POSTs SLA breach notices as JSON to a relay endpoint."""

    def __init__(self, url: Optional[str] = None, timeout: float = 15):
        self.url = (url if url is not None else settings.ESCALATION_WEBHOOK_URL).rstrip("/")
        self.timeout = timeout

    async def notify(self, notice: Dict[str, Any]) -> None:
        if not self.url:
            logger.warning(
                "SLA breach notice (no webhook configured)",
                to=notice.get("to"),
                complaint_id=notice.get("complaintId"),
            )
            return

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.url, json=notice)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            error_text = e.response.text[:200] if e.response.text else "No response body"
            raise DeliveryFailureException(
                f"Escalation webhook returned {e.response.status_code}: {error_text}"
            ) from e
        except httpx.HTTPError as e:
            raise DeliveryFailureException(f"Escalation webhook unreachable: {e}") from e

        logger.info("SLA breach notice delivered", to=notice.get("to"), complaint_id=notice.get("complaintId"))
