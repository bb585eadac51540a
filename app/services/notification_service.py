"""
Notification gateway client for SMS and WhatsApp broadcasts.

The gateway is a plain HTTP endpoint owned by the platform's messaging
service:

  POST {notification_gateway_url}/messages
  {"channel", "tenantId", "broadcastId", "targetLevel", "targetAreas",
   "priority", "message"}

APP broadcasts never leave this service; the mobile app reads them from the
broadcast list.
"""

from __future__ import annotations

import httpx

from app.core.config import Settings, get_settings
from app.core.errors import UpstreamAIError
from app.core.logging import get_logger
from app.models.models import Broadcast, BroadcastChannel

logger = get_logger(__name__)

GATEWAY_CHANNELS = frozenset([BroadcastChannel.SMS, BroadcastChannel.WHATSAPP])


class NotificationService:
    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.transport = transport

    @property
    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.settings.notification_api_key:
            headers["Authorization"] = f"Bearer {self.settings.notification_api_key}"
        return headers

    def _payload(self, broadcast: Broadcast) -> dict:
        return {
            "channel": broadcast.channel.value,
            "tenantId": broadcast.tenant_id,
            "broadcastId": broadcast.id,
            "targetLevel": broadcast.target_level.value,
            "targetAreas": list(broadcast.target_areas or []),
            "priority": broadcast.priority.value,
            "message": broadcast.message,
        }

    async def deliver(self, broadcast: Broadcast) -> str | None:
        """Push one broadcast to the gateway. Returns the gateway message id, if any."""
        if broadcast.channel not in GATEWAY_CHANNELS:
            logger.info("broadcast_in_app_only", broadcast_id=broadcast.id)
            return None

        base_url = self.settings.notification_gateway_url.rstrip("/")
        if not base_url:
            logger.warning(
                "notification_gateway_not_configured",
                broadcast_id=broadcast.id,
                channel=broadcast.channel.value,
            )
            return None

        try:
            async with httpx.AsyncClient(
                timeout=self.settings.notification_timeout_seconds,
                transport=self.transport,
            ) as client:
                resp = await client.post(
                    f"{base_url}/messages",
                    headers=self._headers,
                    json=self._payload(broadcast),
                )
                resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(
                "notification_gateway_error",
                broadcast_id=broadcast.id,
                channel=broadcast.channel.value,
                error=str(e),
            )
            raise UpstreamAIError(f"Notification gateway failed: {e}") from e

        message_id = resp.headers.get("x-message-id")
        logger.info(
            "notification_dispatched",
            broadcast_id=broadcast.id,
            channel=broadcast.channel.value,
            message_id=message_id,
        )
        return message_id


def get_notification_service() -> NotificationService:
    """FastAPI dependency; tests override it with a MockTransport-backed instance."""
    return NotificationService()
