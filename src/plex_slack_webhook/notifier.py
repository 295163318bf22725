"""Deliver notifications to a Slack incoming webhook."""

import logging
from typing import Any

import httpx

from .exceptions import NotificationDeliveryError
from .models import Notification

logger = logging.getLogger(__name__)

PLEX_USERNAME = "Plex"
PLEX_ICON = ":plex:"
PLEX_COLOR = "#e5a00d"


class SlackNotifier:
    """Post notifications to Slack. Delivery is fire-and-forget: failures are logged, never raised."""

    def __init__(self, client: httpx.AsyncClient, webhook_url: str | None, channel: str | None = None) -> None:
        """Initialize the notifier with a shared HTTP client."""
        self.client = client
        self.webhook_url = webhook_url
        self.channel = channel

    def build_message(self, notification: Notification) -> dict[str, Any]:
        """Turn a notification into a Slack message with a single attachment."""
        message: dict[str, Any] = {
            "username": PLEX_USERNAME,
            "icon_emoji": PLEX_ICON,
            "attachments": [
                {
                    "fallback": notification.title,
                    "color": PLEX_COLOR,
                    "title": notification.title,
                    "text": notification.text,
                    "thumb_url": notification.image_url,
                    "footer": notification.footer,
                    "footer_icon": notification.footer_icon,
                }
            ],
        }
        if self.channel:
            message["channel"] = self.channel
        return message

    async def send(self, notification: Notification) -> bool:
        """Send the notification. Returns whether Slack accepted it."""
        if not self.webhook_url:
            logger.warning("SLACK_URL not configured, skipping notification: %s", notification.title)
            return False

        try:
            await self._post(self.build_message(notification))
        except NotificationDeliveryError as e:
            logger.warning("%s", e)
            return False
        return True

    async def _post(self, message: dict[str, Any]) -> None:
        try:
            response = await self.client.post(self.webhook_url, json=message)
        except httpx.HTTPError as e:
            msg = f"Slack webhook unreachable: {e}"
            raise NotificationDeliveryError(msg) from e
        if response.is_error:
            msg = f"Slack webhook rejected message ({response.status_code}): {response.text}"
            raise NotificationDeliveryError(msg)
