import logging
from typing import Optional

import requests

from .models import NotificationEvent, VideoNotification

logger = logging.getLogger(__name__)

LINK_UNAVAILABLE = "*Link unavailable*"


def discord_timestamp(epoch_ms: int, style: str = "f") -> str:
    """Discord renders <t:seconds:style> in the reader's timezone"""
    return f"<t:{epoch_ms // 1000}:{style}>"


def format_notification(event: VideoNotification) -> str:
    return "\n".join([
        f"New video from [{event.channel.name}]({event.channel.link})",
        f"**{event.video.title}**",
        event.video.link or LINK_UNAVAILABLE,
        "",
        f"Published at {discord_timestamp(event.published_at)}",
        f"Updated at {discord_timestamp(event.updated_at)}",
    ])


class DiscordWebhook:
    """Outbound sink posting text messages to a Discord webhook"""

    def __init__(self, webhook_url: str, timeout: int = 30, session: Optional[requests.Session] = None):
        self.webhook_url = webhook_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def send_message(self, content: str) -> None:
        """Post a message; raises requests.RequestException on failure"""
        response = self.session.post(self.webhook_url, json={"content": content}, timeout=self.timeout)
        response.raise_for_status()


class NotificationForwarder:
    """Format events and deliver them, dropping delivery errors after logging"""

    def __init__(self, sink: DiscordWebhook):
        self.sink = sink

    def _deliver(self, content: str) -> bool:
        try:
            self.sink.send_message(content)
            return True
        except requests.RequestException as e:
            logger.error(f"Failed to deliver message to sink: {e}")
            return False

    def forward(self, event: Optional[NotificationEvent]) -> bool:
        """Forward a video notification; other events produce no message

        Returns:
            True if a message was delivered
        """
        if not isinstance(event, VideoNotification):
            return False
        delivered = self._deliver(format_notification(event))
        if delivered:
            logger.info(f"📤 Forwarded {event.video.id} from {event.channel.name}")
        return delivered

    def report(self, message: str) -> bool:
        """Send an operational alert (renewal failures, unhandled errors)"""
        return self._deliver(message)
