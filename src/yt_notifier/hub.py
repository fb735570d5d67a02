import logging
from enum import Enum
from typing import Optional

import requests

logger = logging.getLogger(__name__)

HUB_URL = "https://pubsubhubbub.appspot.com/subscribe"
BASE_TOPIC_URL = "https://www.youtube.com/xml/feeds/videos.xml?channel_id="


class HubMode(str, Enum):
    SUBSCRIBE = "subscribe"
    UNSUBSCRIBE = "unsubscribe"


def topic_url(channel_id: str) -> str:
    """Hub topic for a channel's upload feed"""
    return BASE_TOPIC_URL + channel_id


class HubClient:
    """PubSubHubbub hub client (one attempt per request, no state)"""

    def __init__(
        self,
        hub_url: str = HUB_URL,
        timeout: int = 30,
        session: Optional[requests.Session] = None
    ):
        self.hub_url = hub_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def request_subscription(
        self,
        channel_id: str,
        mode: HubMode,
        secret: str,
        callback_url: str
    ) -> bool:
        """Ask the hub to (un)subscribe callback_url to a channel topic

        Returns:
            True on a 2xx answer, False on any other status or network failure
        """
        mode = HubMode(mode)
        data = {
            "hub.callback": callback_url,
            "hub.mode": mode.value,
            "hub.topic": topic_url(channel_id),
            "hub.secret": secret,
            "hub.verify": "sync",
        }
        try:
            response = self.session.post(
                self.hub_url,
                data=data,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(f"Hub {mode.value} request for {channel_id} failed: {e}")
            return False

        if 200 <= response.status_code < 300:
            logger.info(f"Hub accepted {mode.value} for {channel_id} (status {response.status_code})")
            return True

        logger.warning(
            f"Hub rejected {mode.value} for {channel_id}: "
            f"status {response.status_code}, response: {response.text[:200]}"
        )
        return False
