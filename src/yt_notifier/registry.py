import json
import logging
import math
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from .errors import SubscribeFailed, UnsubscribeFailed
from .hub import HubClient, HubMode
from .models import Subscription
from .store import KeyValueStore

logger = logging.getLogger(__name__)

SUBSCRIPTIONS_KEY = "yt-notifier-subscriptions"


def now_ms() -> int:
    return int(time.time() * 1000)


def parse_subscriptions(raw: Any) -> Optional[List[Subscription]]:
    """Validate a decoded registry blob

    Returns:
        List of subscriptions, or None if the blob does not match
        [{"channelId": str, "lastSubscribedAt": number}, ...]
    """
    if not isinstance(raw, list):
        return None
    subscriptions = []
    for item in raw:
        if not isinstance(item, dict):
            return None
        channel_id = item.get("channelId")
        last_subscribed_at = item.get("lastSubscribedAt")
        if not isinstance(channel_id, str):
            return None
        # bool is an int subclass
        if isinstance(last_subscribed_at, bool) or not isinstance(last_subscribed_at, (int, float)):
            return None
        # json accepts Infinity, NaN and overflowing literals like 1e400
        if isinstance(last_subscribed_at, float) and not math.isfinite(last_subscribed_at):
            return None
        subscriptions.append(Subscription(channel_id=channel_id, last_subscribed_at=int(last_subscribed_at)))
    return subscriptions


@dataclass
class RenewalReport:
    """Outcome of one renew_all pass"""
    renewed: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


class SubscriptionRegistry:
    """Durable list of channel subscriptions kept in sync with the hub

    Every operation is a full read-modify-write of one store key. There is
    no locking, so concurrent writers race and the last write wins.
    """

    def __init__(
        self,
        store: KeyValueStore,
        hub: HubClient,
        secret: str,
        callback_url: str,
        on_failure: Optional[Callable[[str], None]] = None,
        clock: Callable[[], int] = now_ms
    ):
        self.store = store
        self.hub = hub
        self.secret = secret
        self.callback_url = callback_url
        self.on_failure = on_failure
        self.clock = clock

    def _request(self, channel_id: str, mode: HubMode) -> bool:
        return self.hub.request_subscription(
            channel_id=channel_id,
            mode=mode,
            secret=self.secret,
            callback_url=self.callback_url
        )

    def _save(self, subscriptions: List[Subscription]) -> None:
        self.store.put(SUBSCRIPTIONS_KEY, json.dumps([s.to_dict() for s in subscriptions]))

    def _report_failure(self, message: str) -> None:
        """Best-effort: reporter errors are logged and discarded"""
        if not self.on_failure:
            return
        try:
            self.on_failure(message)
        except Exception as e:
            logger.error(f"Failed to report renewal failure: {e}")

    def list_all(self) -> List[Subscription]:
        """Load all subscriptions; a corrupt blob is deleted and treated as empty"""
        raw = self.store.get(SUBSCRIPTIONS_KEY)
        if not raw:
            return []
        try:
            decoded = json.loads(raw)
        except ValueError:
            decoded = None
        subscriptions = parse_subscriptions(decoded)
        if subscriptions is None:
            logger.warning("Stored subscriptions are corrupt, resetting registry")
            self.store.delete(SUBSCRIPTIONS_KEY)
            return []
        return subscriptions

    def add(self, channel_id: str) -> None:
        """Subscribe to a channel (no-op if already registered)

        Raises:
            SubscribeFailed: hub refused, registry left unchanged
        """
        subscriptions = self.list_all()
        if any(s.channel_id == channel_id for s in subscriptions):
            logger.info(f"Already subscribed to {channel_id}")
            return
        if not self._request(channel_id, HubMode.SUBSCRIBE):
            raise SubscribeFailed(channel_id)
        subscriptions.append(Subscription(channel_id=channel_id, last_subscribed_at=self.clock()))
        self._save(subscriptions)
        logger.info(f"✅ Subscribed to {channel_id}")

    def remove(self, channel_id: str) -> None:
        """Unsubscribe from a channel (no-op if not registered)

        Raises:
            UnsubscribeFailed: hub refused, registry left unchanged
        """
        subscriptions = self.list_all()
        if not any(s.channel_id == channel_id for s in subscriptions):
            logger.info(f"Not subscribed to {channel_id}")
            return
        if not self._request(channel_id, HubMode.UNSUBSCRIBE):
            raise UnsubscribeFailed(channel_id)
        self._save([s for s in subscriptions if s.channel_id != channel_id])
        logger.info(f"🗑️ Unsubscribed from {channel_id}")

    def renew_all(self) -> RenewalReport:
        """Re-subscribe every channel, then persist the list in one write

        A failed renewal is reported and the subscription is kept. Store
        write errors propagate.
        """
        subscriptions = self.list_all()
        renewed_at = self.clock()
        report = RenewalReport()

        for subscription in subscriptions:
            if self._request(subscription.channel_id, HubMode.SUBSCRIBE):
                report.renewed.append(subscription.channel_id)
            else:
                report.failed.append(subscription.channel_id)
                logger.warning(f"⚠️ Failed to renew subscription for {subscription.channel_id}")
                self._report_failure(f"Failed to renew subscription for {subscription.channel_id}")
            subscription.last_subscribed_at = renewed_at

        self._save(subscriptions)
        logger.info(f"🔄 Renewal done: {len(report.renewed)} renewed, {len(report.failed)} failed")
        return report
