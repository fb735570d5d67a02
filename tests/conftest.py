import hashlib
import hmac
from typing import Callable, Dict, List, Optional

import pytest
import requests

from yt_notifier.app import Application
from yt_notifier.config import AppConfig
from yt_notifier.hub import HubMode
from yt_notifier.registry import SubscriptionRegistry
from yt_notifier.store import MemoryStore

SECRET = "s3cret"
CALLBACK_URL = "https://notify.example.com/callback"


class FakeHubClient:
    """Hub client answering from a script; unknown channels succeed"""

    def __init__(self, results: Optional[Dict[str, bool]] = None, fail_calls: Optional[List[int]] = None):
        self.results = results or {}
        self.fail_calls = fail_calls or []
        self.calls: List[dict] = []

    def request_subscription(self, channel_id: str, mode: HubMode, secret: str, callback_url: str) -> bool:
        self.calls.append({
            "channel_id": channel_id,
            "mode": HubMode(mode),
            "secret": secret,
            "callback_url": callback_url,
        })
        if len(self.calls) in self.fail_calls:
            return False
        return self.results.get(channel_id, True)


class RecordingSink:
    """Discord sink stand-in keeping every message"""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.messages: List[str] = []

    def send_message(self, content: str) -> None:
        if self.fail:
            raise requests.ConnectionError("webhook down")
        self.messages.append(content)


def sign(body: bytes, secret: str = SECRET, algorithm: str = "sha1") -> str:
    digest = hmac.new(secret.encode(), body, getattr(hashlib, algorithm)).hexdigest()
    return f"{algorithm}={digest}"


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def hub() -> FakeHubClient:
    return FakeHubClient()


@pytest.fixture
def registry_factory(store: MemoryStore) -> Callable[..., SubscriptionRegistry]:
    def factory(
        hub: Optional[FakeHubClient] = None,
        on_failure: Optional[Callable[[str], None]] = None,
        now: int = 1_700_000_000_000,
    ) -> SubscriptionRegistry:
        return SubscriptionRegistry(
            store=store,
            hub=hub or FakeHubClient(),
            secret=SECRET,
            callback_url=CALLBACK_URL,
            on_failure=on_failure,
            clock=lambda: now,
        )

    return factory


@pytest.fixture
def registry(registry_factory, hub: FakeHubClient) -> SubscriptionRegistry:
    return registry_factory(hub=hub)


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(
        api_secret=SECRET,
        app_domain="notify.example.com",
        discord_webhook_url="https://discord.example.com/api/webhooks/1/abc",
    )


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def application(config: AppConfig, store: MemoryStore, hub: FakeHubClient, sink: RecordingSink) -> Application:
    return Application(config=config, store=store, hub=hub, sink=sink)
