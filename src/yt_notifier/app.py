import logging
import logging.handlers
import traceback
from pathlib import Path
from typing import Optional, Union

from apscheduler.schedulers.background import BackgroundScheduler

from .config import AppConfig
from .errors import InvalidSignature
from .feed import FeedParser, classify_feed
from .hub import HubClient
from .models import NotificationEvent
from .notifier import DiscordWebhook, NotificationForwarder
from .registry import RenewalReport, SubscriptionRegistry
from .signature import verify_signature
from .store import KeyValueStore

logger = logging.getLogger(__name__)

RENEW_JOB_ID = "renew_subscriptions"

# Discord rejects message content over 2000 characters
MAX_REPORT_DETAILS = 1900


def setup_logging(log_dir: Optional[Path] = None) -> None:
    """Configure logging

    - stdout (collected by journald / docker)
    - file rotated at midnight, 30 days kept
    """
    log_format = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.INFO)

    # Avoid duplicate handlers when called twice
    root_logger.handlers.clear()

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(logging.Formatter(log_format))
    root_logger.addHandler(stream_handler)

    if log_dir:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.TimedRotatingFileHandler(
            filename=log_dir / "app.log",
            when="midnight",
            interval=1,
            backupCount=30,
            encoding="utf-8"
        )
        file_handler.setFormatter(logging.Formatter(log_format))
        file_handler.suffix = "%Y-%m-%d"
        root_logger.addHandler(file_handler)

    logging.getLogger("werkzeug").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


class Application:
    """Wires the store, hub client, registry and forwarder together"""

    def __init__(
        self,
        config: AppConfig,
        store: KeyValueStore,
        hub: Optional[HubClient] = None,
        sink: Optional[DiscordWebhook] = None
    ):
        self.config = config
        self.store = store
        self.hub = hub or HubClient(hub_url=config.hub_url, timeout=config.request_timeout)
        self.forwarder = NotificationForwarder(
            sink or DiscordWebhook(config.discord_webhook_url, timeout=config.request_timeout)
        )
        self.registry = SubscriptionRegistry(
            store=store,
            hub=self.hub,
            secret=config.api_secret,
            callback_url=config.callback_url,
            on_failure=self.forwarder.report
        )
        self.feed_parser = FeedParser()
        self.scheduler = BackgroundScheduler()

    def handle_push(self, body: Union[bytes, str], signature: Optional[str]) -> Optional[NotificationEvent]:
        """Verify, classify and forward one push notification

        Returns:
            The classified event, or None when the feed was ignored

        Raises:
            InvalidSignature: signature header missing or not matching
        """
        if not verify_signature(self.config.api_secret, signature, body):
            raise InvalidSignature()
        event = classify_feed(body, self.feed_parser)
        if event is None:
            return None
        logger.info(f"📨 Push notification: {type(event).__name__}")
        self.forwarder.forward(event)
        return event

    def report_error(self, error: BaseException) -> None:
        """Log an unhandled error and send its traceback to the sink (best-effort)"""
        details = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        logger.error(f"❌ Unhandled error: {error}\n{details}")
        # Keep the tail, the innermost frames and the message are at the end
        self.forwarder.report(f"Encountered an Error\n{details[-MAX_REPORT_DETAILS:]}")

    def renew_all(self) -> RenewalReport:
        return self.registry.renew_all()

    def _scheduled_renew(self) -> None:
        """Scheduler entry point, failures must not kill the scheduler"""
        try:
            self.renew_all()
        except Exception as e:
            self.report_error(e)

    def start_scheduler(self) -> None:
        if self.config.renew_interval_hours <= 0:
            logger.info("⏰ Renewal scheduler disabled")
            return
        # misfire_grace_time=None: run late jobs however late, coalesce missed runs
        self.scheduler.add_job(
            self._scheduled_renew,
            "interval",
            hours=self.config.renew_interval_hours,
            id=RENEW_JOB_ID,
            misfire_grace_time=None,
            coalesce=True,
            replace_existing=True
        )
        self.scheduler.start()
        logger.info(f"⏰ Renewal scheduled every {self.config.renew_interval_hours} hours")

    def stop_scheduler(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    def run(self, with_scheduler: bool = True) -> None:
        """Start the scheduler and serve the web app (blocking)"""
        from .web import NotifierWebServer

        if with_scheduler:
            self.start_scheduler()
        web_server = NotifierWebServer(self, host=self.config.web_host, port=self.config.web_port)
        try:
            web_server.serve()
        finally:
            self.stop_scheduler()
