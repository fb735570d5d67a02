import logging
from datetime import datetime, timezone
from typing import Any, Optional, Union
from xml.parsers.expat import ExpatError

import xmltodict

from ..errors import MalformedFeed
from ..models import Channel, DeletedEntry, Empty, NotificationEvent, Video, VideoNotification

logger = logging.getLogger(__name__)

WATCH_URL = "https://www.youtube.com/watch?v={video_id}"

DELETED_ENTRY = "at:deleted-entry"


def watch_url(video_id: str) -> str:
    return WATCH_URL.format(video_id=video_id)


class FeedParser:
    """Parse hub push payloads (YouTube Atom feeds)"""

    def parse(self, content: Union[bytes, str]) -> NotificationEvent:
        """Parse a feed document and classify it

        Raises:
            MalformedFeed: document is not XML, has no <feed> root, or its
                entry is missing a required field
        """
        try:
            document = xmltodict.parse(content)
        except (ExpatError, ValueError) as e:
            raise MalformedFeed(f"Invalid XML: {e}") from e

        if not isinstance(document, dict) or "feed" not in document:
            raise MalformedFeed("Missing <feed> root")

        feed = document["feed"]
        # <feed/> or a text-only feed has no children at all
        if not isinstance(feed, dict):
            return Empty()
        if DELETED_ENTRY in feed:
            return DeletedEntry()
        if "entry" in feed:
            return self._parse_entry(feed["entry"])
        return Empty()

    def _parse_entry(self, entry: Any) -> VideoNotification:
        # Several entries in one push: only the first is used
        if isinstance(entry, list):
            if not entry:
                raise MalformedFeed("Empty entry list")
            entry = entry[0]
        if not isinstance(entry, dict):
            raise MalformedFeed("Entry has no fields")

        author = entry.get("author")
        if not isinstance(author, dict):
            raise MalformedFeed("Entry has no author")

        video_id = self._require_text(entry, "yt:videoId")
        # The entry <link> node is ignored, the watch URL is derived from the id
        return VideoNotification(
            video=Video(
                id=video_id,
                title=self._require_text(entry, "title"),
                link=watch_url(video_id),
            ),
            channel=Channel(
                id=self._require_text(entry, "yt:channelId"),
                name=self._require_text(author, "name"),
                link=self._require_text(author, "uri"),
            ),
            published_at=self._parse_date(self._require_text(entry, "published")),
            updated_at=self._parse_date(self._require_text(entry, "updated")),
        )

    def _require_text(self, node: dict, name: str) -> str:
        """Text content of a child element; attributes are tolerated"""
        if name not in node:
            raise MalformedFeed(f"Missing <{name}>")
        value = node[name]
        # <title></title> and <title type="text"/> carry no text
        if value is None:
            return ""
        if isinstance(value, dict):
            value = value.get("#text", "")
        if isinstance(value, dict):
            value = value.get("#text")
        if not isinstance(value, str):
            raise MalformedFeed(f"Missing <{name}>")
        return value.strip()

    def _parse_date(self, value: str) -> int:
        """ISO 8601 date to epoch milliseconds (naive dates are UTC)"""
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as e:
            raise MalformedFeed(f"Invalid date: {value}") from e
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return int(parsed.timestamp() * 1000)


def classify_feed(content: Union[bytes, str], parser: Optional[FeedParser] = None) -> Optional[NotificationEvent]:
    """Classify a feed document; malformed documents are ignored (None)"""
    parser = parser or FeedParser()
    try:
        return parser.parse(content)
    except MalformedFeed as e:
        logger.info(f"Ignoring malformed feed: {e}")
        return None
