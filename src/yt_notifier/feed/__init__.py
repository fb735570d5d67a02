from .parser import FeedParser, classify_feed, watch_url

__all__ = ["FeedParser", "classify_feed", "watch_url"]
