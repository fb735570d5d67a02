from dataclasses import dataclass
from typing import Union


@dataclass
class Subscription:
    """Channel registered with the hub"""
    channel_id: str
    last_subscribed_at: int  # epoch milliseconds

    def to_dict(self) -> dict:
        return {"channelId": self.channel_id, "lastSubscribedAt": self.last_subscribed_at}


@dataclass
class Video:
    id: str
    title: str
    link: str


@dataclass
class Channel:
    id: str
    name: str
    link: str


@dataclass
class DeletedEntry:
    """Feed announced a removed video"""


@dataclass
class Empty:
    """Feed without entry or deletion marker"""


@dataclass
class VideoNotification:
    """New or updated video"""
    video: Video
    channel: Channel
    published_at: int  # epoch milliseconds
    updated_at: int


NotificationEvent = Union[DeletedEntry, VideoNotification, Empty]
