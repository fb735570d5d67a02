class NotifierError(Exception):
    """Base class for notifier errors"""


class SubscriptionError(NotifierError):
    """Hub refused a subscription change"""

    action = "change subscription"

    def __init__(self, channel_id: str):
        self.channel_id = channel_id
        super().__init__(f"Failed to {self.action} for {channel_id}")


class SubscribeFailed(SubscriptionError):
    action = "subscribe"


class UnsubscribeFailed(SubscriptionError):
    action = "unsubscribe"


class InvalidSignature(NotifierError):
    """Push notification signature missing or wrong"""

    def __init__(self, message: str = "Invalid signature"):
        super().__init__(message)


class MalformedFeed(NotifierError):
    """Feed document failed structural validation"""
