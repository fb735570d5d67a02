"""YouTube push notifier: PubSubHubbub subscriptions forwarded to Discord"""

__version__ = "0.1.0"
