"""Transport-independent core: topic matching and subscription bookkeeping."""

from .ports import InboundMessage, Transport
from .registry import MessageCallback, Subscription, SubscriptionRegistry
from .topics import topic_matches

__all__ = [
    "InboundMessage",
    "MessageCallback",
    "Subscription",
    "SubscriptionRegistry",
    "Transport",
    "topic_matches",
]
