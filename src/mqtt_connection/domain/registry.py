"""Subscription bookkeeping: topic pattern -> registered callbacks."""

from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass
from typing import Any, Callable

from .topics import topic_matches

MessageCallback = Callable[[str], Any]
"""Callback receiving the message payload as text.

May return an awaitable, which the router awaits before moving on.
"""


@dataclass(frozen=True, slots=True)
class Subscription:
    """Handle returned by subscribe; surrender it to unsubscribe."""

    id: int
    pattern: str


class SubscriptionRegistry:
    """Own the pattern -> {subscription id: callback} mapping.

    A pattern key exists only while at least one live subscription references
    it. ``add`` and ``remove`` report when the first subscriber arrives or the
    last one leaves so the caller knows when the pattern has to be
    (un)registered with the transport.

    Access is serialized with a re-entrant lock; readers get snapshots so
    callbacks never run while the lock is held.
    """

    def __init__(self) -> None:
        self._entries: dict[str, dict[int, MessageCallback]] = {}
        self._ids = itertools.count(1)
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, pattern: object) -> bool:
        with self._lock:
            return pattern in self._entries

    def add(self, pattern: str, callback: MessageCallback) -> tuple[Subscription, bool]:
        """Register ``callback`` under ``pattern``.

        Returns:
            The new subscription handle and whether it is the first one for
            ``pattern``

        Raises:
            TypeError: If ``callback`` is not callable
        """
        if not callable(callback):
            raise TypeError(f"callback must be callable, got {type(callback).__name__}")

        with self._lock:
            subscription = Subscription(id=next(self._ids), pattern=pattern)
            callbacks = self._entries.get(pattern)
            first = callbacks is None
            if callbacks is None:
                callbacks = self._entries[pattern] = {}
            callbacks[subscription.id] = callback
        return subscription, first

    def remove(self, subscription: Subscription) -> bool:
        """Drop the callback behind ``subscription``.

        Unknown or already removed handles are ignored.

        Returns:
            True if this removed the last callback and with it the pattern
        """
        with self._lock:
            callbacks = self._entries.get(subscription.pattern)
            if callbacks is None or callbacks.pop(subscription.id, None) is None:
                return False
            if callbacks:
                return False
            del self._entries[subscription.pattern]
            return True

    def all_patterns(self) -> list[str]:
        """Patterns with at least one live subscription, in insertion order."""
        with self._lock:
            return list(self._entries)

    def callbacks_matching(self, topic: str) -> list[MessageCallback]:
        """Every callback whose pattern matches ``topic``.

        Ordered by pattern insertion, then by subscription order within a
        pattern. A callback registered under two matching patterns appears
        twice.
        """
        with self._lock:
            return [
                callback
                for pattern, callbacks in self._entries.items()
                if topic_matches(topic, pattern)
                for callback in callbacks.values()
            ]


__all__ = ["MessageCallback", "Subscription", "SubscriptionRegistry"]
