from __future__ import annotations

import logging
from typing import Any

from mqtt_connection.domain.ports import InboundMessage
from mqtt_connection.domain.registry import SubscriptionRegistry

from .callbacks import invoke_isolated

logger = logging.getLogger(__name__)


def payload_text(payload: Any) -> str:
    """Render an inbound payload as text (invalid UTF-8 is replaced)."""
    if payload is None:
        return ""
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload).decode("utf-8", errors="replace")
    return str(payload)


class MessageRouter:
    """Dispatch inbound messages to every callback whose pattern matches.

    Callbacks run sequentially in registry order. Delivery is best-effort:
    no retry, no queuing; a failing callback is logged and skipped.
    """

    def __init__(self, registry: SubscriptionRegistry) -> None:
        self._registry = registry

    async def dispatch(self, message: InboundMessage) -> int:
        """Deliver ``message`` and return the number of callbacks that succeeded."""
        callbacks = self._registry.callbacks_matching(message.topic)
        if not callbacks:
            logger.debug("No subscription matches topic: %s", message.topic)
            return 0

        text = payload_text(message.payload)
        delivered = 0
        for callback in callbacks:
            if await invoke_isolated(callback, text, context=f"message ({message.topic})"):
                delivered += 1

        logger.debug(
            "Dispatched message on %s to %d/%d callbacks",
            message.topic,
            delivered,
            len(callbacks),
            extra={"topic": message.topic},
        )
        return delivered


__all__ = ["MessageRouter", "payload_text"]
