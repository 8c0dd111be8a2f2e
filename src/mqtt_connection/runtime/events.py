"""Lifecycle notifications: connect, failure, connection-loss, ready, connected-changed."""

from __future__ import annotations

import logging
from collections import defaultdict
from enum import Enum
from typing import Any, Callable, Optional, Union

from pydantic import BaseModel

from mqtt_connection.errors import TransportError

from .callbacks import invoke_isolated

logger = logging.getLogger(__name__)


class LifecycleEventName(str, Enum):
    CONNECT = "connect"
    FAILURE = "failure"
    CONNECTION_LOSS = "connection-loss"
    READY = "ready"
    CONNECTED_CHANGED = "connected-changed"


class LifecycleEvent(BaseModel):
    """Payload handed to lifecycle listeners.

    Attributes:
        name: Which lifecycle event fired
        connected: Connection state at the time of the event
        error_code: Reason code for failure / connection-loss events
        error_message: Description for failure / connection-loss events
    """

    name: LifecycleEventName
    connected: bool
    error_code: Optional[int] = None
    error_message: Optional[str] = None


LifecycleListener = Callable[[LifecycleEvent], Any]


class EventEmitter:
    """Fan lifecycle events out to registered listeners, in registration order."""

    def __init__(self) -> None:
        self._listeners: defaultdict[LifecycleEventName, list[LifecycleListener]] = defaultdict(list)

    def on(self, name: Union[LifecycleEventName, str], listener: LifecycleListener) -> None:
        if not callable(listener):
            raise TypeError(f"listener must be callable, got {type(listener).__name__}")
        self._listeners[LifecycleEventName(name)].append(listener)

    def off(self, name: Union[LifecycleEventName, str], listener: LifecycleListener) -> None:
        listeners = self._listeners.get(LifecycleEventName(name), [])
        if listener in listeners:
            listeners.remove(listener)

    async def emit(
        self,
        name: LifecycleEventName,
        *,
        connected: bool,
        error: Optional[TransportError] = None,
    ) -> LifecycleEvent:
        event = LifecycleEvent(
            name=name,
            connected=connected,
            error_code=error.error_code if error is not None else None,
            error_message=error.error_message if error is not None else None,
        )
        logger.debug("Emitting lifecycle event %s", name.value, extra={"event": name.value})
        for listener in list(self._listeners.get(name, ())):
            await invoke_isolated(listener, event, context=f"{name.value} listener")
        return event


__all__ = ["EventEmitter", "LifecycleEvent", "LifecycleEventName", "LifecycleListener"]
