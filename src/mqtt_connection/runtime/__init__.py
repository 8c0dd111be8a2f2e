"""Runtime pieces: lifecycle supervision, message routing, events, logging."""

from .events import EventEmitter, LifecycleEvent, LifecycleEventName
from .router import MessageRouter
from .supervisor import ConnectionState, ConnectionSupervisor

__all__ = [
    "ConnectionState",
    "ConnectionSupervisor",
    "EventEmitter",
    "LifecycleEvent",
    "LifecycleEventName",
    "MessageRouter",
]
