"""Client-side MQTT connection manager.

Keeps one supervised broker connection alive and multiplexes any number of
wildcard topic subscriptions over it.
"""

from .adapters.mqtt_client import MQTTConnection
from .config.models import ConnectionConfig, ConnectOptions, LastWill
from .domain.registry import Subscription
from .domain.topics import topic_matches
from .errors import ConnectFailure, ConnectionLoss, NotConnectedError, TransportError
from .runtime.events import LifecycleEvent, LifecycleEventName
from .runtime.supervisor import ConnectionState

__version__ = "0.1.0"

__all__ = [
    "ConnectFailure",
    "ConnectOptions",
    "ConnectionConfig",
    "ConnectionLoss",
    "ConnectionState",
    "LastWill",
    "LifecycleEvent",
    "LifecycleEventName",
    "MQTTConnection",
    "NotConnectedError",
    "Subscription",
    "TransportError",
    "topic_matches",
]
