"""Adapter implementations bridging the connection core to aiomqtt."""

from .mqtt_asyncio import AiomqttTransport
from .mqtt_client import MQTTConnection

__all__ = ["AiomqttTransport", "MQTTConnection"]
