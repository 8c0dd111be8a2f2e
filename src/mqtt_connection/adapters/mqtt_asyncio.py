from __future__ import annotations

import asyncio
import logging
import ssl
from typing import Optional

import aiomqtt

from mqtt_connection.config.models import ConnectOptions, LastWill
from mqtt_connection.domain.ports import (
    ConnectionLostHandler,
    InboundMessage,
    MessageArrivedHandler,
    Transport,
)
from mqtt_connection.errors import ConnectFailure, ConnectionLoss, NotConnectedError

logger = logging.getLogger(__name__)


def _error_code(exc: aiomqtt.MqttError) -> Optional[int]:
    rc = getattr(exc, "rc", None)
    if rc is None:
        return None
    try:
        return int(getattr(rc, "value", rc))
    except (TypeError, ValueError):
        return None


def _build_will(will: Optional[LastWill]) -> Optional[aiomqtt.Will]:
    if will is None:
        return None
    return aiomqtt.Will(topic=will.topic, payload=will.payload, qos=will.qos, retain=will.retain)


class AiomqttTransport(Transport):
    """Transport implementation backed by an aiomqtt client.

    A fresh ``aiomqtt.Client`` is created for every connect attempt. While
    connected, a reader task forwards inbound messages to
    ``on_message_arrived`` and reports a dropped stream through
    ``on_connection_lost``.
    """

    def __init__(
        self,
        hostname: str,
        port: int,
        client_id: str,
        *,
        websockets: bool = True,
        websocket_path: str = "/mqtt",
    ) -> None:
        self._hostname = hostname
        self._port = port
        self._client_id = client_id
        self._websockets = websockets
        self._websocket_path = websocket_path

        self.on_message_arrived: Optional[MessageArrivedHandler] = None
        self.on_connection_lost: Optional[ConnectionLostHandler] = None

        self._client: Optional[aiomqtt.Client] = None
        self._reader_task: Optional[asyncio.Task[None]] = None

    @property
    def client(self) -> Optional[aiomqtt.Client]:
        """Underlying aiomqtt client; None when not connected."""
        return self._client

    def _create_client(self, options: ConnectOptions) -> aiomqtt.Client:
        return aiomqtt.Client(
            hostname=self._hostname,
            port=self._port,
            identifier=self._client_id,
            username=options.username or None,
            password=options.password or None,
            keepalive=options.keep_alive_interval,
            clean_session=options.clean_session,
            will=_build_will(options.will),
            transport="websockets" if self._websockets else "tcp",
            websocket_path=self._websocket_path if self._websockets else None,
            tls_context=ssl.create_default_context() if options.use_ssl else None,
        )

    async def connect(self, options: ConnectOptions) -> None:
        """Connect to the broker and start forwarding messages.

        Raises:
            ConnectFailure: If the broker is unreachable or refuses the connection
        """
        if self._client is not None:
            logger.debug("Already connected, skipping connect()")
            return

        client = self._create_client(options)
        try:
            await client.__aenter__()
        except aiomqtt.MqttError as e:
            raise ConnectFailure(_error_code(e), str(e)) from e

        self._client = client
        self._reader_task = asyncio.create_task(self._read_messages(client))
        logger.info(
            "Connected to MQTT broker at %s:%d (client_id=%s)",
            self._hostname,
            self._port,
            self._client_id,
        )

    async def disconnect(self) -> None:
        """Close the connection without reporting a loss. No-op when not connected."""
        client, self._client = self._client, None
        reader, self._reader_task = self._reader_task, None

        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass

        if client is not None:
            await self._release(client)
            logger.info("Disconnected from MQTT broker")

    async def subscribe(self, pattern: str, qos: int = 0) -> None:
        client = self._require_client("subscribe")
        try:
            await client.subscribe(pattern, qos=qos)
        except aiomqtt.MqttError as e:
            raise ConnectionLoss(_error_code(e), str(e)) from e
        logger.debug("Subscribed to pattern: %s (qos=%d)", pattern, qos)

    async def unsubscribe(self, pattern: str) -> None:
        client = self._require_client("unsubscribe")
        try:
            await client.unsubscribe(pattern)
        except aiomqtt.MqttError as e:
            raise ConnectionLoss(_error_code(e), str(e)) from e
        logger.debug("Unsubscribed from pattern: %s", pattern)

    async def send(self, topic: str, payload: str, qos: int = 0, retain: bool = False) -> None:
        client = self._require_client("publish")
        try:
            await client.publish(topic, payload, qos=qos, retain=retain)
        except aiomqtt.MqttError as e:
            raise ConnectionLoss(_error_code(e), str(e)) from e
        logger.debug("Published message: topic=%s qos=%d retain=%s", topic, qos, retain)

    def _require_client(self, operation: str) -> aiomqtt.Client:
        if self._client is None:
            raise NotConnectedError(operation)
        return self._client

    async def _read_messages(self, client: aiomqtt.Client) -> None:
        try:
            async for message in client.messages:
                if self.on_message_arrived is None:
                    continue
                inbound = InboundMessage(topic=message.topic.value, payload=message.payload)
                try:
                    await self.on_message_arrived(inbound)
                except Exception as e:
                    logger.error("Message handler failed for topic %s: %s", inbound.topic, e, exc_info=True)
        except asyncio.CancelledError:
            logger.debug("Message reader task cancelled")
            raise
        except aiomqtt.MqttError as e:
            if self._client is not client:
                return
            self._client = None
            self._reader_task = None
            await self._release(client)
            if self.on_connection_lost is not None:
                await self.on_connection_lost(ConnectionLoss(_error_code(e), str(e)))

    @staticmethod
    async def _release(client: aiomqtt.Client) -> None:
        try:
            await client.__aexit__(None, None, None)
        except aiomqtt.MqttError as e:
            logger.debug("Ignoring error while closing MQTT client: %s", e)


__all__ = ["AiomqttTransport"]
