"""Managed MQTT connection with multiplexed, wildcard-aware subscriptions.

`MQTTConnection` keeps a single logical connection to a broker, reconnects
on a fixed interval whenever it is down, and lets any number of independent
consumers subscribe to topic patterns. Each pattern is registered with the
broker once, however many consumers share it, and is restored after every
reconnect.

Example:
    ```python
    config = ConnectionConfig.from_url("ws://localhost:9001/mqtt")

    async with MQTTConnection(config) as connection:
        sub = connection.subscribe("sensors/+/temperature", print)
        connection.publish("sensors/kitchen/temperature", {"celsius": 21.5})
        ...
        connection.unsubscribe(sub)
    ```
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
from typing import Any, Coroutine, Optional, Union

import orjson
from pydantic import BaseModel

from mqtt_connection.config.models import (
    ConnectionConfig,
    ConnectOptions,
    PublishOptions,
    make_client_id,
)
from mqtt_connection.domain.ports import Transport
from mqtt_connection.domain.registry import MessageCallback, Subscription, SubscriptionRegistry
from mqtt_connection.runtime.events import EventEmitter, LifecycleEventName, LifecycleListener
from mqtt_connection.runtime.router import MessageRouter
from mqtt_connection.runtime.supervisor import ConnectionState, ConnectionSupervisor

from .mqtt_asyncio import AiomqttTransport

logger = logging.getLogger(__name__)

_Pending = Union["asyncio.Task[Any]", "concurrent.futures.Future[Any]"]


def serialize_payload(payload: Any) -> str:
    """Text form of a publish payload; strings pass through untouched.

    Raises:
        TypeError: If the payload cannot be serialized to JSON
    """
    if isinstance(payload, str):
        return payload
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload).decode("utf-8", errors="replace")
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(mode="json")
    return orjson.dumps(payload, option=orjson.OPT_NON_STR_KEYS).decode()


class MQTTConnection:
    """Supervised broker connection shared by many subscribers.

    Features:
        - Reconnects every ``reconnect_interval`` seconds while disconnected
        - Restores every live subscription pattern after each reconnect
        - One broker subscription per pattern, any number of callbacks
        - Wildcard (+ and #) fan-out with per-callback error isolation
        - Lifecycle notifications: connect, failure, connection-loss, ready,
          connected-changed

    ``subscribe``, ``unsubscribe`` and ``publish`` never block: the broker
    round trip they trigger runs as a background task on the connection's
    event loop.
    """

    def __init__(self, config: ConnectionConfig, *, transport: Optional[Transport] = None) -> None:
        self._config = config
        self._client_id = make_client_id(config.client_id)
        self._options = ConnectOptions.from_config(config)

        self._transport: Transport = transport or AiomqttTransport(
            config.host,
            config.port,
            self._client_id,
            websockets=config.use_websockets,
            websocket_path=config.path,
        )
        self._registry = SubscriptionRegistry()
        self._events = EventEmitter()
        self._router = MessageRouter(self._registry)
        self._supervisor = ConnectionSupervisor(
            self._transport,
            self._options,
            self._registry,
            self._events,
            reconnect_interval=config.reconnect_interval,
        )
        self._transport.on_message_arrived = self._router.dispatch
        self._transport.on_connection_lost = self._supervisor.handle_connection_lost

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._driver_task: Optional[asyncio.Task[None]] = None
        self._pending: set[_Pending] = set()

    @property
    def client_id(self) -> str:
        """Client id presented to the broker (base id plus random suffix)."""
        return self._client_id

    @property
    def options(self) -> ConnectOptions:
        return self._options

    @property
    def state(self) -> ConnectionState:
        return self._supervisor.state

    @property
    def connected(self) -> bool:
        """Check if currently connected to the broker."""
        return self._supervisor.connected

    @property
    def patterns(self) -> list[str]:
        """Patterns with at least one live subscription."""
        return self._registry.all_patterns()

    async def __aenter__(self) -> MQTTConnection:
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.stop()

    # --- Lifecycle ---

    async def start(self) -> None:
        """Launch the reconnect driver and emit ``ready``. Idempotent."""
        if self._driver_task is not None:
            return
        self._loop = asyncio.get_running_loop()
        self._driver_task = asyncio.create_task(self._supervisor.run())
        logger.info("MQTT connection started (client_id=%s)", self._client_id)
        await self._events.emit(LifecycleEventName.READY, connected=self.connected)

    async def stop(self) -> None:
        """Stop reconnecting, drain transport tasks and disconnect. Idempotent."""
        task, self._driver_task = self._driver_task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        tasks = [p for p in self._pending if isinstance(p, asyncio.Task)]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        await self._supervisor.shutdown()
        logger.info("MQTT connection stopped")

    def on(self, event: Union[LifecycleEventName, str], listener: LifecycleListener) -> None:
        """Register a lifecycle listener (e.g. ``"connection-loss"``)."""
        self._events.on(event, listener)

    def off(self, event: Union[LifecycleEventName, str], listener: LifecycleListener) -> None:
        self._events.off(event, listener)

    # --- Subscriptions ---

    def subscribe(self, pattern: str, callback: MessageCallback) -> Subscription:
        """Deliver messages matching ``pattern`` to ``callback``.

        The pattern is registered with the broker when it gains its first
        subscriber, immediately if connected and otherwise on the next
        successful connect.

        Args:
            pattern: Topic pattern (supports wildcards: + for single level, # for multi-level)
            callback: Called with each matching payload as text; may be async

        Raises:
            TypeError: If ``callback`` is not callable
        """
        subscription, first = self._registry.add(pattern, callback)
        logger.debug("Subscription %d added for pattern %s", subscription.id, pattern)
        if first and self.connected:
            self._spawn(self._transport.subscribe(pattern))
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a subscription; unknown or repeated handles are ignored."""
        if not self._registry.remove(subscription):
            return
        logger.debug("Last subscription removed for pattern %s", subscription.pattern)
        if self.connected:
            self._spawn(self._transport.unsubscribe(subscription.pattern))

    # --- Publishing ---

    def publish(self, topic: str, payload: Any, *, qos: Any = 0, retain: Any = False) -> bool:
        """Publish ``payload`` to ``topic`` if connected.

        Non-string payloads are serialized to JSON text first.

        Args:
            topic: Topic to publish to
            payload: String, bytes, pydantic model or JSON-serializable value
            qos: QoS level; invalid or negative values fall back to 0
            retain: Whether the broker should retain the message

        Returns:
            True if handed to the transport, False when disconnected
        """
        if not self.connected:
            logger.debug("Publish to %s rejected: not connected", topic)
            return False

        options = PublishOptions(qos=qos, retain=retain)
        text = serialize_payload(payload)
        self._spawn(self._transport.send(topic, text, options.qos, options.retain))
        return True

    # --- Background transport work ---

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        try:
            running: Optional[asyncio.AbstractEventLoop] = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is not None and (self._loop is None or running is self._loop):
            pending: _Pending = running.create_task(coro)
        elif self._loop is not None and not self._loop.is_closed():
            pending = asyncio.run_coroutine_threadsafe(coro, self._loop)
        else:
            coro.close()
            logger.warning("Dropping transport call: no event loop available")
            return

        self._pending.add(pending)
        pending.add_done_callback(self._on_pending_done)

    def _on_pending_done(self, pending: _Pending) -> None:
        self._pending.discard(pending)
        if pending.cancelled():
            return
        exc = pending.exception()
        if exc is not None:
            logger.warning("Background transport call failed: %s", exc, exc_info=exc)


__all__ = ["MQTTConnection", "serialize_payload"]
