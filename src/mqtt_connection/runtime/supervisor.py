"""Connection lifecycle state machine and reconnect driver.

State transitions::

    Disconnected --attempt--> Connecting --success--> Connected
    Connecting --failure--> Disconnected
    Connected --transport reports loss--> Disconnected

Only the supervisor mutates the state. The reconnect driver attempts a
connection whenever the state is ``Disconnected``, waits for the outcome,
then sleeps ``reconnect_interval`` seconds before checking again. There is no
backoff and no retry limit.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum

from mqtt_connection.config.models import ConnectOptions
from mqtt_connection.domain.ports import Transport
from mqtt_connection.domain.registry import SubscriptionRegistry
from mqtt_connection.errors import ConnectionLoss, TransportError

from .events import EventEmitter, LifecycleEventName

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class ConnectionSupervisor:
    """Drive (re)connection and restore transport subscriptions afterwards."""

    def __init__(
        self,
        transport: Transport,
        options: ConnectOptions,
        registry: SubscriptionRegistry,
        events: EventEmitter,
        *,
        reconnect_interval: float = 3.0,
    ) -> None:
        if reconnect_interval <= 0:
            raise ValueError(f"reconnect_interval must be > 0, got {reconnect_interval}")
        self._transport = transport
        self._options = options
        self._registry = registry
        self._events = events
        self._reconnect_interval = reconnect_interval
        self._state = ConnectionState.DISCONNECTED

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def reconnect_interval(self) -> float:
        return self._reconnect_interval

    async def run(self) -> None:
        """Reconnect driver; runs until cancelled."""
        try:
            while True:
                try:
                    await self.tick()
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.error("Reconnect tick failed: %s", e, exc_info=True)
                await asyncio.sleep(self._reconnect_interval)
        except asyncio.CancelledError:
            logger.debug("Reconnect driver cancelled")
            raise

    async def tick(self) -> bool:
        """Attempt a connection if currently disconnected.

        Returns:
            True if an attempt was made
        """
        if self._state is not ConnectionState.DISCONNECTED:
            return False
        await self._attempt()
        return True

    async def _attempt(self) -> None:
        self._state = ConnectionState.CONNECTING
        logger.debug("Connecting to MQTT broker")
        try:
            await self._transport.connect(self._options)
        except TransportError as e:
            self._state = ConnectionState.DISCONNECTED
            logger.warning(
                "MQTT connection failed (code=%s): %s. Retrying in %ss",
                e.error_code,
                e.error_message,
                self._reconnect_interval,
            )
            await self._events.emit(LifecycleEventName.FAILURE, connected=False, error=e)
            return
        except BaseException:
            self._state = ConnectionState.DISCONNECTED
            raise

        self._state = ConnectionState.CONNECTED
        # Snapshot before any await: patterns added from here on are
        # subscribed by the caller because the state already reads Connected.
        patterns = self._registry.all_patterns()
        logger.info("Connected to MQTT broker, restoring %d subscription(s)", len(patterns))
        await self._events.emit(LifecycleEventName.CONNECTED_CHANGED, connected=True)

        for pattern in patterns:
            if not self.connected:
                break
            # Last subscriber left while restoring
            if pattern not in self._registry:
                continue
            try:
                await self._transport.subscribe(pattern)
            except TransportError as e:
                logger.warning("Failed to restore subscription %s: %s", pattern, e)

        if self.connected:
            await self._events.emit(LifecycleEventName.CONNECT, connected=True)

    async def handle_connection_lost(self, error: ConnectionLoss) -> None:
        """Transport callback for an unexpected drop of an established connection."""
        was_connected = self.connected
        self._state = ConnectionState.DISCONNECTED
        logger.warning(
            "MQTT connection lost (code=%s): %s. Reconnecting within %ss",
            error.error_code,
            error.error_message,
            self._reconnect_interval,
        )
        if was_connected:
            await self._events.emit(LifecycleEventName.CONNECTED_CHANGED, connected=False)
        await self._events.emit(LifecycleEventName.CONNECTION_LOSS, connected=False, error=error)

    async def shutdown(self) -> None:
        """Disconnect the transport and settle in ``Disconnected``."""
        was_connected = self.connected
        if self._state is not ConnectionState.DISCONNECTED:
            try:
                await self._transport.disconnect()
            except TransportError as e:
                logger.warning("Error during MQTT disconnect: %s", e)
        self._state = ConnectionState.DISCONNECTED
        if was_connected:
            logger.info("Disconnected from MQTT broker")
            await self._events.emit(LifecycleEventName.CONNECTED_CHANGED, connected=False)


__all__ = ["ConnectionState", "ConnectionSupervisor"]
