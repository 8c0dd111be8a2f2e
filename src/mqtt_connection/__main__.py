from __future__ import annotations

import asyncio
import logging
import os
import signal

from mqtt_connection.adapters.mqtt_client import MQTTConnection
from mqtt_connection.config.models import ConnectionConfig
from mqtt_connection.runtime.events import LifecycleEvent, LifecycleEventName
from mqtt_connection.runtime.logging import configure_logging

logger = logging.getLogger("mqtt_connection.monitor")


def _subscribe_patterns() -> list[str]:
    raw = os.getenv("MQTT_SUBSCRIBE", "#")
    return [pattern.strip() for pattern in raw.split(",") if pattern.strip()]


async def main() -> None:
    configure_logging(os.getenv("LOG_LEVEL", "INFO"), name="mqtt_connection")
    config = ConnectionConfig.from_env()
    logger.info("Starting MQTT monitor", extra={"broker": str(config)})

    connection = MQTTConnection(config)

    def log_lifecycle(event: LifecycleEvent) -> None:
        logger.info(
            "Lifecycle event: %s",
            event.name.value,
            extra={"connected": event.connected, "error_code": event.error_code, "error": event.error_message},
        )

    for name in LifecycleEventName:
        connection.on(name, log_lifecycle)

    for pattern in _subscribe_patterns():

        def log_message(payload: str, pattern: str = pattern) -> None:
            logger.info("Message received", extra={"pattern": pattern, "payload": payload})

        connection.subscribe(pattern, log_message)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    async with connection:
        await stop_event.wait()
        logger.info("Shutdown requested")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
