"""Shared pytest fixtures for mqtt-connection tests."""

import asyncio
import os
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from mqtt_connection.config.models import ConnectionConfig, ConnectOptions
from mqtt_connection.domain.ports import InboundMessage
from mqtt_connection.errors import ConnectFailure, ConnectionLoss, NotConnectedError


class FakeTransport:
    """In-memory transport recording every call made by the connection core.

    Connect attempts succeed unless ``fail_next_connects`` is non-zero.
    Use `deliver` and `drop` to simulate inbound traffic and connection loss.
    """

    def __init__(self) -> None:
        self.on_message_arrived = None
        self.on_connection_lost = None
        self.is_connected = False
        self.fail_next_connects = 0
        self.connect_calls: list[ConnectOptions] = []
        self.disconnect_calls = 0
        self.subscribed: list[str] = []
        self.unsubscribed: list[str] = []
        self.sent: list[tuple[str, str, int, bool]] = []

    async def connect(self, options: ConnectOptions) -> None:
        self.connect_calls.append(options)
        if self.fail_next_connects:
            self.fail_next_connects -= 1
            raise ConnectFailure(5, "Not authorized")
        self.is_connected = True

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        self.is_connected = False

    async def subscribe(self, pattern: str, qos: int = 0) -> None:
        if not self.is_connected:
            raise NotConnectedError("subscribe")
        self.subscribed.append(pattern)

    async def unsubscribe(self, pattern: str) -> None:
        if not self.is_connected:
            raise NotConnectedError("unsubscribe")
        self.unsubscribed.append(pattern)

    async def send(self, topic: str, payload: str, qos: int = 0, retain: bool = False) -> None:
        if not self.is_connected:
            raise NotConnectedError("publish")
        self.sent.append((topic, payload, qos, retain))

    async def deliver(self, topic: str, payload: bytes) -> None:
        assert self.on_message_arrived is not None
        await self.on_message_arrived(InboundMessage(topic=topic, payload=payload))

    async def drop(self, code: Optional[int] = 7, message: str = "Connection lost") -> None:
        self.is_connected = False
        assert self.on_connection_lost is not None
        await self.on_connection_lost(ConnectionLoss(code, message))


async def _settle(rounds: int = 5) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def settle():
    """Awaitable helper letting fire-and-forget transport tasks run."""
    return _settle


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def config() -> ConnectionConfig:
    """Default broker configuration for testing."""
    return ConnectionConfig(
        host="localhost",
        port=9001,
        username="test",
        password="secret",
        client_id="test-client",
        reconnect_interval=0.01,
    )


@pytest.fixture
def mock_mqtt_client():
    """Mock aiomqtt.Client for unit testing.

    Returns a MagicMock configured with async methods for MQTT operations
    and an empty inbound message stream.
    """
    client = MagicMock()
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=None)
    client.subscribe = AsyncMock()
    client.unsubscribe = AsyncMock()
    client.publish = AsyncMock()
    client.messages = MockMessageStream([])
    return client


class MockMessageStream:
    """Async iterable standing in for ``aiomqtt.Client.messages``.

    Yields the given messages, then raises ``error`` if set, otherwise
    blocks until cancelled like a live stream.
    """

    def __init__(self, messages: list, error: Optional[BaseException] = None) -> None:
        self.messages = messages
        self.error = error

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for message in self.messages:
            yield message
        if self.error is not None:
            raise self.error
        await asyncio.Event().wait()


@pytest.fixture
def mock_message():
    """Factory for aiomqtt-like inbound messages."""

    def factory(topic: str, payload: bytes) -> MagicMock:
        message = MagicMock()
        message.topic.value = topic
        message.payload = payload
        return message

    return factory


@pytest.fixture(autouse=True)
def reset_env(monkeypatch):
    """Clear MQTT-related environment variables before each test."""
    for var in [
        "MQTT_URL",
        "MQTT_CLIENT_ID",
        "MQTT_KEEPALIVE",
        "MQTT_RECONNECT_INTERVAL",
        "MQTT_CLEAN_SESSION",
        "MQTT_WILL_TOPIC",
        "MQTT_WILL_PAYLOAD",
        "MQTT_WILL_RETAIN",
        "MQTT_WILL_QOS",
        "MQTT_SUBSCRIBE",
    ]:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture(scope="session")
def broker_url() -> str:
    """Broker URL for integration tests; they are skipped when unset."""
    url = os.getenv("INTEGRATION_MQTT_URL")
    if not url:
        pytest.skip("INTEGRATION_MQTT_URL not set")
    return url


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as unit test (no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as integration test (requires MQTT broker)"
    )


@pytest.fixture
def message_stream():
    """The `MockMessageStream` class, for tests that script inbound traffic."""
    return MockMessageStream
