"""Connection configuration and the immutable per-connection options.

`ConnectionConfig` is what the host application supplies (directly, from a
broker URL, or from the environment). `ConnectOptions` is the snapshot
computed from it once at startup and reused for every (re)connect attempt.
"""

from __future__ import annotations

import os
import random
from typing import Any, Literal, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

BrokerProtocol = Literal["ws", "wss", "mqtt", "mqtts"]

DEFAULT_PORTS: dict[str, int] = {"ws": 80, "wss": 443, "mqtt": 1883, "mqtts": 8883}
SECURE_PROTOCOLS = frozenset({"wss", "mqtts"})
WEBSOCKET_PROTOCOLS = frozenset({"ws", "wss"})


def make_client_id(base: str) -> str:
    """Suffix `base` with a random 8 hex digit disambiguator.

    >>> make_client_id("dashboard")  # doctest: +SKIP
    'dashboard_0c93fa1e'
    """
    return f"{base}_{random.getrandbits(32):08x}"


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class ConnectionConfig(BaseModel):
    """Broker endpoint, identity and retry settings.

    Attributes:
        host: Broker hostname or IP address
        port: Broker port
        protocol: ``ws``/``wss`` (websockets) or ``mqtt``/``mqtts`` (TCP)
        path: Websocket endpoint path, ignored for TCP
        username: Authentication username (empty disables authentication)
        password: Authentication password (redacted in logs)
        client_id: Base client id, suffixed per connection instance
        keep_alive_interval: MQTT keepalive in seconds
        reconnect_interval: Seconds between connection checks
        clean_session: Request a clean session from the broker
        will_topic: Last-will topic; no will is registered when unset
        will_payload: Last-will payload
        will_retain: Retain flag of the last-will message
        will_qos: QoS of the last-will message
    """

    model_config = ConfigDict(frozen=True)

    host: str
    port: int = Field(ge=1, le=65535)
    protocol: BrokerProtocol = "ws"
    path: str = "/mqtt"
    username: str = ""
    password: str = ""
    client_id: str = "mqtt-connection"
    keep_alive_interval: int = Field(default=10, ge=0)
    reconnect_interval: float = Field(default=3.0, gt=0)
    clean_session: bool = True
    will_topic: Optional[str] = None
    will_payload: Optional[str] = None
    will_retain: bool = False
    will_qos: int = Field(default=0, ge=0, le=2)

    @field_validator("host")
    @classmethod
    def validate_host(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("host must not be empty")
        return v

    def __repr__(self) -> str:
        password = "***REDACTED***" if self.password else ""
        return (
            f"ConnectionConfig(host={self.host!r}, port={self.port}, protocol={self.protocol!r}, "
            f"username={self.username!r}, password={password!r}, client_id={self.client_id!r})"
        )

    def __str__(self) -> str:
        return self.__repr__()

    @property
    def use_ssl(self) -> bool:
        return self.protocol in SECURE_PROTOCOLS

    @property
    def use_websockets(self) -> bool:
        return self.protocol in WEBSOCKET_PROTOCOLS

    @classmethod
    def from_url(cls, url: str, **overrides: Any) -> ConnectionConfig:
        """Build a config from ``scheme://[user:pass@]host[:port][/path]``.

        Raises:
            ValueError: If the scheme is not one of ws, wss, mqtt, mqtts

        Examples:
            >>> ConnectionConfig.from_url("wss://user:pw@broker.example.com/ws").port
            443
            >>> ConnectionConfig.from_url("mqtt://localhost").port
            1883
        """
        parsed = urlparse(url)
        if parsed.scheme not in DEFAULT_PORTS:
            raise ValueError(
                f"Invalid broker URL scheme: {parsed.scheme!r}. "
                f"Expected one of {', '.join(sorted(DEFAULT_PORTS))}."
            )

        fields: dict[str, Any] = {
            "host": parsed.hostname or "localhost",
            "port": parsed.port or DEFAULT_PORTS[parsed.scheme],
            "protocol": parsed.scheme,
            "username": parsed.username or "",
            "password": parsed.password or "",
        }
        if parsed.path:
            fields["path"] = parsed.path
        fields.update(overrides)
        return cls(**fields)

    @classmethod
    def from_env(cls) -> ConnectionConfig:
        """Load configuration from environment variables.

        Required environment variables:
            MQTT_URL: Broker URL (see `from_url`)

        Optional environment variables:
            MQTT_CLIENT_ID: Base client id (default: mqtt-connection)
            MQTT_KEEPALIVE: Keepalive interval in seconds (default: 10)
            MQTT_RECONNECT_INTERVAL: Seconds between connection checks (default: 3)
            MQTT_CLEAN_SESSION: Request a clean session (default: true)
            MQTT_WILL_TOPIC: Last-will topic (default: none)
            MQTT_WILL_PAYLOAD: Last-will payload (default: empty)
            MQTT_WILL_RETAIN: Retain the last-will message (default: false)
            MQTT_WILL_QOS: QoS of the last-will message (default: 0)

        Raises:
            KeyError: If MQTT_URL is missing
            ValueError: If validation fails
        """
        return cls.from_url(
            os.environ["MQTT_URL"],
            client_id=os.getenv("MQTT_CLIENT_ID", "mqtt-connection"),
            keep_alive_interval=int(os.getenv("MQTT_KEEPALIVE", "10")),
            reconnect_interval=float(os.getenv("MQTT_RECONNECT_INTERVAL", "3.0")),
            clean_session=_env_flag("MQTT_CLEAN_SESSION", True),
            will_topic=os.getenv("MQTT_WILL_TOPIC") or None,
            will_payload=os.getenv("MQTT_WILL_PAYLOAD"),
            will_retain=_env_flag("MQTT_WILL_RETAIN", False),
            will_qos=int(os.getenv("MQTT_WILL_QOS", "0")),
        )


class LastWill(BaseModel):
    """Message the broker publishes for us if the connection drops."""

    model_config = ConfigDict(frozen=True)

    topic: str
    payload: str = ""
    retain: bool = False
    qos: int = 0


class ConnectOptions(BaseModel):
    """Immutable snapshot handed to the transport on every connect attempt."""

    model_config = ConfigDict(frozen=True)

    username: str = ""
    password: str = ""
    keep_alive_interval: int = 10
    clean_session: bool = True
    use_ssl: bool = False
    will: Optional[LastWill] = None

    def __repr__(self) -> str:
        password = "***REDACTED***" if self.password else ""
        return (
            f"ConnectOptions(username={self.username!r}, password={password!r}, "
            f"keep_alive_interval={self.keep_alive_interval}, clean_session={self.clean_session}, "
            f"use_ssl={self.use_ssl}, will={self.will!r})"
        )

    @classmethod
    def from_config(cls, config: ConnectionConfig) -> ConnectOptions:
        will = None
        if config.will_topic is not None:
            will = LastWill(
                topic=config.will_topic,
                payload=config.will_payload or "",
                retain=config.will_retain,
                qos=config.will_qos,
            )
        return cls(
            username=config.username,
            password=config.password,
            keep_alive_interval=config.keep_alive_interval,
            clean_session=config.clean_session,
            use_ssl=config.use_ssl,
            will=will,
        )


class PublishOptions(BaseModel):
    """Per-publish options with lenient coercion.

    ``qos`` falls back to 0 for anything that is not a non-negative integer
    (numeric strings and floats are truncated); ``retain`` follows truthiness.
    """

    qos: int = 0
    retain: bool = False

    @field_validator("qos", mode="before")
    @classmethod
    def coerce_qos(cls, v: Any) -> int:
        if isinstance(v, bool) or v is None:
            return 0
        try:
            qos = int(v.strip()) if isinstance(v, str) else int(v)
        except (TypeError, ValueError, OverflowError):
            return 0
        return qos if qos >= 0 else 0

    @field_validator("retain", mode="before")
    @classmethod
    def coerce_retain(cls, v: Any) -> bool:
        return bool(v)


__all__ = [
    "ConnectionConfig",
    "ConnectOptions",
    "LastWill",
    "PublishOptions",
    "make_client_id",
]
