from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Optional, Protocol, Union

if TYPE_CHECKING:  # pragma: no cover
    from mqtt_connection.config.models import ConnectOptions
    from mqtt_connection.errors import ConnectionLoss


@dataclass(frozen=True, slots=True)
class InboundMessage:
    """Message delivered by the transport."""

    topic: str
    payload: Union[bytes, bytearray, str, int, float, None]


MessageArrivedHandler = Callable[[InboundMessage], Awaitable[object]]
ConnectionLostHandler = Callable[["ConnectionLoss"], Awaitable[object]]


class Transport(Protocol):
    """Broker client primitives consumed by the connection core.

    ``connect`` raises `ConnectFailure` when the broker cannot be reached or
    rejects us. Once connected, the transport reports inbound traffic through
    ``on_message_arrived`` and an unexpected drop through
    ``on_connection_lost``.
    """

    on_message_arrived: Optional[MessageArrivedHandler]
    on_connection_lost: Optional[ConnectionLostHandler]

    async def connect(self, options: "ConnectOptions") -> None: ...

    async def disconnect(self) -> None: ...

    async def subscribe(self, pattern: str, qos: int = 0) -> None: ...

    async def unsubscribe(self, pattern: str) -> None: ...

    async def send(self, topic: str, payload: str, qos: int = 0, retain: bool = False) -> None: ...
