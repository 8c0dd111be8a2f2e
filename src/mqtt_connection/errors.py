"""Error taxonomy for transport-level conditions.

None of these are fatal: the supervisor reports them as lifecycle
notifications and keeps retrying on its fixed interval.
"""

from __future__ import annotations

from typing import Optional


class TransportError(Exception):
    """Base class for conditions reported by a transport.

    Attributes:
        error_code: Broker or transport reason code, when one is known
        error_message: Human readable description
    """

    def __init__(self, error_code: Optional[int] = None, error_message: str = "") -> None:
        super().__init__(error_message or self.__class__.__name__)
        self.error_code = error_code
        self.error_message = error_message

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(error_code={self.error_code!r}, "
            f"error_message={self.error_message!r})"
        )


class ConnectFailure(TransportError):
    """The broker rejected the connection or it could not be established."""


class ConnectionLoss(TransportError):
    """An established connection dropped."""


class NotConnectedError(TransportError):
    """A transport operation was issued without a live connection."""

    def __init__(self, operation: str) -> None:
        super().__init__(None, f"Cannot {operation}: not connected to MQTT broker")
        self.operation = operation


__all__ = ["TransportError", "ConnectFailure", "ConnectionLoss", "NotConnectedError"]
