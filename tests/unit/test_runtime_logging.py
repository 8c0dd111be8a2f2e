from __future__ import annotations

import io
import json
import logging

import pytest

from mqtt_connection.runtime.logging import JsonFormatter, configure_logging


def test_json_formatter_includes_extra_fields() -> None:
    formatter = JsonFormatter()
    record = logging.LogRecord(
        name="mqtt_connection",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg="connected to %s",
        args=("broker",),
        exc_info=None,
    )
    record.topic = "sensors/+/temp"
    payload = json.loads(formatter.format(record))

    assert payload["message"] == "connected to broker"
    assert payload["topic"] == "sensors/+/temp"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "mqtt_connection"
    assert "lineno" not in payload


def test_json_formatter_renders_bytes_and_exceptions() -> None:
    formatter = JsonFormatter()
    try:
        raise ValueError("boom")
    except ValueError:
        import sys

        exc_info = sys.exc_info()
    record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", (), exc_info)
    record.payload = b"raw"

    payload = json.loads(formatter.format(record))

    assert payload["payload"] == "raw"
    assert "ValueError: boom" in payload["exc_info"]


def test_configure_logging_uses_json(monkeypatch: pytest.MonkeyPatch) -> None:
    stream = io.StringIO()

    class CapturingHandler(logging.StreamHandler):
        def __init__(self) -> None:  # pragma: no cover - delegated to base
            super().__init__(stream)

    monkeypatch.setattr("logging.StreamHandler", CapturingHandler)

    logger = configure_logging("DEBUG", name="test-connection")
    logger.info("structured", extra={"pattern": "a/#"})

    stream.seek(0)
    payload = json.loads(stream.readline())
    assert payload["message"] == "structured"
    assert payload["pattern"] == "a/#"
    assert payload["level"] == "INFO"
