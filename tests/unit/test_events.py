"""Unit tests for lifecycle EventEmitter."""

import pytest

from mqtt_connection.errors import ConnectFailure
from mqtt_connection.runtime.events import EventEmitter, LifecycleEventName


@pytest.mark.asyncio
class TestEmit:
    async def test_listeners_receive_event(self):
        emitter = EventEmitter()
        seen = []
        emitter.on("failure", seen.append)

        await emitter.emit(
            LifecycleEventName.FAILURE,
            connected=False,
            error=ConnectFailure(4, "Bad user name or password"),
        )

        assert len(seen) == 1
        assert seen[0].name is LifecycleEventName.FAILURE
        assert seen[0].error_code == 4
        assert seen[0].error_message == "Bad user name or password"

    async def test_only_named_listeners_called(self):
        emitter = EventEmitter()
        seen = []
        emitter.on(LifecycleEventName.CONNECT, lambda e: seen.append("connect"))
        emitter.on(LifecycleEventName.READY, lambda e: seen.append("ready"))

        await emitter.emit(LifecycleEventName.READY, connected=False)

        assert seen == ["ready"]

    async def test_listener_error_does_not_stop_others(self):
        emitter = EventEmitter()
        seen = []

        def broken(event):
            raise RuntimeError("listener failed")

        emitter.on("connect", broken)
        emitter.on("connect", lambda e: seen.append(e.connected))

        await emitter.emit(LifecycleEventName.CONNECT, connected=True)

        assert seen == [True]

    async def test_off_removes_listener(self):
        emitter = EventEmitter()
        seen = []
        emitter.on("connection-loss", seen.append)
        emitter.off("connection-loss", seen.append)

        await emitter.emit(LifecycleEventName.CONNECTION_LOSS, connected=False)

        assert seen == []


class TestRegistration:
    def test_unknown_event_name_rejected(self):
        with pytest.raises(ValueError):
            EventEmitter().on("disconnect", lambda e: None)

    def test_non_callable_listener_rejected(self):
        with pytest.raises(TypeError, match="callable"):
            EventEmitter().on("connect", None)
