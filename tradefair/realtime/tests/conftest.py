from __future__ import annotations

import asyncio
from typing import Any

import pytest
from socketio.exceptions import ConnectionError as SocketIOConnectionError

from tradefair.realtime.client import ClientSettings
from tradefair.realtime.client import ReconnectPolicy


class FakeSocketClient:
    """In-memory stand-in for ``socketio.AsyncClient``.

    ``refuse_with`` mimics a server-side ``ConnectionRefusedError``: the
    ``connect_error`` handler fires and ``connect()`` raises. ``hang`` keeps
    ``connect()`` pending until cancelled.
    """

    def __init__(
        self,
        *,
        refuse_with: str | None = None,
        hang: bool = False,
        slow_disconnect: asyncio.Event | None = None,
    ) -> None:
        self.handlers: dict[str, Any] = {}
        self.connected = False
        self.connect_calls: list[tuple[str, dict[str, Any]]] = []
        self.disconnect_calls = 0
        self.refuse_with = refuse_with
        self.hang = hang
        self.slow_disconnect = slow_disconnect

    def on(self, event: str, handler: Any = None) -> None:
        self.handlers[event] = handler

    async def connect(self, url: str, **kwargs: Any) -> None:
        self.connect_calls.append((url, kwargs))
        if self.hang:
            await asyncio.Event().wait()
        if self.refuse_with is not None:
            await self.trigger("connect_error", {"message": self.refuse_with})
            msg = "One or more namespaces failed to connect"
            raise SocketIOConnectionError(msg)
        self.connected = True
        await self.trigger("connect")
        await self.trigger("connected", {"message": "Connected to real-time server"})

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        if self.slow_disconnect is not None:
            await self.slow_disconnect.wait()
        if self.connected:
            self.connected = False
            await self.trigger("disconnect", "client disconnect")

    async def trigger(self, event: str, *args: Any) -> None:
        handler = self.handlers.get(event)
        if handler is not None:
            await handler(*args)

    async def send_message(self, raw: Any) -> None:
        """Server ``send()``: a plain message carrying tag and payload."""
        await self.trigger("message", raw)

    async def emit_event(self, event: str, payload: Any) -> None:
        """Server ``emit()``: routed through the catch-all handler."""
        handler = self.handlers.get(event)
        if handler is not None:
            await handler(payload)
        else:
            await self.handlers["*"](event, payload)

    async def drop(self, reason: str = "transport close") -> None:
        """Connection lost from the server side."""
        self.connected = False
        await self.trigger("disconnect", reason)


class FakeClientFactory:
    """Hands out a new fake per connection attempt and remembers them all."""

    def __init__(self, *behaviours: dict[str, Any]) -> None:
        self.behaviours = list(behaviours)
        self.clients: list[FakeSocketClient] = []

    def __call__(self) -> FakeSocketClient:
        options = self.behaviours.pop(0) if self.behaviours else {}
        client = FakeSocketClient(**options)
        self.clients.append(client)
        return client

    @property
    def last(self) -> FakeSocketClient:
        return self.clients[-1]

    @property
    def live(self) -> list[FakeSocketClient]:
        return [c for c in self.clients if c.connected]


@pytest.fixture
def client_factory():
    return FakeClientFactory()


@pytest.fixture
def client_settings():
    return ClientSettings(
        server_url="http://realtime.test",
        socketio_path="ws/notifications",
        transports=("websocket",),
        connect_timeout=1.0,
        reconnect_policy=ReconnectPolicy(max_retries=0),
    )
