"""Connection manager for the realtime notification channel.

A manager owns at most one live Socket.IO connection, represented by a
``ConnectionHandle``. Detaching a handle is synchronous: from that moment its
transport callbacks are ignored, so a connection being torn down can never
deliver events next to its replacement.

Transport failures are turned into ``ConnectionState`` changes and an
``on_error`` callback; nothing is raised to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import socketio
from socketio.exceptions import ConnectionError as SocketIOConnectionError

from .callbacks import invoke_callback
from .conf import ClientSettings
from .conf import ReconnectPolicy

logger = logging.getLogger(__name__)

# Server confirmation sent right after a successful handshake.
CONNECTED_EVENT = "connected"
# Plain ``send()`` messages; expected to carry ``{"tag", "payload"}`` already.
MESSAGE_EVENT = "message"

TIMEOUT_MESSAGE = "connection timed out"


@dataclass
class ConnectionState:
    is_connected: bool = False
    error: str | None = None


class ConnectionHandle:
    """One logical connection, bound to a single token."""

    def __init__(self, token: str, policy: ReconnectPolicy) -> None:
        self.token = token
        self.policy = policy
        self.client: Any = None
        self.detached = False
        self.closed = False
        self.connected = False
        self.error_reported = False
        self.dispatch_lock = asyncio.Lock()
        # Set on detach; cuts a retry backoff short.
        self.stopped = asyncio.Event()

    def owns(self, client: Any) -> bool:
        return not self.detached and self.client is client

    def __repr__(self) -> str:
        flags = "closed" if self.closed else ("detached" if self.detached else "live")
        return f"<ConnectionHandle {flags}>"


def default_client_factory() -> socketio.AsyncClient:
    # Retries are driven by ReconnectPolicy, never by the library.
    return socketio.AsyncClient(reconnection=False, logger=False, engineio_logger=False)


def _error_message(data: Any) -> str:
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    if data:
        return str(data)
    return "connection failed"


class ConnectionManager:
    def __init__(
        self,
        settings: ClientSettings | None = None,
        *,
        on_connect: Callable[[], Any] | None = None,
        on_disconnect: Callable[[], Any] | None = None,
        on_error: Callable[[str], Any] | None = None,
        on_message: Callable[[Any], Any] | None = None,
        client_factory: Callable[[], Any] | None = None,
    ) -> None:
        self.settings = settings or ClientSettings()
        self.state = ConnectionState()
        self.handle: ConnectionHandle | None = None
        self.on_connect = on_connect
        self.on_disconnect = on_disconnect
        self.on_error = on_error
        self.on_message = on_message
        self._client_factory = client_factory or default_client_factory

    async def connect(
        self,
        token: str | None,
        *,
        reconnect_policy: ReconnectPolicy | None = None,
    ) -> ConnectionHandle | None:
        """Open a connection authenticated with ``token``.

        Any previous connection is closed first. Without a token the manager
        stays idle and returns ``None``.
        """
        if self.handle is not None:
            await self.disconnect(self.handle)
        if not token:
            logger.debug("No token supplied; realtime connection stays idle")
            return None

        handle = ConnectionHandle(
            token, reconnect_policy or self.settings.reconnect_policy
        )
        self.handle = handle
        await self._open(handle)
        return handle

    def detach(self, handle: ConnectionHandle | None) -> None:
        """Stop delivering callbacks for ``handle`` without awaiting the close."""
        if handle is None or handle.detached:
            return
        handle.detached = True
        handle.stopped.set()
        if handle is self.handle:
            self.state.is_connected = False

    async def disconnect(
        self, handle: ConnectionHandle | None, *, notify: bool = True
    ) -> None:
        """Close ``handle``. Safe to call more than once.

        A handle that was connected reports ``on_disconnect`` once, unless
        ``notify`` is false.
        """
        if handle is None or handle.closed:
            return
        handle.closed = True
        was_connected = handle.connected
        handle.connected = False
        self.detach(handle)
        if handle is self.handle:
            self.handle = None
        await self._close_client(handle.client)
        logger.info("Realtime connection closed")
        if notify and was_connected:
            await invoke_callback(self.on_disconnect)

    async def reconnect(
        self, handle: ConnectionHandle | None
    ) -> ConnectionHandle | None:
        """Close ``handle`` and open a fresh connection with the same token."""
        if handle is None:
            logger.debug("reconnect() ignored: no connection was attempted")
            return None
        if self.handle is not None and handle is not self.handle:
            logger.debug("reconnect() ignored for superseded %r", handle)
            return self.handle
        await self.disconnect(handle)
        return await self.connect(handle.token, reconnect_policy=handle.policy)

    async def close(self) -> None:
        await self.disconnect(self.handle)

    async def _open(self, handle: ConnectionHandle) -> None:
        attempt = 0
        while True:
            client = self._client_factory()
            handle.client = client
            handle.error_reported = False
            self._bind(handle, client)
            if await self._attempt(handle, client):
                return
            if handle.detached or attempt >= handle.policy.max_retries:
                return
            delay = handle.policy.delay_for(attempt)
            attempt += 1
            logger.info(
                "Retrying realtime connection in %.1fs (attempt %s of %s)",
                delay,
                attempt,
                handle.policy.max_retries,
            )
            try:
                await asyncio.wait_for(handle.stopped.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass
            if handle.detached:
                return

    async def _attempt(self, handle: ConnectionHandle, client: Any) -> bool:
        settings = self.settings
        kwargs: dict[str, Any] = {
            "auth": {"token": handle.token},
            "transports": list(settings.transports),
            "socketio_path": settings.socketio_path,
        }
        if settings.connect_timeout is not None:
            kwargs["wait_timeout"] = settings.connect_timeout
        try:
            await asyncio.wait_for(
                client.connect(settings.server_url, **kwargs),
                timeout=settings.connect_timeout,
            )
        except asyncio.TimeoutError:
            message = TIMEOUT_MESSAGE
        except SocketIOConnectionError as exc:
            message = _error_message(str(exc))
        else:
            return True

        await self._close_client(client)
        if handle.owns(client):
            await self._fail(handle, message)
        return False

    async def _fail(self, handle: ConnectionHandle, message: str) -> None:
        self.state.is_connected = False
        if handle.error_reported:
            return
        self.state.error = message
        handle.error_reported = True
        logger.error("Realtime connection error: %s", message)
        await invoke_callback(self.on_error, message)

    async def _deliver(self, handle: ConnectionHandle, client: Any, raw: Any) -> None:
        # Handlers may run as separate tasks; the lock keeps arrival order.
        async with handle.dispatch_lock:
            if not handle.owns(client):
                return
            await invoke_callback(self.on_message, raw)

    async def _close_client(self, client: Any) -> None:
        if client is None:
            return
        try:
            await client.disconnect()
        except Exception as exc:  # noqa: BLE001
            logger.debug("Ignoring error while closing realtime client: %s", exc)

    def _bind(self, handle: ConnectionHandle, client: Any) -> None:
        async def on_connect() -> None:
            if not handle.owns(client):
                return
            handle.connected = True
            self.state.is_connected = True
            self.state.error = None
            logger.info("Connected to realtime server %s", self.settings.server_url)
            await invoke_callback(self.on_connect)

        async def on_disconnect(*args: Any) -> None:
            if not handle.owns(client):
                return
            handle.connected = False
            self.state.is_connected = False
            reason = args[0] if args else "closed"
            logger.info("Disconnected from realtime server: %s", reason)
            await invoke_callback(self.on_disconnect)

        async def on_connect_error(data: Any = None) -> None:
            if not handle.owns(client):
                return
            await self._fail(handle, _error_message(data))

        async def on_connected(data: Any = None) -> None:
            logger.info("Realtime connection confirmed: %s", data)

        async def on_message(data: Any = None) -> None:
            await self._deliver(handle, client, data)

        async def on_event(event: str, *args: Any) -> None:
            payload = args[0] if len(args) == 1 else (list(args) or None)
            await self._deliver(handle, client, {"tag": event, "payload": payload})

        client.on("connect", on_connect)
        client.on("disconnect", on_disconnect)
        client.on("connect_error", on_connect_error)
        client.on(CONNECTED_EVENT, on_connected)
        client.on(MESSAGE_EVENT, on_message)
        client.on("*", on_event)
