"""Scope-bound provider for the realtime notification context.

Usage::

    async with NotificationProvider(token, on_transaction_update=handle) as ctx:
        ...
        if not ctx.is_connected:
            await ctx.reconnect()

Code running inside the ``async with`` block (including tasks created there)
reads the same context through ``use_notifications()``.

Token changes go through ``set_token()``. They are applied one at a time: the
old connection is closed before the new one opens, and when several changes
pile up only the most recent one is applied.
"""

from __future__ import annotations

import asyncio
import logging
from contextvars import ContextVar
from contextvars import Token
from typing import Any

from django.core.exceptions import ImproperlyConfigured

from .conf import ClientSettings
from .connection import ConnectionManager
from .dispatcher import EventDispatcher
from .dispatcher import UpdateCallback

logger = logging.getLogger(__name__)


class NotificationContextError(ImproperlyConfigured):
    """The notification context was read outside of a provider."""


class NotificationContext:
    """Read-only view of a provider, handed to consumers."""

    def __init__(self, provider: NotificationProvider) -> None:
        self._provider = provider

    @property
    def is_connected(self) -> bool:
        return self._provider.is_connected

    @property
    def error(self) -> str | None:
        return self._provider.error

    async def reconnect(self) -> None:
        await self._provider.reconnect()

    def __repr__(self) -> str:
        return (
            f"<NotificationContext is_connected={self.is_connected} "
            f"error={self.error!r}>"
        )


_current_context: ContextVar[NotificationContext | None] = ContextVar(
    "tradefair_notification_context",
    default=None,
)


def use_notifications() -> NotificationContext:
    context = _current_context.get()
    if context is None:
        msg = "use_notifications() must be used within a NotificationProvider"
        raise NotificationContextError(msg)
    return context


class NotificationProvider:
    def __init__(
        self,
        token: str | None = None,
        *,
        on_transaction_update: UpdateCallback | None = None,
        on_admin_transaction_update: UpdateCallback | None = None,
        settings: ClientSettings | None = None,
        client_factory: Any = None,
    ) -> None:
        self.dispatcher = EventDispatcher(
            on_transaction_update=on_transaction_update,
            on_admin_transaction_update=on_admin_transaction_update,
        )
        self.manager = ConnectionManager(
            settings or ClientSettings.from_django(),
            on_connect=self._on_connect,
            on_disconnect=self._on_disconnect,
            on_error=self._on_error,
            on_message=self.dispatcher.dispatch,
            client_factory=client_factory,
        )
        self.context = NotificationContext(self)
        self._token = token or ""
        self._should_connect = False
        self._attempted = False
        self._generation = 0
        self._lock = asyncio.Lock()
        self._scope_token: Token | None = None

    @property
    def token(self) -> str:
        return self._token

    @property
    def is_connected(self) -> bool:
        # A cleared token always reads as disconnected, even mid-teardown.
        return self._should_connect and self.manager.state.is_connected

    @property
    def error(self) -> str | None:
        return self.manager.state.error

    async def __aenter__(self) -> NotificationContext:
        self._scope_token = _current_context.set(self.context)
        await self.set_token(self._token)
        return self.context

    async def __aexit__(self, *exc_info: Any) -> None:
        try:
            await self.close()
        finally:
            if self._scope_token is not None:
                _current_context.reset(self._scope_token)
                self._scope_token = None

    async def set_token(self, token: str | None) -> None:
        token = token or ""
        current = self.manager.handle
        if token == self._token and current is not None and not current.detached:
            return

        self._token = token
        self._should_connect = bool(token)
        self._generation += 1
        generation = self._generation
        self.manager.detach(current)

        async with self._lock:
            if generation != self._generation:
                logger.debug("Skipping superseded token change")
                return
            await self.manager.disconnect(self.manager.handle)
            if token:
                self._attempted = True
                await self.manager.connect(token)

    async def reconnect(self) -> None:
        if not self._attempted or not self._should_connect:
            logger.debug("reconnect() ignored: provider has not connected")
            return
        async with self._lock:
            await self.manager.reconnect(self.manager.handle)

    async def close(self) -> None:
        self._should_connect = False
        self._generation += 1
        self.manager.detach(self.manager.handle)
        async with self._lock:
            await self.manager.disconnect(self.manager.handle, notify=False)

    def _on_connect(self) -> None:
        logger.info("Realtime notifications connected")

    def _on_disconnect(self) -> None:
        logger.info("Realtime notifications disconnected")

    def _on_error(self, message: str) -> None:
        logger.warning("Realtime notifications error: %s", message)
