"""Settings for the realtime notification client.

Values come from Django settings when Django is configured and fall back to
the defaults below otherwise, so the client can run inside a management
command as well as in a plain asyncio script.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from dataclasses import field
from typing import Any

DEFAULT_SERVER_URL = "http://localhost:8000"
DEFAULT_SOCKETIO_PATH = "ws/notifications"
DEFAULT_TRANSPORTS = ("websocket", "polling")
DEFAULT_CONNECT_TIMEOUT = 10.0


@dataclass(frozen=True)
class ReconnectPolicy:
    """Retry schedule for failed connection attempts.

    ``max_retries=0`` disables automatic retries: a failed connection stays
    down until the caller asks for ``reconnect()``.
    """

    max_retries: int = 0
    base_delay: float = 1.0
    max_delay: float = 30.0
    jitter: float = 0.5

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait before retry number ``attempt`` (zero based)."""
        delay = min(self.max_delay, self.base_delay * (2**attempt))
        return delay + random.uniform(0, self.jitter * delay)  # noqa: S311


@dataclass(frozen=True)
class ClientSettings:
    """Where and how the notification client connects."""

    server_url: str = DEFAULT_SERVER_URL
    socketio_path: str = DEFAULT_SOCKETIO_PATH
    transports: tuple[str, ...] = DEFAULT_TRANSPORTS
    connect_timeout: float | None = DEFAULT_CONNECT_TIMEOUT
    reconnect_policy: ReconnectPolicy = field(default_factory=ReconnectPolicy)

    @classmethod
    def from_django(cls, **overrides: Any) -> ClientSettings:
        from django.conf import settings  # noqa: PLC0415

        values: dict[str, Any] = {}
        if settings.configured:
            values = {
                "server_url": getattr(
                    settings, "REALTIME_SERVER_URL", DEFAULT_SERVER_URL
                ),
                "socketio_path": getattr(
                    settings, "REALTIME_SOCKETIO_PATH", DEFAULT_SOCKETIO_PATH
                ),
                "transports": tuple(
                    getattr(settings, "REALTIME_TRANSPORTS", DEFAULT_TRANSPORTS)
                ),
                "connect_timeout": getattr(
                    settings, "REALTIME_CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT
                ),
            }
        values.update(overrides)
        return cls(**values)
