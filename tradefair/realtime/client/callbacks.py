from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


async def invoke_callback(callback: Callable[..., Any] | None, *args: Any) -> None:
    """Run a caller-supplied callback, awaiting it if it returns an awaitable.

    Errors raised by the callback are logged and never reach the transport.
    """
    if callback is None:
        return
    try:
        result = callback(*args)
        if inspect.isawaitable(result):
            await result
    except Exception:
        logger.exception("Realtime callback %r failed", callback)
