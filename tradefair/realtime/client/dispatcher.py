"""Classify inbound realtime messages and route them to callbacks.

Inbound messages have the shape ``{"tag": <str>, "payload": <any>}``. The tag
selects one of the update variants below; the payload is handed to the
callback untouched.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .callbacks import invoke_callback

logger = logging.getLogger(__name__)

# Canonical tags plus the event names the TradeFair server emits.
USER_TRANSACTION_TAGS = frozenset({"transactionUpdate", "transactionUpdateUser"})
ADMIN_TRANSACTION_TAGS = frozenset(
    {"adminTransactionUpdate", "transactionUpdateAdmin"}
)

UpdateCallback = Callable[[Any], Any]


@dataclass(frozen=True)
class TransactionUpdate:
    """A change to one of the current user's transactions."""

    payload: Any


@dataclass(frozen=True)
class AdminTransactionUpdate:
    """A transaction change addressed to the admin view."""

    payload: Any


@dataclass(frozen=True)
class UnrecognizedUpdate:
    tag: str | None
    payload: Any


UpdateEvent = TransactionUpdate | AdminTransactionUpdate | UnrecognizedUpdate


def classify(raw: Any) -> UpdateEvent:
    if not isinstance(raw, Mapping):
        return UnrecognizedUpdate(tag=None, payload=raw)
    tag = raw.get("tag")
    payload = raw.get("payload")
    if not isinstance(tag, str):
        return UnrecognizedUpdate(tag=None, payload=payload)
    if tag in USER_TRANSACTION_TAGS:
        return TransactionUpdate(payload=payload)
    if tag in ADMIN_TRANSACTION_TAGS:
        return AdminTransactionUpdate(payload=payload)
    return UnrecognizedUpdate(tag=tag, payload=payload)


class EventDispatcher:
    """Route classified updates to the registered callbacks.

    Holds no per-message state; unrecognized and malformed messages are
    logged and dropped.
    """

    def __init__(
        self,
        on_transaction_update: UpdateCallback | None = None,
        on_admin_transaction_update: UpdateCallback | None = None,
    ) -> None:
        self.on_transaction_update = on_transaction_update
        self.on_admin_transaction_update = on_admin_transaction_update

    async def dispatch(self, raw: Any) -> UpdateEvent:
        event = classify(raw)
        if isinstance(event, TransactionUpdate):
            logger.debug("Transaction update received: %s", event.payload)
            await invoke_callback(self.on_transaction_update, event.payload)
        elif isinstance(event, AdminTransactionUpdate):
            logger.debug("Admin transaction update received: %s", event.payload)
            await invoke_callback(self.on_admin_transaction_update, event.payload)
        elif event.tag is None:
            logger.warning("Dropping malformed realtime message: %r", raw)
        else:
            logger.warning("Dropping realtime message with unknown tag %r", event.tag)
        return event
