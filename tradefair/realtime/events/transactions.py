from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from typing import Any

from tradefair.realtime.socketio import emit_event_to_admins
from tradefair.realtime.socketio import emit_event_to_user

if TYPE_CHECKING:  # import for type checking only
    from tradefair.transactions.models import Transaction

logger = logging.getLogger(__name__)

EVENT_INSERT = "INSERT"
EVENT_UPDATE = "UPDATE"

USER_UPDATE_EVENT = "transactionUpdateUser"
ADMIN_UPDATE_EVENT = "transactionUpdateAdmin"


def build_transaction_payload(transaction: Transaction) -> dict[str, Any]:
    return {
        "id": transaction.id,
        "user_id": transaction.user_id,
        "kind": transaction.kind,
        "amount": str(transaction.amount),
        "status": transaction.status,
        "reference": transaction.reference,
        "created_at": transaction.created_at.isoformat(),
        "updated_at": transaction.updated_at.isoformat(),
    }


def build_notification(transaction: Transaction, event: str) -> dict[str, Any]:
    return {"event": event, **build_transaction_payload(transaction)}


def publish_transaction_notification(notification: dict[str, Any]) -> None:
    """Route a transaction notification to the sockets that should see it.

    Owners hear about updates to their transactions; admins hear about new
    ones. ``notification`` is the transaction payload plus an ``event`` key,
    the same shape the database NOTIFY channel carries.
    """

    event = notification.get("event")
    body = {"event": event, "data": notification}

    if event == EVENT_UPDATE:
        user_id = notification.get("user_id")
        if user_id is None:
            logger.warning("Transaction update without user_id: %s", notification)
            return
        emit_event_to_user(int(user_id), USER_UPDATE_EVENT, body)
    elif event == EVENT_INSERT:
        emit_event_to_admins(ADMIN_UPDATE_EVENT, body)
        logger.info("Notified admins about new transaction %s", notification.get("id"))
    else:
        logger.debug("Ignoring transaction notification with event %r", event)
