"""Human-readable text for transaction update payloads.

Payloads look like ``{"event": "INSERT" | "UPDATE", "data": {...}}`` where
``data`` is the transaction as published by the server.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

CURRENCY_SYMBOL = "₹"

DEPOSIT = "deposit"
WITHDRAWAL = "withdrawal"


def _transaction_data(payload: Any) -> Mapping[str, Any] | None:
    if not isinstance(payload, Mapping):
        return None
    data = payload.get("data")
    return data if isinstance(data, Mapping) else None


def transaction_kind(data: Mapping[str, Any]) -> str:
    kind = data.get("kind")
    if kind in (DEPOSIT, WITHDRAWAL):
        return kind
    # Older payloads only tell deposits apart by their payment method.
    return DEPOSIT if data.get("payment_method_id") else WITHDRAWAL


def format_amount(amount: Any) -> str:
    return f"{CURRENCY_SYMBOL}{amount}"


def describe_user_update(payload: Any) -> str | None:
    """Message for the owner of a transaction, or None if nothing to say."""
    data = _transaction_data(payload)
    if data is None:
        return None
    kind = transaction_kind(data)
    amount = format_amount(data.get("amount"))
    status = data.get("status")
    if status == "completed":
        return f"Your {kind} of {amount} has been approved!"
    if status == "rejected":
        return f"Your {kind} of {amount} has been rejected."
    return None


def describe_admin_update(payload: Any) -> str | None:
    """Message for admins; only newly created transactions are announced."""
    data = _transaction_data(payload)
    if data is None or payload.get("event") != "INSERT":
        return None
    kind = transaction_kind(data)
    amount = format_amount(data.get("amount"))
    return f"New {kind} request: {amount} from user {data.get('user_id')}"
