from decimal import Decimal
from unittest import mock

import pytest
from django.contrib.auth import get_user_model

from tradefair.realtime.events.transactions import ADMIN_UPDATE_EVENT
from tradefair.realtime.events.transactions import USER_UPDATE_EVENT
from tradefair.realtime.events.transactions import build_notification
from tradefair.realtime.events.transactions import publish_transaction_notification
from tradefair.transactions.models import Transaction

User = get_user_model()


@pytest.mark.django_db
def test_build_notification_is_json_safe():
    user = User.objects.create_user(
        username="payer", email="payer@example.com", password="x"  # noqa: S106
    )
    txn = Transaction.objects.create(
        user=user, kind=Transaction.Kind.DEPOSIT, amount=Decimal("500.00")
    )

    notification = build_notification(txn, "INSERT")

    assert notification["event"] == "INSERT"
    assert notification["id"] == txn.id
    assert notification["user_id"] == user.id
    assert notification["amount"] == "500.00"
    assert notification["kind"] == "deposit"
    assert notification["status"] == "pending"
    assert isinstance(notification["created_at"], str)


@mock.patch("tradefair.realtime.events.transactions.emit_event_to_admins")
@mock.patch("tradefair.realtime.events.transactions.emit_event_to_user")
def test_update_goes_to_owner(emit_user, emit_admins):
    notification = {"event": "UPDATE", "id": 1, "user_id": "9", "status": "completed"}

    publish_transaction_notification(notification)

    emit_user.assert_called_once_with(
        9, USER_UPDATE_EVENT, {"event": "UPDATE", "data": notification}
    )
    emit_admins.assert_not_called()


@mock.patch("tradefair.realtime.events.transactions.emit_event_to_admins")
@mock.patch("tradefair.realtime.events.transactions.emit_event_to_user")
def test_insert_goes_to_admins(emit_user, emit_admins):
    notification = {"event": "INSERT", "id": 2, "user_id": 9}

    publish_transaction_notification(notification)

    emit_admins.assert_called_once_with(
        ADMIN_UPDATE_EVENT, {"event": "INSERT", "data": notification}
    )
    emit_user.assert_not_called()


@mock.patch("tradefair.realtime.events.transactions.emit_event_to_admins")
@mock.patch("tradefair.realtime.events.transactions.emit_event_to_user")
def test_other_events_and_orphans_are_ignored(emit_user, emit_admins):
    publish_transaction_notification({"event": "DELETE", "id": 3, "user_id": 9})
    publish_transaction_notification({"event": "UPDATE", "id": 4})

    emit_user.assert_not_called()
    emit_admins.assert_not_called()
