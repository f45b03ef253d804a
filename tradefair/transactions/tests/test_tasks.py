from unittest import mock

from tradefair.transactions.tasks import broadcast_transaction_event


@mock.patch("tradefair.transactions.tasks.publish_transaction_notification")
def test_broadcast_task_publishes(publish):
    notification = {"event": "INSERT", "id": 1, "user_id": 2}

    broadcast_transaction_event.delay(notification)

    publish.assert_called_once_with(notification)


def test_broadcast_task_name():
    assert broadcast_transaction_event.name == "transactions.broadcast_event"
