from celery import shared_task

from tradefair.realtime.events.transactions import publish_transaction_notification


@shared_task(name="transactions.broadcast_event")
def broadcast_transaction_event(notification: dict) -> None:
    """Celery task wrapper to push a transaction change to connected sockets."""
    publish_transaction_notification(notification)
