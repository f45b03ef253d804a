from django.conf import settings
from django.db.models.signals import post_save
from django.db.transaction import on_commit
from django.dispatch import receiver

from tradefair.realtime.events.transactions import EVENT_INSERT
from tradefair.realtime.events.transactions import EVENT_UPDATE
from tradefair.realtime.events.transactions import build_notification

from .models import Transaction
from .tasks import broadcast_transaction_event


@receiver(post_save, sender=Transaction)
def send_transaction_ws(sender, instance, created, **kwargs):
    # The LISTEN worker takes over when the database publishes changes itself.
    if not getattr(settings, "TRANSACTIONS_REALTIME_SIGNALS", True):
        return
    notification = build_notification(instance, EVENT_INSERT if created else EVENT_UPDATE)
    on_commit(lambda: broadcast_transaction_event.delay(notification))
