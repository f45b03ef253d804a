from __future__ import annotations

import json
import logging
from typing import Any

from django.conf import settings
from django.core.management.base import BaseCommand
from django.core.management.base import CommandError
from django.core.management.base import CommandParser
from django.db import connection
from psycopg import sql

from tradefair.realtime.events.transactions import publish_transaction_notification

logger = logging.getLogger(__name__)


def _statement(verb: str, channel: str) -> str:
    return sql.SQL(verb + " {}").format(sql.Identifier(channel)).as_string(connection.connection)


def parse_notification(payload: str) -> dict[str, Any] | None:
    """Decode a NOTIFY payload; None when it is not a JSON object."""
    try:
        data = json.loads(payload)
    except ValueError:
        logger.warning("Skipping unparseable transaction notification: %r", payload)
        return None
    if not isinstance(data, dict):
        logger.warning("Skipping transaction notification that is not an object: %r", payload)
        return None
    return data


def handle_notification(payload: str) -> bool:
    """Publish one NOTIFY payload to the sockets that should see it."""
    notification = parse_notification(payload)
    if notification is None:
        return False
    try:
        publish_transaction_notification(notification)
    except Exception:
        # One failed broadcast must not stop the relay loop.
        logger.exception("Failed to publish transaction notification %s", notification.get("id"))
        return False
    return True


class Command(BaseCommand):
    help = "Relay PostgreSQL transaction notifications to Socket.IO clients"

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument(
            "--channel",
            dest="channel",
            default=None,
            help="NOTIFY channel to listen on (defaults to TRANSACTIONS_NOTIFY_CHANNEL)",
        )
        parser.add_argument(
            "--timeout",
            dest="timeout",
            type=float,
            default=None,
            help="Stop after this many seconds without a notification",
        )

    def handle(self, *args, **options) -> None:
        if connection.vendor != "postgresql":
            msg = "listen_transactions requires a PostgreSQL database."
            raise CommandError(msg)

        channel: str = options.get("channel") or getattr(
            settings, "TRANSACTIONS_NOTIFY_CHANNEL", "transactions_channel"
        )
        timeout: float | None = options.get("timeout")

        connection.ensure_connection()
        connection.set_autocommit(True)
        with connection.cursor() as cursor:
            cursor.execute(_statement("LISTEN", channel))
        logger.info("Listening for transaction notifications on %s", channel)
        self.stdout.write(f"Listening on {channel}")

        relayed = 0
        try:
            for notify in connection.connection.notifies(timeout=timeout):
                if handle_notification(notify.payload):
                    relayed += 1
        except KeyboardInterrupt:
            logger.info("Transaction listener interrupted")
        finally:
            with connection.cursor() as cursor:
                cursor.execute(_statement("UNLISTEN", channel))

        self.stdout.write(self.style.SUCCESS(f"Relayed {relayed} notifications"))
