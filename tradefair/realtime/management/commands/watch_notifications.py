from __future__ import annotations

import asyncio
import logging
import os
from typing import Any

from django.core.management.base import BaseCommand
from django.core.management.base import CommandError
from django.core.management.base import CommandParser

from tradefair.realtime.client import ClientSettings
from tradefair.realtime.client import NotificationProvider
from tradefair.realtime.client.messages import describe_admin_update
from tradefair.realtime.client.messages import describe_user_update

logger = logging.getLogger(__name__)

TOKEN_ENV_VAR = "TRADEFAIR_TOKEN"


class Command(BaseCommand):
    help = "Connect to the realtime server and print transaction notifications"

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument(
            "--token",
            dest="token",
            help=f"JWT access token (defaults to ${TOKEN_ENV_VAR})",
        )
        parser.add_argument(
            "--server-url",
            dest="server_url",
            help="Realtime server URL (defaults to REALTIME_SERVER_URL)",
        )
        parser.add_argument(
            "--duration",
            dest="duration",
            type=float,
            default=None,
            help="Stop after this many seconds (runs until interrupted by default)",
        )

    def handle(self, *args, **options) -> None:
        token: str | None = options.get("token") or os.environ.get(TOKEN_ENV_VAR)
        if not token:
            msg = f"Provide --token or set {TOKEN_ENV_VAR}."
            raise CommandError(msg)

        overrides: dict[str, Any] = {}
        if options.get("server_url"):
            overrides["server_url"] = options["server_url"]
        settings = ClientSettings.from_django(**overrides)

        try:
            asyncio.run(self.watch(token, settings, options.get("duration")))
        except KeyboardInterrupt:
            logger.info("Stopped watching notifications")

    async def watch(
        self,
        token: str,
        settings: ClientSettings,
        duration: float | None,
        client_factory: Any = None,
    ) -> None:
        provider = NotificationProvider(
            token,
            on_transaction_update=self.on_transaction_update,
            on_admin_transaction_update=self.on_admin_transaction_update,
            settings=settings,
            client_factory=client_factory,
        )
        async with provider as ctx:
            if ctx.is_connected:
                self.stdout.write(self.style.SUCCESS(f"Connected to {settings.server_url}"))
            else:
                self.stderr.write(self.style.ERROR(f"Not connected: {ctx.error}"))
                return
            if duration is None:
                await asyncio.Event().wait()
            else:
                await asyncio.sleep(duration)

    def on_transaction_update(self, payload: Any) -> None:
        text = describe_user_update(payload)
        if text:
            self.stdout.write(text)
        else:
            logger.info("Transaction update: %s", payload)

    def on_admin_transaction_update(self, payload: Any) -> None:
        text = describe_admin_update(payload)
        if text:
            self.stdout.write(text)
        else:
            logger.info("Admin transaction update: %s", payload)
