"""Global Socket.IO server for TradeFair clients.

Connection convention:
- URL base: ws://<host>:8000
- Socket.IO path: /ws/notifications/
- Auth: `auth.token` or `query.token` (JWT access token)

Every socket joins its per-user room; staff and admin users also join the
admin room, which receives announcements about new transactions.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qs

import socketio
from asgiref.sync import async_to_sync
from channels.db import database_sync_to_async
from django.conf import settings
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import TokenError

logger = logging.getLogger(__name__)

CONNECTED_EVENT = "connected"


def _build_client_manager() -> socketio.AsyncManager | None:
    url = getattr(settings, "REALTIME_REDIS_URL", "")
    if not url:
        return None
    return socketio.AsyncRedisManager(url)


sio = socketio.AsyncServer(
    async_mode="asgi",
    client_manager=_build_client_manager(),
    cors_allowed_origins=getattr(settings, "REALTIME_CORS_ALLOWED_ORIGINS", "*"),
    logger=False,
    engineio_logger=False,
)


@dataclass(frozen=True)
class UserRealtimeContext:
    user_id: int
    is_admin: bool


def room_for_user(user_id: int) -> str:
    return f"user_{int(user_id)}"


def admin_room() -> str:
    return getattr(settings, "REALTIME_ADMIN_ROOM", "admins")


def get_user_context_from_access_token(token: str) -> UserRealtimeContext:
    jwt_auth = JWTAuthentication()
    validated = jwt_auth.get_validated_token(token)
    # Raises AuthenticationFailed for unknown or inactive users.
    user = jwt_auth.get_user(validated)
    return UserRealtimeContext(
        user_id=int(user.id),
        is_admin=bool(getattr(user, "receives_admin_updates", user.is_staff)),
    )


_aget_user_context = database_sync_to_async(get_user_context_from_access_token)


def refusal_reason(exc: Exception) -> str:
    """Reason code sent back to a rejected client.

    Clients refresh their token on ``jwt_expired``; anything else is final.
    """

    message = str(getattr(exc, "detail", exc)).lower()
    if "expired" in message and "invalid or expired" not in message:
        return "jwt_expired"
    return "unauthorized"


def _extract_token(environ: dict[str, Any], auth: Any | None) -> str | None:
    """Extract JWT token from Socket.IO auth payload or query string.

    Handles python-socketio environ shapes across ASGI/WSGI servers.
    """

    if isinstance(auth, dict):
        auth_token = auth.get("token")
        if isinstance(auth_token, str) and auth_token:
            return auth_token

    scope: Any = environ
    if isinstance(environ, dict) and "asgi.scope" in environ:
        inner = environ.get("asgi.scope")
        if isinstance(inner, dict):
            scope = inner

    query_string: str | bytes = ""
    if isinstance(scope, dict) and "query_string" in scope:
        query_string = scope.get("query_string", b"")
    elif isinstance(scope, dict) and "QUERY_STRING" in scope:
        query_string = scope.get("QUERY_STRING", "")

    if isinstance(query_string, (bytes, bytearray)):
        query_string = query_string.decode(errors="ignore")

    token = parse_qs(str(query_string)).get("token", [None])[0]
    if isinstance(token, str) and token:
        return token
    return None


@sio.event
async def connect(sid: str, environ: dict[str, Any], auth: Any | None = None):
    token = _extract_token(environ, auth)
    if not token:
        msg = "unauthorized"
        raise ConnectionRefusedError(msg)

    try:
        ctx = await _aget_user_context(token)
    except (TokenError, AuthenticationFailed) as exc:
        # InvalidToken (an AuthenticationFailed) carries the expiry message;
        # unknown or inactive users end up here too.
        raise ConnectionRefusedError(refusal_reason(exc)) from exc
    except Exception as exc:
        logger.exception("Socket.IO connect error")
        msg = "server_error"
        raise ConnectionRefusedError(msg) from exc

    await sio.save_session(sid, {"user_id": ctx.user_id, "is_admin": ctx.is_admin})
    await sio.enter_room(sid, room_for_user(ctx.user_id))
    if ctx.is_admin:
        await sio.enter_room(sid, admin_room())

    logger.info("User %s connected (admin: %s)", ctx.user_id, ctx.is_admin)
    await sio.emit(
        CONNECTED_EVENT,
        {
            "message": "Connected to real-time server",
            "userId": ctx.user_id,
            "isAdmin": ctx.is_admin,
        },
        to=sid,
    )


@sio.event
async def disconnect(sid: str, *args: Any):
    # Rooms/session are cleaned up automatically.
    logger.debug("Socket %s disconnected", sid)


@functools.cache
def _external_emitter() -> socketio.RedisManager | None:
    """Write-only emitter for processes that do not host the server."""

    url = getattr(settings, "REALTIME_REDIS_URL", "")
    if not url:
        return None
    return socketio.RedisManager(url, write_only=True)


def emit_event_to_room(room: str, event: str, payload: dict[str, Any]) -> None:
    """Emit an event to a room from sync Django code (views, tasks, commands)."""

    emitter = _external_emitter()
    if emitter is not None:
        emitter.emit(event, data=payload, room=room)
        return
    async_to_sync(sio.emit)(event, payload, room=room)


def emit_event_to_user(user_id: int, event: str, payload: dict[str, Any]) -> None:
    emit_event_to_room(room_for_user(user_id), event, payload)


def emit_event_to_admins(event: str, payload: dict[str, Any]) -> None:
    emit_event_to_room(admin_room(), event, payload)
