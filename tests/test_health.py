from http import HTTPStatus
from unittest import mock

import pytest
from django.db import connection as dj_conn
from django.test import override_settings


class DummyDbError(Exception):
    """Synthetic DB error for testing."""


@pytest.fixture
def redis_up():
    with mock.patch("config.health.redis.Redis.ping", return_value=True) as ping:
        yield ping


@pytest.mark.django_db
def test_health_ok(client, redis_up):
    resp = client.get("/health/")
    assert resp.status_code == HTTPStatus.OK
    data = resp.json()
    assert data["status"] == "ok"
    assert data["components"]["db"]["ok"] is True
    assert data["components"]["redis"]["ok"] is True
    # Single-process sockets: no message queue to check
    assert "realtime" not in data["components"]


@pytest.mark.django_db
def test_health_degraded_when_redis_fails(client):
    with mock.patch(
        "config.health.redis.Redis.ping",
        side_effect=TimeoutError("redis timeout"),
    ):
        resp = client.get("/health/")
    assert resp.status_code == HTTPStatus.SERVICE_UNAVAILABLE
    data = resp.json()
    assert data["components"]["redis"]["ok"] is False
    assert data["status"] == "degraded"


@pytest.mark.django_db
def test_health_degraded_when_db_fails(client, monkeypatch, redis_up):
    msg = "db down"

    def raise_cursor():
        raise DummyDbError(msg)

    monkeypatch.setattr(dj_conn, "cursor", raise_cursor, raising=True)
    resp = client.get("/health/")
    assert resp.status_code == HTTPStatus.SERVICE_UNAVAILABLE
    data = resp.json()
    assert data["components"]["db"] == {"ok": False, "error": msg}
    assert data["status"] == "degraded"


@pytest.mark.django_db
@override_settings(REALTIME_REDIS_URL="redis://realtime:6379/1")
def test_health_checks_realtime_queue_when_configured(client, redis_up):
    resp = client.get("/health/")
    assert resp.status_code == HTTPStatus.OK
    assert resp.json()["components"]["realtime"] == {"ok": True}
