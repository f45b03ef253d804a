import asyncio
from unittest import mock

from asgiref.sync import async_to_sync

from tradefair.realtime.client import ClientSettings
from tradefair.realtime.client import ConnectionManager
from tradefair.realtime.client import ReconnectPolicy
from tradefair.realtime.client.connection import TIMEOUT_MESSAGE

from .conftest import FakeClientFactory


def _manager(settings, factory, **callbacks):
    return ConnectionManager(settings, client_factory=factory, **callbacks)


def test_connect_without_token_stays_idle(client_settings, client_factory):
    manager = _manager(client_settings, client_factory)

    handle = async_to_sync(manager.connect)("")

    assert handle is None
    assert client_factory.clients == []
    assert manager.state.is_connected is False
    assert manager.state.error is None


def test_connect_passes_token_and_transport_options(client_settings, client_factory):
    on_connect = mock.Mock()
    manager = _manager(client_settings, client_factory, on_connect=on_connect)

    async_to_sync(manager.connect)("abc123")

    url, kwargs = client_factory.last.connect_calls[0]
    assert url == "http://realtime.test"
    assert kwargs["auth"] == {"token": "abc123"}
    assert kwargs["transports"] == ["websocket"]
    assert kwargs["socketio_path"] == "ws/notifications"
    assert manager.state.is_connected is True
    assert manager.state.error is None
    on_connect.assert_called_once_with()


def test_refused_connection_reports_error_once(client_settings):
    factory = FakeClientFactory({"refuse_with": "jwt_expired"})
    on_error = mock.Mock()
    manager = _manager(client_settings, factory, on_error=on_error)

    # Must not raise
    async_to_sync(manager.connect)("expired")

    assert manager.state.is_connected is False
    assert manager.state.error == "jwt_expired"
    on_error.assert_called_once_with("jwt_expired")
    assert factory.last.disconnect_calls == 1


def test_connect_timeout_becomes_error():
    settings = ClientSettings(server_url="http://realtime.test", connect_timeout=0.05)
    factory = FakeClientFactory({"hang": True})
    on_error = mock.Mock()
    manager = _manager(settings, factory, on_error=on_error)

    async_to_sync(manager.connect)("abc123")

    assert manager.state.is_connected is False
    assert manager.state.error == TIMEOUT_MESSAGE
    on_error.assert_called_once_with(TIMEOUT_MESSAGE)


def test_retries_follow_policy(client_settings):
    settings = ClientSettings(
        server_url=client_settings.server_url,
        reconnect_policy=ReconnectPolicy(max_retries=2, base_delay=0, jitter=0),
    )
    factory = FakeClientFactory(
        {"refuse_with": "server_error"},
        {"refuse_with": "server_error"},
        {},
    )
    on_error = mock.Mock()
    manager = _manager(settings, factory, on_error=on_error)

    async_to_sync(manager.connect)("abc123")

    assert len(factory.clients) == 3
    assert manager.state.is_connected is True
    assert manager.state.error is None
    # One report per failed attempt
    assert on_error.call_count == 2


def test_no_retry_by_default(client_settings):
    factory = FakeClientFactory({"refuse_with": "unauthorized"}, {})
    manager = _manager(client_settings, factory)

    async_to_sync(manager.connect)("abc123")

    assert len(factory.clients) == 1
    assert manager.state.error == "unauthorized"


def test_disconnect_is_idempotent(client_settings, client_factory):
    on_disconnect = mock.Mock()
    manager = _manager(client_settings, client_factory, on_disconnect=on_disconnect)

    async def scenario():
        handle = await manager.connect("abc123")
        await manager.disconnect(handle)
        await manager.disconnect(handle)
        await manager.disconnect(None)

    async_to_sync(scenario)()

    assert client_factory.last.disconnect_calls == 1
    assert manager.state.is_connected is False
    assert manager.handle is None
    on_disconnect.assert_called_once_with()


def test_silent_disconnect_skips_callback(client_settings, client_factory):
    on_disconnect = mock.Mock()
    manager = _manager(client_settings, client_factory, on_disconnect=on_disconnect)

    async def scenario():
        handle = await manager.connect("abc123")
        await manager.disconnect(handle, notify=False)

    async_to_sync(scenario)()

    assert client_factory.last.connected is False
    on_disconnect.assert_not_called()


def test_disconnect_after_refusal_reports_nothing(client_settings):
    factory = FakeClientFactory({"refuse_with": "unauthorized"})
    on_disconnect = mock.Mock()
    manager = _manager(client_settings, factory, on_disconnect=on_disconnect)

    async def scenario():
        handle = await manager.connect("abc123")
        await manager.disconnect(handle)

    async_to_sync(scenario)()

    on_disconnect.assert_not_called()


def test_server_drop_marks_disconnected(client_settings, client_factory):
    on_disconnect = mock.Mock()
    manager = _manager(client_settings, client_factory, on_disconnect=on_disconnect)

    async def scenario():
        await manager.connect("abc123")
        await client_factory.last.drop()

    async_to_sync(scenario)()

    assert manager.state.is_connected is False
    on_disconnect.assert_called_once_with()


def test_disconnect_after_server_drop_reports_once(client_settings, client_factory):
    on_disconnect = mock.Mock()
    manager = _manager(client_settings, client_factory, on_disconnect=on_disconnect)

    async def scenario():
        handle = await manager.connect("abc123")
        await client_factory.last.drop()
        await manager.disconnect(handle)

    async_to_sync(scenario)()

    on_disconnect.assert_called_once_with()


def test_messages_forwarded_in_order(client_settings, client_factory):
    received = []
    manager = _manager(client_settings, client_factory, on_message=received.append)

    async def scenario():
        await manager.connect("abc123")
        client = client_factory.last
        await client.send_message({"tag": "transactionUpdate", "payload": 1})
        await client.emit_event("transactionUpdateUser", {"event": "UPDATE"})

    async_to_sync(scenario)()

    assert received == [
        {"tag": "transactionUpdate", "payload": 1},
        {"tag": "transactionUpdateUser", "payload": {"event": "UPDATE"}},
    ]


def test_concurrent_messages_keep_arrival_order(client_settings, client_factory):
    received = []

    async def slow_first(raw):
        if raw == 1:
            await asyncio.sleep(0.01)
        received.append(raw)

    manager = _manager(client_settings, client_factory, on_message=slow_first)

    async def scenario():
        await manager.connect("abc123")
        client = client_factory.last
        await asyncio.gather(client.send_message(1), client.send_message(2))

    async_to_sync(scenario)()

    assert received == [1, 2]


def test_no_callbacks_after_detach(client_settings, client_factory):
    on_message = mock.Mock()
    on_disconnect = mock.Mock()
    manager = _manager(
        client_settings,
        client_factory,
        on_message=on_message,
        on_disconnect=on_disconnect,
    )

    async def scenario():
        handle = await manager.connect("abc123")
        client = client_factory.last
        manager.detach(handle)
        await client.send_message({"tag": "transactionUpdate", "payload": 1})
        await client.drop()

    async_to_sync(scenario)()

    on_message.assert_not_called()
    on_disconnect.assert_not_called()
    assert manager.state.is_connected is False


def test_reconnect_opens_fresh_connection_with_same_token(
    client_settings, client_factory
):
    on_connect = mock.Mock()
    on_disconnect = mock.Mock()
    manager = _manager(
        client_settings,
        client_factory,
        on_connect=on_connect,
        on_disconnect=on_disconnect,
    )

    async def scenario():
        first = await manager.connect("abc123")
        second = await manager.reconnect(first)
        return first, second

    first, second = async_to_sync(scenario)()

    assert first is not second
    assert first.closed is True
    assert second.token == "abc123"
    assert len(client_factory.clients) == 2
    assert client_factory.live == [client_factory.last]
    assert manager.state.is_connected is True
    assert on_connect.call_count == 2
    on_disconnect.assert_called_once_with()


def test_reconnect_without_handle_is_noop(client_settings, client_factory):
    manager = _manager(client_settings, client_factory)

    assert async_to_sync(manager.reconnect)(None) is None
    assert client_factory.clients == []


def test_new_connect_closes_previous(client_settings, client_factory):
    manager = _manager(client_settings, client_factory)

    async def scenario():
        await manager.connect("first")
        await manager.connect("second")

    async_to_sync(scenario)()

    first, second = client_factory.clients
    assert first.connected is False
    assert second.connected is True
    assert manager.handle.token == "second"


def test_detach_cuts_retry_backoff_short(client_settings):
    settings = ClientSettings(
        server_url=client_settings.server_url,
        transports=client_settings.transports,
        connect_timeout=1.0,
        reconnect_policy=ReconnectPolicy(max_retries=3, base_delay=2.0, jitter=0),
    )
    factory = FakeClientFactory(*[{"refuse_with": "server_error"}] * 4)
    manager = _manager(settings, factory)

    async def scenario():
        loop = asyncio.get_running_loop()
        pending = asyncio.create_task(manager.connect("abc123"))
        await asyncio.sleep(0.05)
        started = loop.time()
        manager.detach(manager.handle)
        await pending
        await manager.disconnect(manager.handle)
        return loop.time() - started

    elapsed = async_to_sync(scenario)()

    assert elapsed < 0.5
    assert len(factory.clients) == 1
    assert manager.handle is None


def test_backoff_delay_grows_and_is_capped():
    policy = ReconnectPolicy(max_retries=5, base_delay=1.0, max_delay=4.0, jitter=0)

    assert [policy.delay_for(n) for n in range(4)] == [1.0, 2.0, 4.0, 4.0]


def test_backoff_jitter_is_bounded():
    policy = ReconnectPolicy(base_delay=2.0, jitter=0.5)

    with mock.patch(
        "tradefair.realtime.client.conf.random.uniform",
        side_effect=lambda low, high: high,
    ):
        assert policy.delay_for(0) == 3.0
