"""Tests for the world tick push channel."""

import threading
from datetime import datetime, timezone

import pytest
import socketio

from hangar.clock import WorldTickListener

NOON = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def tick(game_time='2024-03-01T12:00:00.000Z', world_id='world-1'):
    # Shape broadcast by the game server; acceleration is not included
    return {'worldId': world_id, 'gameTime': game_time, 'advancement': 60}


class FakeSocketClient:
    """Stand-in for socketio.Client that replays events during wait()."""

    def __init__(self, events=(), failures=0):
        self.handlers = {}
        self.events = list(events)
        self.failures = failures
        self.connected = False
        self.connect_calls = []

    def on(self, event, handler=None, namespace=None):
        self.handlers[event] = handler

    def fire(self, event, *args):
        return self.handlers[event](*args)

    def connect(self, url, **kwargs):
        self.connect_calls.append((url, kwargs))
        if self.failures:
            self.failures -= 1
            raise socketio.exceptions.ConnectionError('Connection refused by the server')
        self.connected = True
        self.fire('connect')

    def wait(self):
        for event, payload in self.events:
            self.fire(event, payload)
        self.disconnect()

    def disconnect(self):
        if self.connected:
            self.connected = False
            self.fire('disconnect', 'server disconnect')


def make_listener(synchronizer, client):
    return WorldTickListener(
        synchronizer,
        url='http://game.local/',
        socketio_path='socket.io',
        connect_timeout=2,
        reconnect_delay=0.01,
        client=client,
    )


@pytest.fixture
def client():
    return FakeSocketClient([('world:tick', tick())])


@pytest.fixture
def listener(synchronizer, client):
    return make_listener(synchronizer, client)


def test_registers_socket_handlers(listener, client):
    assert set(client.handlers) == {'connect', 'disconnect', 'world:tick'}


def test_tick_applies_and_keeps_acceleration(listener, client, synchronizer):
    assert client.fire('world:tick', tick())

    clock = synchronizer.snapshot()
    assert clock.reference_time == NOON
    assert clock.acceleration_factor == 60


def test_tick_ignores_bad_payloads(listener, client, synchronizer):
    assert not client.fire('world:tick', ['2024-03-01T12:00:00Z'])
    assert not client.fire('world:tick', {'worldId': 'world-1'})
    assert not client.fire('world:tick', tick(world_id='world-2'))

    assert synchronizer.current_time() is None
    assert listener.stats['message_count'] == 3
    assert listener.stats['accepted_count'] == 0


def test_connect_and_disconnect_drive_push_flag(listener, client, synchronizer):
    client.fire('connect')
    assert synchronizer.push_connected
    assert listener.stats['connected']

    client.fire('disconnect')
    assert not synchronizer.push_connected


def test_listen_once_tracks_connection(listener, client, synchronizer):
    seen = []
    synchronizer.add_sync_callback(lambda clock: seen.append(synchronizer.push_connected))

    listener.listen_once()

    assert seen == [True]
    assert not synchronizer.push_connected
    assert listener.stats['connect_count'] == 1
    assert listener.stats['accepted_count'] == 1

    url, kwargs = client.connect_calls[0]
    assert url == 'http://game.local'
    assert kwargs['socketio_path'] == 'socket.io'
    assert kwargs['transports'] == ['websocket', 'polling']
    assert kwargs['wait_timeout'] == 2


def test_listen_once_raises_when_unreachable(synchronizer):
    listener = make_listener(synchronizer, FakeSocketClient(failures=1))

    with pytest.raises(socketio.exceptions.ConnectionError):
        listener.listen_once()

    assert not synchronizer.push_connected


def test_push_connection_blocks_backwards_polls(listener, synchronizer):
    seen = []

    def poll_during_socket(clock):
        if clock.source.value == 'push':
            sequence = synchronizer.issue_sequence()
            seen.append(synchronizer.apply_poll(sequence, '2024-03-01T11:00:00Z', 60, 'world-1'))

    synchronizer.add_sync_callback(poll_during_socket)

    listener.listen_once()

    assert seen == [False]
    assert synchronizer.current_time() == NOON


def test_reconnects_after_connection_error(synchronizer):
    client = FakeSocketClient([('world:tick', tick())], failures=2)
    listener = make_listener(synchronizer, client)
    synced = threading.Event()
    synchronizer.add_sync_callback(lambda clock: synced.set())

    listener.start_background()
    try:
        assert synced.wait(timeout=5)
    finally:
        listener.stop()

    assert not listener.running
    assert listener.stats['error_count'] == 2
    assert listener.stats['connect_count'] >= 1
    assert synchronizer.current_time() == NOON
