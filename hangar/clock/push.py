"""
Push channel - world tick events over Socket.IO.

The game server broadcasts a tick on every world advancement:

    socket.emit('world:tick', {
        "worldId": "…",
        "gameTime": "2024-03-01T12:00:00.000Z",
        "advancement": 60
    })

While the socket is connected the push channel is authoritative; the
poller only fills in when it drops. Ticks do not carry the acceleration
factor, so the synchronizer keeps the one learned from the last poll.
"""

import logging
import threading
import time
from typing import Optional

import socketio

from hangar.config import config
from hangar.clock.sync import ClockSynchronizer

logger = logging.getLogger(__name__)

TICK_EVENT = 'world:tick'
TRANSPORTS = ['websocket', 'polling']


class WorldTickListener:
    """
    Subscribes to world ticks and feeds them to the synchronizer.

    Socket connect and disconnect events drive push_connected on the
    synchronizer. Reconnection is handled here rather than by the client
    library, so that a dropped socket always falls back to polling for at
    least reconnect_delay seconds.
    """

    def __init__(
        self,
        synchronizer: ClockSynchronizer,
        url: Optional[str] = None,
        socketio_path: Optional[str] = None,
        connect_timeout: Optional[float] = None,
        reconnect_delay: Optional[float] = None,
        client: Optional[socketio.Client] = None,
    ):
        self.synchronizer = synchronizer
        self.url = (url or config.world.base_url).rstrip('/')
        self.socketio_path = socketio_path or config.world.socketio_path
        self.connect_timeout = connect_timeout or config.world.request_timeout
        self.reconnect_delay = reconnect_delay or config.world.push_reconnect_seconds

        self.client = client or socketio.Client(reconnection=False)
        self.client.on('connect', self._on_connect)
        self.client.on('disconnect', self._on_disconnect)
        self.client.on(TICK_EVENT, self.handle_tick)

        # State tracking
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._message_count: int = 0
        self._accepted_count: int = 0
        self._connect_count: int = 0
        self._error_count: int = 0
        self._last_message_time: float = 0

    def _on_connect(self) -> None:
        self._connect_count += 1
        self.synchronizer.set_push_connected(True)
        logger.info(f'Connected to world tick socket: {self.url}')

    def _on_disconnect(self, reason=None) -> None:
        self.synchronizer.set_push_connected(False)
        logger.info(f'World tick socket disconnected ({reason or "unknown reason"})')

    def handle_tick(self, payload) -> bool:
        """
        Apply one world:tick payload.

        Returns True if the synchronizer accepted the tick.
        """
        self._message_count += 1
        self._last_message_time = time.time()

        if not isinstance(payload, dict):
            logger.warning(f'Ignoring world tick of type {type(payload).__name__}')
            return False

        accepted = self.synchronizer.handle_tick(payload)
        if accepted:
            self._accepted_count += 1
        return accepted

    def listen_once(self) -> None:
        """
        Connect and block until the socket drops.

        Raises:
            socketio.exceptions.ConnectionError if the server cannot be reached
        """
        logger.debug(f'Connecting to world tick socket: {self.url}/{self.socketio_path}')

        self.client.connect(
            self.url,
            transports=TRANSPORTS,
            socketio_path=self.socketio_path,
            wait_timeout=self.connect_timeout,
        )
        try:
            self.client.wait()
        finally:
            self.synchronizer.set_push_connected(False)

    def run_continuous(self) -> None:
        """
        Listen, reconnecting after failures, until stop() is called.

        This method blocks - use start_background() for non-blocking.
        """
        logger.info(f'Starting world tick listener ({self.url})')

        while not self._stop_event.is_set():
            try:
                self.listen_once()
            except socketio.exceptions.ConnectionError as e:
                self._error_count += 1
                logger.warning(f'World tick socket error: {e}')

            self._stop_event.wait(self.reconnect_delay)

        logger.info('World tick listener stopped')

    def start_background(self) -> None:
        """Start listening in background thread."""
        if self._thread and self._thread.is_alive():
            logger.warning('World tick listener already running')
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self.run_continuous,
            name='world-tick-listener',
            daemon=True,
        )
        self._thread.start()
        logger.info('Background world tick listener started')

    def stop(self) -> None:
        """Stop background listening and close the socket."""
        self._stop_event.set()
        if self.client.connected:
            self.client.disconnect()
        if self._thread:
            self._thread.join(timeout=5)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set()

    @property
    def stats(self) -> dict:
        """Get listener statistics."""
        return {
            'connected': self.synchronizer.push_connected,
            'connect_count': self._connect_count,
            'message_count': self._message_count,
            'accepted_count': self._accepted_count,
            'error_count': self._error_count,
            'last_message_time': self._last_message_time,
            'running': self.running,
        }
