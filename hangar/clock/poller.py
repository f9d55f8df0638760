"""
Poll channel - periodic world info requests.

The game server answers GET /api/world/info with:

    {
        "worldId": "…",
        "currentTime": "2024-03-01T12:00:00.000Z",
        "timeAcceleration": 60,
        ...
    }

Each request is numbered by the synchronizer before it is sent. If an
older request resolves after a newer one, its answer carries an out of
date sequence number and is discarded rather than rolling the clock back.
"""

import logging
import threading
import time
from typing import Callable, List, Optional

import requests

from hangar.config import config
from hangar.clock.sync import ClockSynchronizer

logger = logging.getLogger(__name__)


class WorldInfoClient:
    """
    Client for the game server's world info endpoint.

    Every request carries a timeout so that a request that never resolves
    cannot hold up the poll loop.
    """

    def __init__(
        self,
        base_url: str = 'http://localhost:3000',
        info_path: str = '/api/world/info',
        timeout: float = 10.0,
        world_id: Optional[str] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.info_path = info_path
        self.timeout = timeout
        self.world_id = world_id

        self.session = requests.Session()
        self.last_request_time: float = 0

    @classmethod
    def from_config(cls) -> 'WorldInfoClient':
        """Create client from application configuration."""
        return cls(
            base_url=config.world.base_url,
            info_path=config.world.info_path,
            timeout=config.world.request_timeout,
            world_id=config.world.world_id,
        )

    @property
    def url(self) -> str:
        return f'{self.base_url}{self.info_path}'

    def get_world_info(self) -> dict:
        """
        Fetch the current world info.

        Returns:
            Parsed JSON body

        Raises:
            requests.RequestException on network/API errors
            ValueError if the body is not a JSON object
        """
        params = {'worldId': self.world_id} if self.world_id else None
        logger.debug(f'Fetching world info: {self.url}')

        try:
            response = self.session.get(self.url, params=params, timeout=self.timeout)
            self.last_request_time = time.time()

            response.raise_for_status()
            data = response.json()

        except requests.exceptions.Timeout:
            logger.error(f'World info request timed out after {self.timeout}s')
            raise
        except requests.exceptions.HTTPError as e:
            logger.error(f'World info API error: {e.response.status_code}')
            raise
        except requests.exceptions.RequestException as e:
            logger.error(f'World info request failed: {e}')
            raise

        if not isinstance(data, dict):
            raise ValueError(f'Unexpected world info body: {type(data).__name__}')

        return data


class ClockPoller:
    """
    Drives the poll channel.

    Issues a sequence number, fetches world info and hands the response to
    the synchronizer. Can run as a background thread for continuous polling.
    """

    def __init__(
        self,
        synchronizer: ClockSynchronizer,
        client: Optional[WorldInfoClient] = None,
        interval: Optional[float] = None,
    ):
        """
        Args:
            synchronizer: Clock to update
            client: World info client (created from config if None)
            interval: Seconds between polls
        """
        self.synchronizer = synchronizer
        self.client = client or WorldInfoClient.from_config()
        self.interval = interval or config.world.poll_interval

        # State tracking
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._last_poll_time: float = 0
        self._poll_count: int = 0
        self._accepted_count: int = 0
        self._error_count: int = 0

        self._on_poll_callbacks: List[Callable[[bool], None]] = []

    def add_poll_callback(self, callback: Callable[[bool], None]) -> None:
        """
        Register callback to be invoked after each completed poll.

        Callback receives whether the response was accepted.
        """
        self._on_poll_callbacks.append(callback)

    def poll_once(self) -> bool:
        """
        Execute one poll cycle.

        Returns True if the response became the new clock reference.
        """
        sequence = self.synchronizer.issue_sequence()
        self._poll_count += 1

        try:
            payload = self.client.get_world_info()
        except (requests.RequestException, ValueError) as e:
            self._error_count += 1
            logger.error(f'World time poll #{sequence} failed: {e}')
            return False

        self._last_poll_time = time.time()
        accepted = self.synchronizer.handle_world_info(sequence, payload)
        if accepted:
            self._accepted_count += 1

        for callback in self._on_poll_callbacks:
            try:
                callback(accepted)
            except Exception as e:
                logger.error(f'Poll callback error: {e}')

        return accepted

    def run_continuous(self, interval: Optional[float] = None) -> None:
        """
        Run the poll loop until stop() is called.

        This method blocks - use start_background() for non-blocking.
        """
        interval = interval or self.interval
        logger.info(f'Starting world time polling (interval={interval}s)')

        while not self._stop_event.is_set():
            self.poll_once()
            self._stop_event.wait(interval)

        logger.info('World time polling stopped')

    def start_background(self, interval: Optional[float] = None) -> None:
        """Start polling in background thread."""
        if self._thread and self._thread.is_alive():
            logger.warning('World time polling already running')
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self.run_continuous,
            args=(interval,),
            name='world-clock-poller',
            daemon=True,
        )
        self._thread.start()
        logger.info('Background world time polling started')

    def stop(self) -> None:
        """Stop background polling."""
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=5)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set()

    @property
    def stats(self) -> dict:
        """Get polling statistics."""
        return {
            'poll_count': self._poll_count,
            'accepted_count': self._accepted_count,
            'error_count': self._error_count,
            'last_poll_time': self._last_poll_time,
            'running': self.running,
        }
