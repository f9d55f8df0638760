"""
World clock synchronization.

The game server owns an accelerated clock (e.g. 60x: one real second is
one game minute). We learn its value from two independent channels:

- Poll: GET /api/world/info every ~30s → { currentTime, timeAcceleration, worldId }
- Push: world:tick events → { gameTime, timeAcceleration, worldId }

Between updates the current simulated time is extrapolated from the last
accepted reference:

    elapsed_real      = now - reference_timestamp
    elapsed_simulated = elapsed_real * acceleration_factor
    current           = reference_time + elapsed_simulated

It is recomputed from the reference on every query, never advanced in
place, so repeated small updates can't accumulate drift.

Acceptance rules:
- A poll response is applied only if it answers the latest issued
  request (sequence check); older replies are stale and dropped.
- While the push channel is connected it is authoritative: a poll update
  that would move the extrapolated time backwards is rejected.
- Push updates for the active world are always accepted.
"""

import logging
import threading
import time
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, List, Optional, Union

from hangar.config import config
from hangar.timeutils import ensure_utc, parse_timestamp

logger = logging.getLogger(__name__)

# Log poll corrections larger than this (simulated time)
LARGE_ADJUSTMENT = timedelta(minutes=1)


class ClockSource(str, Enum):
    """Channel that delivered a reference."""
    PUSH = 'push'
    POLL = 'poll'


@dataclass(frozen=True)
class WorldClock:
    """
    Immutable synchronization snapshot.

    Readers always get a whole snapshot, so a timer callback can never
    observe a reference_time from one update paired with the
    reference_timestamp of another.
    """
    reference_time: datetime
    reference_timestamp: float
    acceleration_factor: float
    source: ClockSource
    sequence: int
    world_id: Optional[str] = None

    def extrapolate(self, now: float) -> datetime:
        """Simulated time at real-world epoch seconds `now`."""
        # Never run backwards if the host clock is stepped back
        elapsed_real = max(0.0, now - self.reference_timestamp)
        return self.reference_time + timedelta(seconds=elapsed_real * self.acceleration_factor)

    def to_dict(self) -> dict:
        return {
            'reference_time': self.reference_time.isoformat(),
            'reference_timestamp': self.reference_timestamp,
            'acceleration_factor': self.acceleration_factor,
            'source': self.source.value,
            'sequence': self.sequence,
            'world_id': self.world_id,
        }


class FixedClock:
    """
    Clock reader pinned to one instant.

    Useful for evaluating statuses at a chosen simulated time. A FixedClock
    built with None reports time as unavailable.
    """

    def __init__(self, at: Optional[datetime]):
        self.at = ensure_utc(at) if at is not None else None

    def current_time(self) -> Optional[datetime]:
        return self.at


SyncCallback = Callable[[WorldClock], None]


class ClockSynchronizer:
    """
    Owns the process-wide WorldClock reference.

    Thread-safe: the poller thread, the push listener thread and request
    handlers all go through this object. The only mutable state is the
    reference swap, the sequence counter and the push flag, all guarded
    by one lock.
    """

    def __init__(
        self,
        world_id: Optional[str] = None,
        default_acceleration: Optional[float] = None,
        wall_clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            world_id: Active world; if None it is adopted from the first poll
            default_acceleration: Factor used when an update omits one
            wall_clock: Real-time source in epoch seconds (injectable for tests)
        """
        self.world_id = world_id
        self.default_acceleration = default_acceleration or config.world.default_acceleration
        self._wall_clock = wall_clock

        self._lock = threading.RLock()
        self._clock: Optional[WorldClock] = None
        self._sequence = 0
        self._push_connected = False

        self._callbacks: List[SyncCallback] = []

        # Statistics
        self._accepted = {ClockSource.POLL: 0, ClockSource.PUSH: 0}
        self._rejected_backwards = 0
        self._discarded_stale = 0
        self._ignored_foreign = 0
        self._malformed = 0

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    def snapshot(self) -> Optional[WorldClock]:
        """Current reference, or None if no channel has delivered one."""
        with self._lock:
            return self._clock

    def current_time(self, now: Optional[float] = None) -> Optional[datetime]:
        """
        Extrapolated simulated time.

        Returns None (unavailable) until a reference has been established.
        Callers must not fall back to wall-clock time.
        """
        clock = self.snapshot()
        if clock is None:
            return None
        return clock.extrapolate(self._wall_clock() if now is None else now)

    @property
    def is_available(self) -> bool:
        return self.snapshot() is not None

    @property
    def push_connected(self) -> bool:
        with self._lock:
            return self._push_connected

    def set_push_connected(self, connected: bool) -> None:
        with self._lock:
            changed = self._push_connected != connected
            self._push_connected = connected
        if changed:
            logger.info(f'Push channel {"connected" if connected else "disconnected"}')

    def add_sync_callback(self, callback: SyncCallback) -> None:
        """
        Register callback to be invoked after every accepted update.

        Callback receives the new WorldClock snapshot.
        """
        self._callbacks.append(callback)

    # ------------------------------------------------------------------
    # Poll channel
    # ------------------------------------------------------------------

    def issue_sequence(self) -> int:
        """Number the next outbound poll request."""
        with self._lock:
            self._sequence += 1
            return self._sequence

    def apply_poll(
        self,
        sequence: int,
        current_time: Union[str, datetime],
        acceleration: Optional[float] = None,
        world_id: Optional[str] = None,
    ) -> bool:
        """
        Apply a poll response. Returns True if it became the new reference.

        Stale responses (sequence is not the latest issued) are dropped.
        With push connected, a response that would move time backwards is
        rejected.
        """
        new_time = parse_timestamp(current_time)

        with self._lock:
            if sequence != self._sequence:
                self._discarded_stale += 1
                logger.debug(f'Discarding stale world info response #{sequence} (latest #{self._sequence})')
                return False

            if world_id and self.world_id is None:
                self.world_id = world_id
                logger.info(f'Active world set to {world_id}')

            now = self._wall_clock()
            if self._clock is not None:
                calculated = self._clock.extrapolate(now)
                if self._push_connected and new_time < calculated:
                    self._rejected_backwards += 1
                    logger.info(
                        f'Rejected poll update {new_time.isoformat()}: behind push-synced '
                        f'time {calculated.isoformat()} by {(calculated - new_time).total_seconds():.0f}s'
                    )
                    return False

                adjustment = new_time - calculated
                if abs(adjustment) > LARGE_ADJUSTMENT:
                    logger.warning(f'Large time sync adjustment: {adjustment.total_seconds():.0f}s')

            clock = self._stamp(new_time, acceleration, ClockSource.POLL, now)

        self._broadcast(clock)
        return True

    def handle_world_info(self, sequence: int, payload: dict) -> bool:
        """Parse a /api/world/info JSON body and apply it."""
        try:
            current_time = payload['currentTime']
            acceleration = payload.get('timeAcceleration')
            world_id = payload.get('worldId') or payload.get('id')
            return self.apply_poll(sequence, current_time, acceleration, world_id)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            with self._lock:
                self._malformed += 1
            logger.warning(f'Ignoring malformed world info payload: {e}')
            return False

    # ------------------------------------------------------------------
    # Push channel
    # ------------------------------------------------------------------

    def apply_push(
        self,
        game_time: Union[str, datetime],
        acceleration: Optional[float] = None,
        world_id: Optional[str] = None,
    ) -> bool:
        """
        Apply a world tick. Always accepted for the active world.

        Ticks for another world, or arriving before the active world is
        known, are ignored.
        """
        if world_id is None or self.world_id is None or str(world_id) != str(self.world_id):
            with self._lock:
                self._ignored_foreign += 1
            logger.debug(f'Ignoring tick for world {world_id} (active: {self.world_id})')
            return False

        new_time = parse_timestamp(game_time)
        with self._lock:
            clock = self._stamp(new_time, acceleration, ClockSource.PUSH, self._wall_clock())

        self._broadcast(clock)
        return True

    def handle_tick(self, payload: dict) -> bool:
        """Parse a world:tick event body and apply it."""
        try:
            return self.apply_push(
                payload['gameTime'],
                payload.get('timeAcceleration'),
                payload.get('worldId'),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            with self._lock:
                self._malformed += 1
            logger.warning(f'Ignoring malformed world tick: {e}')
            return False

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _stamp(
        self,
        reference_time: datetime,
        acceleration: Optional[float],
        source: ClockSource,
        now: float,
    ) -> WorldClock:
        """Swap in a fresh reference. Caller holds the lock."""
        if acceleration is None or acceleration <= 0:
            acceleration = self._clock.acceleration_factor if self._clock else self.default_acceleration

        if self._clock is None:
            clock = WorldClock(
                reference_time=reference_time,
                reference_timestamp=now,
                acceleration_factor=float(acceleration),
                source=source,
                sequence=self._sequence,
                world_id=self.world_id,
            )
            logger.info(f'World clock established from {source.value}: {reference_time.isoformat()} ({acceleration}x)')
        else:
            clock = replace(
                self._clock,
                reference_time=reference_time,
                reference_timestamp=now,
                acceleration_factor=float(acceleration),
                source=source,
                sequence=self._sequence,
                world_id=self.world_id,
            )

        self._clock = clock
        self._accepted[source] += 1
        return clock

    def _broadcast(self, clock: WorldClock) -> None:
        """Notify sync callbacks outside the lock."""
        for callback in list(self._callbacks):
            try:
                callback(clock)
            except Exception as e:
                logger.error(f'Clock sync callback error: {e}')

    @property
    def stats(self) -> dict:
        """Get synchronization statistics."""
        with self._lock:
            return {
                'available': self._clock is not None,
                'world_id': self.world_id,
                'push_connected': self._push_connected,
                'sequence': self._sequence,
                'accepted_poll': self._accepted[ClockSource.POLL],
                'accepted_push': self._accepted[ClockSource.PUSH],
                'rejected_backwards': self._rejected_backwards,
                'discarded_stale': self._discarded_stale,
                'ignored_foreign': self._ignored_foreign,
                'malformed': self._malformed,
            }
