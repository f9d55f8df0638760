"""
In-memory status board for low-latency maintenance queries.

Holds a snapshot of the fleet records and maintenance windows together
with the statuses evaluated from them, so the dashboard can be served
without touching the database on every request.

The snapshot is reloaded at most once per refresh_interval (real
seconds), either on a read or after the world clock resynchronizes.
Single-aircraft lookups are re-evaluated against the live clock on every
call; the snapshot only saves the database round trip.
"""

import logging
import threading
import time
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from hangar.config import config
from hangar.clock.sync import FixedClock, WorldClock
from hangar.maintenance.source import FleetDataSource
from hangar.maintenance.status import (
    AircraftMaintenanceRecord,
    AircraftStatus,
    CheckState,
    CheckStatus,
    CheckStatusEvaluator,
    ClockReader,
)
from hangar.maintenance.windows import WindowResolver

logger = logging.getLogger(__name__)

# Windows are loaded through at least this far past the evaluation instant
WINDOW_HORIZON = timedelta(days=1)


class StatusCache:
    """
    Thread-safe fleet status board.

    The poller and push threads trigger refreshes through on_sync while
    request handlers read; the whole board is swapped atomically.
    """

    def __init__(
        self,
        evaluator: CheckStatusEvaluator,
        source: FleetDataSource,
        clock: ClockReader,
        refresh_interval: Optional[float] = None,
    ):
        self.evaluator = evaluator
        self.source = source
        self.clock = clock
        self.refresh_interval = config.cache.refresh_interval if refresh_interval is None else refresh_interval

        self._lock = threading.RLock()
        self._records: Dict[str, dict] = {}
        self._board: Dict[str, AircraftStatus] = {}
        self._resolver: WindowResolver = evaluator.empty_resolver()
        self._evaluated_at: Optional[datetime] = None
        self._last_refresh: float = 0

        # Statistics
        self._refresh_count = 0
        self._error_count = 0
        self._hits = 0
        self._misses = 0

    def refresh(self) -> int:
        """
        Reload records and windows and re-evaluate the fleet.

        Returns count of aircraft on the board.
        """
        now = self.clock.current_time()
        records = self.source.load_records()

        if now is None:
            # Nothing can be evaluated without world time
            windows = []
        else:
            end = now + self.evaluator.lead_time + WINDOW_HORIZON
            windows = self.source.load_windows(now.date(), end.date())

        resolver = WindowResolver.from_records(
            windows,
            self.evaluator.rule_set,
            self.evaluator.lead_time,
        )
        statuses = self.evaluator.evaluate_fleet(records, FixedClock(now), resolver)

        by_id = {str(r.get('id') or r.get('aircraftId')): r for r in records if isinstance(r, dict)}
        new_records = {s.aircraft_id: by_id[s.aircraft_id] for s in statuses if s.aircraft_id in by_id}
        new_board = {s.aircraft_id: s for s in statuses}

        with self._lock:
            self._records = new_records
            self._board = new_board
            self._resolver = resolver
            self._evaluated_at = now
            self._last_refresh = time.time()
            self._refresh_count += 1

        logger.debug(f'Status board refreshed: {len(new_board)} aircraft, {len(resolver)} windows')
        return len(new_board)

    def on_sync(self, clock: WorldClock) -> None:
        """
        Clock sync callback.

        Refreshes when the board is older than refresh_interval, or when it
        was built before world time was known.
        """
        with self._lock:
            stale = time.time() - self._last_refresh >= self.refresh_interval
            untimed = self._evaluated_at is None

        if not (stale or untimed):
            return

        try:
            self.refresh()
        except Exception as e:
            self._error_count += 1
            logger.error(f'Status board refresh failed: {e}')

    def _ensure_fresh(self) -> None:
        with self._lock:
            stale = time.time() - self._last_refresh >= self.refresh_interval
        if stale:
            self.refresh()

    def get_all(self, status: Optional[CheckState] = None) -> List[AircraftStatus]:
        """
        Board entries sorted by registration.

        Args:
            status: Only aircraft whose worst status is this state
        """
        self._ensure_fresh()
        with self._lock:
            result = list(self._board.values())

        if status is not None:
            result = [a for a in result if a.worst_status is status]

        result.sort(key=lambda a: (a.registration or '', a.aircraft_id))
        return result

    def get(self, aircraft_id: str) -> Optional[AircraftStatus]:
        """
        Statuses of one aircraft at the current simulated time.

        Returns None if the aircraft is unknown.
        """
        self._ensure_fresh()
        with self._lock:
            raw = self._records.get(aircraft_id)
            resolver = self._resolver

        if raw is None:
            self._misses += 1
            return None

        self._hits += 1
        record = AircraftMaintenanceRecord.from_dict(raw, self.evaluator.rule_set)
        return self.evaluator.evaluate_aircraft(record, self.clock, resolver)

    def status_of(self, aircraft_id: str, tier_id: str) -> Optional[CheckStatus]:
        """
        Status of one tier for one aircraft.

        Returns None if the aircraft is unknown; raises KeyError for a tier
        outside the active rule set.
        """
        self.evaluator.rule_set.tier(tier_id)

        self._ensure_fresh()
        with self._lock:
            raw = self._records.get(aircraft_id)
            resolver = self._resolver

        if raw is None:
            self._misses += 1
            return None

        self._hits += 1
        record = AircraftMaintenanceRecord.from_dict(raw, self.evaluator.rule_set)
        return self.evaluator.evaluate(record, tier_id, self.clock, resolver)

    def clear(self) -> None:
        """Drop the board; the next read reloads it."""
        with self._lock:
            self._records = {}
            self._board = {}
            self._resolver = self.evaluator.empty_resolver()
            self._evaluated_at = None
            self._last_refresh = 0

    @property
    def stats(self) -> dict:
        """Get board statistics."""
        with self._lock:
            counts: Dict[str, int] = {}
            for entry in self._board.values():
                key = entry.worst_status.value
                counts[key] = counts.get(key, 0) + 1

            return {
                'entries': len(self._board),
                'windows': len(self._resolver),
                'by_status': counts,
                'hits': self._hits,
                'misses': self._misses,
                'refresh_count': self._refresh_count,
                'error_count': self._error_count,
                'last_refresh': self._last_refresh,
                'evaluated_at': self._evaluated_at.isoformat() if self._evaluated_at else None,
            }
