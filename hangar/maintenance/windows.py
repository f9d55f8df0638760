"""
Cascading maintenance window resolution.

A maintenance window is one scheduled check block for one aircraft:

    scheduledDate + startTime  →  + duration minutes

Heavy checks run for days (C = 14 days, D = 60 days). The scheduler also
writes "ongoing" display copies of a multi-day block, one per spanned day,
so the schedule grid can paint it. Those copies are ignored here: only the
primary record is evaluated, and its computed start/end decides whether
it is active.

Coverage cascades down the tier precedence: while a D check is open, the
aircraft is also being given its C, B/weekly, A and daily checks.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, Iterable, List, Optional

from hangar.maintenance.errors import MalformedRecordError
from hangar.maintenance.tiers import RuleSet
from hangar.timeutils import ensure_utc

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


def _parse_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip()[:10])


def _parse_time(value) -> time:
    if isinstance(value, time):
        return value
    parts = str(value).strip().split(':')
    if len(parts) not in (2, 3):
        raise ValueError(f'Expected HH:MM[:SS], got {value!r}')
    hour, minute = int(parts[0]), int(parts[1])
    second = int(float(parts[2])) if len(parts) == 3 else 0
    return time(hour, minute, second)


def _parse_duration(value) -> int:
    """Whole minutes; fractional values are rejected rather than truncated."""
    if isinstance(value, bool):
        raise ValueError(f'duration must be a number of minutes, got {value!r}')
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f'duration must be whole minutes, got {value!r}')
        return int(value)
    return int(value)


@dataclass(frozen=True)
class MaintenanceWindow:
    """A scheduled maintenance block as delivered by the scheduler."""
    aircraft_id: str
    check_type: str
    scheduled_date: date
    start_time: time
    duration_minutes: int
    is_ongoing_display_copy: bool = False
    id: Optional[str] = None

    @classmethod
    def from_record(cls, record: dict) -> 'MaintenanceWindow':
        """
        Parse a maintenance window record from the schedule feed.

        Expected keys: aircraftId, checkType, scheduledDate (YYYY-MM-DD),
        startTime (HH:MM:SS), duration (minutes), isOngoing (optional).

        Raises MalformedRecordError if a field is missing or unparseable.
        """
        if not isinstance(record, dict):
            raise MalformedRecordError(f'Window record must be an object, got {type(record).__name__}')

        try:
            aircraft_id = record['aircraftId']
            check_type = record['checkType']
            scheduled_date = _parse_date(record['scheduledDate'])
            start_time = _parse_time(record['startTime'])
            duration = _parse_duration(record['duration'])
        except KeyError as e:
            raise MalformedRecordError(f'Window record missing field {e}', record) from e
        except (TypeError, ValueError, OverflowError) as e:
            raise MalformedRecordError(f'Window record has invalid value: {e}', record) from e

        if not aircraft_id or not check_type:
            raise MalformedRecordError('Window record has empty aircraftId or checkType', record)
        if duration < 0:
            raise MalformedRecordError(f'Window record has negative duration {duration}', record)


        record_id = record.get('id')
        window = cls(
            aircraft_id=str(aircraft_id),
            check_type=str(check_type),
            scheduled_date=scheduled_date,
            start_time=start_time,
            duration_minutes=duration,
            is_ongoing_display_copy=bool(record.get('isOngoing', False)),
            id=str(record_id) if record_id is not None else None,
        )

        try:
            window.ends_at
        except OverflowError as e:
            raise MalformedRecordError(f'Window record ends out of range: {duration} minutes', record) from e

        return window

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.scheduled_date, self.start_time, tzinfo=timezone.utc)

    @property
    def ends_at(self) -> datetime:
        """
        Window end with explicit day rollover.

        A block starting 23:00 with 20160 minutes (14 days) ends at 23:00
        fourteen calendar days later: the whole days are added to the date
        and the remainder minutes land on the resulting day.
        """
        start_minute = self.start_time.hour * 60 + self.start_time.minute
        extra_days, end_minute = divmod(start_minute + self.duration_minutes, MINUTES_PER_DAY)
        end_date = self.scheduled_date + timedelta(days=extra_days)
        end_time = time(end_minute // 60, end_minute % 60, self.start_time.second)
        return datetime.combine(end_date, end_time, tzinfo=timezone.utc)

    def is_active(self, at: datetime) -> bool:
        """True while the check is physically under way: start <= at < end."""
        at = ensure_utc(at)
        return self.starts_at <= at < self.ends_at

    def is_upcoming(self, at: datetime) -> bool:
        """Scheduled but not yet started."""
        return ensure_utc(at) < self.starts_at

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'aircraft_id': self.aircraft_id,
            'check_type': self.check_type,
            'starts_at': self.starts_at.isoformat(),
            'ends_at': self.ends_at.isoformat(),
            'duration_minutes': self.duration_minutes,
        }


@dataclass(frozen=True)
class Coverage:
    """
    Resolver verdict for one (aircraft, tier) at one instant.

    active_window: Highest-precedence window on this or a heavier tier
        that is currently under way
    upcoming_window: Earliest scheduled-but-not-started window on this or
        a heavier tier
    imminent: upcoming_window starts within the resolver's lead time
    """
    tier: str
    active_window: Optional[MaintenanceWindow] = None
    upcoming_window: Optional[MaintenanceWindow] = None
    imminent: bool = False

    @property
    def in_progress(self) -> bool:
        return self.active_window is not None

    @property
    def scheduled(self) -> bool:
        return self.upcoming_window is not None

    @property
    def covered(self) -> bool:
        """Whether the evaluator should report the tier as in progress."""
        return self.in_progress or self.imminent

    @property
    def covering_window(self) -> Optional[MaintenanceWindow]:
        if self.active_window is not None:
            return self.active_window
        if self.imminent:
            return self.upcoming_window
        return None


class WindowResolver:
    """
    Answers "is this tier being done right now" for a set of windows.

    The window set is an immutable snapshot taken at construction; build
    a new resolver when the schedule feed changes.
    """

    def __init__(
        self,
        windows: Iterable[MaintenanceWindow],
        rule_set: RuleSet,
        lead_time: timedelta = timedelta(0),
    ):
        self.rule_set = rule_set
        self.lead_time = lead_time
        self._by_aircraft: Dict[str, Dict[str, List[MaintenanceWindow]]] = defaultdict(lambda: defaultdict(list))

        skipped_copies = 0
        for window in windows:
            if window.is_ongoing_display_copy:
                skipped_copies += 1
                continue
            self._by_aircraft[window.aircraft_id][window.check_type].append(window)

        if skipped_copies:
            logger.debug(f'Ignored {skipped_copies} ongoing display copies')

    @classmethod
    def from_records(
        cls,
        records: Iterable[dict],
        rule_set: RuleSet,
        lead_time: timedelta = timedelta(0),
    ) -> 'WindowResolver':
        """Build a resolver from raw feed records, skipping malformed ones."""
        windows = []
        for record in records:
            try:
                windows.append(MaintenanceWindow.from_record(record))
            except MalformedRecordError as e:
                logger.warning(f'Skipping maintenance window: {e}')
        return cls(windows, rule_set, lead_time)

    def windows_for(self, aircraft_id: str) -> List[MaintenanceWindow]:
        """All primary windows for an aircraft, in start order."""
        by_tier = self._by_aircraft.get(aircraft_id, {})
        windows = [w for tier_windows in by_tier.values() for w in tier_windows]
        return sorted(windows, key=lambda w: w.starts_at)

    def coverage(self, aircraft_id: str, tier_id: str, at: datetime) -> Coverage:
        """
        Walk the precedence order from the heaviest tier down to tier_id.

        The first tier with a window under way supplies active_window.
        Upcoming windows are collected across the same tiers and the
        earliest one is reported.
        """
        at = ensure_utc(at)
        by_tier = self._by_aircraft.get(aircraft_id)
        if not by_tier:
            return Coverage(tier=tier_id)

        active = None
        upcoming = None
        for tier in self.rule_set.covering_tiers(tier_id):
            for window in by_tier.get(tier.id, ()):
                if active is None and window.is_active(at):
                    active = window
                elif window.is_upcoming(at):
                    if upcoming is None or window.starts_at < upcoming.starts_at:
                        upcoming = window

        imminent = upcoming is not None and upcoming.starts_at - at <= self.lead_time
        return Coverage(
            tier=tier_id,
            active_window=active,
            upcoming_window=upcoming,
            imminent=imminent,
        )

    def is_covered(self, aircraft_id: str, tier_id: str, at: datetime) -> bool:
        return self.coverage(aircraft_id, tier_id, at).covered

    def completion_time(self, aircraft_id: str, tier_id: str, at: datetime) -> Optional[datetime]:
        """End of the heaviest window currently covering the tier, if any."""
        active = self.coverage(aircraft_id, tier_id, at).active_window
        return active.ends_at if active else None

    def __len__(self) -> int:
        return sum(
            len(windows)
            for by_tier in self._by_aircraft.values()
            for windows in by_tier.values()
        )
