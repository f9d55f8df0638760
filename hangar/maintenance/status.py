"""
Check status evaluation.

For every (aircraft, tier) the evaluator derives one of:

    inprogress   the tier (or a heavier one) is being worked on right now
    none         never performed; treated as expired for operations
    expired      past due
    warning      due within the tier's warning threshold
    valid        current
    unavailable  no simulated time has been established yet

Statuses are never stored. They are recomputed from the aircraft record,
the current simulated time and the maintenance window snapshot whenever a
consumer asks.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Iterable, List, Optional, Protocol

from hangar.maintenance.errors import MalformedRecordError
from hangar.maintenance.intervals import resolve_interval
from hangar.maintenance.tiers import CheckBasis, CheckTierConfig, RuleSet
from hangar.maintenance.windows import WindowResolver
from hangar.timeutils import end_of_utc_day, format_utc, hours_between, parse_timestamp

logger = logging.getLogger(__name__)


class CheckState(str, Enum):
    """Derived state of a single check tier."""
    VALID = 'valid'
    WARNING = 'warning'
    EXPIRED = 'expired'
    IN_PROGRESS = 'inprogress'
    NONE = 'none'
    UNAVAILABLE = 'unavailable'


DISPLAY_TEXT = {
    CheckState.VALID: 'Valid',
    CheckState.WARNING: 'DUE',
    CheckState.EXPIRED: 'EXP',
    CheckState.IN_PROGRESS: 'MAINT',
    CheckState.NONE: '--',
    CheckState.UNAVAILABLE: '--',
}

# Most severe first; used to pick an aircraft's headline status
SEVERITY = (
    CheckState.UNAVAILABLE,
    CheckState.EXPIRED,
    CheckState.WARNING,
    CheckState.NONE,
    CheckState.IN_PROGRESS,
    CheckState.VALID,
)


class ClockReader(Protocol):
    """Anything that can report the current simulated time (or None)."""

    def current_time(self) -> Optional[datetime]:
        ...


def _optional_float(record: dict, key: Optional[str]) -> Optional[float]:
    if not key:
        return None
    value = record.get(key)
    if value is None or value == '':
        return None
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise MalformedRecordError(f'{key} is not a number: {value!r}', record) from e
    if not math.isfinite(number):
        raise MalformedRecordError(f'{key} is not finite: {value!r}', record)
    return number


def _check_expiry_fits(record: dict, tier: CheckTierConfig, last_check: datetime, interval: float) -> None:
    """Reject intervals that push the expiry past the calendar's range."""
    try:
        end_of_utc_day((last_check + timedelta(days=interval)).date())
    except OverflowError as e:
        raise MalformedRecordError(
            f'{tier.id} check expiry is out of range ({interval} days after {last_check.date()})', record
        ) from e


@dataclass(frozen=True)
class AircraftMaintenanceRecord:
    """
    Read-only view of an aircraft's maintenance history.

    Owned by the fleet-management side; this module only reads it.
    """
    aircraft_id: str
    registration: Optional[str] = None
    total_flight_hours: float = 0.0
    last_checks: Dict[str, datetime] = field(default_factory=dict)
    last_check_hours: Dict[str, float] = field(default_factory=dict)
    interval_overrides: Dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, record: dict, rule_set: RuleSet) -> 'AircraftMaintenanceRecord':
        """
        Parse an external aircraft maintenance record.

        Field names come from each tier's configuration (lastACheckDate,
        lastACheckHours, aCheckIntervalHours, ...), so the same parser
        serves both rule sets.

        Raises MalformedRecordError on a missing id or unparseable value.
        """
        if not isinstance(record, dict):
            raise MalformedRecordError(f'Aircraft record must be an object, got {type(record).__name__}')

        aircraft_id = record.get('id') or record.get('aircraftId')
        if not aircraft_id:
            raise MalformedRecordError('Aircraft record has no id', record)

        last_checks = {}
        last_check_hours = {}
        overrides = {}
        for tier in rule_set.tiers:
            raw_date = record.get(tier.date_field)
            if raw_date:
                try:
                    last_checks[tier.id] = parse_timestamp(raw_date)
                except (TypeError, ValueError) as e:
                    raise MalformedRecordError(
                        f'{tier.date_field} is not a date: {raw_date!r}', record
                    ) from e

            hours = _optional_float(record, tier.hours_field)
            if hours is not None:
                last_check_hours[tier.id] = hours

            override = _optional_float(record, tier.override_field)
            if override is not None:
                overrides[tier.id] = override

            if tier.basis is CheckBasis.CALENDAR and tier.id in last_checks:
                interval = resolve_interval(str(aircraft_id), tier, rule_set, override)
                _check_expiry_fits(record, tier, last_checks[tier.id], interval)

        total_hours = _optional_float(record, 'totalFlightHours')

        return cls(
            aircraft_id=str(aircraft_id),
            registration=record.get('registration'),
            total_flight_hours=total_hours if total_hours is not None else 0.0,
            last_checks=last_checks,
            last_check_hours=last_check_hours,
            interval_overrides=overrides,
        )


@dataclass(frozen=True)
class CheckStatus:
    """Derived status of one check tier for one aircraft."""
    tier: str
    status: CheckState
    display_text: str
    expiry_info: str = ''
    last_check_info: Optional[str] = None
    interval: Optional[float] = None
    expires_at: Optional[datetime] = None
    hours_remaining: Optional[float] = None
    completes_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict for API responses."""
        return {
            'tier': self.tier,
            'status': self.status.value,
            'text': self.display_text,
            'expiry_info': self.expiry_info,
            'last_check_info': self.last_check_info,
            'interval': self.interval,
            'expires_at': self.expires_at.isoformat() if self.expires_at else None,
            # One decimal for display; comparisons use the full value
            'hours_remaining': round(self.hours_remaining, 1) if self.hours_remaining is not None else None,
            'completes_at': self.completes_at.isoformat() if self.completes_at else None,
        }


@dataclass(frozen=True)
class AircraftStatus:
    """All tier statuses of one aircraft."""
    aircraft_id: str
    registration: Optional[str]
    checks: Dict[str, CheckStatus]

    @property
    def worst_status(self) -> CheckState:
        return worst_status(self.checks.values())

    def to_dict(self) -> dict:
        return {
            'aircraft_id': self.aircraft_id,
            'registration': self.registration,
            'worst_status': self.worst_status.value,
            'checks': {tier: status.to_dict() for tier, status in self.checks.items()},
        }


def worst_status(statuses: Iterable[CheckStatus]) -> CheckState:
    """Most severe state among statuses (valid if there are none)."""
    present = {s.status for s in statuses}
    for state in SEVERITY:
        if state in present:
            return state
    return CheckState.VALID


def _make_status(tier: CheckTierConfig, state: CheckState, **kwargs) -> CheckStatus:
    return CheckStatus(tier=tier.id, status=state, display_text=DISPLAY_TEXT[state], **kwargs)


class CheckStatusEvaluator:
    """
    Evaluates check tiers against the current simulated time.

    The clock is passed in on every call rather than read from a global,
    so the same evaluator works with the live ClockSynchronizer and with
    a FixedClock in tests.
    """

    def __init__(self, rule_set: RuleSet, lead_time: timedelta = timedelta(0)):
        self.rule_set = rule_set
        self.lead_time = lead_time

    def empty_resolver(self) -> WindowResolver:
        return WindowResolver((), self.rule_set, self.lead_time)

    def evaluate(
        self,
        record: AircraftMaintenanceRecord,
        tier_id: str,
        clock: ClockReader,
        resolver: Optional[WindowResolver] = None,
    ) -> CheckStatus:
        """Status of one tier. Raises KeyError for a tier outside the rule set."""
        return self._evaluate_at(record, self.rule_set.tier(tier_id), clock.current_time(), resolver)

    def evaluate_aircraft(
        self,
        record: AircraftMaintenanceRecord,
        clock: ClockReader,
        resolver: Optional[WindowResolver] = None,
    ) -> AircraftStatus:
        """Status of every tier, all evaluated at the same instant."""
        now = clock.current_time()
        checks = {
            tier.id: self._evaluate_at(record, tier, now, resolver)
            for tier in self.rule_set.tiers
        }
        return AircraftStatus(
            aircraft_id=record.aircraft_id,
            registration=record.registration,
            checks=checks,
        )

    def evaluate_fleet(
        self,
        raw_records: Iterable[dict],
        clock: ClockReader,
        resolver: Optional[WindowResolver] = None,
    ) -> List[AircraftStatus]:
        """
        Evaluate raw aircraft records.

        Malformed records are logged and skipped; the rest of the fleet is
        still evaluated.
        """
        now = clock.current_time()
        results = []
        skipped = 0
        for raw in raw_records:
            try:
                record = AircraftMaintenanceRecord.from_dict(raw, self.rule_set)
                checks = {
                    tier.id: self._evaluate_at(record, tier, now, resolver)
                    for tier in self.rule_set.tiers
                }
            except (MalformedRecordError, OverflowError) as e:
                skipped += 1
                logger.warning(f'Skipping aircraft record: {e}')
                continue
            results.append(AircraftStatus(record.aircraft_id, record.registration, checks))

        if skipped:
            logger.info(f'Evaluated {len(results)} aircraft, skipped {skipped} malformed records')
        return results

    def _evaluate_at(
        self,
        record: AircraftMaintenanceRecord,
        tier: CheckTierConfig,
        now: Optional[datetime],
        resolver: Optional[WindowResolver],
    ) -> CheckStatus:
        # Simulated and real time are on different scales; never substitute
        if now is None:
            return _make_status(tier, CheckState.UNAVAILABLE, expiry_info='World time unavailable')

        # 1. Cascading coverage by an active (or about to start) window
        if resolver is not None:
            coverage = resolver.coverage(record.aircraft_id, tier.id, now)
            window = coverage.covering_window
            if window is not None:
                covering = '' if window.check_type == tier.id else f' ({window.check_type} check)'
                return _make_status(
                    tier,
                    CheckState.IN_PROGRESS,
                    expiry_info=f'Completes {format_utc(window.ends_at)}{covering}',
                    last_check_info=self._last_check_info(record, tier),
                    completes_at=window.ends_at,
                )

        interval = resolve_interval(
            record.aircraft_id,
            tier,
            self.rule_set,
            record.interval_overrides.get(tier.id),
        )

        if tier.basis is CheckBasis.HOURS:
            return self._evaluate_hours(record, tier, interval)
        return self._evaluate_calendar(record, tier, interval, now)

    def _evaluate_hours(
        self,
        record: AircraftMaintenanceRecord,
        tier: CheckTierConfig,
        interval: float,
    ) -> CheckStatus:
        # 2. Never performed
        last_hours = record.last_check_hours.get(tier.id)
        if last_hours is None:
            return _make_status(tier, CheckState.NONE, interval=interval)

        # 3. Flight-hour expiry
        remaining = (last_hours + interval) - record.total_flight_hours
        if remaining < 0:
            state = CheckState.EXPIRED
            info = f'{abs(remaining):.1f} FH overdue'
        else:
            state = CheckState.WARNING if remaining < tier.warning_threshold else CheckState.VALID
            info = f'{remaining:.1f} FH remaining'

        return _make_status(
            tier,
            state,
            expiry_info=info,
            last_check_info=self._last_check_info(record, tier),
            interval=interval,
            hours_remaining=remaining,
        )

    def _evaluate_calendar(
        self,
        record: AircraftMaintenanceRecord,
        tier: CheckTierConfig,
        interval: float,
        now: datetime,
    ) -> CheckStatus:
        # 2. Never performed
        last_check = record.last_checks.get(tier.id)
        if last_check is None:
            return _make_status(tier, CheckState.NONE, interval=interval)

        # 4. Valid through the whole UTC day last_check + interval
        expiry_day = (last_check + timedelta(days=interval)).date()
        expires_at = end_of_utc_day(expiry_day)
        hours_until = hours_between(now, expires_at)

        if hours_until < 0:
            state = CheckState.EXPIRED
        elif hours_until < tier.warning_threshold:
            state = CheckState.WARNING
        else:
            state = CheckState.VALID

        return _make_status(
            tier,
            state,
            expiry_info=format_utc(expires_at),
            last_check_info=format_utc(last_check),
            interval=interval,
            expires_at=expires_at,
            hours_remaining=hours_until,
        )

    def _last_check_info(self, record: AircraftMaintenanceRecord, tier: CheckTierConfig) -> Optional[str]:
        if tier.basis is CheckBasis.HOURS:
            hours = record.last_check_hours.get(tier.id)
            if hours is not None:
                return f'at {hours:.1f} FH'
        last_check = record.last_checks.get(tier.id)
        return format_utc(last_check) if last_check else None
