"""
FleetAircraft model - an airline's aircraft and its maintenance history.

Flight hours and last-check dates are written by the fleet-management
service. Hangar only reads them and converts each row into the camelCase
record the status evaluator consumes.
"""

from datetime import date, datetime, time, timezone
from typing import Optional

from sqlalchemy import String, Float, Integer, Date, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from hangar.models.base import Base


def _iso(value) -> Optional[str]:
    """Serialize a date or datetime as ISO-8601; naive datetimes are UTC."""
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    if isinstance(value, date):
        return datetime.combine(value, time(0), tzinfo=timezone.utc).isoformat()
    return str(value)


class FleetAircraft(Base):
    """
    One aircraft in a player's fleet, keyed by an opaque UUID.

    Fields:
        id: Aircraft id (UUID string)
        world_id: Simulation world the aircraft belongs to
        registration: Tail number (e.g., 'G-ABCD')
        total_flight_hours: Accumulated flight hours
        last_*_check_date: Completion time of the last check of each tier
        last_a_check_hours: Flight hours at the last A check
        *_check_interval_days/hours: Optional per-aircraft interval overrides
    """

    __tablename__ = 'fleet_aircraft'

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        comment='Aircraft UUID'
    )

    world_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        nullable=True,
        index=True,
        comment='Owning simulation world'
    )

    registration: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        comment='Aircraft registration (tail number)'
    )

    total_flight_hours: Mapped[float] = mapped_column(
        Float,
        default=0.0,
        nullable=False,
        comment='Accumulated flight hours'
    )

    # Last completed checks
    last_daily_check_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    last_weekly_check_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    last_a_check_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    last_a_check_hours: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
        comment='Total flight hours when the last A check was signed off'
    )
    last_b_check_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    last_c_check_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    last_d_check_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # Interval overrides (NULL = use the tier default)
    weekly_check_interval_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    a_check_interval_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    a_check_interval_hours: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    b_check_interval_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    c_check_interval_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    d_check_interval_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        comment='Last update timestamp'
    )

    __table_args__ = (
        Index('ix_fleet_aircraft_world_registration', 'world_id', 'registration'),
    )

    def __repr__(self) -> str:
        return f'<FleetAircraft {self.id} {self.registration}>'

    def to_record(self) -> dict:
        """Convert to the external aircraft maintenance record format."""
        return {
            'id': self.id,
            'registration': self.registration,
            'totalFlightHours': self.total_flight_hours,
            'lastDailyCheckDate': _iso(self.last_daily_check_date),
            'lastWeeklyCheckDate': _iso(self.last_weekly_check_date),
            'lastACheckDate': _iso(self.last_a_check_date),
            'lastACheckHours': self.last_a_check_hours,
            'lastBCheckDate': _iso(self.last_b_check_date),
            'lastCCheckDate': _iso(self.last_c_check_date),
            'lastDCheckDate': _iso(self.last_d_check_date),
            'weeklyCheckIntervalDays': self.weekly_check_interval_days,
            'aCheckIntervalDays': self.a_check_interval_days,
            'aCheckIntervalHours': self.a_check_interval_hours,
            'bCheckIntervalDays': self.b_check_interval_days,
            'cCheckIntervalDays': self.c_check_interval_days,
            'dCheckIntervalDays': self.d_check_interval_days,
        }
