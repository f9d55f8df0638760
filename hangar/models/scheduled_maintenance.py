"""
ScheduledMaintenance model - one-time maintenance blocks from the scheduler.

Each row is a specific check booked for a specific aircraft. Multi-day
checks (C, D) are stored once as the primary row; the scheduler may add
is_ongoing display rows for the following days so the schedule grid can
show the block on every day it spans.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional

from sqlalchemy import String, Integer, Date, Time, DateTime, Boolean, Index, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from hangar.models.base import Base

# Longest check (D) is 60 days; windows booked this far back may still be open
WINDOW_LOOKBACK_DAYS = 61


class ScheduledMaintenance(Base):
    """A scheduled maintenance window for one aircraft."""

    __tablename__ = 'scheduled_maintenance'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    aircraft_id: Mapped[str] = mapped_column(
        String(36),
        nullable=False,
        index=True,
        comment='FleetAircraft id'
    )

    check_type: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        comment='Tier id: daily, weekly, A, B, C or D'
    )

    scheduled_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        comment='UTC day the block starts'
    )

    start_time: Mapped[time] = mapped_column(
        Time,
        nullable=False,
        comment='UTC start time on scheduled_date'
    )

    duration: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment='Duration in minutes'
    )

    is_ongoing: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        comment='Display copy of a multi-day block'
    )

    status: Mapped[str] = mapped_column(
        String(10),
        default='active',
        nullable=False,
        comment='active, inactive or completed'
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index('ix_scheduled_maintenance_date', 'scheduled_date', 'aircraft_id'),
    )

    def __repr__(self) -> str:
        return f'<ScheduledMaintenance {self.aircraft_id} {self.check_type} {self.scheduled_date} {self.start_time}>'

    def to_record(self) -> dict:
        """Convert to the maintenance window feed format."""
        return {
            'id': str(self.id) if self.id is not None else None,
            'aircraftId': self.aircraft_id,
            'checkType': self.check_type,
            'scheduledDate': self.scheduled_date.isoformat(),
            'startTime': self.start_time.strftime('%H:%M:%S'),
            'duration': self.duration,
            'isOngoing': self.is_ongoing,
        }


def query_windows(
    session: Session,
    start_date: date,
    end_date: date,
    aircraft_id: Optional[str] = None,
) -> List[ScheduledMaintenance]:
    """
    Active windows that may overlap [start_date, end_date].

    Looks back WINDOW_LOOKBACK_DAYS before start_date so that a heavy check
    booked weeks ago and still under way is included.
    """
    stmt = (
        select(ScheduledMaintenance)
        .where(ScheduledMaintenance.status == 'active')
        .where(ScheduledMaintenance.scheduled_date >= start_date - timedelta(days=WINDOW_LOOKBACK_DAYS))
        .where(ScheduledMaintenance.scheduled_date <= end_date)
        .order_by(ScheduledMaintenance.scheduled_date, ScheduledMaintenance.start_time)
    )
    if aircraft_id is not None:
        stmt = stmt.where(ScheduledMaintenance.aircraft_id == aircraft_id)
    return list(session.scalars(stmt))
