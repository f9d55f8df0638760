"""Tests for the fleet read model."""

from datetime import date, datetime, time

from sqlalchemy import text

from hangar.config import DatabaseConfig
from hangar.maintenance import FIVE_TIER, AircraftMaintenanceRecord, MaintenanceWindow
from hangar.maintenance.source import FleetDataSource
from hangar.models import FleetAircraft, ScheduledMaintenance, build_engine, get_session


def _window(aircraft_id, scheduled_date, **kwargs):
    return ScheduledMaintenance(
        aircraft_id=aircraft_id,
        check_type=kwargs.pop('check_type', 'C'),
        scheduled_date=scheduled_date,
        start_time=kwargs.pop('start_time', time(8, 0)),
        duration=kwargs.pop('duration', 20160),
        **kwargs,
    )


def test_aircraft_to_record_round_trips_through_parser(db):
    with get_session() as session:
        session.add(FleetAircraft(
            id='ac-1',
            world_id='world-1',
            registration='G-ABCD',
            total_flight_hours=1234.5,
            last_daily_check_date=datetime(2024, 3, 1, 6, 30),
            last_a_check_hours=1000,
            last_c_check_date=date(2023, 6, 1),
            a_check_interval_hours=950,
        ))

    raw = FleetDataSource().load_record('ac-1')

    assert raw['id'] == 'ac-1'
    assert raw['lastDailyCheckDate'] == '2024-03-01T06:30:00+00:00'
    assert raw['lastCCheckDate'] == '2023-06-01T00:00:00+00:00'
    assert raw['lastWeeklyCheckDate'] is None

    record = AircraftMaintenanceRecord.from_dict(raw, FIVE_TIER)
    assert record.total_flight_hours == 1234.5
    assert record.last_check_hours == {'A': 1000}
    assert record.interval_overrides == {'A': 950}
    assert set(record.last_checks) == {'daily', 'C'}


def test_load_records_filters_by_world(db):
    with get_session() as session:
        session.add_all([
            FleetAircraft(id='ac-2', world_id='world-1', registration='G-BBBB'),
            FleetAircraft(id='ac-1', world_id='world-1', registration='G-AAAA'),
            FleetAircraft(id='ac-9', world_id='world-2', registration='G-ZZZZ'),
        ])

    assert [r['id'] for r in FleetDataSource(world_id='world-1').load_records()] == ['ac-1', 'ac-2']
    assert len(FleetDataSource().load_records()) == 3
    assert FleetDataSource().load_record('missing') is None


def test_load_windows_looks_back_for_long_blocks(db):
    with get_session() as session:
        session.add_all([
            # D check booked 50 days earlier, still running
            _window('ac-1', date(2024, 1, 20), check_type='D', duration=86400),
            # Too old to overlap
            _window('ac-1', date(2023, 12, 1)),
            # After the range
            _window('ac-1', date(2024, 3, 20)),
            # Cancelled
            _window('ac-1', date(2024, 3, 10), status='inactive'),
            # Other aircraft
            _window('ac-2', date(2024, 3, 10)),
        ])

    source = FleetDataSource()
    windows = source.load_windows(date(2024, 3, 10), date(2024, 3, 11))
    assert [(w['aircraftId'], w['scheduledDate']) for w in windows] == [
        ('ac-1', '2024-01-20'),
        ('ac-2', '2024-03-10'),
    ]

    only_ac2 = source.load_windows(date(2024, 3, 10), date(2024, 3, 11), aircraft_id='ac-2')
    assert len(only_ac2) == 1


def test_window_record_parses(db):
    with get_session() as session:
        session.add(_window('ac-1', date(2024, 3, 1), start_time=time(23, 0), is_ongoing=False))

    raw = FleetDataSource().load_windows(date(2024, 3, 1), date(2024, 3, 2))[0]
    assert raw['startTime'] == '23:00:00'

    window = MaintenanceWindow.from_record(raw)
    assert window.ends_at.isoformat() == '2024-03-15T23:00:00+00:00'


def test_build_engine_shares_in_memory_database():
    built = build_engine(DatabaseConfig(url='sqlite://'))

    with built.begin() as conn:
        conn.execute(text('CREATE TABLE scratch (id INTEGER)'))
    with built.connect() as conn:
        assert conn.execute(text('PRAGMA foreign_keys')).scalar() == 1
        assert conn.execute(text("SELECT count(*) FROM sqlite_master WHERE name = 'scratch'")).scalar() == 1
