"""Tests for maintenance windows and cascading coverage."""

from datetime import date, datetime, time, timedelta, timezone

import pytest

from hangar.maintenance import FIVE_TIER, FOUR_TIER, MaintenanceWindow, MalformedRecordError, WindowResolver


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def window(check_type, scheduled_date, start_time, duration, aircraft_id='ac-1', is_ongoing=False):
    return MaintenanceWindow.from_record({
        'aircraftId': aircraft_id,
        'checkType': check_type,
        'scheduledDate': scheduled_date,
        'startTime': start_time,
        'duration': duration,
        'isOngoing': is_ongoing,
    })


def test_from_record():
    w = window('C', '2024-03-01', '23:00:00', 20160)

    assert w.aircraft_id == 'ac-1'
    assert w.check_type == 'C'
    assert w.scheduled_date == date(2024, 3, 1)
    assert w.start_time == time(23, 0)
    assert w.duration_minutes == 20160
    assert not w.is_ongoing_display_copy


def test_fourteen_day_block_ends_same_time_of_day():
    w = window('C', '2024-03-01', '23:00', 20160)

    assert w.starts_at == utc(2024, 3, 1, 23, 0)
    assert w.ends_at == utc(2024, 3, 15, 23, 0)


def test_end_rolls_over_midnight():
    w = window('A', '2024-02-28', '22:30', 180)
    assert w.ends_at == utc(2024, 2, 29, 1, 30)


def test_active_interval_is_half_open():
    w = window('A', '2024-03-01', '10:00', 180)

    assert not w.is_active(utc(2024, 3, 1, 9, 59, 59))
    assert w.is_active(utc(2024, 3, 1, 10, 0))
    assert w.is_active(utc(2024, 3, 1, 12, 59, 59))
    assert not w.is_active(utc(2024, 3, 1, 13, 0))
    assert w.is_upcoming(utc(2024, 3, 1, 9, 0))


@pytest.mark.parametrize('record', [
    {'checkType': 'A', 'scheduledDate': '2024-03-01', 'startTime': '10:00', 'duration': 60},
    {'aircraftId': 'ac-1', 'checkType': 'A', 'scheduledDate': '2024-13-01', 'startTime': '10:00', 'duration': 60},
    {'aircraftId': 'ac-1', 'checkType': 'A', 'scheduledDate': '2024-03-01', 'startTime': '10', 'duration': 60},
    {'aircraftId': 'ac-1', 'checkType': 'A', 'scheduledDate': '2024-03-01', 'startTime': '10:00', 'duration': 'long'},
    {'aircraftId': 'ac-1', 'checkType': 'A', 'scheduledDate': '2024-03-01', 'startTime': '10:00', 'duration': -5},
    {'aircraftId': 'ac-1', 'checkType': 'A', 'scheduledDate': '2024-03-01', 'startTime': '10:00', 'duration': 90.5},
    {'aircraftId': 'ac-1', 'checkType': 'A', 'scheduledDate': '2024-03-01', 'startTime': '10:00', 'duration': float('nan')},
    {'aircraftId': 'ac-1', 'checkType': 'A', 'scheduledDate': '2024-03-01', 'startTime': '10:00', 'duration': True},
    {'aircraftId': 'ac-1', 'checkType': 'D', 'scheduledDate': '2024-03-01', 'startTime': '10:00', 'duration': 10**15},
    'not a record',
])
def test_malformed_records_raise(record):
    with pytest.raises(MalformedRecordError):
        MaintenanceWindow.from_record(record)


def test_from_records_skips_malformed():
    resolver = WindowResolver.from_records([
        {'aircraftId': 'ac-1', 'checkType': 'A', 'scheduledDate': '2024-03-01', 'startTime': '10:00', 'duration': 180},
        {'aircraftId': 'ac-1', 'checkType': 'A', 'scheduledDate': 'soon', 'startTime': '10:00', 'duration': 180},
    ], FIVE_TIER)

    assert len(resolver) == 1


def test_whole_float_duration_is_accepted():
    w = window('A', '2024-03-01', '10:00', 90.0)

    assert w.duration_minutes == 90
    assert w.ends_at == utc(2024, 3, 1, 11, 30)


def test_out_of_range_window_does_not_hide_the_rest():
    resolver = WindowResolver.from_records([
        {'aircraftId': 'ac-1', 'checkType': 'D', 'scheduledDate': '2024-03-01', 'startTime': '08:00', 'duration': 10**15},
        {'aircraftId': 'ac-2', 'checkType': 'C', 'scheduledDate': '2024-03-01', 'startTime': '08:00', 'duration': 20160},
    ], FIVE_TIER)

    assert len(resolver) == 1
    assert not resolver.is_covered('ac-1', 'daily', utc(2024, 3, 2))
    assert resolver.is_covered('ac-2', 'daily', utc(2024, 3, 2))


def test_display_copies_are_ignored():
    primary = window('C', '2024-03-01', '08:00', 20160)
    copy = window('C', '2024-03-05', '00:00', 1440, is_ongoing=True)
    resolver = WindowResolver([primary, copy], FIVE_TIER)

    assert len(resolver) == 1
    assert resolver.windows_for('ac-1') == [primary]


def test_heavy_window_covers_every_lower_tier():
    d_check = window('D', '2024-03-01', '08:00', 86400)
    resolver = WindowResolver([d_check], FIVE_TIER)
    at = utc(2024, 3, 20, 12, 0)

    for tier_id in FIVE_TIER.tier_ids:
        coverage = resolver.coverage('ac-1', tier_id, at)
        assert coverage.in_progress
        assert coverage.active_window == d_check


def test_light_window_does_not_cover_heavier_tiers():
    a_check = window('A', '2024-03-01', '08:00', 180)
    resolver = WindowResolver([a_check], FIVE_TIER)
    at = utc(2024, 3, 1, 9, 0)

    assert resolver.is_covered('ac-1', 'A', at)
    assert resolver.is_covered('ac-1', 'daily', at)
    assert not resolver.is_covered('ac-1', 'weekly', at)
    assert not resolver.is_covered('ac-1', 'C', at)


def test_heaviest_active_window_wins():
    d_check = window('D', '2024-03-01', '08:00', 86400)
    a_check = window('A', '2024-03-10', '08:00', 180)
    resolver = WindowResolver([a_check, d_check], FIVE_TIER)

    coverage = resolver.coverage('ac-1', 'daily', utc(2024, 3, 10, 9, 0))
    assert coverage.active_window == d_check


def test_other_aircraft_not_covered():
    resolver = WindowResolver([window('D', '2024-03-01', '08:00', 86400)], FIVE_TIER)
    assert not resolver.is_covered('ac-2', 'daily', utc(2024, 3, 2))


def test_window_is_per_rule_set_tier():
    b_check = window('B', '2024-03-01', '08:00', 360)
    resolver = WindowResolver([b_check], FOUR_TIER)

    assert resolver.is_covered('ac-1', 'A', utc(2024, 3, 1, 9, 0))
    assert not resolver.is_covered('ac-1', 'C', utc(2024, 3, 1, 9, 0))


def test_imminent_window_counts_within_lead_time():
    c_check = window('C', '2024-03-01', '12:00', 20160)
    resolver = WindowResolver([c_check], FIVE_TIER, lead_time=timedelta(minutes=60))

    soon = resolver.coverage('ac-1', 'A', utc(2024, 3, 1, 11, 30))
    assert not soon.in_progress
    assert soon.scheduled
    assert soon.imminent
    assert soon.covered
    assert soon.covering_window == c_check

    later = resolver.coverage('ac-1', 'A', utc(2024, 3, 1, 9, 0))
    assert later.scheduled
    assert not later.imminent
    assert not later.covered
    assert later.covering_window is None


def test_scheduled_window_not_covered_without_lead_time():
    resolver = WindowResolver([window('A', '2024-03-01', '12:00', 180)], FIVE_TIER)

    coverage = resolver.coverage('ac-1', 'A', utc(2024, 3, 1, 11, 59))
    assert coverage.scheduled
    assert not coverage.covered


def test_completion_time():
    d_check = window('D', '2024-03-01', '08:00', 86400)
    resolver = WindowResolver([d_check], FIVE_TIER)

    assert resolver.completion_time('ac-1', 'daily', utc(2024, 3, 2)) == utc(2024, 4, 30, 8, 0)
    assert resolver.completion_time('ac-1', 'daily', utc(2024, 5, 1)) is None
