"""Tests for the HTTP API."""

from datetime import date, datetime, time

import pytest

from hangar.app import create_app
from hangar.models import FleetAircraft, ScheduledMaintenance, get_session


def _seed():
    with get_session() as session:
        session.add_all([
            # Everything current
            FleetAircraft(
                id='ac-1',
                world_id='world-1',
                registration='G-AAAA',
                total_flight_hours=1000,
                last_daily_check_date=datetime(2024, 3, 10, 6, 0),
                last_weekly_check_date=datetime(2024, 3, 8, 6, 0),
                last_a_check_hours=500,
                a_check_interval_hours=900,
                last_c_check_date=date(2023, 6, 1),
                c_check_interval_days=600,
                last_d_check_date=date(2020, 1, 1),
                d_check_interval_days=3650,
            ),
            # Daily check lapsed
            FleetAircraft(
                id='ac-2',
                world_id='world-1',
                registration='G-BBBB',
                total_flight_hours=200,
                last_daily_check_date=datetime(2024, 3, 1, 6, 0),
                last_weekly_check_date=datetime(2024, 3, 8, 6, 0),
                last_a_check_hours=100,
                a_check_interval_hours=900,
                last_c_check_date=date(2023, 6, 1),
                c_check_interval_days=600,
                last_d_check_date=date(2020, 1, 1),
                d_check_interval_days=3650,
            ),
            # In a D check
            FleetAircraft(
                id='ac-3',
                world_id='world-1',
                registration='G-CCCC',
                total_flight_hours=30000,
            ),
            # Another world's aircraft
            FleetAircraft(
                id='ac-9',
                world_id='world-2',
                registration='G-ZZZZ',
            ),
            ScheduledMaintenance(
                aircraft_id='ac-3',
                check_type='D',
                scheduled_date=date(2024, 3, 1),
                start_time=time(8, 0),
                duration=86400,
            ),
            ScheduledMaintenance(
                aircraft_id='ac-3',
                check_type='D',
                scheduled_date=date(2024, 3, 2),
                start_time=time(0, 0),
                duration=1440,
                is_ongoing=True,
            ),
        ])


@pytest.fixture
def app(db, synchronizer):
    _seed()
    app = create_app(start_sync=False, synchronizer=synchronizer)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def synced(synchronizer):
    synchronizer.apply_poll(synchronizer.issue_sequence(), '2024-03-10T12:00:00Z', 60, 'world-1')
    return synchronizer


def test_health(client):
    response = client.get('/health')

    assert response.status_code == 200
    assert response.get_json() == {'status': 'ok', 'clock_available': False, 'push_connected': False}


def test_clock_unavailable(client):
    data = client.get('/api/clock').get_json()

    assert data['available'] is False
    assert data['current_time'] is None
    assert data['reference'] is None


def test_clock_available(client, synced):
    data = client.get('/api/clock').get_json()

    assert data['available'] is True
    assert data['current_time'] == '2024-03-10T12:00:00+00:00'
    assert data['display_time'] == '10 Mar 2024 12:00z'
    assert data['reference']['source'] == 'poll'
    assert data['stats']['sync']['accepted_poll'] == 1
    assert data['stats']['poller'] == {'running': False}


def test_board_unavailable_without_clock(client):
    data = client.get('/api/maintenance').get_json()

    assert data['count'] == 3
    assert data['current_time'] is None
    assert {a['worst_status'] for a in data['aircraft']} == {'unavailable'}


def test_board(client, synced):
    data = client.get('/api/maintenance').get_json()

    assert data['rule_set'] == 'five-tier'
    assert [a['registration'] for a in data['aircraft']] == ['G-AAAA', 'G-BBBB', 'G-CCCC']

    by_id = {a['aircraft_id']: a for a in data['aircraft']}
    assert by_id['ac-1']['worst_status'] == 'valid'
    assert by_id['ac-2']['worst_status'] == 'expired'
    assert by_id['ac-3']['worst_status'] == 'inprogress'


def test_board_status_filter(client, synced):
    data = client.get('/api/maintenance?status=expired').get_json()

    assert data['count'] == 1
    assert data['aircraft'][0]['aircraft_id'] == 'ac-2'
    assert data['aircraft'][0]['checks']['daily']['text'] == 'EXP'


def test_board_rejects_unknown_status(client):
    response = client.get('/api/maintenance?status=fine')

    assert response.status_code == 400
    assert 'valid' in response.get_json()


def test_tiers(client):
    data = client.get('/api/maintenance/tiers').get_json()

    assert data['name'] == 'five-tier'
    assert data['precedence'] == ['D', 'C', 'weekly', 'A', 'daily']
    assert data['lead_minutes'] == 60
    a_check = next(t for t in data['tiers'] if t['id'] == 'A')
    assert a_check['basis'] == 'hours'

    fixed = {t['id']: t['fixed'] for t in data['tiers']}
    assert fixed == {'D': False, 'C': False, 'weekly': True, 'A': False, 'daily': True}


def test_aircraft(client, synced):
    data = client.get('/api/maintenance/ac-1').get_json()

    assert data['registration'] == 'G-AAAA'
    assert set(data['checks']) == {'D', 'C', 'weekly', 'A', 'daily'}
    assert data['checks']['A']['hours_remaining'] == 400.0
    assert data['checks']['daily']['status'] == 'valid'


def test_aircraft_not_found(client):
    response = client.get('/api/maintenance/ac-9')
    assert response.status_code == 404


def test_aircraft_tier_in_progress(client, synced):
    data = client.get('/api/maintenance/ac-3/daily').get_json()

    assert data['status'] == 'inprogress'
    assert data['text'] == 'MAINT'
    assert data['completes_at'] == '2024-04-30T08:00:00+00:00'


def test_aircraft_unknown_tier(client):
    response = client.get('/api/maintenance/ac-1/B')

    assert response.status_code == 404
    assert response.get_json()['tiers'] == ['D', 'C', 'weekly', 'A', 'daily']


def test_unknown_route(client):
    response = client.get('/api/nothing-here')

    assert response.status_code == 404
    assert response.get_json() == {'error': 'Not found'}
