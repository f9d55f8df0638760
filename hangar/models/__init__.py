"""
Database models for Hangar.

Read model of the fleet-management data the engine evaluates:
1. Aircraft maintenance history (last checks, flight hours, overrides)
2. Scheduled maintenance windows
"""

from hangar.models.base import Base, build_engine, engine, SessionLocal, init_db, drop_db, get_session
from hangar.models.fleet_aircraft import FleetAircraft
from hangar.models.scheduled_maintenance import ScheduledMaintenance, WINDOW_LOOKBACK_DAYS, query_windows

__all__ = [
    'Base',
    'build_engine',
    'engine',
    'SessionLocal',
    'init_db',
    'drop_db',
    'get_session',
    'FleetAircraft',
    'ScheduledMaintenance',
    'WINDOW_LOOKBACK_DAYS',
    'query_windows',
]
