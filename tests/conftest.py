"""Shared fixtures for Hangar tests."""

import os

# Must be set before hangar.config is imported
os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('MAINTENANCE_RULE_SET', 'five-tier')
os.environ.setdefault('MAINTENANCE_LEAD_MINUTES', '60')
os.environ.setdefault('WORLD_PUSH_ENABLED', '0')

import pytest

from hangar.clock import ClockSynchronizer
from hangar.models.base import drop_db, engine, init_db


class FakeWallClock:
    """Manually advanced real-time source (epoch seconds)."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def wall():
    return FakeWallClock()


@pytest.fixture
def synchronizer(wall):
    return ClockSynchronizer(world_id='world-1', default_acceleration=60, wall_clock=wall)


@pytest.fixture
def db():
    """Fresh schema on the shared in-memory database."""
    drop_db()
    init_db()
    yield engine
    drop_db()
