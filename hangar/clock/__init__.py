"""
World clock synchronization.

ClockSynchronizer holds the reference; ClockPoller and WorldTickListener
feed it from the poll and push channels.
"""

from hangar.clock.sync import ClockSource, ClockSynchronizer, FixedClock, WorldClock
from hangar.clock.poller import ClockPoller, WorldInfoClient
from hangar.clock.push import WorldTickListener

__all__ = [
    'ClockSource',
    'ClockSynchronizer',
    'FixedClock',
    'WorldClock',
    'ClockPoller',
    'WorldInfoClient',
    'WorldTickListener',
]
