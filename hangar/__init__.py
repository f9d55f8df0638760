"""
Hangar Backend Package.

Game-time synchronization and maintenance-check lifecycle engine for the
airline simulation dashboard, built with Flask, SQLAlchemy, and requests.

Modules:
    clock/        World clock synchronization (poll + push channels)
    maintenance/  Check tiers, interval assignment, window resolution, statuses
    models/       SQLAlchemy read model (fleet aircraft, scheduled maintenance)
    api/          Read-only REST endpoints for clock and check statuses
    cache.py      Thread-safe board of derived check statuses
    config.py     Centralized configuration from environment variables
"""

__version__ = '1.0.0'
