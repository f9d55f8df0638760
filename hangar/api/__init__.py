"""
API module for Hangar.

Provides REST endpoints for:
- World clock state
- Maintenance check statuses
"""

from hangar.api.clock import clock_bp
from hangar.api.maintenance import maintenance_bp

__all__ = ['clock_bp', 'maintenance_bp']
