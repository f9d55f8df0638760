"""
World clock API endpoints.

Provides endpoints for:
- GET /api/clock - Current simulated time and synchronization state
"""

import logging
import time

from flask import Blueprint, jsonify, current_app

from hangar.timeutils import format_utc

logger = logging.getLogger(__name__)

clock_bp = Blueprint('clock', __name__, url_prefix='/api/clock')


@clock_bp.route('', methods=['GET'])
def get_clock():
    """
    Get the extrapolated world time.

    current_time is null until a poll or push update has established a
    reference; clients must then show time as unavailable.
    """
    start_time = time.perf_counter()

    synchronizer = current_app.config['CLOCK_SYNC']
    snapshot = synchronizer.snapshot()
    now = synchronizer.current_time()

    poller = current_app.config.get('CLOCK_POLLER')
    listener = current_app.config.get('TICK_LISTENER')

    query_time_ms = (time.perf_counter() - start_time) * 1000

    return jsonify({
        'available': now is not None,
        'current_time': now.isoformat() if now else None,
        'display_time': format_utc(now) if now else None,
        'reference': snapshot.to_dict() if snapshot else None,
        'push_connected': synchronizer.push_connected,
        'stats': {
            'sync': synchronizer.stats,
            'poller': poller.stats if poller else {'running': False},
            'push': listener.stats if listener else {'running': False},
        },
        'query_time_ms': round(query_time_ms, 2),
    })
