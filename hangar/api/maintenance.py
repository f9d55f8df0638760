"""
Maintenance status API endpoints.

Provides endpoints for:
- GET /api/maintenance - Fleet status board
- GET /api/maintenance/tiers - Active rule set
- GET /api/maintenance/<aircraft_id> - All tiers for one aircraft
- GET /api/maintenance/<aircraft_id>/<tier> - One tier for one aircraft
"""

import logging
import time

from flask import Blueprint, jsonify, request, current_app

from hangar.maintenance.status import CheckState

logger = logging.getLogger(__name__)

maintenance_bp = Blueprint('maintenance', __name__, url_prefix='/api/maintenance')


def _current_time_iso():
    now = current_app.config['CLOCK_SYNC'].current_time()
    return now.isoformat() if now else None


@maintenance_bp.route('', methods=['GET'])
def list_statuses():
    """
    List the fleet status board.

    Query parameters:
    - status: only aircraft whose worst status is this
      (unavailable|expired|warning|none|inprogress|valid)
    - limit: int, max results to return (default 500)
    """
    start_time = time.perf_counter()
    cache = current_app.config['STATUS_CACHE']

    status_filter = request.args.get('status')
    state = None
    if status_filter:
        try:
            state = CheckState(status_filter.lower())
        except ValueError:
            return jsonify({
                'error': f'Unknown status: {status_filter}',
                'valid': [s.value for s in CheckState],
            }), 400

    try:
        limit = min(int(request.args.get('limit', 500)), 5000)
    except ValueError:
        return jsonify({'error': 'limit must be an integer'}), 400

    aircraft = cache.get_all(state)[:limit]

    query_time_ms = (time.perf_counter() - start_time) * 1000

    return jsonify({
        'aircraft': [a.to_dict() for a in aircraft],
        'count': len(aircraft),
        'rule_set': cache.evaluator.rule_set.name,
        'current_time': _current_time_iso(),
        'query_time_ms': round(query_time_ms, 2),
    })


@maintenance_bp.route('/tiers', methods=['GET'])
def get_tiers():
    """Get the active rule set (tiers in precedence order, heaviest first)."""
    cache = current_app.config['STATUS_CACHE']
    rule_set = cache.evaluator.rule_set
    lead_minutes = cache.evaluator.lead_time.total_seconds() / 60

    return jsonify({
        **rule_set.to_dict(),
        'lead_minutes': lead_minutes,
    })


@maintenance_bp.route('/<aircraft_id>', methods=['GET'])
def get_aircraft(aircraft_id: str):
    """Get every tier status for one aircraft."""
    start_time = time.perf_counter()
    cache = current_app.config['STATUS_CACHE']

    status = cache.get(aircraft_id)
    if status is None:
        return jsonify({'error': 'Aircraft not found'}), 404

    result = status.to_dict()
    result['current_time'] = _current_time_iso()
    result['query_time_ms'] = round((time.perf_counter() - start_time) * 1000, 2)

    return jsonify(result)


@maintenance_bp.route('/<aircraft_id>/<tier>', methods=['GET'])
def get_aircraft_tier(aircraft_id: str, tier: str):
    """Get one tier status for one aircraft."""
    cache = current_app.config['STATUS_CACHE']
    rule_set = cache.evaluator.rule_set

    if not rule_set.has_tier(tier):
        return jsonify({
            'error': f'Unknown check tier: {tier}',
            'tiers': rule_set.tier_ids,
        }), 404

    status = cache.status_of(aircraft_id, tier)
    if status is None:
        return jsonify({'error': 'Aircraft not found'}), 404

    result = status.to_dict()
    result['aircraft_id'] = aircraft_id
    result['current_time'] = _current_time_iso()

    return jsonify(result)
