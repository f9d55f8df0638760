"""
Hangar Flask Application.

Main entry point for the web application. Initializes:
- Database schema
- World clock synchronization (poll + push channels)
- Status board refresh on clock sync
- API routes

Usage:
    python -m hangar.app

Or with gunicorn:
    gunicorn 'hangar.app:create_app()'
"""

import logging
import os
from datetime import timedelta
from typing import Optional

from flask import Flask
from flask_cors import CORS

from hangar.config import config
from hangar.models import init_db
from hangar.api import clock_bp, maintenance_bp
from hangar.cache import StatusCache
from hangar.clock import ClockPoller, ClockSynchronizer, WorldTickListener
from hangar.maintenance import CheckStatusEvaluator, get_rule_set
from hangar.maintenance.source import FleetDataSource

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
)
logger = logging.getLogger(__name__)


def create_app(
    start_sync: bool = True,
    synchronizer: Optional[ClockSynchronizer] = None,
    source: Optional[FleetDataSource] = None,
) -> Flask:
    """
    Application factory for Flask.

    Args:
        start_sync: Whether to start the background poll and push workers.
                    Set to False for testing.
        synchronizer: Clock to serve (created from config if None)
        source: Fleet data reader (database-backed if None)

    Returns:
        Configured Flask application instance.
    """
    app = Flask(__name__)

    # Configuration
    app.config['SECRET_KEY'] = config.secret_key

    # Enable CORS for API endpoints
    CORS(app, resources={r'/api/*': {'origins': '*'}})

    # Initialize database
    logger.info('Initializing database...')
    init_db()

    # Register API blueprints
    app.register_blueprint(clock_bp)
    app.register_blueprint(maintenance_bp)

    rule_set = get_rule_set(config.maintenance.rule_set)
    evaluator = CheckStatusEvaluator(
        rule_set,
        lead_time=timedelta(minutes=config.maintenance.lead_minutes),
    )
    logger.info(f'Maintenance rule set: {rule_set.name} ({", ".join(rule_set.tier_ids)})')

    synchronizer = synchronizer or ClockSynchronizer(world_id=config.world.world_id)
    source = source or FleetDataSource(world_id=synchronizer.world_id)
    status_cache = StatusCache(evaluator, source, synchronizer)

    # Re-evaluate the board whenever the clock resynchronizes
    synchronizer.add_sync_callback(status_cache.on_sync)

    app.config['CLOCK_SYNC'] = synchronizer
    app.config['STATUS_CACHE'] = status_cache
    app.config['CLOCK_POLLER'] = None
    app.config['TICK_LISTENER'] = None

    if start_sync:
        poller = ClockPoller(synchronizer)
        poller.start_background()
        app.config['CLOCK_POLLER'] = poller

        if config.world.push_enabled:
            listener = WorldTickListener(synchronizer)
            listener.start_background()
            app.config['TICK_LISTENER'] = listener
        else:
            logger.info('Push channel disabled; world time comes from polling only')

        logger.info(f'World clock sync started against {config.world.base_url} (poll every {poller.interval}s)')

    # -------------------------------------------------------------------------
    # Health
    # -------------------------------------------------------------------------

    @app.route('/health')
    def health():
        """Simple health check endpoint."""
        return {
            'status': 'ok',
            'clock_available': synchronizer.is_available,
            'push_connected': synchronizer.push_connected,
        }

    # -------------------------------------------------------------------------
    # Error handlers
    # -------------------------------------------------------------------------

    @app.errorhandler(404)
    def not_found(e):
        return {'error': 'Not found'}, 404

    @app.errorhandler(500)
    def server_error(e):
        logger.error(f'Server error: {e}')
        return {'error': 'Internal server error'}, 500

    return app


def run_development_server():
    """Run the development server."""
    app = create_app()

    # Get port from environment or default
    port = int(os.environ.get('PORT', 5000))

    logger.info(f'Starting Hangar on http://localhost:{port}')

    app.run(
        host='0.0.0.0',
        port=port,
        debug=config.debug,
        use_reloader=False,  # Disable reloader to prevent duplicate sync threads
    )


if __name__ == '__main__':
    run_development_server()
