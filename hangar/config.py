"""
Configuration management for Hangar.

Loads settings from environment variables with sensible defaults.
All configuration is centralized here to avoid magic strings scattered
throughout the codebase.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _parse_bool(value: str) -> bool:
    """Parse common truthy strings ('1', 'true', 'yes', 'on')."""
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass(frozen=True)
class WorldConfig:
    """World clock source configuration."""
    base_url: str = os.getenv('WORLD_API_URL', 'http://localhost:3000').rstrip('/')
    world_id: Optional[str] = os.getenv('WORLD_ID') or None
    info_path: str = '/api/world/info'
    # Socket.IO endpoint path on the game server (engine.io handshake)
    socketio_path: str = os.getenv('WORLD_SOCKETIO_PATH', 'socket.io').strip('/')
    push_enabled: bool = _parse_bool(os.getenv('WORLD_PUSH_ENABLED', '1'))
    push_reconnect_seconds: float = float(os.getenv('WORLD_PUSH_RECONNECT_SECONDS', '5'))

    poll_interval: int = int(os.getenv('WORLD_POLL_SECONDS', '30'))
    request_timeout: float = float(os.getenv('WORLD_REQUEST_TIMEOUT', '10'))

    # 60 = one real second is one game minute
    default_acceleration: float = float(os.getenv('DEFAULT_TIME_ACCELERATION', '60'))


@dataclass(frozen=True)
class MaintenanceConfig:
    """Maintenance check evaluation settings."""
    rule_set: str = os.getenv('MAINTENANCE_RULE_SET', 'five-tier')

    # Scheduled windows starting within this many simulated minutes count as in progress
    lead_minutes: int = int(os.getenv('MAINTENANCE_LEAD_MINUTES', '60'))


@dataclass(frozen=True)
class DatabaseConfig:
    """Database configuration."""
    url: str = os.getenv('DATABASE_URL', 'sqlite:///hangar.db')

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith('sqlite')

    @property
    def is_memory(self) -> bool:
        return self.is_sqlite and (self.url in ('sqlite://', 'sqlite:///') or ':memory:' in self.url)


@dataclass(frozen=True)
class CacheConfig:
    """Status board settings."""
    refresh_interval: float = float(os.getenv('STATUS_REFRESH_SECONDS', '5'))


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""
    world: WorldConfig
    maintenance: MaintenanceConfig
    database: DatabaseConfig
    cache: CacheConfig

    # Flask settings
    secret_key: str
    debug: bool


def load_config() -> AppConfig:
    """Load and validate all configuration."""
    return AppConfig(
        world=WorldConfig(),
        maintenance=MaintenanceConfig(),
        database=DatabaseConfig(),
        cache=CacheConfig(),
        secret_key=os.getenv('SECRET_KEY', 'dev-key-change-in-prod'),
        debug=os.getenv('FLASK_DEBUG', '0') == '1',
    )


# Singleton instance
config = load_config()
