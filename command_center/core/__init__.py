"""
Core infrastructure package for the Command Center backend.

Provides:
- Configuration management via pydantic-settings
- Async PostgreSQL connectivity via asyncpg

FastAPI dependencies live in command_center.core.dependencies and are imported
from there directly, since they depend on the services package.

Usage:
    from command_center.core import get_settings, init_db, close_db
"""

from command_center.core.config import (
    Settings,
    get_settings,
    get_benchmarks,
    get_health_weights,
)
from command_center.core.database import (
    DatabaseNotConfiguredError,
    DatabaseUnavailableError,
    init_db,
    get_db_pool,
    close_db,
)


__all__ = [
    # Configuration
    'Settings',
    'get_settings',
    'get_benchmarks',
    'get_health_weights',
    # Database
    'DatabaseNotConfiguredError',
    'DatabaseUnavailableError',
    'init_db',
    'get_db_pool',
    'close_db',
]
