"""
Core infrastructure package for the FastAPI backend.

Provides:
- Configuration management via pydantic-settings
- Async PostgreSQL database connectivity via asyncpg

Re-exports allow simplified imports like:

    from engagement_analytics.core import get_settings, get_db_pool
"""

from engagement_analytics.core.config import Settings, get_settings
from engagement_analytics.core.database import init_db, close_db, get_db_pool, execute_query

__all__ = [
    # Configuration management (from config.py)
    'Settings',
    'get_settings',
    # Database pool lifecycle (from database.py)
    'init_db',
    'close_db',
    'get_db_pool',
    'execute_query',
]
