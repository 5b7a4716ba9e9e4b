"""
Core infrastructure package for the Model Quality Monitor backend.

Provides:
- Configuration management via pydantic-settings
- Async PostgreSQL connectivity via asyncpg
- FastAPI dependency injection utilities

Re-exports key components so other modules can write:

    from model_quality.core import get_settings, get_db_pool, SettingsDep
"""

# =============================================================================
# Re-exports from model_quality.core.config
# =============================================================================
from model_quality.core.config import Settings, get_settings

# =============================================================================
# Re-exports from model_quality.core.database
# =============================================================================
from model_quality.core.database import init_db, close_db, get_db_pool

# =============================================================================
# Re-exports from model_quality.core.dependencies
# =============================================================================
from model_quality.core.dependencies import (
    get_settings_dependency,
    SettingsDep,
)

__all__ = [
    # Configuration management (from config.py)
    'Settings',
    'get_settings',
    # Database pool lifecycle (from database.py)
    'init_db',
    'close_db',
    'get_db_pool',
    # FastAPI dependency injection (from dependencies.py)
    'get_settings_dependency',
    'SettingsDep',
]
