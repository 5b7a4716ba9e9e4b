"""
FastAPI dependency injection module for the Model Quality Monitor backend.

Provides reusable FastAPI dependencies for configuration access. Endpoints
declare `settings: SettingsDep` and tests swap the instance through
`app.dependency_overrides[get_settings_dependency]`.

Database access is not injected per request: the dashboard services reach the
pool through the Data Access Port, which owns its own acquisition.

Usage Examples:
    @router.get("/dashboard")
    async def get_dashboard(settings: SettingsDep) -> DashboardMetrics:
        return await compute_full_dashboard(settings.default_days_back)
"""

from typing import Annotated

from fastapi import Depends

from model_quality.core.config import Settings, get_settings


# =============================================================================
# Settings Dependency
# =============================================================================

def get_settings_dependency() -> Settings:
    """
    Return the Settings singleton instance.

    This is a thin wrapper around get_settings() to enable FastAPI's
    dependency override mechanism for testing:

        app.dependency_overrides[get_settings_dependency] = lambda: mock_settings

    Returns:
        Settings: The cached Settings instance with all configuration values.
    """
    return get_settings()


# =============================================================================
# Type Aliases for Dependency Injection
# =============================================================================

# Usage: async def endpoint(settings: SettingsDep)
SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]
