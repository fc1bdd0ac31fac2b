"""
Core infrastructure package for the Clinic Metrics backend.

Provides:
- Configuration management via pydantic-settings
- Async PostgreSQL connectivity via asyncpg
- The in-process ViewCache for dashboard view reads
- FastAPI dependency injection utilities

Usage:
    from clinic_metrics.core import get_settings, get_db_pool, ViewCache
"""

# =============================================================================
# Re-exports from clinic_metrics.core.config
# =============================================================================
from clinic_metrics.core.config import Settings, get_settings

# =============================================================================
# Re-exports from clinic_metrics.core.database
# =============================================================================
from clinic_metrics.core.database import (
    init_db,
    close_db,
    get_db_pool,
)

# =============================================================================
# Re-exports from clinic_metrics.core.cache
# =============================================================================
from clinic_metrics.core.cache import ViewCache, get_view_cache

# =============================================================================
# Re-exports from clinic_metrics.core.dependencies
# =============================================================================
from clinic_metrics.core.dependencies import (
    get_db_pool_dependency,
    get_settings_dependency,
    get_view_cache_dependency,
    PoolDep,
    SettingsDep,
    ViewCacheDep,
)

__all__ = [
    # Configuration
    'Settings',
    'get_settings',
    # Database pool lifecycle
    'init_db',
    'close_db',
    'get_db_pool',
    # View cache
    'ViewCache',
    'get_view_cache',
    # FastAPI dependency injection
    'get_db_pool_dependency',
    'get_settings_dependency',
    'get_view_cache_dependency',
    'PoolDep',
    'SettingsDep',
    'ViewCacheDep',
]
