"""
FastAPI dependency injection module for the Clinic Metrics backend.

Key Dependencies Provided:
- get_db_pool_dependency: Returns the asyncpg pool used by the data access layer
- get_settings_dependency: Returns the cached Settings singleton
- get_view_cache_dependency: Returns the process-wide ViewCache
- PoolDep / SettingsDep / ViewCacheDep: Annotated aliases for endpoints

Each dependency is a thin wrapper so tests can swap it with
``app.dependency_overrides[...]``:

    app.dependency_overrides[get_settings_dependency] = lambda: test_settings
    app.dependency_overrides[get_db_pool_dependency] = lambda: mock_db_pool
    app.dependency_overrides[get_view_cache_dependency] = lambda: ViewCache()
"""

from typing import Annotated

from asyncpg import Pool
from fastapi import Depends

from clinic_metrics.core.cache import ViewCache, get_view_cache
from clinic_metrics.core.config import Settings, get_settings
from clinic_metrics.core.database import get_db_pool


# =============================================================================
# Database Pool Dependency
# =============================================================================

async def get_db_pool_dependency() -> Pool:
    """
    Return the shared asyncpg pool.

    The data access layer acquires connections per query, so endpoints
    receive the pool rather than a single connection.

    Raises:
        asyncpg.PostgresError: If lazy pool initialization fails.
    """
    return await get_db_pool()


# =============================================================================
# Settings Dependency
# =============================================================================

def get_settings_dependency() -> Settings:
    """Return the cached Settings instance."""
    return get_settings()


# =============================================================================
# View Cache Dependency
# =============================================================================

def get_view_cache_dependency() -> ViewCache:
    """Return the process-wide ViewCache."""
    return get_view_cache()


# =============================================================================
# Type Aliases for Dependency Injection
# =============================================================================

PoolDep = Annotated[Pool, Depends(get_db_pool_dependency)]

SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]

ViewCacheDep = Annotated[ViewCache, Depends(get_view_cache_dependency)]
