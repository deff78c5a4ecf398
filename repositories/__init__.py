# ============================================================================
# REPOSITORIES MODULE
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Core - Database access layer
# PURPOSE: Persistence for cache entries and instance leases
# CREATED: 15 SEP 2026
# ============================================================================
"""
Repositories Module

Database access for the cache and lock tables.
Uses psycopg3 async with connection pooling.

Usage:
    from repositories import CacheRepository, InstanceLockRepository, DatabasePool

    async with DatabasePool() as pool:
        cache_repo = CacheRepository(pool)
        entry = await cache_repo.get("problemset", "problemset")
"""

from .database import get_pool, init_pool, close_pool, DatabasePool
from .cache_repo import CacheRepository
from .lock_repo import InstanceLockRepository

__all__ = [
    "get_pool",
    "init_pool",
    "close_pool",
    "DatabasePool",
    "CacheRepository",
    "InstanceLockRepository",
]
