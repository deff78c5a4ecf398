# ============================================================================
# CACHE REPOSITORY
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Core - Cache entry persistence
# PURPOSE: Database access for cfcache.api_cache
# CREATED: 15 SEP 2026
# ============================================================================
"""
Cache Repository

One row per (domain, cache_key). Writes are upserts, so concurrent
writers from several processes converge on a single row (last write
wins).

All SQL uses psycopg sql.SQL composition for injection safety.
psycopg errors surface as StorageError.
"""

import logging
from typing import Any, Dict, Optional

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from core.errors import StorageError
from core.models import CacheEntry
from .database import TABLE_API_CACHE

logger = logging.getLogger(__name__)


class CacheRepository:
    """Repository for CacheEntry rows."""

    def __init__(self, pool: AsyncConnectionPool):
        self.pool = pool

    async def get(self, domain: str, cache_key: str) -> Optional[CacheEntry]:
        """
        Get a cache entry.

        Returns:
            CacheEntry or None if no row exists
        """
        try:
            async with self.pool.connection() as conn:
                conn.row_factory = dict_row
                result = await conn.execute(
                    sql.SQL("""
                    SELECT domain, cache_key, payload, fetched_at
                    FROM {}
                    WHERE domain = %s AND cache_key = %s
                    """).format(TABLE_API_CACHE),
                    (domain, cache_key),
                )
                row = await result.fetchone()
        except psycopg.Error as e:
            raise StorageError(f"cache get {domain}/{cache_key}", e) from e

        if row is None:
            return None
        return self._row_to_entry(row)

    async def upsert(self, entry: CacheEntry) -> CacheEntry:
        """
        Insert or replace the entry for (domain, cache_key).

        Returns:
            The entry as stored
        """
        try:
            async with self.pool.connection() as conn:
                await conn.execute(
                    sql.SQL("""
                    INSERT INTO {} (domain, cache_key, payload, fetched_at)
                    VALUES (%(domain)s, %(cache_key)s, %(payload)s, %(fetched_at)s)
                    ON CONFLICT (domain, cache_key) DO UPDATE SET
                        payload = EXCLUDED.payload,
                        fetched_at = EXCLUDED.fetched_at
                    """).format(TABLE_API_CACHE),
                    {
                        "domain": entry.domain,
                        "cache_key": entry.cache_key,
                        "payload": entry.payload,
                        "fetched_at": entry.fetched_at,
                    },
                )
        except psycopg.Error as e:
            raise StorageError(f"cache upsert {entry.domain}/{entry.cache_key}", e) from e

        logger.debug(f"Upserted cache entry {entry.domain}/{entry.cache_key}")
        return entry

    async def delete(self, domain: str, cache_key: str) -> bool:
        """
        Administrative removal of one entry.

        Returns:
            True if a row was deleted
        """
        try:
            async with self.pool.connection() as conn:
                result = await conn.execute(
                    sql.SQL("DELETE FROM {} WHERE domain = %s AND cache_key = %s").format(
                        TABLE_API_CACHE
                    ),
                    (domain, cache_key),
                )
                return result.rowcount > 0
        except psycopg.Error as e:
            raise StorageError(f"cache delete {domain}/{cache_key}", e) from e

    def _row_to_entry(self, row: Dict[str, Any]) -> CacheEntry:
        return CacheEntry(
            domain=row["domain"],
            cache_key=row["cache_key"],
            payload=row["payload"],
            fetched_at=row["fetched_at"],
        )


__all__ = ["CacheRepository"]
