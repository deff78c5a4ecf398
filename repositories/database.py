# ============================================================================
# DATABASE CONNECTION POOL
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Core - Async PostgreSQL connection management
# PURPOSE: The one psycopg pool shared by the cache and lock repositories
# CREATED: 15 SEP 2026
# ============================================================================
"""
Database Connection Pool

main.py opens the pool in the FastAPI lifespan and closes it on shutdown.
Repositories and health checks receive it as a constructor argument; only
startup code calls init_pool() / close_pool().

Connection settings, first match wins:
    DATABASE_URL
    POSTGRES_HOST, POSTGRES_PORT, POSTGRES_DB, POSTGRES_USER,
    POSTGRES_PASSWORD, POSTGRES_SSLMODE (default prefer)

Pool size: POSTGRES_POOL_MIN (1), POSTGRES_POOL_MAX (5).
"""

import logging
import os
from typing import Optional
from urllib.parse import quote

from psycopg import sql
from psycopg_pool import AsyncConnectionPool

logger = logging.getLogger(__name__)

SCHEMA = "cfcache"

TABLE_API_CACHE = sql.Identifier(SCHEMA, "api_cache")
TABLE_INSTANCE_LOCKS = sql.Identifier(SCHEMA, "instance_locks")

_pool: Optional[AsyncConnectionPool] = None


def get_connection_string() -> str:
    url = os.environ.get("DATABASE_URL")
    if url:
        return url

    env = os.environ.get
    credentials = quote(env("POSTGRES_USER", "postgres"), safe="")
    password = env("POSTGRES_PASSWORD", "")
    if password:
        credentials += ":" + quote(password, safe="")

    return "postgresql://{}@{}:{}/{}?sslmode={}".format(
        credentials,
        env("POSTGRES_HOST", "localhost"),
        env("POSTGRES_PORT", "5432"),
        env("POSTGRES_DB", "postgres"),
        env("POSTGRES_SSLMODE", "prefer"),
    )


def mask_connection_string(conninfo: str) -> str:
    """Loggable form: URL credentials dropped, key/value password starred."""
    if "@" in conninfo:
        return conninfo.rsplit("@", 1)[1]
    head, sep, _ = conninfo.partition("password=")
    return f"{head}password=***" if sep else conninfo


def _size_from_env(name: str, fallback: int) -> int:
    raw = os.environ.get(name)
    return int(raw) if raw else fallback


async def init_pool(
    min_size: Optional[int] = None,
    max_size: Optional[int] = None,
    connection_string: Optional[str] = None,
) -> AsyncConnectionPool:
    """
    Open the process pool. A second call returns the pool already open.

    Raises:
        psycopg_pool.PoolTimeout: min_size connections not ready in time
    """
    global _pool
    if _pool is not None:
        return _pool

    conninfo = connection_string or get_connection_string()
    min_size = min_size if min_size is not None else _size_from_env("POSTGRES_POOL_MIN", 1)
    max_size = max_size if max_size is not None else _size_from_env("POSTGRES_POOL_MAX", 5)

    pool = AsyncConnectionPool(conninfo=conninfo, min_size=min_size, max_size=max_size, open=False)
    await pool.open(wait=True)
    _pool = pool

    logger.info(f"Connection pool open to {mask_connection_string(conninfo)} ({min_size}-{max_size})")
    return pool


async def get_pool() -> AsyncConnectionPool:
    return _pool if _pool is not None else await init_pool()


async def close_pool() -> None:
    global _pool
    pool, _pool = _pool, None
    if pool is not None:
        await pool.close()
        logger.info("Connection pool closed")


class DatabasePool:
    """
    init_pool() / close_pool() as an async context manager, for scripts:

        async with DatabasePool() as pool:
            await SchemaInitializer(pool).initialize()
    """

    def __init__(self, min_size: Optional[int] = None, max_size: Optional[int] = None,
                 connection_string: Optional[str] = None):
        self._kwargs = dict(min_size=min_size, max_size=max_size, connection_string=connection_string)

    async def __aenter__(self) -> AsyncConnectionPool:
        return await init_pool(**self._kwargs)

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await close_pool()


__all__ = [
    "get_connection_string",
    "mask_connection_string",
    "init_pool",
    "get_pool",
    "close_pool",
    "DatabasePool",
    "SCHEMA",
    "TABLE_API_CACHE",
    "TABLE_INSTANCE_LOCKS",
]
