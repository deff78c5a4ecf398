# ============================================================================
# DATABASE HEALTH CHECKS
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Infrastructure - PostgreSQL connectivity check
# PURPOSE: Cache and lease store availability
# CREATED: 18 SEP 2026
# ============================================================================
"""
Database Health Checks

PostgreSQL checks (priority 20):
- PostgresCheck: SELECT 1 on the shared pool
- CacheSchemaCheck: cfcache tables present (degraded if missing)
"""

import logging

from psycopg.rows import dict_row

from core.schema import PydanticToSQL
from health.core import HealthCheckPlugin, HealthCheckResult
from health.registry import register_check
from repositories.database import SCHEMA

logger = logging.getLogger(__name__)


# Global reference to the connection pool (set by main app)
_pool = None


def set_pool(pool):
    """Set connection pool reference for health checks."""
    global _pool
    _pool = pool


@register_check(category="database")
class PostgresCheck(HealthCheckPlugin):
    """PostgreSQL connectivity health check."""

    name = "postgres"
    timeout_seconds = 5.0

    async def check(self) -> HealthCheckResult:
        if _pool is None:
            return HealthCheckResult.unhealthy(
                message="Database pool not initialized",
                hint="Set DATABASE_URL or POSTGRES_HOST/POSTGRES_DB",
            )

        try:
            async with _pool.connection() as conn:
                conn.row_factory = dict_row
                cursor = await conn.execute("SELECT 1 AS health_check")
                row = await cursor.fetchone()
        except Exception as e:
            return HealthCheckResult.unhealthy(
                message=f"PostgreSQL connection failed: {e}",
            )

        if row and row.get("health_check") == 1:
            return HealthCheckResult.healthy(message="PostgreSQL connected")

        return HealthCheckResult.unhealthy(
            message="PostgreSQL query returned unexpected result",
        )


@register_check(category="database", required_for_ready=False)
class CacheSchemaCheck(HealthCheckPlugin):
    """Verifies the cache and lease tables exist."""

    name = "cache_schema"
    timeout_seconds = 5.0

    async def check(self) -> HealthCheckResult:
        if _pool is None:
            return HealthCheckResult.unhealthy(message="Database pool not initialized")

        expected = PydanticToSQL(schema_name=SCHEMA).expected_tables()
        try:
            async with _pool.connection() as conn:
                cursor = await conn.execute(
                    "SELECT table_name FROM information_schema.tables WHERE table_schema = %s",
                    (SCHEMA,),
                )
                existing = {row[0] for row in await cursor.fetchall()}
        except Exception as e:
            return HealthCheckResult.unhealthy(message=f"Schema check failed: {e}")

        missing = [t for t in expected if t not in existing]
        if missing:
            return HealthCheckResult.degraded(
                message=f"Missing tables in {SCHEMA}: {', '.join(missing)}",
                hint="Run with AUTO_BOOTSTRAP_SCHEMA=true",
                missing=missing,
            )

        return HealthCheckResult.healthy(message=f"{len(expected)} tables present", schema=SCHEMA)


__all__ = [
    "PostgresCheck",
    "CacheSchemaCheck",
    "set_pool",
]
