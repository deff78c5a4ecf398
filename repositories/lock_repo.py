# ============================================================================
# INSTANCE LOCK REPOSITORY
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Core - Lease persistence
# PURPOSE: Atomic lease operations on cfcache.instance_locks
# CREATED: 17 SEP 2026
# ============================================================================
"""
Instance Lock Repository

acquire() is one transaction:
    1. INSERT a placeholder row (ON CONFLICT DO NOTHING) so a row exists
    2. SELECT ... FOR UPDATE to lock it
    3. plan_acquisition() decides
    4. UPDATE when the plan grants the lease

Two processes racing on the same duty serialize on the row lock; the
second one sees the first one's write and gets acquired=False.

heartbeat() and release() are single conditional UPDATEs guarded by
owner_id; their rowcount tells whether this owner still held the row.

Times are passed in by the caller (injected clock), never NOW().
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from core.errors import StorageError
from core.models import InstanceLock, LockResult, plan_acquisition
from .database import TABLE_INSTANCE_LOCKS

logger = logging.getLogger(__name__)


class InstanceLockRepository:
    """Repository for InstanceLock rows."""

    def __init__(self, pool: AsyncConnectionPool):
        self.pool = pool

    async def acquire(
        self,
        duty: str,
        owner_id: str,
        process_id: Optional[int],
        ttl_seconds: int,
        now: datetime,
    ) -> LockResult:
        """
        Acquire, renew or take over the lease for a duty.

        Returns:
            LockResult (acquired=False on contention)
        """
        try:
            async with self.pool.connection() as conn:
                conn.row_factory = dict_row
                async with conn.transaction():
                    await conn.execute(
                        sql.SQL("""
                        INSERT INTO {} (duty, ttl_seconds, updated_at)
                        VALUES (%s, %s, %s)
                        ON CONFLICT (duty) DO NOTHING
                        """).format(TABLE_INSTANCE_LOCKS),
                        (duty, ttl_seconds, now),
                    )

                    result = await conn.execute(
                        sql.SQL("SELECT * FROM {} WHERE duty = %s FOR UPDATE").format(
                            TABLE_INSTANCE_LOCKS
                        ),
                        (duty,),
                    )
                    row = await result.fetchone()
                    existing = self._row_to_lock(row) if row else None

                    plan = plan_acquisition(existing, duty, owner_id, process_id, ttl_seconds, now)
                    if plan.acquired:
                        await self._write(conn, plan.lock)

                    return plan
        except psycopg.Error as e:
            raise StorageError(f"lock acquire {duty}", e) from e

    async def _write(self, conn, lock: InstanceLock) -> None:
        await conn.execute(
            sql.SQL("""
            UPDATE {}
            SET owner_id = %(owner_id)s,
                process_id = %(process_id)s,
                expires_at = %(expires_at)s,
                acquired_at = %(acquired_at)s,
                ttl_seconds = %(ttl_seconds)s,
                updated_at = %(updated_at)s
            WHERE duty = %(duty)s
            """).format(TABLE_INSTANCE_LOCKS),
            {
                "duty": lock.duty,
                "owner_id": lock.owner_id,
                "process_id": lock.process_id,
                "expires_at": lock.expires_at,
                "acquired_at": lock.acquired_at,
                "ttl_seconds": lock.ttl_seconds,
                "updated_at": lock.updated_at,
            },
        )

    async def heartbeat(
        self,
        duty: str,
        owner_id: str,
        now: datetime,
        ttl_seconds: Optional[int] = None,
    ) -> bool:
        """
        Extend the lease if owner_id still holds the row (expired or not).

        Args:
            ttl_seconds: New TTL; defaults to the row's stored ttl_seconds

        Returns:
            True if the renewal applied
        """
        try:
            async with self.pool.connection() as conn:
                result = await conn.execute(
                    sql.SQL("""
                    UPDATE {}
                    SET ttl_seconds = COALESCE(%(ttl)s::integer, ttl_seconds),
                        expires_at = %(now)s
                            + make_interval(secs => COALESCE(%(ttl)s::integer, ttl_seconds)),
                        updated_at = %(now)s
                    WHERE duty = %(duty)s
                      AND owner_id = %(owner_id)s
                    """).format(TABLE_INSTANCE_LOCKS),
                    {"duty": duty, "owner_id": owner_id, "now": now, "ttl": ttl_seconds},
                )
                return result.rowcount > 0
        except psycopg.Error as e:
            raise StorageError(f"lock heartbeat {duty}", e) from e

    async def release(self, duty: str, owner_id: str, now: datetime) -> bool:
        """
        Clear ownership if owner_id holds the row.

        Returns:
            True if released, False if not held by owner_id
        """
        try:
            async with self.pool.connection() as conn:
                result = await conn.execute(
                    sql.SQL("""
                    UPDATE {}
                    SET owner_id = NULL,
                        process_id = NULL,
                        expires_at = NULL,
                        acquired_at = NULL,
                        updated_at = %s
                    WHERE duty = %s
                      AND owner_id = %s
                    """).format(TABLE_INSTANCE_LOCKS),
                    (now, duty, owner_id),
                )
                return result.rowcount > 0
        except psycopg.Error as e:
            raise StorageError(f"lock release {duty}", e) from e

    async def get(self, duty: str) -> Optional[InstanceLock]:
        """Read-only lookup; None if the duty has never been acquired."""
        try:
            async with self.pool.connection() as conn:
                conn.row_factory = dict_row
                result = await conn.execute(
                    sql.SQL("SELECT * FROM {} WHERE duty = %s").format(TABLE_INSTANCE_LOCKS),
                    (duty,),
                )
                row = await result.fetchone()
        except psycopg.Error as e:
            raise StorageError(f"lock get {duty}", e) from e

        if row is None:
            return None
        return self._row_to_lock(row)

    def _row_to_lock(self, row: Dict[str, Any]) -> InstanceLock:
        return InstanceLock(
            duty=row["duty"],
            owner_id=row.get("owner_id"),
            process_id=row.get("process_id"),
            expires_at=row.get("expires_at"),
            acquired_at=row.get("acquired_at"),
            ttl_seconds=row["ttl_seconds"],
            updated_at=row["updated_at"],
        )


__all__ = ["InstanceLockRepository"]
