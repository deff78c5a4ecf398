# ============================================================================
# SHARED TEST FIXTURES
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Tests - Virtual clock and in-memory repositories
# PURPOSE: Run services without a database, network or wall-clock waits
# CREATED: 18 SEP 2026
# ============================================================================
"""
Shared test fixtures.

FakeClock:
    Virtual time. sleep() parks the caller on a heap; drive(coro) runs
    the coroutine, and whenever every task is blocked, advances time to
    the earliest sleeper and wakes it. No real waiting happens.

InMemoryCacheRepository / InMemoryLockRepository:
    Same contracts as the psycopg repositories. The lock repository
    decides with plan_acquisition(), like the real one does inside its
    transaction. Set fail_* to make calls raise StorageError.
"""

import asyncio
import heapq
import itertools
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

import pytest

from core.errors import StorageError
from core.clock import Clock
from core.models import CacheEntry, InstanceLock, LockResult
from core.models.instance_lock import plan_acquisition

EPOCH_START = datetime(2026, 9, 1, 12, 0, 0, tzinfo=timezone.utc)


# ============================================================================
# VIRTUAL CLOCK
# ============================================================================

class FakeClock(Clock):
    """Deterministic clock for async tests."""

    SETTLE_ROUNDS = 50

    def __init__(self, start: Optional[datetime] = None):
        self._now = start or EPOCH_START
        self._sleepers: List[Tuple[datetime, int, asyncio.Future]] = []
        self._seq = itertools.count()
        self.sleeps: List[float] = []

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> None:
        """Move time forward without waking sleepers."""
        self._now += timedelta(seconds=seconds)

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        if seconds <= 0:
            await asyncio.sleep(0)
            return
        future = asyncio.get_running_loop().create_future()
        heapq.heappush(
            self._sleepers,
            (self._now + timedelta(seconds=seconds), next(self._seq), future),
        )
        await future

    @property
    def pending_sleepers(self) -> int:
        return len([f for _, _, f in self._sleepers if not f.done()])

    async def settle(self) -> None:
        """Let every runnable task run until it blocks."""
        for _ in range(self.SETTLE_ROUNDS):
            await asyncio.sleep(0)

    def wake_next(self) -> bool:
        """Advance to the earliest live sleeper and wake it."""
        while self._sleepers:
            wake_at, _, future = heapq.heappop(self._sleepers)
            if future.done():
                continue
            if wake_at > self._now:
                self._now = wake_at
            future.set_result(None)
            return True
        return False

    async def run_for(self, seconds: float) -> None:
        """Wake sleepers due within the next `seconds` of virtual time."""
        deadline = self._now + timedelta(seconds=seconds)
        await self.settle()
        while self._sleepers:
            live = [entry for entry in self._sleepers if not entry[2].done()]
            if not live or min(live)[0] > deadline:
                break
            self.wake_next()
            await self.settle()
        if self._now < deadline:
            self._now = deadline

    async def drive(self, coro):
        """Run coro to completion under virtual time."""
        task = asyncio.ensure_future(coro)
        while True:
            await self.settle()
            if task.done():
                return task.result()
            if not self.wake_next():
                task.cancel()
                raise RuntimeError("Task blocked with no pending sleepers")


# ============================================================================
# IN-MEMORY REPOSITORIES
# ============================================================================

class InMemoryCacheRepository:
    """Dict-backed stand-in for CacheRepository."""

    def __init__(self):
        self.rows: Dict[Tuple[str, str], CacheEntry] = {}
        self.fail_reads = False
        self.fail_writes = False
        self.writes = 0

    async def get(self, domain: str, cache_key: str) -> Optional[CacheEntry]:
        if self.fail_reads:
            raise StorageError(f"cache get {domain}/{cache_key}", RuntimeError("db down"))
        return self.rows.get((domain, cache_key))

    async def upsert(self, entry: CacheEntry) -> CacheEntry:
        if self.fail_writes:
            raise StorageError(f"cache upsert {entry.domain}/{entry.cache_key}", RuntimeError("db down"))
        self.rows[(entry.domain, entry.cache_key)] = entry
        self.writes += 1
        return entry

    async def delete(self, domain: str, cache_key: str) -> bool:
        return self.rows.pop((domain, cache_key), None) is not None


class InMemoryLockRepository:
    """Dict-backed stand-in for InstanceLockRepository."""

    def __init__(self):
        self.rows: Dict[str, InstanceLock] = {}
        self.fail = False

    def _check(self, operation: str) -> None:
        if self.fail:
            raise StorageError(operation, RuntimeError("db down"))

    async def acquire(
        self,
        duty: str,
        owner_id: str,
        process_id: Optional[int],
        ttl_seconds: int,
        now: datetime,
    ) -> LockResult:
        self._check(f"lock acquire {duty}")
        plan = plan_acquisition(self.rows.get(duty), duty, owner_id, process_id, ttl_seconds, now)
        if plan.acquired:
            self.rows[duty] = plan.lock
        return plan

    async def heartbeat(
        self,
        duty: str,
        owner_id: str,
        now: datetime,
        ttl_seconds: Optional[int] = None,
    ) -> bool:
        self._check(f"lock heartbeat {duty}")
        lock = self.rows.get(duty)
        if lock is None or lock.owner_id != owner_id:
            return False
        ttl = ttl_seconds if ttl_seconds is not None else lock.ttl_seconds
        self.rows[duty] = lock.model_copy(
            update={
                "ttl_seconds": ttl,
                "expires_at": now + timedelta(seconds=ttl),
                "updated_at": now,
            }
        )
        return True

    async def release(self, duty: str, owner_id: str, now: datetime) -> bool:
        self._check(f"lock release {duty}")
        lock = self.rows.get(duty)
        if lock is None or lock.owner_id != owner_id:
            return False
        self.rows[duty] = lock.model_copy(
            update={
                "owner_id": None,
                "process_id": None,
                "expires_at": None,
                "acquired_at": None,
                "updated_at": now,
            }
        )
        return True

    async def get(self, duty: str) -> Optional[InstanceLock]:
        self._check(f"lock get {duty}")
        return self.rows.get(duty)


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache_repo():
    return InMemoryCacheRepository()


@pytest.fixture
def lock_repo():
    return InMemoryLockRepository()
