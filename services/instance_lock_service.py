# ============================================================================
# INSTANCE LOCK SERVICE
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Core - Lease-based single-writer enforcement
# PURPOSE: Acquire, renew, release and inspect duty leases
# CREATED: 17 SEP 2026
# ============================================================================
"""
Instance Lock Service

One leased ownership record per duty. Contention is a normal result
(acquired=False), never an exception; only storage faults raise
(StorageError).

Callers must tolerate losing a race: after a successful acquire, confirm
with get_lock() before doing side-effecting work (DutyRunner does).
"""

import logging
from typing import Optional

from core.clock import Clock
from core.config import MAX_DUTY_NAME_LENGTH
from core.logging import log_context
from core.models import InstanceLock, LockResult

logger = logging.getLogger(__name__)


class InstanceLockService:
    """
    Lease operations over an instance lock repository.

    The repository needs acquire/heartbeat/release/get (see
    repositories.lock_repo.InstanceLockRepository).
    """

    def __init__(self, repo, clock: Clock):
        self.repo = repo
        self.clock = clock

    async def acquire_lock(
        self,
        duty: str,
        owner_id: str,
        process_id: Optional[int],
        ttl_seconds: int,
    ) -> LockResult:
        """
        Acquire, renew or take over the lease for duty.

        Returns:
            LockResult; acquired=False means another owner holds an active lease
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        if not duty or len(duty) > MAX_DUTY_NAME_LENGTH:
            raise ValueError(f"duty must be 1-{MAX_DUTY_NAME_LENGTH} characters")

        with log_context(duty=duty, owner_id=owner_id):
            now = self.clock.now()
            result = await self.repo.acquire(duty, owner_id, process_id, ttl_seconds, now)

            if result.is_takeover:
                logger.info(f"Took over expired lease from {result.previous_owner_id}")
            elif result.acquired and result.lock.acquired_at == now:
                logger.info(f"Lease acquired until {result.lock.expires_at.isoformat()}")
            elif result.acquired:
                logger.debug(f"Lease renewed until {result.lock.expires_at.isoformat()}")
            else:
                holder = result.lock.owner_id if result.lock else None
                logger.debug(f"Lease held by {holder}")

            return result

    async def heartbeat(self, duty: str, owner_id: str, ttl_seconds: Optional[int] = None) -> bool:
        """
        Extend the lease if owner_id still holds it.

        Returns:
            False if another owner now holds the duty
        """
        with log_context(duty=duty, owner_id=owner_id):
            renewed = await self.repo.heartbeat(duty, owner_id, self.clock.now(), ttl_seconds)
            if not renewed:
                logger.warning("Heartbeat rejected: lease no longer held")
            return renewed

    async def release(self, duty: str, owner_id: str) -> bool:
        """Clear ownership if held by owner_id; no-op otherwise."""
        with log_context(duty=duty, owner_id=owner_id):
            released = await self.repo.release(duty, owner_id, self.clock.now())
            if released:
                logger.info("Lease released")
            return released

    async def get_lock(self, duty: str) -> Optional[InstanceLock]:
        """Current row for duty, or None."""
        return await self.repo.get(duty)

    async def is_held_by(self, duty: str, owner_id: str) -> bool:
        """True iff owner_id holds an active lease on duty right now."""
        lock = await self.get_lock(duty)
        return lock is not None and lock.is_held_by(owner_id) and lock.is_active(self.clock.now())


__all__ = ["InstanceLockService"]
