# ============================================================================
# DUTY RUNNER
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Service - Active/standby execution of a leased duty
# PURPOSE: Run a side-effecting duty in exactly one process at a time
# CREATED: 17 SEP 2026
# ============================================================================
"""
Duty Runner

Owns one duty's lease for this process and runs the duty's work
callback only while active.

Lease cycle (tick):
    active  -> heartbeat; rejected or failed -> demote to standby
    standby -> acquire_lock; on success confirm with get_lock() (a racing
               process may have written after us) -> promote

Work cycle:
    Every work interval while active, start the callback unless the
    previous run is still going (overlapping runs are skipped). A failing
    callback is logged and recorded as last_error; the runner keeps going.

All instances run a DutyRunner; only one is active per duty.
stop() releases the lease so a standby can promote immediately.

Usage:
    runner = DutyRunner(lock_service, config.lock, clock, work=send_reminders)
    await runner.start()
    ...
    await runner.stop()
"""

import asyncio
import logging
import os
import uuid
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional

from core.clock import Clock, sleep_unless_set
from core.config import LockDefaults
from core.contracts import DutyRole
from core.errors import ServiceError, StorageError
from core.logging import log_context
from services.instance_lock_service import InstanceLockService

logger = logging.getLogger(__name__)

WorkCallback = Callable[[], Awaitable[None]]


class DutyRunner:
    """Active/standby runner for one leased duty."""

    def __init__(
        self,
        lock_service: InstanceLockService,
        config: LockDefaults,
        clock: Clock,
        work: Optional[WorkCallback] = None,
        work_interval_seconds: Optional[float] = None,
        owner_id: Optional[str] = None,
        process_id: Optional[int] = None,
    ):
        """
        Args:
            lock_service: Lease operations
            config: Duty name, TTL, heartbeat and standby intervals
            clock: Time source
            work: Callback run while active
            work_interval_seconds: Seconds between work runs (defaults to
                the heartbeat interval)
            owner_id: Lease owner id (defaults to a fresh UUID)
            process_id: Diagnostic pid (defaults to os.getpid())
        """
        self.lock_service = lock_service
        self.config = config
        self.clock = clock
        self.work = work
        self.work_interval_seconds = work_interval_seconds or config.heartbeat_interval_seconds

        self._owner_id = owner_id or str(uuid.uuid4())
        self._process_id = process_id if process_id is not None else os.getpid()

        self._role = DutyRole.STOPPED
        self._stop_event = asyncio.Event()
        self._lease_task: Optional[asyncio.Task] = None
        self._work_loop_task: Optional[asyncio.Task] = None
        self._work_run: Optional[asyncio.Task] = None
        self._working = False

        # Metrics
        self.last_tick_at: Optional[datetime] = None
        self.last_lease_check_at: Optional[datetime] = None
        self.last_error: Optional[ServiceError] = None
        self._acquisitions = 0
        self._leases_lost = 0
        self._work_runs = 0
        self._work_skipped = 0

    @property
    def duty(self) -> str:
        return self.config.duty_name

    @property
    def owner_id(self) -> str:
        return self._owner_id

    @property
    def role(self) -> DutyRole:
        return self._role

    @property
    def is_active(self) -> bool:
        return self._role == DutyRole.ACTIVE

    # =========================================================================
    # LEASE CYCLE
    # =========================================================================

    async def tick(self) -> DutyRole:
        """One lease cycle. Returns the resulting role."""
        with log_context(duty=self.duty, owner_id=self._owner_id):
            self.last_lease_check_at = self.clock.now()
            try:
                if self._role == DutyRole.ACTIVE:
                    renewed = await self.lock_service.heartbeat(
                        self.duty, self._owner_id, self.config.ttl_seconds
                    )
                    if not renewed:
                        self._demote("heartbeat rejected")
                else:
                    await self._try_promote()
            except Exception as e:
                # the loop must survive; an unknown lease state is not ownership
                self._record_error(e)
                if isinstance(e, StorageError):
                    logger.error(f"Lease check failed: {e}")
                else:
                    logger.exception(f"Lease check raised {type(e).__name__}: {e}")
                if self._role == DutyRole.ACTIVE:
                    self._demote("lease state unknown")
            return self._role

    async def _try_promote(self) -> None:
        result = await self.lock_service.acquire_lock(
            self.duty, self._owner_id, self._process_id, self.config.ttl_seconds
        )
        if not result.acquired:
            self._role = DutyRole.STANDBY
            return

        # Re-check: a racing writer may have replaced us after our write
        if not await self.lock_service.is_held_by(self.duty, self._owner_id):
            logger.info("Lost acquisition race; staying in standby")
            self._role = DutyRole.STANDBY
            return

        self._role = DutyRole.ACTIVE
        self._acquisitions += 1
        logger.info(f"Promoted to active for duty {self.duty}")

    def _demote(self, reason: str) -> None:
        self._role = DutyRole.STANDBY
        self._leases_lost += 1
        logger.warning(f"Demoted to standby for duty {self.duty}: {reason}")

    def _record_error(self, error: BaseException) -> None:
        self.last_error = ServiceError.from_exception(error, self.clock.now())

    async def _lease_loop(self) -> None:
        while not self._stop_event.is_set():
            role = await self.tick()
            interval = (
                self.config.heartbeat_interval_seconds
                if role == DutyRole.ACTIVE
                else self.config.standby_retry_seconds
            )
            if await sleep_unless_set(self.clock, interval, self._stop_event):
                break

    # =========================================================================
    # WORK CYCLE
    # =========================================================================

    async def run_work_once(self) -> bool:
        """
        Run the work callback if active and not already running.

        Returns:
            True if the callback ran to completion without raising
        """
        if self.work is None or not self.is_active:
            return False

        if self._working:
            self._work_skipped += 1
            logger.debug("Previous work run still in progress; skipping")
            return False

        self._working = True
        self.last_tick_at = self.clock.now()
        self._work_runs += 1
        try:
            with log_context(duty=self.duty, owner_id=self._owner_id):
                await self.work()
            return True
        except Exception as e:
            self._record_error(e)
            logger.exception(f"Duty {self.duty} work failed: {e}")
            return False
        finally:
            self._working = False

    async def _work_loop(self) -> None:
        while not self._stop_event.is_set():
            if self.is_active:
                if self._work_run is not None and not self._work_run.done():
                    self._work_skipped += 1
                    logger.debug("Previous work run still in progress; skipping")
                else:
                    self._work_run = asyncio.create_task(
                        self.run_work_once(),
                        name=f"duty-work-{self.duty}",
                    )
            if await sleep_unless_set(self.clock, self.work_interval_seconds, self._stop_event):
                break

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(self) -> None:
        """Start lease and work loops (standby until the lease is won)."""
        if self._lease_task is not None:
            logger.warning(f"Duty runner for {self.duty} already running")
            return

        self._stop_event.clear()
        self._role = DutyRole.STANDBY
        logger.info(f"Starting duty runner for {self.duty} (owner_id={self._owner_id[:8]}...)")

        self._lease_task = asyncio.create_task(
            self._lease_loop(),
            name=f"duty-lease-{self.duty}",
        )
        if self.work is not None:
            self._work_loop_task = asyncio.create_task(
                self._work_loop(),
                name=f"duty-loop-{self.duty}",
            )

    async def stop(self) -> None:
        """Stop loops, cancel in-flight work and release the lease if held."""
        self._stop_event.set()

        for task in (self._lease_task, self._work_loop_task, self._work_run):
            if task is None:
                continue
            if not task.done():
                task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                self._record_error(e)
                logger.error(f"Duty task {task.get_name()} had failed: {type(e).__name__}: {e}")

        self._lease_task = None
        self._work_loop_task = None
        self._work_run = None

        was_active = self.is_active
        if was_active:
            try:
                await self.lock_service.release(self.duty, self._owner_id)
            except StorageError as e:
                logger.warning(f"Error releasing lease for {self.duty}: {e}")

        self._role = DutyRole.STOPPED
        logger.info(
            f"Duty runner stopped (duty={self.duty}, was_active={was_active}, "
            f"work_runs={self._work_runs}, skipped={self._work_skipped})"
        )

    def stats(self) -> Dict[str, Any]:
        return {
            "duty": self.duty,
            "owner_id": self._owner_id,
            "process_id": self._process_id,
            "role": self._role.value,
            "acquisitions": self._acquisitions,
            "leases_lost": self._leases_lost,
            "work_runs": self._work_runs,
            "work_skipped": self._work_skipped,
            "last_tick_at": self.last_tick_at.isoformat() if self.last_tick_at else None,
            "last_lease_check_at": (
                self.last_lease_check_at.isoformat() if self.last_lease_check_at else None
            ),
            "last_error": self.last_error.to_dict() if self.last_error else None,
        }


__all__ = ["DutyRunner", "WorkCallback"]
