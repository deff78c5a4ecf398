# ============================================================================
# INSTANCE LOCK MODEL
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Core - Lease-based duty ownership
# PURPOSE: Table-based lease with TTL for crash-safe single-writer duties
# CREATED: 17 SEP 2026
# ============================================================================
"""
Instance Lock Model

Table-based lease per named duty ("reminder_scheduler", ...).

Key properties:
- A lock is active iff it has an owner and now < expires_at
- The holder renews via heartbeat; expiry supersedes deletion
- Any process may take over an expired lease immediately
- Explicit release clears owner/expiry so the duty is acquirable at once

State machine per duty:
    unheld --acquire--> held-by-X --expiry/release--> unheld
    held-by-X --expiry + acquire by Y--> held-by-Y (takeover)

plan_acquisition() is the pure decision used by every storage backend
inside its atomic read-modify-write.
"""

from datetime import datetime, timedelta, timezone
from typing import ClassVar, List, Optional

from pydantic import BaseModel, Field

from core.clock import ensure_utc
from core.config.defaults import MAX_DUTY_NAME_LENGTH


class InstanceLock(BaseModel):
    """
    Lease for one duty.

    Table: cfcache.instance_locks (one row per duty)
    """

    # SQL DDL Metadata
    __sql_table__: ClassVar[str] = "instance_locks"
    __sql_schema__: ClassVar[str] = "cfcache"
    __sql_primary_key__: ClassVar[List[str]] = ["duty"]
    __sql_indexes__: ClassVar[List[tuple]] = [
        ("idx_instance_locks_expires", ["expires_at"]),
    ]

    duty: str = Field(..., max_length=MAX_DUTY_NAME_LENGTH, description="Duty name (primary key)")
    owner_id: Optional[str] = Field(
        default=None,
        description="Opaque id of the holding process instance; NULL when released",
        json_schema_extra={"sql_type": "TEXT"},
    )
    process_id: Optional[int] = Field(default=None, description="OS pid of the holder (diagnostic)")
    expires_at: Optional[datetime] = Field(default=None, description="Lease expiry; NULL when released")
    acquired_at: Optional[datetime] = Field(
        default=None,
        description="When the current holder first acquired the lease",
    )
    ttl_seconds: int = Field(
        default=60,
        ge=1,
        description="Lease TTL used by heartbeats",
    )
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "duty": "reminder_scheduler",
                    "owner_id": "a1b2c3d4-e5f6-7890-abcd-ef1234567890",
                    "process_id": 4242,
                    "expires_at": "2026-09-17T12:01:00Z",
                    "acquired_at": "2026-09-17T12:00:00Z",
                    "ttl_seconds": 60,
                }
            ]
        }
    }

    def is_active(self, now: datetime) -> bool:
        """True iff owned and now < expires_at."""
        if self.owner_id is None or self.expires_at is None:
            return False
        return now < ensure_utc(self.expires_at)

    def is_held_by(self, owner_id: str) -> bool:
        return self.owner_id is not None and self.owner_id == owner_id

    def seconds_remaining(self, now: datetime) -> float:
        if self.expires_at is None:
            return 0.0
        return max(0.0, (ensure_utc(self.expires_at) - now).total_seconds())


class LockResult(BaseModel):
    """
    Outcome of acquire_lock.

    acquired=False is the normal contention answer: lock tells the caller
    who holds the lease.
    """

    acquired: bool
    lock: Optional[InstanceLock] = None
    previous_owner_id: Optional[str] = Field(
        default=None,
        description="Set when an expired lease of another owner was taken over",
    )

    @property
    def is_takeover(self) -> bool:
        return self.acquired and self.previous_owner_id is not None


def plan_acquisition(
    existing: Optional[InstanceLock],
    duty: str,
    owner_id: str,
    process_id: Optional[int],
    ttl_seconds: int,
    now: datetime,
) -> LockResult:
    """
    Decide the outcome of acquire_lock against the current row.

    - No row or released row: acquire fresh
    - Active, other owner: contention (no write)
    - Active, same owner: renewal (acquired_at kept)
    - Expired (any owner): takeover
    """
    expires_at = now + timedelta(seconds=ttl_seconds)

    def _fresh(previous: Optional[str] = None) -> LockResult:
        return LockResult(
            acquired=True,
            lock=InstanceLock(
                duty=duty,
                owner_id=owner_id,
                process_id=process_id,
                expires_at=expires_at,
                acquired_at=now,
                ttl_seconds=ttl_seconds,
                updated_at=now,
            ),
            previous_owner_id=previous,
        )

    if existing is None or existing.owner_id is None:
        return _fresh()

    if existing.is_active(now):
        if not existing.is_held_by(owner_id):
            return LockResult(acquired=False, lock=existing)

        renewed = existing.model_copy(
            update={
                "process_id": process_id,
                "expires_at": expires_at,
                "ttl_seconds": ttl_seconds,
                "updated_at": now,
            }
        )
        return LockResult(acquired=True, lock=renewed)

    previous = None if existing.is_held_by(owner_id) else existing.owner_id
    return _fresh(previous)


__all__ = ["InstanceLock", "LockResult", "plan_acquisition"]
