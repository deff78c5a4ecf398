# ============================================================================
# CLOCK ABSTRACTION
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Core - Injected time source
# PURPOSE: Single source of "now" and "sleep" for time-based components
# CREATED: 14 SEP 2026
# ============================================================================
"""
Clock Abstraction

Every time-dependent component (request pool, client retry backoff,
cache services, instance locks, duty runner, verification poll) takes a
Clock instead of reading wall-clock time. Tests substitute a virtual
clock and advance it deterministically.

Usage:
    from core.clock import SystemClock

    clock = SystemClock()
    started = clock.now()
    await clock.sleep(2.0)
    elapsed = clock.seconds_since(started)
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional


class Clock(ABC):
    """Time source. now() is always timezone-aware UTC."""

    @abstractmethod
    def now(self) -> datetime:
        """Current time (UTC, timezone-aware)."""

    @abstractmethod
    async def sleep(self, seconds: float) -> None:
        """Suspend the calling task for the given number of seconds."""

    def seconds_since(self, moment: datetime) -> float:
        """Seconds elapsed between moment and now (negative if in the future)."""
        return (self.now() - moment).total_seconds()


class SystemClock(Clock):
    """Wall-clock time backed by asyncio.sleep."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds))


def ensure_utc(moment: datetime) -> datetime:
    """Treat naive datetimes (e.g. from TIMESTAMP columns) as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


async def sleep_unless_set(
    clock: Clock,
    seconds: float,
    event: Optional[asyncio.Event] = None,
) -> bool:
    """
    Sleep on the clock, waking early if event is set.

    Returns:
        True if the event is set (sleep cut short or already set)
    """
    if event is None:
        await clock.sleep(seconds)
        return False
    if event.is_set():
        return True

    sleeper = asyncio.ensure_future(clock.sleep(seconds))
    waiter = asyncio.ensure_future(event.wait())
    try:
        await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (sleeper, waiter):
            if not task.done():
                task.cancel()
        await asyncio.gather(sleeper, waiter, return_exceptions=True)

    return event.is_set()


__all__ = ["Clock", "SystemClock", "ensure_utc", "sleep_unless_set"]
