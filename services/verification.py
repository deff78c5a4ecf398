# ============================================================================
# COMPILATION ERROR VERIFICATION
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Service - Cancellable poll loop over contest.status
# PURPOSE: Confirm handle ownership by a compilation-error submission
# CREATED: 17 SEP 2026
# ============================================================================
"""
Compilation Error Verification

A user proves they own a handle by submitting a compilation error to a
given problem. wait_for_compilation_error() polls contest.status until
that submission shows up, the deadline passes, or the caller cancels.

Boundary rule:
    poll; stop if matched, cancelled, or elapsed >= timeout;
    otherwise sleep min(interval, timeout - elapsed), waking at once
    on cancellation.

    timeout=20s, interval=5s -> polls at 0, 5, 10, 15, 20 = 5 polls.

A failed poll (transport, upstream, decode) counts as "not found".
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional

from core.clock import Clock, sleep_unless_set
from core.logging import log_context
from core.models import Submission

logger = logging.getLogger(__name__)

POLL_COUNT = 10


@dataclass(frozen=True)
class PollOutcome:
    """Result of a verification wait."""

    found: bool
    polls: int
    cancelled: bool
    elapsed_seconds: float

    def __bool__(self) -> bool:
        return self.found


def find_compilation_error(
    submissions: List[Submission],
    contest_id: int,
    index: str,
    start_time_seconds: int,
) -> bool:
    """
    True iff the newest COMPILATION_ERROR on (contest_id, index) was
    submitted after start_time_seconds.
    """
    for submission in submissions:
        if (
            submission.index == index
            and submission.is_compilation_error
            and submission.contest_id == contest_id
        ):
            return submission.creation_time_seconds > start_time_seconds
    return False


async def has_compilation_error(
    client,
    contest_id: int,
    handle: str,
    index: str,
    start_time_seconds: int,
) -> bool:
    """One poll. Failures are logged and read as "not found"."""
    result = await client.call(
        "contest.status",
        {"contestId": contest_id, "handle": handle, "from": 1, "count": POLL_COUNT},
    )
    if not result.ok:
        logger.warning(f"Verification poll failed: {result.error_message}")
        return False

    try:
        submissions = [Submission.from_api(item) for item in result.value]
    except (ValueError, KeyError, TypeError) as e:
        logger.warning(f"Verification poll returned unexpected data: {e}")
        return False

    return find_compilation_error(submissions, contest_id, index, start_time_seconds)


async def wait_for_compilation_error(
    client,
    clock: Clock,
    contest_id: int,
    handle: str,
    index: str,
    start_time_seconds: int,
    timeout_seconds: float,
    poll_interval_seconds: float,
    cancel_event: Optional[asyncio.Event] = None,
) -> PollOutcome:
    """
    Poll until the compilation error appears, the timeout elapses, or
    cancel_event is set.

    Args:
        client: CodeforcesClient (async call() returning ApiResult)
        clock: Time source for elapsed time and sleeps
        contest_id: Contest of the problem
        handle: Handle being verified
        index: Problem index, e.g. "A"
        start_time_seconds: Only submissions after this count
        timeout_seconds: Overall deadline, measured from the first poll
        poll_interval_seconds: Sleep between polls
        cancel_event: Set to stop immediately, even mid-sleep

    Returns:
        PollOutcome (truthy iff found)
    """
    if poll_interval_seconds <= 0:
        raise ValueError("poll_interval_seconds must be > 0")

    started = clock.now()
    polls = 0

    with log_context(method="contest.status", handle=handle, contest_id=contest_id):
        while True:
            if cancel_event is not None and cancel_event.is_set():
                break

            polls += 1
            if await has_compilation_error(client, contest_id, handle, index, start_time_seconds):
                logger.info(f"Compilation error found after {polls} polls")
                return PollOutcome(True, polls, False, clock.seconds_since(started))

            if cancel_event is not None and cancel_event.is_set():
                break

            elapsed = clock.seconds_since(started)
            if elapsed >= timeout_seconds:
                break

            remaining = timeout_seconds - elapsed
            if await sleep_unless_set(clock, min(poll_interval_seconds, remaining), cancel_event):
                break

    cancelled = cancel_event is not None and cancel_event.is_set()
    elapsed = clock.seconds_since(started)
    logger.info(
        f"Verification gave up after {polls} polls ({elapsed:.1f}s, cancelled={cancelled})"
    )
    return PollOutcome(False, polls, cancelled, elapsed)


__all__ = [
    "PollOutcome",
    "find_compilation_error",
    "has_compilation_error",
    "wait_for_compilation_error",
]
