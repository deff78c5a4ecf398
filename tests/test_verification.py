# ============================================================================
# VERIFICATION POLL TESTS
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Tests - Compilation-error ownership check
# PURPOSE: Verify the matching rule and the cancellable poll loop timing
# CREATED: 18 SEP 2026
# ============================================================================
"""
Verification Poll Tests

Covers:
1. find_compilation_error: newest CE on the problem decides
2. wait_for_compilation_error: poll count at the timeout boundary
3. Early success, cancellation before and during a sleep
4. Failed or malformed polls read as "not found"

Run with:
    pytest tests/test_verification.py -v
"""

import asyncio

import pytest

from core.errors import ApiResult, TransportError
from core.models import Submission
from services.verification import (
    POLL_COUNT,
    find_compilation_error,
    wait_for_compilation_error,
)

CONTEST = 1850
HANDLE = "tourist"
START = 1_790_000_000


def _raw(submission_id, created, verdict="COMPILATION_ERROR", index="A", contest_id=CONTEST):
    return {
        "id": submission_id,
        "contestId": contest_id,
        "creationTimeSeconds": created,
        "problem": {"contestId": contest_id, "index": index, "name": "Problem"},
        "verdict": verdict,
    }


def _subs(*raws):
    return [Submission.from_api(raw) for raw in raws]


class _PollClient:
    """Answers contest.status via responder(call_number) -> ApiResult."""

    def __init__(self, responder):
        self.responder = responder
        self.calls = []

    async def call(self, method, params=None, retries=0):
        self.calls.append((method, params))
        return self.responder(len(self.calls))


def _never_found(_):
    return ApiResult.success([_raw(1, START - 100)])


def _wait(client, clock, timeout=20, interval=5, cancel_event=None):
    return wait_for_compilation_error(
        client,
        clock,
        contest_id=CONTEST,
        handle=HANDLE,
        index="A",
        start_time_seconds=START,
        timeout_seconds=timeout,
        poll_interval_seconds=interval,
        cancel_event=cancel_event,
    )


# ============================================================================
# MATCHING RULE
# ============================================================================

class TestFindCompilationError:

    def test_recent_ce_matches(self):
        assert find_compilation_error(_subs(_raw(1, START + 5)), CONTEST, "A", START)

    def test_ce_before_start_does_not_match(self):
        assert not find_compilation_error(_subs(_raw(1, START - 5)), CONTEST, "A", START)

    def test_ce_at_start_does_not_match(self):
        assert not find_compilation_error(_subs(_raw(1, START)), CONTEST, "A", START)

    def test_other_problem_or_contest_ignored(self):
        submissions = _subs(
            _raw(3, START + 5, index="B"),
            _raw(2, START + 5, contest_id=CONTEST + 1),
        )
        assert not find_compilation_error(submissions, CONTEST, "A", START)

    def test_newest_ce_decides(self):
        submissions = _subs(
            _raw(3, START + 30, verdict="OK"),
            _raw(2, START - 10),
            _raw(1, START + 5),
        )
        assert not find_compilation_error(submissions, CONTEST, "A", START)

    def test_empty_list(self):
        assert not find_compilation_error([], CONTEST, "A", START)


# ============================================================================
# POLL LOOP
# ============================================================================

class TestWaitForCompilationError:

    def test_timeout_boundary_gives_five_polls(self, clock):
        client = _PollClient(_never_found)

        outcome = asyncio.run(clock.drive(_wait(client, clock)))

        assert not outcome
        assert outcome.polls == 5
        assert outcome.elapsed_seconds == 20
        assert not outcome.cancelled
        assert clock.sleeps == [5, 5, 5, 5]

    def test_poll_parameters(self, clock):
        client = _PollClient(_never_found)
        asyncio.run(clock.drive(_wait(client, clock, timeout=0)))

        assert client.calls == [(
            "contest.status",
            {"contestId": CONTEST, "handle": HANDLE, "from": 1, "count": POLL_COUNT},
        )]

    def test_last_sleep_is_clipped_to_deadline(self, clock):
        client = _PollClient(_never_found)

        outcome = asyncio.run(clock.drive(_wait(client, clock, timeout=12)))

        assert outcome.polls == 4
        assert clock.sleeps == [5, 5, 2]

    def test_found_on_third_poll(self, clock):
        def responder(n):
            if n < 3:
                return _never_found(n)
            return ApiResult.success([_raw(2, START + 9), _raw(1, START - 100)])

        outcome = asyncio.run(clock.drive(_wait(_PollClient(responder), clock)))

        assert outcome
        assert outcome.polls == 3
        assert outcome.elapsed_seconds == 10

    def test_failed_polls_count_as_not_found(self, clock):
        client = _PollClient(lambda n: ApiResult.failure(TransportError("Timeout after 10s")))

        outcome = asyncio.run(clock.drive(_wait(client, clock)))

        assert not outcome.found
        assert outcome.polls == 5

    def test_malformed_result_counts_as_not_found(self, clock):
        client = _PollClient(lambda n: ApiResult.success([{"id": 1}]))

        outcome = asyncio.run(clock.drive(_wait(client, clock, timeout=5)))

        assert not outcome.found
        assert outcome.polls == 2

    def test_recovers_after_failures(self, clock):
        def responder(n):
            if n == 1:
                return ApiResult.failure(TransportError("HTTP 502", 502))
            return ApiResult.success([_raw(1, START + 1)])

        outcome = asyncio.run(clock.drive(_wait(_PollClient(responder), clock)))
        assert outcome.found
        assert outcome.polls == 2

    def test_cancel_during_first_poll_stops_after_it(self, clock):
        async def run():
            event = asyncio.Event()

            def responder(n):
                event.set()
                return _never_found(n)

            return await _wait(_PollClient(responder), clock, cancel_event=event)

        outcome = asyncio.run(clock.drive(run()))

        assert outcome.polls == 1
        assert outcome.cancelled
        assert clock.sleeps == []

    def test_cancel_wakes_sleep_early(self, clock):
        async def run():
            event = asyncio.Event()

            async def cancel_later():
                await clock.sleep(7)
                event.set()

            canceller = asyncio.ensure_future(cancel_later())
            outcome = await _wait(_PollClient(_never_found), clock, cancel_event=event)
            await canceller
            return outcome

        outcome = asyncio.run(clock.drive(run()))

        assert outcome.polls == 2
        assert outcome.cancelled
        assert outcome.elapsed_seconds == 7

    def test_cancelled_before_start_never_polls(self, clock):
        async def run():
            event = asyncio.Event()
            event.set()
            client = _PollClient(_never_found)
            outcome = await _wait(client, clock, cancel_event=event)
            return outcome, client.calls

        outcome, calls = asyncio.run(clock.drive(run()))
        assert outcome.polls == 0
        assert calls == []

    def test_non_positive_interval_rejected(self, clock):
        with pytest.raises(ValueError):
            asyncio.run(_wait(_PollClient(_never_found), clock, interval=0))
