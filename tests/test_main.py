# ============================================================================
# APPLICATION WIRING TESTS
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Tests - FastAPI app and duty work callback
# PURPOSE: Verify routes are mounted and the cache refresh duty
# CREATED: 18 SEP 2026
# ============================================================================
"""
Application Wiring Tests

TestClient is used without a context manager so the lifespan (database
pool, upstream client) never runs.

Run with:
    pytest tests/test_main.py -v
"""

import asyncio

from fastapi.testclient import TestClient

from core.contracts import DataSource
from core.errors import ApiResult, TransportError
from services.cache_service import CacheService
from services.contest_service import ContestService
from services.problem_service import ProblemService

import main


class _StubClient:
    def __init__(self, **results):
        self.results = results
        self.calls = []

    async def call(self, method, params=None, retries=0):
        self.calls.append(method)
        return self.results[method]


class TestApp:

    def test_root(self):
        body = TestClient(main.app).get("/").json()
        assert body["service"] == "Codeforces Access Layer"
        assert body["status"] == "running"

    def test_health_routes_mounted(self):
        http = TestClient(main.app)

        assert http.get("/livez").status_code == 200
        # no pool outside the lifespan: the routes answer, the checks fail
        assert http.get("/readyz").status_code == 503
        assert http.get("/health").status_code in (206, 503)
        assert http.get("/health/process").status_code == 200
        assert http.get("/health/no_such_check").status_code == 404


class TestCacheRefresh:

    def test_refreshes_contests_and_problems(self, clock, cache_repo):
        client = _StubClient(**{
            "contest.list": ApiResult.success([
                {"id": 1, "name": "Round 1", "phase": "BEFORE", "startTimeSeconds": 2000000000},
            ]),
            "problemset.problems": ApiResult.success({"problems": [], "problemStatistics": []}),
        })
        cache = CacheService(cache_repo, clock)
        refresh = main.make_cache_refresh(
            ContestService(client, cache, clock),
            ProblemService(client, cache, clock),
        )

        asyncio.run(refresh())

        assert client.calls == ["contest.list", "problemset.problems"]
        assert set(cache_repo.rows) == {("contest_list", "contest_list"), ("problemset", "problemset")}

    def test_upstream_failure_does_not_raise(self, clock, cache_repo):
        failure = ApiResult.failure(TransportError("down"))
        client = _StubClient(**{"contest.list": failure, "problemset.problems": failure})
        cache = CacheService(cache_repo, clock)
        contests = ContestService(client, cache, clock)

        asyncio.run(main.make_cache_refresh(contests, ProblemService(client, cache, clock))())

        assert contests.last_error is not None
        assert cache_repo.rows == {}


def test_refresh_serves_fresh_cache_on_second_run(clock, cache_repo):
    client = _StubClient(**{
        "contest.list": ApiResult.success([]),
        "problemset.problems": ApiResult.success({"problems": []}),
    })
    cache = CacheService(cache_repo, clock)
    contests = ContestService(client, cache, clock)
    refresh = main.make_cache_refresh(contests, ProblemService(client, cache, clock))

    async def run():
        await refresh()
        await refresh()
        return await contests.get_contests()

    assert asyncio.run(run()).source == DataSource.CACHE
    assert client.calls == ["contest.list", "problemset.problems"]
