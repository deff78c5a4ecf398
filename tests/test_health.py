# ============================================================================
# HEALTH CHECK TESTS
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Tests - Health plugins, executor and endpoints
# PURPOSE: Verify status aggregation, check semantics and HTTP codes
# CREATED: 18 SEP 2026
# ============================================================================
"""
Health Check Tests

Covers:
1. HealthStatus aggregation (worst wins) and plugin default priorities
2. Executor: tiers, per-check timeout, exceptions, early termination
3. Registered checks against fake pool / client / services / runner
4. /livez, /readyz, /health, /health/{name} status codes

Run with:
    pytest tests/test_health.py -v
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

import health.checks
from core.config import reset_defaults
from core.contracts import DutyRole
from core.errors import ServiceError
from health import (
    HealthCheckCategory,
    HealthCheckExecutor,
    HealthCheckPlugin,
    HealthCheckRegistry,
    HealthCheckResult,
    HealthStatus,
    get_registry,
    health_router,
)
from health.checks import (
    CacheSchemaCheck,
    CodeforcesApiCheck,
    DataServicesCheck,
    InstanceLockCheck,
    PostgresCheck,
)

NOW = datetime(2026, 9, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def reset_wiring():
    reset_defaults()
    yield
    health.checks.set_pool(None)
    health.checks.set_client(None)
    health.checks.set_data_services([])
    health.checks.set_duty_runner(None)
    reset_defaults()


def _run(check: HealthCheckPlugin) -> HealthCheckResult:
    return asyncio.run(check.check())


def _service_error(message):
    return ServiceError(message=message, timestamp=NOW, details={"method": "contest.list"})


# ============================================================================
# FAKES
# ============================================================================

class _FakeCursor:
    def __init__(self, one=None, rows=()):
        self._one = one
        self._rows = list(rows)

    async def fetchone(self):
        return self._one

    async def fetchall(self):
        return self._rows


class _FakeConnection:
    def __init__(self, tables):
        self.tables = tables
        self.row_factory = None

    async def execute(self, query, params=None):
        if "information_schema" in query:
            return _FakeCursor(rows=[(t,) for t in self.tables])
        return _FakeCursor(one={"health_check": 1})


class _FakePool:
    def __init__(self, tables=("api_cache", "instance_locks"), fail=False):
        self.tables = list(tables)
        self.fail = fail

    @asynccontextmanager
    async def connection(self):
        if self.fail:
            raise OSError("could not connect to server")
        yield _FakeConnection(self.tables)


def _fake_client(last_error=None, last_success_at=None):
    return SimpleNamespace(
        last_error=last_error,
        last_success_at=last_success_at,
        is_degraded=last_error is not None,
        diagnostics=lambda: {"base_url": "https://codeforces.com/api", "egress_paths": 2},
    )


def _fake_runner(role):
    return SimpleNamespace(
        role=role,
        duty="reminder_scheduler",
        stats=lambda: {"duty": "reminder_scheduler", "role": role.value},
    )


# ============================================================================
# CORE TYPES
# ============================================================================

class TestCoreTypes:

    def test_aggregate_worst_wins(self):
        assert HealthStatus.aggregate([]) == HealthStatus.HEALTHY
        assert HealthStatus.aggregate(
            [HealthStatus.HEALTHY, HealthStatus.DEGRADED]
        ) == HealthStatus.DEGRADED
        assert HealthStatus.aggregate(
            [HealthStatus.UNHEALTHY, HealthStatus.DEGRADED, HealthStatus.HEALTHY]
        ) == HealthStatus.UNHEALTHY

    def test_plugin_priority_follows_category(self):
        class _DbCheck(HealthCheckPlugin):
            name = "db"
            category = HealthCheckCategory.DATABASE

            async def check(self):
                return HealthCheckResult.healthy()

        assert _DbCheck.priority == 20

    def test_result_to_dict_omits_empty_fields(self):
        assert HealthCheckResult.healthy().to_dict() == {"status": "healthy", "duration_ms": 0.0}

    def test_from_exception(self):
        result = HealthCheckResult.from_exception(KeyError("x"))
        assert result.status == HealthStatus.UNHEALTHY
        assert result.details == {"exception_type": "KeyError"}


# ============================================================================
# EXECUTOR
# ============================================================================

def _plugin(name, category, outcome, timeout=1.0, required=True):
    class _Check(HealthCheckPlugin):
        async def check(self):
            if isinstance(outcome, Exception):
                raise outcome
            if outcome == "hang":
                await asyncio.sleep(10)
            return HealthCheckResult(status=outcome)

    _Check.name = name
    _Check.category = category
    _Check.priority = category.default_priority
    _Check.timeout_seconds = timeout
    _Check.required_for_ready = required
    return _Check()


class TestExecutor:

    def _registry(self, *checks):
        registry = HealthCheckRegistry()
        for check in checks:
            registry.register(check)
        return registry

    def test_execute_all_aggregates(self):
        registry = self._registry(
            _plugin("a", HealthCheckCategory.STARTUP, HealthStatus.HEALTHY),
            _plugin("b", HealthCheckCategory.UPSTREAM, HealthStatus.DEGRADED),
        )

        result = asyncio.run(HealthCheckExecutor(registry).execute_all())

        assert result.status == HealthStatus.DEGRADED
        assert set(result.checks) == {"a", "b"}

    def test_timeout_is_unhealthy(self):
        registry = self._registry(
            _plugin("slow", HealthCheckCategory.UPSTREAM, "hang", timeout=0.05),
        )

        result = asyncio.run(HealthCheckExecutor(registry).execute_all())

        assert result.checks["slow"].status == HealthStatus.UNHEALTHY
        assert "Timeout" in result.checks["slow"].message

    def test_exception_is_captured(self):
        registry = self._registry(
            _plugin("boom", HealthCheckCategory.APPLICATION, RuntimeError("kaput")),
        )

        result = asyncio.run(HealthCheckExecutor(registry).execute_all())

        assert result.status == HealthStatus.UNHEALTHY
        assert result.checks["boom"].message == "kaput"

    def test_early_terminate_skips_later_tiers(self):
        registry = self._registry(
            _plugin("startup", HealthCheckCategory.STARTUP, HealthStatus.UNHEALTHY),
            _plugin("app", HealthCheckCategory.APPLICATION, HealthStatus.HEALTHY),
        )

        result = asyncio.run(HealthCheckExecutor(registry).execute_all(early_terminate=True))

        assert set(result.checks) == {"startup"}

    def test_execute_required_only(self):
        registry = self._registry(
            _plugin("db", HealthCheckCategory.DATABASE, HealthStatus.HEALTHY),
            _plugin("api", HealthCheckCategory.UPSTREAM, HealthStatus.UNHEALTHY, required=False),
        )

        result = asyncio.run(HealthCheckExecutor(registry).execute_required())

        assert set(result.checks) == {"db"}
        assert result.status == HealthStatus.HEALTHY

    def test_execute_single_unknown(self):
        executor = HealthCheckExecutor(HealthCheckRegistry())
        assert asyncio.run(executor.execute_single("nope")) is None


# ============================================================================
# REGISTERED CHECKS
# ============================================================================

class TestRegisteredChecks:

    def test_all_checks_registered(self):
        registry = get_registry()
        for name in ("process", "config", "postgres", "cache_schema",
                     "codeforces_api", "data_services", "instance_lock"):
            assert name in registry

    def test_readiness_gating(self):
        registry = get_registry()
        assert registry.get("postgres").required_for_ready
        assert not registry.get("codeforces_api").required_for_ready
        assert not registry.get("instance_lock").required_for_ready

    def test_postgres(self):
        assert _run(PostgresCheck()).status == HealthStatus.UNHEALTHY

        health.checks.set_pool(_FakePool())
        assert _run(PostgresCheck()).status == HealthStatus.HEALTHY

        health.checks.set_pool(_FakePool(fail=True))
        result = _run(PostgresCheck())
        assert result.status == HealthStatus.UNHEALTHY
        assert "could not connect" in result.message

    def test_cache_schema_missing_table_is_degraded(self):
        health.checks.set_pool(_FakePool(tables=["api_cache"]))

        result = _run(CacheSchemaCheck())

        assert result.status == HealthStatus.DEGRADED
        assert result.details["missing"] == ["instance_locks"]

    def test_codeforces_api(self):
        assert _run(CodeforcesApiCheck()).status == HealthStatus.UNHEALTHY

        health.checks.set_client(_fake_client())
        assert _run(CodeforcesApiCheck()).message == "No requests yet"

        health.checks.set_client(_fake_client(last_success_at=NOW))
        assert _run(CodeforcesApiCheck()).status == HealthStatus.HEALTHY

        health.checks.set_client(_fake_client(last_error=_service_error("HTTP 502")))
        result = _run(CodeforcesApiCheck())
        assert result.status == HealthStatus.DEGRADED
        assert result.details["egress_paths"] == 2

    def test_data_services(self):
        assert _run(DataServicesCheck()).status == HealthStatus.DEGRADED

        ok = SimpleNamespace(name="problems", last_error=None)
        failing = SimpleNamespace(name="contests", last_error=_service_error("Call limit exceeded"))

        health.checks.set_data_services([ok])
        assert _run(DataServicesCheck()).status == HealthStatus.HEALTHY

        health.checks.set_data_services([ok, failing])
        result = _run(DataServicesCheck())
        assert result.status == HealthStatus.DEGRADED
        assert result.details["failing"]["contests"]["message"] == "Call limit exceeded"

    @pytest.mark.parametrize("role,expected", [
        (DutyRole.ACTIVE, HealthStatus.HEALTHY),
        (DutyRole.STANDBY, HealthStatus.DEGRADED),
        (DutyRole.STOPPED, HealthStatus.UNHEALTHY),
    ])
    def test_instance_lock_roles(self, role, expected):
        health.checks.set_duty_runner(_fake_runner(role))
        result = _run(InstanceLockCheck())
        assert result.status == expected
        assert result.details["role"] == role.value

    def test_instance_lock_disabled_is_healthy(self):
        assert _run(InstanceLockCheck()).status == HealthStatus.HEALTHY


# ============================================================================
# ENDPOINTS
# ============================================================================

@pytest.fixture
def http():
    app = FastAPI()
    app.include_router(health_router)
    return TestClient(app)


class TestEndpoints:

    def test_livez(self, http):
        response = http.get("/livez")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"

    def test_readyz_without_database(self, http):
        response = http.get("/readyz")

        assert response.status_code == 503
        assert "postgres" in response.json()["checks"]

    def test_readyz_ready_while_upstream_degraded(self, http):
        health.checks.set_pool(_FakePool())
        health.checks.set_client(_fake_client(last_error=_service_error("HTTP 502")))

        response = http.get("/readyz")

        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_full_health_degraded_is_206(self, http):
        health.checks.set_pool(_FakePool())
        health.checks.set_client(_fake_client(last_success_at=NOW))
        health.checks.set_duty_runner(_fake_runner(DutyRole.STANDBY))
        health.checks.set_data_services([SimpleNamespace(name="problems", last_error=None)])

        response = http.get("/health")

        assert response.status_code == 206
        body = response.json()
        assert body["checks"]["instance_lock"]["status"] == "degraded"
        assert body["summary"]["application"]["degraded"] == 1

    def test_single_check(self, http):
        assert http.get("/health/process").status_code == 200
        assert http.get("/health/postgres").status_code == 503
        assert http.get("/health/nope").status_code == 404
