# ============================================================================
# HEALTH CHECK EXECUTOR
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Infrastructure - Tiered health check execution
# PURPOSE: Run checks with per-check timeouts and build a HealthReport
# CREATED: 18 SEP 2026
# ============================================================================
"""
Health Check Executor

Priorities fall into tiers (<=15, <=25, <=35, rest). A tier's checks run
concurrently; tiers run one after another so a dead database is reported
before the checks that depend on it.
"""

import asyncio
import logging
import time
from itertools import groupby
from typing import Dict, List, Optional

from health.core import HealthCheckPlugin, HealthCheckResult, HealthReport, HealthStatus
from health.registry import HealthCheckRegistry, get_registry

logger = logging.getLogger(__name__)

TIER_LIMITS = (15, 25, 35)


def _tier(check: HealthCheckPlugin) -> int:
    for index, limit in enumerate(TIER_LIMITS):
        if check.priority <= limit:
            return index
    return len(TIER_LIMITS)


class HealthCheckExecutor:

    def __init__(self, registry: Optional[HealthCheckRegistry] = None, overall_timeout: float = 60.0):
        self.registry = registry if registry is not None else get_registry()
        self.overall_timeout = overall_timeout

    async def execute_all(self, early_terminate: bool = False) -> HealthReport:
        """
        Every registered check, tier by tier.

        Args:
            early_terminate: stop after the first tier that has an unhealthy check
        """
        started = time.monotonic()
        results: Dict[str, HealthCheckResult] = {}

        for _, group in groupby(self.registry.by_priority(), key=_tier):
            checks = list(group)

            if time.monotonic() - started >= self.overall_timeout:
                logger.warning(f"Health checks exceeded {self.overall_timeout}s, skipping {len(checks)}")
                results.update(
                    (c.name, HealthCheckResult.unhealthy("Skipped: overall timeout exceeded"))
                    for c in checks
                )
                continue

            tier_results = await self._run_concurrently(checks)
            results.update(tier_results)

            if early_terminate and any(r.status == HealthStatus.UNHEALTHY for r in tier_results.values()):
                break

        return HealthReport(checks=results, total_duration_ms=(time.monotonic() - started) * 1000)

    async def execute_required(self) -> HealthReport:
        """Readiness checks only, all at once."""
        started = time.monotonic()
        results = await self._run_concurrently(self.registry.required())
        return HealthReport(checks=results, total_duration_ms=(time.monotonic() - started) * 1000)

    async def execute_single(self, name: str) -> Optional[HealthCheckResult]:
        check = self.registry.get(name)
        return await self._run(check) if check is not None else None

    async def _run_concurrently(self, checks: List[HealthCheckPlugin]) -> Dict[str, HealthCheckResult]:
        results = await asyncio.gather(*(self._run(c) for c in checks))
        return {check.name: result for check, result in zip(checks, results)}

    async def _run(self, check: HealthCheckPlugin) -> HealthCheckResult:
        """One check under its timeout. Failures become unhealthy results."""
        started = time.monotonic()
        try:
            result = await asyncio.wait_for(check.check(), timeout=check.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(f"Health check {check.name} timed out ({check.timeout_seconds}s)")
            result = HealthCheckResult.unhealthy(f"Timeout after {check.timeout_seconds}s")
        except Exception as e:
            logger.error(f"Health check {check.name} raised {type(e).__name__}: {e}")
            result = HealthCheckResult.from_exception(e)

        result.duration_ms = (time.monotonic() - started) * 1000
        return result


__all__ = [
    "HealthCheckExecutor",
    "TIER_LIMITS",
]
