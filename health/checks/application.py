# ============================================================================
# APPLICATION HEALTH CHECKS
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Infrastructure - Application state checks
# PURPOSE: Data service freshness and duty lease role
# CREATED: 18 SEP 2026
# ============================================================================
"""
Application Health Checks

Application-level checks (priority 40):
- DataServicesCheck: degraded while any service's last fetch failed
- InstanceLockCheck: healthy when active, degraded in standby
"""

import logging
from typing import List

from core.contracts import DutyRole
from health.core import HealthCheckPlugin, HealthCheckResult
from health.registry import register_check

logger = logging.getLogger(__name__)


# Global references (set by main app)
_data_services: List = []
_duty_runner = None


def set_data_services(services):
    """Set data service references for health checks."""
    global _data_services
    _data_services = list(services)


def set_duty_runner(runner):
    """Set duty runner reference for health checks."""
    global _duty_runner
    _duty_runner = runner


@register_check(category="application", required_for_ready=False)
class DataServicesCheck(HealthCheckPlugin):

    name = "data_services"
    timeout_seconds = 2.0

    async def check(self) -> HealthCheckResult:
        if not _data_services:
            return HealthCheckResult.degraded(message="No data services registered")

        failing = {
            service.name: service.last_error.to_dict()
            for service in _data_services
            if service.last_error is not None
        }

        if failing:
            return HealthCheckResult.degraded(
                message=f"{len(failing)} of {len(_data_services)} services serving stale or no data",
                failing=failing,
            )

        return HealthCheckResult.healthy(
            message=f"{len(_data_services)} services ok",
            services=[s.name for s in _data_services],
        )


@register_check(category="application", required_for_ready=False)
class InstanceLockCheck(HealthCheckPlugin):
    """
    Duty lease health check.

    Standby is expected on all but one instance, so it is degraded
    rather than unhealthy. A stopped runner is unhealthy.
    """

    name = "instance_lock"
    timeout_seconds = 2.0

    async def check(self) -> HealthCheckResult:
        if _duty_runner is None:
            return HealthCheckResult.healthy(message="Duty runner disabled (RUN_DUTY=false)")

        stats = _duty_runner.stats()

        if _duty_runner.role == DutyRole.ACTIVE:
            return HealthCheckResult.healthy(
                message=f"Active for duty {_duty_runner.duty}",
                **stats,
            )

        if _duty_runner.role == DutyRole.STANDBY:
            return HealthCheckResult.degraded(
                message=f"Standby for duty {_duty_runner.duty}",
                **stats,
            )

        return HealthCheckResult.unhealthy(
            message=f"Duty runner stopped for {_duty_runner.duty}",
            **stats,
        )


__all__ = [
    "DataServicesCheck",
    "InstanceLockCheck",
    "set_data_services",
    "set_duty_runner",
]
