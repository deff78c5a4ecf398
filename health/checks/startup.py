# ============================================================================
# STARTUP HEALTH CHECKS
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Infrastructure - Startup health checks
# PURPOSE: Basic process and configuration checks
# CREATED: 18 SEP 2026
# ============================================================================
"""
Startup Health Checks

Basic checks that run first (priority 10):
- ProcessCheck: Always healthy if process is running
- ConfigCheck: Environment configuration passes AppDefaults.validate()
"""

import os
import platform
import sys
import logging

from core.config import get_defaults
from health.core import HealthCheckPlugin, HealthCheckResult
from health.registry import register_check

logger = logging.getLogger(__name__)


@register_check(category="startup")
class ProcessCheck(HealthCheckPlugin):
    """Always healthy if the check runs."""

    name = "process"
    timeout_seconds = 1.0

    async def check(self) -> HealthCheckResult:
        return HealthCheckResult.healthy(
            message="Process running",
            python_version=sys.version.split()[0],
            platform=platform.platform(),
            pid=os.getpid(),
        )


@register_check(category="startup")
class ConfigCheck(HealthCheckPlugin):
    """
    Configuration health check.

    Runs the same validation as startup; values are read once and cached
    by get_defaults(), so this reports what the process is running with.
    """

    name = "config"
    timeout_seconds = 1.0

    async def check(self) -> HealthCheckResult:
        defaults = get_defaults()
        problems = defaults.validate()

        details = {
            "base_url": defaults.codeforces.base_url,
            "proxy_list": bool(defaults.codeforces.proxy_fetch_url),
            "duty": defaults.lock.duty_name,
        }

        if problems:
            return HealthCheckResult.unhealthy(
                message=f"Invalid configuration: {'; '.join(problems)}",
                problems=problems,
                **details,
            )

        return HealthCheckResult.healthy(message="Configuration valid", **details)


__all__ = [
    "ProcessCheck",
    "ConfigCheck",
]
