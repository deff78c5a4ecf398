# ============================================================================
# UPSTREAM HEALTH CHECKS
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Infrastructure - Codeforces API status
# PURPOSE: Report upstream reachability from recent client outcomes
# CREATED: 18 SEP 2026
# ============================================================================
"""
Upstream Health Checks

- CodeforcesApiCheck (priority 30): passive; reads the client's last
  outcome instead of calling the API, so health checks never spend rate limit.
  Degraded, never unhealthy: cached data keeps being served.
"""

import logging

from health.core import HealthCheckPlugin, HealthCheckResult
from health.registry import register_check

logger = logging.getLogger(__name__)


# Global reference to the API client (set by main app)
_client = None


def set_client(client):
    """Set Codeforces client reference for health checks."""
    global _client
    _client = client


@register_check(category="upstream", required_for_ready=False)
class CodeforcesApiCheck(HealthCheckPlugin):

    name = "codeforces_api"
    timeout_seconds = 2.0

    async def check(self) -> HealthCheckResult:
        if _client is None:
            return HealthCheckResult.unhealthy(message="Codeforces client not initialized")

        details = _client.diagnostics()

        if _client.is_degraded:
            error = _client.last_error
            return HealthCheckResult.degraded(
                message=f"Last request failed: {error.message}",
                **details,
            )

        if _client.last_success_at is None:
            return HealthCheckResult.healthy(message="No requests yet", **details)

        return HealthCheckResult.healthy(message="Last request succeeded", **details)


__all__ = [
    "CodeforcesApiCheck",
    "set_client",
]
