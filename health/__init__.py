# ============================================================================
# HEALTH CHECK MODULE
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Infrastructure - Health check plugin system
# PURPOSE: Probes and component status for the access layer
# CREATED: 18 SEP 2026
# ============================================================================
"""
Health Check Module

- /livez: Process alive (instant)
- /readyz: Required checks pass
- /health: All checks with details

Checks register themselves on import of health.checks; main.py wires
the live components in with the set_* functions.

Usage:
    import health.checks
    from health import health_router

    app.include_router(health_router)
"""

from health.core import (
    HealthStatus,
    HealthCheckResult,
    HealthCheckPlugin,
    HealthCheckCategory,
    HealthReport,
)
from health.registry import (
    HealthCheckRegistry,
    register_check,
    get_registry,
)
from health.executor import HealthCheckExecutor
from health.router import health_router

__all__ = [
    # Core types
    "HealthStatus",
    "HealthCheckResult",
    "HealthCheckPlugin",
    "HealthCheckCategory",
    "HealthReport",
    # Registry
    "HealthCheckRegistry",
    "register_check",
    "get_registry",
    # Executor
    "HealthCheckExecutor",
    # Router
    "health_router",
]
