# ============================================================================
# HEALTH CHECK PLUGINS
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Infrastructure - Health check implementations
# PURPOSE: Checks for the cache store, upstream and duty leases
# CREATED: 18 SEP 2026
# ============================================================================
"""
Health Check Plugins

Startup (priority 10):
- process, config

Database (priority 20):
- postgres, cache_schema

Upstream (priority 30):
- codeforces_api

Application (priority 40):
- data_services, instance_lock

Import this module to register all checks:
    import health.checks
"""

from health.checks.startup import ProcessCheck, ConfigCheck
from health.checks.database import PostgresCheck, CacheSchemaCheck, set_pool
from health.checks.upstream import CodeforcesApiCheck, set_client
from health.checks.application import (
    DataServicesCheck,
    InstanceLockCheck,
    set_data_services,
    set_duty_runner,
)

__all__ = [
    # Startup
    "ProcessCheck",
    "ConfigCheck",
    # Database
    "PostgresCheck",
    "CacheSchemaCheck",
    "set_pool",
    # Upstream
    "CodeforcesApiCheck",
    "set_client",
    # Application
    "DataServicesCheck",
    "InstanceLockCheck",
    "set_data_services",
    "set_duty_runner",
]
