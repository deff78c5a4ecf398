# ============================================================================
# INFRASTRUCTURE MODULE
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Infrastructure - Upstream access and schema deployment
# PURPOSE: Request pool, Codeforces client, schema bootstrap
# CREATED: 15 SEP 2026
# ============================================================================
"""
Infrastructure module.

Provides:
- RequestPool / create_request_pool: egress path scheduling
- CodeforcesClient: envelope-aware API client on top of the pool
- SchemaInitializer: bootstrap the cfcache schema from Pydantic models

Usage:
    from infrastructure import CodeforcesClient, create_request_pool

    pool = await create_request_pool(config.codeforces, clock)
    client = CodeforcesClient(pool, config.codeforces, clock)
    problems = await client.request("problemset.problems")
"""

from infrastructure.request_pool import (
    EgressPath,
    RequestPool,
    create_request_pool,
    parse_proxy_list,
)
from infrastructure.codeforces_client import CodeforcesClient
from infrastructure.schema_initializer import (
    SchemaInitializer,
    InitializationResult,
    StepResult,
)

__all__ = [
    # Egress
    'EgressPath',
    'RequestPool',
    'create_request_pool',
    'parse_proxy_list',
    # Client
    'CodeforcesClient',
    # Schema
    'SchemaInitializer',
    'InitializationResult',
    'StepResult',
]
