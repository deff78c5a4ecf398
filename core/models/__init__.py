# ============================================================================
# MODELS MODULE
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Model exports
# PURPOSE: Central export point for all Pydantic models
# LAST_REVIEWED: 17 SEP 2026
# ============================================================================
"""
Models Module - Central Export Point

Persisted models define SQL metadata via __sql_* ClassVar attributes:
    - Pydantic models define structure
    - PydanticToSQL reads __sql_* metadata
    - PostgreSQL schema generated from models

Upstream models (codeforces.py) mirror API result objects and are never
stored as rows; they travel inside CacheEntry.payload.
"""

from core.models.cache_entry import CacheEntry, FetchResult
from core.models.instance_lock import InstanceLock, LockResult, plan_acquisition
from core.models.egress import ProxyEndpoint
from core.models.envelope import ApiEnvelope
from core.models.codeforces import (
    Contest,
    ContestPhase,
    Problem,
    RatingChange,
    Submission,
    Verdict,
)

__all__ = [
    # Persisted
    "CacheEntry",
    "InstanceLock",
    # Results
    "FetchResult",
    "LockResult",
    "plan_acquisition",
    # Egress
    "ProxyEndpoint",
    # Upstream
    "ApiEnvelope",
    "Problem",
    "Contest",
    "ContestPhase",
    "RatingChange",
    "Submission",
    "Verdict",
]
