# ============================================================================
# CORE MODULE
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Core module initialization
# PURPOSE: Export core contracts, models, errors, clock and schema utilities
# LAST_REVIEWED: 17 SEP 2026
# ============================================================================

from core.contracts import DataSource, DutyRole, EnvelopeStatus, ErrorKind
from core.clock import Clock, SystemClock
from core.errors import (
    ApiResult,
    CodeforcesApiError,
    DecodeError,
    StorageError,
    TransportError,
    UpstreamError,
)
from core.models import (
    CacheEntry,
    FetchResult,
    InstanceLock,
    LockResult,
    ProxyEndpoint,
)
from core.schema import PydanticToSQL

__all__ = [
    # Enums
    "DataSource",
    "DutyRole",
    "EnvelopeStatus",
    "ErrorKind",
    # Clock
    "Clock",
    "SystemClock",
    # Errors
    "ApiResult",
    "CodeforcesApiError",
    "TransportError",
    "UpstreamError",
    "DecodeError",
    "StorageError",
    # Models
    "CacheEntry",
    "FetchResult",
    "InstanceLock",
    "LockResult",
    "ProxyEndpoint",
    # Schema
    "PydanticToSQL",
]
