# ============================================================================
# BASE CONTRACTS & ENUMS
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Foundation - Core enums shared across layers
# PURPOSE: Status enums for envelopes, results and error classification
# LAST_REVIEWED: 14 SEP 2026
# EXPORTS: EnvelopeStatus, DataSource, ErrorKind, DutyRole
# DEPENDENCIES: enum
# ============================================================================
"""
Base contracts for the Codeforces access layer.

These values cross boundaries:
- Upstream (Codeforces API envelope)
- SQL (PostgreSQL cache and lock tables)
- Python (service results consumed by the command/UI layer)
"""

from enum import Enum


# ============================================================================
# STATUS ENUMS
# ============================================================================

class EnvelopeStatus(str, Enum):
    """
    Upstream response status.

    OK carries a result, FAILED carries a human-readable comment.
    """
    OK = "OK"
    FAILED = "FAILED"


class DataSource(str, Enum):
    """Where a data service result came from."""
    CACHE = "cache"
    API = "api"


class ErrorKind(str, Enum):
    """
    Classified upstream failure.

    All three are recoverable: the cache layer falls back to the last
    good payload, callers may retry.
    """
    TRANSPORT = "transport"      # Timeout, connection error, non-2xx
    UPSTREAM = "upstream"        # status=FAILED with comment
    DECODE = "decode"            # Malformed JSON or envelope


class DutyRole(str, Enum):
    """Role of this process for a leased duty."""
    ACTIVE = "active"            # Holds the lease, performs the duty
    STANDBY = "standby"          # Lease held elsewhere, retrying
    STOPPED = "stopped"          # Runner not started or shut down
