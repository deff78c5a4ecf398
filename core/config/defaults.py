# ============================================================================
# CONFIGURATION DEFAULTS
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Core - Default configuration values
# PURPOSE: Centralized defaults for upstream access, cache TTLs, leases
# CREATED: 14 SEP 2026
# ============================================================================
"""
Configuration Defaults

Sensible defaults for the Codeforces access layer, overridable via
environment variables.

Design:
- Immutable dataclasses for defaults
- Environment variable overrides
- Type-safe access
- Millisecond env vars (upstream convention) converted to seconds here
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional

# Width of the instance_locks primary key column
MAX_DUTY_NAME_LENGTH = 64


def _env_ms_as_seconds(name: str, default_ms: int) -> float:
    return int(os.getenv(name, default_ms)) / 1000.0


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class CodeforcesDefaults:
    """
    Defaults for upstream access.

    Controls base URL, per-path request spacing, timeouts and the proxy
    source.
    """
    base_url: str = "https://codeforces.com/api"

    # Minimum spacing between requests on one egress path
    request_delay_seconds: float = 2.0

    # Per-request timeouts
    timeout_seconds: float = 10.0
    status_timeout_seconds: float = 10.0  # contest.status / user.status

    # Proxy source (newline-delimited host:port[:user:pass])
    proxy_fetch_url: Optional[str] = None
    proxy_fetch_timeout_seconds: float = 10.0

    # Methods that return large submission lists
    slow_methods: tuple = ("contest.status", "user.status")

    def timeout_for(self, method: str) -> float:
        """Timeout for one upstream method."""
        if method in self.slow_methods:
            return self.status_timeout_seconds
        return self.timeout_seconds

    @classmethod
    def from_env(cls) -> "CodeforcesDefaults":
        """Create from environment variables."""
        timeout_ms = int(os.getenv("CODEFORCES_TIMEOUT_MS", 10000))
        return cls(
            base_url=os.getenv("CODEFORCES_API_BASE_URL", "https://codeforces.com/api").rstrip("/"),
            request_delay_seconds=_env_ms_as_seconds("CODEFORCES_REQUEST_DELAY_MS", 2000),
            timeout_seconds=timeout_ms / 1000.0,
            status_timeout_seconds=_env_ms_as_seconds("CODEFORCES_STATUS_TIMEOUT_MS", timeout_ms),
            proxy_fetch_url=os.getenv("PROXY_FETCH_URL") or None,
            proxy_fetch_timeout_seconds=_env_ms_as_seconds("PROXY_FETCH_TIMEOUT_MS", 10000),
        )


@dataclass(frozen=True)
class CacheDefaults:
    """
    Freshness windows per data domain (seconds).

    A TTL of 0 forces a refresh attempt on every read.
    """
    problemset_ttl_seconds: int = 3600  # 1 hour
    contest_list_ttl_seconds: int = 300  # 5 min
    rating_changes_ttl_seconds: int = 3600  # 1 hour
    contest_rating_changes_ttl_seconds: int = 6 * 3600  # 6 hours
    recent_submissions_ttl_seconds: int = 300  # 5 min

    # Minimum submissions fetched per handle, regardless of requested limit
    recent_submissions_fetch_count: int = 50

    @classmethod
    def from_env(cls) -> "CacheDefaults":
        """Create from environment variables."""
        return cls(
            problemset_ttl_seconds=int(os.getenv("CACHE_TTL_PROBLEMSET_SEC", 3600)),
            contest_list_ttl_seconds=int(os.getenv("CACHE_TTL_CONTEST_LIST_SEC", 300)),
            rating_changes_ttl_seconds=int(os.getenv("CACHE_TTL_RATING_CHANGES_SEC", 3600)),
            contest_rating_changes_ttl_seconds=int(
                os.getenv("CACHE_TTL_CONTEST_RATING_CHANGES_SEC", 6 * 3600)
            ),
            recent_submissions_ttl_seconds=int(os.getenv("CACHE_TTL_RECENT_SUBMISSIONS_SEC", 300)),
        )


@dataclass(frozen=True)
class LockDefaults:
    """
    Defaults for lease-based duty ownership.

    Heartbeat well inside the TTL so one missed beat does not lose the lease.
    """
    duty_name: str = "reminder_scheduler"
    ttl_seconds: int = 60
    heartbeat_interval_seconds: float = 20.0
    standby_retry_seconds: float = 30.0

    @classmethod
    def from_env(cls) -> "LockDefaults":
        """Create from environment variables."""
        return cls(
            duty_name=os.getenv("INSTANCE_LOCK_DUTY", "reminder_scheduler"),
            ttl_seconds=int(os.getenv("INSTANCE_LOCK_TTL_SEC", 60)),
            heartbeat_interval_seconds=float(os.getenv("INSTANCE_LOCK_HEARTBEAT_SEC", 20)),
            standby_retry_seconds=float(os.getenv("INSTANCE_LOCK_RETRY_SEC", 30)),
        )


@dataclass(frozen=True)
class PollDefaults:
    """Defaults for the compilation-error verification poll."""
    timeout_seconds: float = 60.0
    poll_interval_seconds: float = 5.0

    @classmethod
    def from_env(cls) -> "PollDefaults":
        """Create from environment variables."""
        return cls(
            timeout_seconds=_env_ms_as_seconds("VERIFICATION_TIMEOUT_MS", 60000),
            poll_interval_seconds=_env_ms_as_seconds("VERIFICATION_POLL_INTERVAL_MS", 5000),
        )


@dataclass(frozen=True)
class ServiceDefaults:
    """Process-level switches."""
    log_level: str = "INFO"
    auto_bootstrap_schema: bool = False
    run_duty: bool = True

    @classmethod
    def from_env(cls) -> "ServiceDefaults":
        """Create from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            auto_bootstrap_schema=_env_bool("AUTO_BOOTSTRAP_SCHEMA", False),
            run_duty=_env_bool("RUN_DUTY", True),
        )


# ============================================================================
# GLOBAL DEFAULTS INSTANCE
# ============================================================================

@dataclass
class AppDefaults:
    """Container for all default configurations."""
    codeforces: CodeforcesDefaults = field(default_factory=CodeforcesDefaults)
    cache: CacheDefaults = field(default_factory=CacheDefaults)
    lock: LockDefaults = field(default_factory=LockDefaults)
    poll: PollDefaults = field(default_factory=PollDefaults)
    service: ServiceDefaults = field(default_factory=ServiceDefaults)

    @classmethod
    def from_env(cls) -> "AppDefaults":
        """Create all defaults from environment variables."""
        return cls(
            codeforces=CodeforcesDefaults.from_env(),
            cache=CacheDefaults.from_env(),
            lock=LockDefaults.from_env(),
            poll=PollDefaults.from_env(),
            service=ServiceDefaults.from_env(),
        )

    def validate(self) -> List[str]:
        """Return human-readable configuration problems (empty if valid)."""
        problems = []

        if not self.codeforces.base_url.startswith(("http://", "https://")):
            problems.append(f"CODEFORCES_API_BASE_URL must be http(s): {self.codeforces.base_url!r}")
        if self.codeforces.request_delay_seconds <= 0:
            problems.append("CODEFORCES_REQUEST_DELAY_MS must be > 0")
        if self.codeforces.timeout_seconds <= 0:
            problems.append("CODEFORCES_TIMEOUT_MS must be > 0")
        if self.codeforces.status_timeout_seconds <= 0:
            problems.append("CODEFORCES_STATUS_TIMEOUT_MS must be > 0")

        if not self.lock.duty_name or len(self.lock.duty_name) > MAX_DUTY_NAME_LENGTH:
            problems.append(f"INSTANCE_LOCK_DUTY must be 1-{MAX_DUTY_NAME_LENGTH} characters")
        if self.lock.ttl_seconds <= self.lock.heartbeat_interval_seconds:
            problems.append(
                f"INSTANCE_LOCK_TTL_SEC ({self.lock.ttl_seconds}) must exceed "
                f"INSTANCE_LOCK_HEARTBEAT_SEC ({self.lock.heartbeat_interval_seconds})"
            )

        ttls = {
            "problemset": self.cache.problemset_ttl_seconds,
            "contest_list": self.cache.contest_list_ttl_seconds,
            "rating_changes": self.cache.rating_changes_ttl_seconds,
            "contest_rating_changes": self.cache.contest_rating_changes_ttl_seconds,
            "recent_submissions": self.cache.recent_submissions_ttl_seconds,
        }
        for name, ttl in ttls.items():
            if ttl < 0:
                problems.append(f"Cache TTL for {name} must be >= 0")

        if self.poll.poll_interval_seconds <= 0:
            problems.append("VERIFICATION_POLL_INTERVAL_MS must be > 0")

        return problems


_defaults: Optional[AppDefaults] = None


def get_defaults() -> AppDefaults:
    """Get global defaults instance."""
    global _defaults
    if _defaults is None:
        _defaults = AppDefaults.from_env()
    return _defaults


def reset_defaults() -> None:
    """Reset defaults (for testing)."""
    global _defaults
    _defaults = None


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "MAX_DUTY_NAME_LENGTH",
    "CodeforcesDefaults",
    "CacheDefaults",
    "LockDefaults",
    "PollDefaults",
    "ServiceDefaults",
    "AppDefaults",
    "get_defaults",
    "reset_defaults",
]
