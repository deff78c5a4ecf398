# ============================================================================
# HEALTH CHECK CORE TYPES
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Infrastructure - Base classes for health checks
# PURPOSE: Check plugin interface, per-check results and the combined report
# CREATED: 18 SEP 2026
# ============================================================================
"""
Health Check Core Types

A check returns one HealthCheckResult. The executor folds results into
a HealthReport whose status is the worst individual status:

    healthy    everything answering
    degraded   still serving (stale cache, upstream failing, standby lease)
    unhealthy  cannot serve; fails /readyz when the check is required

Categories set the default priority, and priority decides the tier a
check runs in (startup 10, database 20, upstream 30, application 40).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Optional


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"

    @property
    def severity(self) -> int:
        return list(HealthStatus).index(self)

    @property
    def http_code(self) -> int:
        return {"healthy": 200, "degraded": 206, "unhealthy": 503}[self.value]

    @classmethod
    def aggregate(cls, statuses: Iterable["HealthStatus"]) -> "HealthStatus":
        """Worst status wins; no statuses means healthy."""
        return max(statuses, key=lambda s: s.severity, default=cls.HEALTHY)


class HealthCheckCategory(str, Enum):
    STARTUP = "startup"
    DATABASE = "database"
    UPSTREAM = "upstream"
    APPLICATION = "application"

    @property
    def default_priority(self) -> int:
        return 10 * (list(HealthCheckCategory).index(self) + 1)


@dataclass
class HealthCheckResult:
    """Outcome of one check."""

    status: HealthStatus
    message: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    duration_ms: float = 0.0

    @classmethod
    def healthy(cls, message: Optional[str] = None, **details) -> "HealthCheckResult":
        return cls(HealthStatus.HEALTHY, message, details)

    @classmethod
    def degraded(cls, message: str, **details) -> "HealthCheckResult":
        return cls(HealthStatus.DEGRADED, message, details)

    @classmethod
    def unhealthy(cls, message: str, **details) -> "HealthCheckResult":
        return cls(HealthStatus.UNHEALTHY, message, details)

    @classmethod
    def from_exception(cls, exc: Exception) -> "HealthCheckResult":
        return cls.unhealthy(str(exc), exception_type=type(exc).__name__)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"status": self.status.value, "duration_ms": round(self.duration_ms, 2)}
        if self.message:
            body["message"] = self.message
        if self.details:
            body["details"] = self.details
        return body


@dataclass
class HealthReport:
    """Results of several checks run together."""

    checks: Dict[str, HealthCheckResult]
    total_duration_ms: float
    checked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def status(self) -> HealthStatus:
        return HealthStatus.aggregate(r.status for r in self.checks.values())

    def failing(self) -> Dict[str, HealthCheckResult]:
        return {
            name: result for name, result in self.checks.items()
            if result.status == HealthStatus.UNHEALTHY
        }

    def summary(self, category_of: Callable[[str], Optional[str]]) -> Dict[str, Dict[str, int]]:
        """Status counts per category; checks with no category are skipped."""
        counts: Dict[str, Dict[str, int]] = {}
        for name, result in self.checks.items():
            category = category_of(name)
            if category is None:
                continue
            bucket = counts.setdefault(category, {s.value: 0 for s in HealthStatus})
            bucket[result.status.value] += 1
        return counts

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "checks": {name: result.to_dict() for name, result in self.checks.items()},
            "total_duration_ms": round(self.total_duration_ms, 2),
            "checked_at": self.checked_at.isoformat(),
        }


class HealthCheckPlugin(ABC):
    """
    One named check.

    Class attributes:
        name: key in the registry and in responses
        category: tier grouping; sets priority unless the class sets one
        timeout_seconds: the executor reports unhealthy past this
        required_for_ready: unhealthy here fails /readyz
    """

    name: str = "unnamed"
    category: HealthCheckCategory = HealthCheckCategory.APPLICATION
    priority: int = HealthCheckCategory.APPLICATION.default_priority
    timeout_seconds: float = 10.0
    required_for_ready: bool = True

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if "priority" not in cls.__dict__:
            cls.priority = cls.category.default_priority

    @abstractmethod
    async def check(self) -> HealthCheckResult:
        ...


__all__ = [
    "HealthStatus",
    "HealthCheckCategory",
    "HealthCheckResult",
    "HealthReport",
    "HealthCheckPlugin",
]
