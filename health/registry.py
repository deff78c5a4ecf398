# ============================================================================
# HEALTH CHECK REGISTRY
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Infrastructure - Health check plugin registration
# PURPOSE: Hold named checks; decorator for module-level registration
# CREATED: 18 SEP 2026
# ============================================================================
"""
Health Check Registry

Checks in health.checks register themselves on import:

    @register_check(category="database")
    class PostgresCheck(HealthCheckPlugin):
        name = "postgres"

Tests build their own HealthCheckRegistry and register instances.
"""

import logging
from typing import Dict, List, Optional, Type, Union

from health.core import HealthCheckCategory, HealthCheckPlugin

logger = logging.getLogger(__name__)


class HealthCheckRegistry:

    def __init__(self):
        self._checks: Dict[str, HealthCheckPlugin] = {}

    def register(self, check: HealthCheckPlugin) -> None:
        replaced = self._checks.get(check.name)
        self._checks[check.name] = check
        if replaced is not None:
            logger.warning(f"Health check {check.name} registered twice, keeping the newer one")

    def unregister(self, name: str) -> bool:
        return self._checks.pop(name, None) is not None

    def get(self, name: str) -> Optional[HealthCheckPlugin]:
        return self._checks.get(name)

    def category_of(self, name: str) -> Optional[str]:
        check = self._checks.get(name)
        return check.category.value if check is not None else None

    def by_priority(self) -> List[HealthCheckPlugin]:
        return sorted(self._checks.values(), key=lambda c: (c.priority, c.name))

    def required(self) -> List[HealthCheckPlugin]:
        """Checks that gate /readyz."""
        return [c for c in self.by_priority() if c.required_for_ready]

    def __len__(self) -> int:
        return len(self._checks)

    def __contains__(self, name: str) -> bool:
        return name in self._checks


_registry = HealthCheckRegistry()


def get_registry() -> HealthCheckRegistry:
    return _registry


def register_check(
    category: Union[str, HealthCheckCategory, None] = None,
    priority: Optional[int] = None,
    timeout_seconds: Optional[float] = None,
    required_for_ready: Optional[bool] = None,
):
    """
    Class decorator: apply the overrides, then register one instance
    in the process-wide registry.
    """
    def decorator(cls: Type[HealthCheckPlugin]) -> Type[HealthCheckPlugin]:
        if category is not None:
            cls.category = HealthCheckCategory(category)
        cls.priority = priority if priority is not None else cls.category.default_priority
        if timeout_seconds is not None:
            cls.timeout_seconds = timeout_seconds
        if required_for_ready is not None:
            cls.required_for_ready = required_for_ready

        _registry.register(cls())
        logger.debug(f"Health check {cls.name}: {cls.category.value} p{cls.priority}")
        return cls

    return decorator


__all__ = [
    "HealthCheckRegistry",
    "get_registry",
    "register_check",
]
