# ============================================================================
# CONFIGURATION MODULE
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Core - Configuration and defaults
# PURPOSE: Centralized configuration management
# CREATED: 14 SEP 2026
# ============================================================================
"""
Configuration Module

Provides centralized configuration and defaults for the access layer.
"""

from core.config.defaults import (
    MAX_DUTY_NAME_LENGTH,
    CodeforcesDefaults,
    CacheDefaults,
    LockDefaults,
    PollDefaults,
    ServiceDefaults,
    AppDefaults,
    get_defaults,
    reset_defaults,
)

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
