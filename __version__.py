# ============================================================================
# VERSION - CODEFORCES ACCESS LAYER
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# ============================================================================
"""
Version information for the Codeforces access layer.

This is the single source of truth for the application version.
Updated manually for each release.
"""
# Version format: major.minor.patch
# Criteria for 0.2 - duties shared across instances via leases
__version__ = "0.2.0"
__version_info__ = tuple(int(x) for x in __version__.split("."))

# Build metadata
BUILD_DATE = "2026-09-18"

EPOCH = 2
CODENAME = "Shared Instances"
