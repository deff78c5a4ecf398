# ============================================================================
# SERVICES MODULE
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Core - Business logic layer
# PURPOSE: Cached data services, instance leases, duty runner, verification
# CREATED: 16 SEP 2026
# ============================================================================
"""
Services Module

Data services wrap the Codeforces client in the cache-with-fallback
pattern; the lock service and duty runner coordinate side-effecting
duties across processes.

Usage:
    from services import CacheService, RatingChangeService

    cache = CacheService(CacheRepository(pool), clock)
    ratings = RatingChangeService(client, cache, clock)
    result = await ratings.get_rating_changes("tourist")
"""

from .cache_service import CacheService, CachedFetchService
from .problem_service import ProblemService
from .contest_service import ContestService
from .rating_change_service import RatingChangeService, ContestRatingChangeService
from .submission_service import SubmissionService
from .instance_lock_service import InstanceLockService
from .duty_runner import DutyRunner
from .verification import PollOutcome, wait_for_compilation_error

__all__ = [
    "CacheService",
    "CachedFetchService",
    "ProblemService",
    "ContestService",
    "RatingChangeService",
    "ContestRatingChangeService",
    "SubmissionService",
    "InstanceLockService",
    "DutyRunner",
    "PollOutcome",
    "wait_for_compilation_error",
]
