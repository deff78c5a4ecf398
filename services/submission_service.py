# ============================================================================
# SUBMISSION SERVICE
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Service - Recent submissions with cache fallback
# PURPOSE: Latest submissions of a handle
# CREATED: 16 SEP 2026
# ============================================================================
"""
Submission Service

user.status (from=1, count=max(limit, fetch_count)) flattened to
Submission rows and cached per handle. Results are sliced to the
requested limit after the cache decision, so one cached list serves
any smaller limit.
"""

from typing import Any, Dict, List, Optional

from core.clock import Clock
from core.config import CacheDefaults
from core.models import FetchResult, Submission
from services.cache_service import CacheService, CachedFetchService
from services.rating_change_service import normalize_handle


def parse_submissions(raw: Any) -> List[Submission]:
    """Upstream submissions (nested problem) or cached flat rows."""
    submissions = []
    for item in raw:
        if "problem" in item:
            submissions.append(Submission.from_api(item))
        else:
            submissions.append(Submission.model_validate(item))
    return submissions


def serialize_submissions(submissions: List[Submission]) -> List[Dict[str, Any]]:
    return [submission.to_payload() for submission in submissions]


class SubmissionService(CachedFetchService[List[Submission]]):
    """Recent submissions of one handle."""

    domain = "recent_submissions"

    def __init__(self, client, cache: CacheService, clock: Clock, config: Optional[CacheDefaults] = None):
        super().__init__(client, cache, clock)
        config = config or CacheDefaults()
        self.ttl_seconds = config.recent_submissions_ttl_seconds
        self.fetch_count = config.recent_submissions_fetch_count

    async def get_recent_submissions(
        self,
        handle: str,
        limit: int = 10,
        ttl_seconds: Optional[float] = None,
    ) -> Optional[FetchResult[List[Submission]]]:
        """
        Newest submissions first, at most limit of them.

        Every fetch asks for at least fetch_count rows, so a fresh entry
        answers any limit up to fetch_count. A larger limit always tries
        the API first; the stored entry is then only a stale fallback.
        """
        if ttl_seconds is None:
            ttl_seconds = self.ttl_seconds if limit <= self.fetch_count else 0

        result = await self.fetch_with_cache(
            f"handle:{normalize_handle(handle)}",
            ttl_seconds,
            "user.status",
            {"handle": handle.strip(), "from": 1, "count": max(limit, self.fetch_count)},
            parse_submissions,
            serialize_submissions,
        )
        if result is None:
            return None
        return result.with_value(result.value[:limit])


__all__ = ["SubmissionService", "parse_submissions", "serialize_submissions"]
