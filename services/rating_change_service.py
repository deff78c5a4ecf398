# ============================================================================
# RATING CHANGE SERVICES
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Service - Rating history with cache fallback
# PURPOSE: Per-handle and per-contest rating changes
# CREATED: 16 SEP 2026
# ============================================================================
"""
Rating Change Services

RatingChangeService         user.rating            key handle:<handle>
ContestRatingChangeService  contest.ratingChanges  key contest:<id>

Handles are normalized (trimmed, lower-cased) for the cache key only;
the upstream call uses the handle as given.
"""

from typing import Any, Dict, List, Optional

from core.clock import Clock
from core.config import CacheDefaults
from core.models import FetchResult, RatingChange
from services.cache_service import CacheService, CachedFetchService


def normalize_handle(handle: str) -> str:
    return handle.strip().lower()


def parse_rating_changes(raw: Any) -> List[RatingChange]:
    return [RatingChange.model_validate(item) for item in raw]


def serialize_rating_changes(changes: List[RatingChange]) -> List[Dict[str, Any]]:
    return [change.to_payload() for change in changes]


class RatingChangeService(CachedFetchService[List[RatingChange]]):
    """Rating history of one handle."""

    domain = "rating_changes"

    def __init__(self, client, cache: CacheService, clock: Clock, config: Optional[CacheDefaults] = None):
        super().__init__(client, cache, clock)
        self.ttl_seconds = (config or CacheDefaults()).rating_changes_ttl_seconds

    async def get_rating_changes(
        self,
        handle: str,
        ttl_seconds: Optional[float] = None,
    ) -> Optional[FetchResult[List[RatingChange]]]:
        return await self.fetch_with_cache(
            f"handle:{normalize_handle(handle)}",
            self.ttl_seconds if ttl_seconds is None else ttl_seconds,
            "user.rating",
            {"handle": handle.strip()},
            parse_rating_changes,
            serialize_rating_changes,
        )


class ContestRatingChangeService(CachedFetchService[List[RatingChange]]):
    """Rating changes of every participant of one contest."""

    domain = "contest_rating_changes"

    def __init__(self, client, cache: CacheService, clock: Clock, config: Optional[CacheDefaults] = None):
        super().__init__(client, cache, clock)
        self.ttl_seconds = (config or CacheDefaults()).contest_rating_changes_ttl_seconds

    async def get_contest_rating_changes(
        self,
        contest_id: int,
        ttl_seconds: Optional[float] = None,
    ) -> Optional[FetchResult[List[RatingChange]]]:
        return await self.fetch_with_cache(
            f"contest:{contest_id}",
            self.ttl_seconds if ttl_seconds is None else ttl_seconds,
            "contest.ratingChanges",
            {"contestId": contest_id},
            parse_rating_changes,
            serialize_rating_changes,
        )


__all__ = [
    "RatingChangeService",
    "ContestRatingChangeService",
    "normalize_handle",
    "parse_rating_changes",
    "serialize_rating_changes",
]
