# ============================================================================
# CONTEST SERVICE
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Service - Contest list with cache fallback
# PURPOSE: Upcoming, ongoing, finished and searched contests
# CREATED: 16 SEP 2026
# ============================================================================
"""
Contest Service

contest.list (gym=false). Every query loads the list through the cache
first, so repeated queries inside the TTL make no network call. When no
data is available at all, queries return empty results.
"""

import logging
from typing import Any, Dict, List, Optional

from core.clock import Clock
from core.config import CacheDefaults
from core.models import Contest, ContestPhase, FetchResult
from services.cache_service import CacheService, CachedFetchService

logger = logging.getLogger(__name__)

CONTEST_LIST_KEY = "contest_list"


def parse_contest_list(raw: Any) -> List[Contest]:
    return [Contest.model_validate(item) for item in raw]


def serialize_contest_list(contests: List[Contest]) -> List[Dict[str, Any]]:
    return [contest.to_payload() for contest in contests]


class ContestService(CachedFetchService[List[Contest]]):
    """Contest list queries."""

    domain = "contest_list"

    def __init__(self, client, cache: CacheService, clock: Clock, config: Optional[CacheDefaults] = None):
        super().__init__(client, cache, clock)
        self.ttl_seconds = (config or CacheDefaults()).contest_list_ttl_seconds

    async def get_contests(self, ttl_seconds: Optional[float] = None) -> Optional[FetchResult[List[Contest]]]:
        return await self.fetch_with_cache(
            CONTEST_LIST_KEY,
            self.ttl_seconds if ttl_seconds is None else ttl_seconds,
            "contest.list",
            {"gym": False},
            parse_contest_list,
            serialize_contest_list,
        )

    async def _contests(self) -> List[Contest]:
        result = await self.get_contests()
        return [] if result is None else result.value

    def _now_seconds(self) -> int:
        return int(self.clock.now().timestamp())

    async def get_upcoming(self, limit: int = 5) -> List[Contest]:
        """Contests in phase BEFORE starting in the future, soonest first."""
        now_seconds = self._now_seconds()
        upcoming = [
            contest for contest in await self._contests()
            if contest.phase == ContestPhase.BEFORE
            and contest.start_time_seconds is not None
            and contest.start_time_seconds > now_seconds
        ]
        upcoming.sort(key=lambda contest: contest.start_time_seconds)
        return upcoming[:limit]

    async def get_ongoing(self) -> List[Contest]:
        """Contests in phase CODING, earliest start first."""
        ongoing = [c for c in await self._contests() if c.phase == ContestPhase.CODING]
        ongoing.sort(key=lambda contest: contest.start_time_seconds or 0)
        return ongoing

    async def get_contest_by_id(self, contest_id: int) -> Optional[Contest]:
        for contest in await self._contests():
            if contest.id == contest_id:
                return contest
        return None

    async def get_latest_finished(self) -> Optional[Contest]:
        """Most recently started FINISHED contest."""
        latest = None
        for contest in await self._contests():
            if contest.phase != ContestPhase.FINISHED:
                continue
            if latest is None or (contest.start_time_seconds or 0) > (latest.start_time_seconds or 0):
                latest = contest
        return latest

    async def search_contests(self, query: str, limit: int = 5) -> List[Contest]:
        """Case-insensitive name search, newest first. Blank query matches nothing."""
        normalized = query.strip().lower()
        if not normalized:
            return []
        matches = [c for c in await self._contests() if normalized in c.name.lower()]
        matches.sort(key=lambda contest: contest.start_time_seconds or 0, reverse=True)
        return matches[:limit]


__all__ = ["ContestService", "parse_contest_list", "serialize_contest_list", "CONTEST_LIST_KEY"]
