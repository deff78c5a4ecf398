# ============================================================================
# PROBLEM SERVICE
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Service - Problemset with cache fallback
# PURPOSE: Rated problem list and lookup by "<contestId><index>"
# CREATED: 16 SEP 2026
# ============================================================================
"""
Problem Service

problemset.problems, filtered to rated problems without the "*special"
tag. The filtered list is what gets cached.
"""

import logging
from typing import Any, Dict, List, Optional

from core.clock import Clock
from core.config import CacheDefaults
from core.models import FetchResult, Problem
from services.cache_service import CacheService, CachedFetchService

logger = logging.getLogger(__name__)

PROBLEMSET_KEY = "problemset"


def parse_problemset(raw: Any) -> List[Problem]:
    """{"problems": [...]} -> rated, non-special problems."""
    problems = [Problem.model_validate(item) for item in raw["problems"]]
    return [problem for problem in problems if problem.is_rated]


def serialize_problemset(problems: List[Problem]) -> Dict[str, Any]:
    return {"problems": [problem.to_payload() for problem in problems]}


class ProblemService(CachedFetchService[List[Problem]]):
    """Rated problems from the problemset."""

    domain = "problemset"

    def __init__(self, client, cache: CacheService, clock: Clock, config: Optional[CacheDefaults] = None):
        super().__init__(client, cache, clock)
        self.ttl_seconds = (config or CacheDefaults()).problemset_ttl_seconds
        self._problem_dict: Dict[str, Problem] = {}

    async def get_problems(self, ttl_seconds: Optional[float] = None) -> Optional[FetchResult[List[Problem]]]:
        """
        Rated problems, from cache when fresh.

        Returns:
            FetchResult, or None if upstream failed and nothing is cached
        """
        result = await self.fetch_with_cache(
            PROBLEMSET_KEY,
            self.ttl_seconds if ttl_seconds is None else ttl_seconds,
            "problemset.problems",
            None,
            parse_problemset,
            serialize_problemset,
        )
        if result is not None:
            self._problem_dict = {problem.problem_id: problem for problem in result.value}
            logger.debug(f"Problemset loaded ({len(result.value)} rated, source={result.source.value})")
        return result

    @property
    def problem_dict(self) -> Dict[str, Problem]:
        """Problems from the most recent successful load, keyed by problem_id."""
        return dict(self._problem_dict)

    async def get_problem(self, problem_id: str) -> Optional[Problem]:
        """Look up one problem, e.g. "1850A". None if unknown or no data."""
        if await self.get_problems() is None:
            return None
        return self._problem_dict.get(problem_id.strip().upper())


__all__ = ["ProblemService", "parse_problemset", "serialize_problemset", "PROBLEMSET_KEY"]
