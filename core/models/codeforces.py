# ============================================================================
# CODEFORCES DOMAIN MODELS
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Core model - Upstream result objects
# PURPOSE: Typed views of the API results consumed by the data services
# LAST_REVIEWED: 16 SEP 2026
# EXPORTS: Problem, Contest, ContestPhase, RatingChange, Submission, Verdict
# DEPENDENCIES: pydantic
# ============================================================================
"""
Codeforces Domain Models

Upstream objects use camelCase keys (contestId, startTimeSeconds, ...).
Models accept either the upstream alias or the Python field name, and
dump with aliases so cached payloads keep the upstream shape.

Unknown upstream keys are ignored.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _UpstreamModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_payload(self) -> Dict[str, Any]:
        """Upstream-shaped dict (used for cache payloads)."""
        return self.model_dump(by_alias=True, mode="json")


# ============================================================================
# ENUMS
# ============================================================================

class ContestPhase(str, Enum):
    """contest.list phase values."""
    BEFORE = "BEFORE"
    CODING = "CODING"
    PENDING_SYSTEM_TEST = "PENDING_SYSTEM_TEST"
    SYSTEM_TEST = "SYSTEM_TEST"
    FINISHED = "FINISHED"


class Verdict(str, Enum):
    """Subset of submission verdicts the services inspect."""
    OK = "OK"
    COMPILATION_ERROR = "COMPILATION_ERROR"
    WRONG_ANSWER = "WRONG_ANSWER"
    TESTING = "TESTING"


SPECIAL_TAG = "*special"


# ============================================================================
# PROBLEMS
# ============================================================================

class Problem(_UpstreamModel):
    """problemset.problems entry."""

    contest_id: Optional[int] = None
    index: str
    name: str
    rating: Optional[int] = None
    tags: List[str] = Field(default_factory=list)

    @property
    def problem_id(self) -> str:
        """Lookup key, e.g. "1850A"."""
        return f"{self.contest_id}{self.index}"

    @property
    def is_rated(self) -> bool:
        return self.rating is not None and SPECIAL_TAG not in self.tags


# ============================================================================
# CONTESTS
# ============================================================================

class Contest(_UpstreamModel):
    """contest.list entry."""

    id: int
    name: str
    phase: ContestPhase
    start_time_seconds: Optional[int] = None
    duration_seconds: int = 0

    @property
    def end_time_seconds(self) -> Optional[int]:
        if self.start_time_seconds is None:
            return None
        return self.start_time_seconds + self.duration_seconds


# ============================================================================
# RATING CHANGES
# ============================================================================

class RatingChange(_UpstreamModel):
    """user.rating / contest.ratingChanges entry."""

    handle: Optional[str] = None
    contest_id: int
    contest_name: str
    rank: int
    old_rating: int
    new_rating: int
    rating_update_time_seconds: int

    @property
    def delta(self) -> int:
        return self.new_rating - self.old_rating


# ============================================================================
# SUBMISSIONS
# ============================================================================

class Submission(_UpstreamModel):
    """
    Flattened submission (user.status / contest.status).

    Upstream nests the problem; from_api() lifts index and name to the
    top level and prefers the problem's contestId.
    """

    id: int
    contest_id: Optional[int] = None
    index: str
    name: str = "Unknown problem"
    verdict: Optional[str] = None
    creation_time_seconds: int
    programming_language: Optional[str] = None

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "Submission":
        problem = raw.get("problem") or {}
        contest_id = problem.get("contestId")
        if contest_id is None:
            contest_id = raw.get("contestId")
        return cls(
            id=raw["id"],
            contest_id=contest_id,
            index=problem["index"],
            name=problem.get("name") or "Unknown problem",
            verdict=raw.get("verdict"),
            creation_time_seconds=raw["creationTimeSeconds"],
            programming_language=raw.get("programmingLanguage"),
        )

    @property
    def is_compilation_error(self) -> bool:
        return self.verdict == Verdict.COMPILATION_ERROR.value


__all__ = [
    "ContestPhase",
    "Verdict",
    "Problem",
    "Contest",
    "RatingChange",
    "Submission",
    "SPECIAL_TAG",
]
