# ============================================================================
# CACHE ENTRY MODEL
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Core model - Cached upstream payloads
# PURPOSE: Last good upstream payload per (domain, key) with fetch time
# LAST_REVIEWED: 16 SEP 2026
# EXPORTS: CacheEntry, FetchResult
# DEPENDENCIES: pydantic
# ============================================================================
"""
Cache Entry Model

One row per (domain, cache_key). Written only by a successful upstream
fetch (upsert), never deleted by the services. Staleness is derived by
the caller from fetched_at and a TTL; it is not stored.

Domains used by the data services:
    problemset              key "problemset"
    contest_list            key "contest_list"
    rating_changes          key "handle:<handle>"
    contest_rating_changes  key "contest:<id>"
    recent_submissions      key "handle:<handle>"
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import ClassVar, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

from core.clock import ensure_utc
from core.contracts import DataSource

T = TypeVar("T")


class CacheEntry(BaseModel):
    """
    Cached upstream payload.

    Maps to: cfcache.api_cache table
    """

    # =========================================================================
    # SQL DDL METADATA (Used by PydanticToSQL generator)
    # =========================================================================
    __sql_table__: ClassVar[str] = "api_cache"
    __sql_schema__: ClassVar[str] = "cfcache"
    __sql_primary_key__: ClassVar[List[str]] = ["domain", "cache_key"]
    __sql_indexes__: ClassVar[List[tuple]] = [
        ("idx_api_cache_fetched", ["fetched_at"]),
    ]

    domain: str = Field(..., max_length=64, description="Data domain (problemset, rating_changes, ...)")
    cache_key: str = Field(..., max_length=255, description="Domain-specific key")
    payload: str = Field(
        ...,
        description="Opaque serialized value (JSON text)",
        json_schema_extra={"sql_type": "TEXT"},
    )
    fetched_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the payload was fetched from upstream",
    )

    def age_seconds(self, now: datetime) -> float:
        return (now - ensure_utc(self.fetched_at)).total_seconds()

    def is_fresh(self, ttl_seconds: float, now: datetime) -> bool:
        """
        Fresh iff 0 <= age <= ttl.

        A non-positive TTL forces a refresh. A fetch time in the future
        (clock skew between instances) also counts as not fresh.
        """
        if ttl_seconds <= 0:
            return False
        age = self.age_seconds(now)
        return 0 <= age <= ttl_seconds


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    """
    Outcome of a cache-with-fallback fetch.

    source=API: fresh upstream data (also written to cache)
    source=CACHE, is_stale=False: within TTL, no network call made
    source=CACHE, is_stale=True: upstream failed, last good payload served
    """

    value: T
    source: DataSource
    is_stale: bool
    fetched_at: datetime

    @property
    def from_cache(self) -> bool:
        return self.source == DataSource.CACHE

    def with_value(self, value: "T") -> "FetchResult[T]":
        """Same provenance, different (e.g. sliced) value."""
        return FetchResult(
            value=value,
            source=self.source,
            is_stale=self.is_stale,
            fetched_at=self.fetched_at,
        )


__all__ = ["CacheEntry", "FetchResult"]
