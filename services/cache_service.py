# ============================================================================
# CACHE SERVICE
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Core - Cache-with-fallback pattern
# PURPOSE: Keyed payload store plus the fetch orchestration every data
#          service uses
# CREATED: 16 SEP 2026
# ============================================================================
"""
Cache Service

CacheService is the keyed store: get() reads, set() upserts with
fetched_at = clock.now(). Payloads are JSON text.

CachedFetchService is the base for every data service. fetch_with_cache():

    1. read the entry (storage faults are logged and read as a miss)
    2. fresh (0 <= age <= ttl)  -> cached value, source=cache, is_stale=False
    3. otherwise call upstream
       ok      -> write (write faults are logged), source=api
       failure -> cached value if any, source=cache, is_stale=True
                  none     -> None (or raise, per caller)
                  either way the failure is recorded as last_error

A stale entry is never discarded: expiry only triggers a refresh
attempt. last_error clears on the next outcome that did not fail.

The same parse() turns both the upstream result and the cached payload
into the service's value, so serialize() must emit the upstream shape.
"""

import json
import logging
from typing import Any, Callable, ClassVar, Generic, Mapping, Optional, TypeVar

from core.clock import Clock
from core.contracts import DataSource
from core.errors import ApiResult, DecodeError, ServiceError, StorageError
from core.logging import log_context
from core.models import CacheEntry, FetchResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Raised by parse() callbacks on unexpected shapes (pydantic's
# ValidationError and json.JSONDecodeError are ValueErrors)
PARSE_ERRORS = (ValueError, KeyError, TypeError)


class CacheService:
    """
    Keyed payload store over a cache repository.

    The repository needs get(domain, key) and upsert(entry).
    """

    def __init__(self, repo, clock: Clock):
        """
        Initialize cache service.

        Args:
            repo: CacheRepository (or an in-memory stand-in)
            clock: Time source for fetched_at
        """
        self.repo = repo
        self.clock = clock

    async def get(self, domain: str, cache_key: str) -> Optional[CacheEntry]:
        """Stored entry or None. No network access."""
        return await self.repo.get(domain, cache_key)

    async def set(self, domain: str, cache_key: str, value: Any) -> CacheEntry:
        """Upsert value (JSON-serialized) with fetched_at = now."""
        entry = CacheEntry(
            domain=domain,
            cache_key=cache_key,
            payload=json.dumps(value, separators=(",", ":"), default=str),
            fetched_at=self.clock.now(),
        )
        return await self.repo.upsert(entry)

    @staticmethod
    def decode(entry: CacheEntry) -> Any:
        return json.loads(entry.payload)


class CachedFetchService(Generic[T]):
    """
    Base for data services backed by one cache domain.

    Subclasses set `domain` and call fetch_with_cache().
    """

    domain: ClassVar[str] = ""

    def __init__(self, client, cache: CacheService, clock: Clock):
        """
        Args:
            client: CodeforcesClient (anything with an async call() returning ApiResult)
            cache: Shared CacheService
            clock: Time source
        """
        self.client = client
        self.cache = cache
        self.clock = clock
        self.last_error: Optional[ServiceError] = None

    @property
    def name(self) -> str:
        return type(self).__name__

    async def _read_cached(self, cache_key: str, parse: Callable[[Any], T]):
        """(entry, value) from cache, or (None, None) when absent or unreadable."""
        try:
            entry = await self.cache.get(self.domain, cache_key)
        except StorageError as e:
            logger.error(f"Cache read failed; treating as miss: {e}")
            return None, None

        if entry is None:
            return None, None

        try:
            return entry, parse(CacheService.decode(entry))
        except PARSE_ERRORS as e:
            logger.warning(f"Cached payload is unreadable; treating as miss: {e}")
            return None, None

    async def fetch_with_cache(
        self,
        cache_key: str,
        ttl_seconds: float,
        method: str,
        params: Optional[Mapping[str, Any]],
        parse: Callable[[Any], T],
        serialize: Callable[[T], Any],
        raise_on_miss: bool = False,
    ) -> Optional[FetchResult[T]]:
        """
        Cache-with-fallback fetch.

        Args:
            cache_key: Key within this service's domain
            ttl_seconds: Freshness window
            method: Upstream API method
            params: Upstream parameters
            parse: Upstream result (or decoded payload) -> value
            serialize: value -> JSON-able payload in upstream shape
            raise_on_miss: Raise the upstream error instead of returning None
                when there is nothing cached

        Returns:
            FetchResult, or None when upstream failed and nothing is cached
        """
        with log_context(domain=self.domain, cache_key=cache_key):
            entry, cached_value = await self._read_cached(cache_key, parse)
            now = self.clock.now()

            if entry is not None and entry.is_fresh(ttl_seconds, now):
                self.last_error = None
                return FetchResult(
                    value=cached_value,
                    source=DataSource.CACHE,
                    is_stale=False,
                    fetched_at=entry.fetched_at,
                )

            result: ApiResult = await self.client.call(method, params)
            if result.ok:
                try:
                    value = parse(result.value)
                except PARSE_ERRORS as e:
                    result = ApiResult.failure(DecodeError(f"Unexpected {method} result: {e}"))

            if result.ok:
                fetched_at = self.clock.now()
                try:
                    stored = await self.cache.set(self.domain, cache_key, serialize(value))
                    fetched_at = stored.fetched_at
                except StorageError as e:
                    logger.error(f"Cache write failed; returning fresh data uncached: {e}")

                self.last_error = None
                return FetchResult(
                    value=value,
                    source=DataSource.API,
                    is_stale=False,
                    fetched_at=fetched_at,
                )

            self.last_error = ServiceError(
                message=result.error_message,
                timestamp=self.clock.now(),
                details={"method": method, "cache_key": cache_key},
            )

            if entry is not None:
                logger.warning(
                    f"{method} failed ({result.error_message}); serving stale cache "
                    f"from {entry.fetched_at.isoformat()}"
                )
                return FetchResult(
                    value=cached_value,
                    source=DataSource.CACHE,
                    is_stale=True,
                    fetched_at=entry.fetched_at,
                )

            logger.warning(f"{method} failed ({result.error_message}); no cached data")
            if raise_on_miss:
                raise result.error
            return None


__all__ = ["CacheService", "CachedFetchService", "PARSE_ERRORS"]
