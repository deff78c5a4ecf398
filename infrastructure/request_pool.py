# ============================================================================
# REQUEST POOL
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Infrastructure - Egress path scheduler
# PURPOSE: Round-robin egress selection with per-path minimum spacing
# CREATED: 15 SEP 2026
# ============================================================================
"""
Request Pool

Owns a fixed set of egress paths (one direct path, or one path per
proxy) and hands each scheduled task the next path in rotation.

Per-path spacing:
    Selection and the last-used update happen together under one lock.
    The selected path's next start time is reserved immediately
    (ready_at = max(now, last_used + min_delay)), so concurrent callers
    landing on the same path queue up behind each other. The wait and
    the task itself run outside the lock, so different paths proceed in
    parallel.

    Spacing is measured between task START times.

Failures are not inspected: a task's exception propagates unchanged.

Usage:
    pool = await create_request_pool(config.codeforces, clock)
    result = await pool.schedule(lambda path: fetch(path))
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

import httpx

from core.clock import Clock
from core.config import CodeforcesDefaults
from core.models import ProxyEndpoint

logger = logging.getLogger(__name__)

T = TypeVar("T")

DIRECT_LABEL = "direct"


# ============================================================================
# EGRESS PATH
# ============================================================================

@dataclass
class EgressPath:
    """One outbound route. Mutated only by RequestPool under its lock."""

    index: int
    proxy: Optional[ProxyEndpoint] = None
    last_used_at: Optional[datetime] = None
    dispatched: int = 0

    @property
    def is_direct(self) -> bool:
        return self.proxy is None

    @property
    def label(self) -> str:
        return DIRECT_LABEL if self.proxy is None else self.proxy.label

    @property
    def proxy_url(self) -> Optional[str]:
        return None if self.proxy is None else self.proxy.url

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "label": self.label,
            "last_used_at": self.last_used_at.isoformat() if self.last_used_at else None,
            "dispatched": self.dispatched,
        }


# ============================================================================
# REQUEST POOL
# ============================================================================

class RequestPool:
    """
    Round-robin scheduler over a fixed set of egress paths.

    Pool membership never changes after construction.
    """

    def __init__(
        self,
        proxies: Sequence[ProxyEndpoint],
        min_delay_seconds: float,
        clock: Clock,
    ):
        if min_delay_seconds < 0:
            raise ValueError("min_delay_seconds must be >= 0")

        if proxies:
            self._paths = [EgressPath(index=i, proxy=proxy) for i, proxy in enumerate(proxies)]
        else:
            self._paths = [EgressPath(index=0)]

        self._min_delay = timedelta(seconds=min_delay_seconds)
        self._clock = clock
        self._cursor = 0
        self._lock = asyncio.Lock()

    @classmethod
    def direct(cls, min_delay_seconds: float, clock: Clock) -> "RequestPool":
        """Pool with a single direct path."""
        return cls([], min_delay_seconds, clock)

    @property
    def min_delay_seconds(self) -> float:
        return self._min_delay.total_seconds()

    @property
    def paths(self) -> List[EgressPath]:
        return list(self._paths)

    def size(self) -> int:
        """Number of egress paths."""
        return len(self._paths)

    async def _reserve(self) -> Tuple[EgressPath, datetime]:
        """Pick the next path and reserve its next start time."""
        async with self._lock:
            path = self._paths[self._cursor]
            self._cursor = (self._cursor + 1) % len(self._paths)

            now = self._clock.now()
            ready_at = now
            if path.last_used_at is not None:
                ready_at = max(now, path.last_used_at + self._min_delay)

            path.last_used_at = ready_at
            path.dispatched += 1
            return path, ready_at

    async def schedule(self, task: Callable[[EgressPath], Awaitable[T]]) -> T:
        """
        Run task on the next egress path once that path's spacing allows.

        Returns the task's result; the task's exception propagates unchanged.
        """
        path, ready_at = await self._reserve()

        wait_seconds = (ready_at - self._clock.now()).total_seconds()
        if wait_seconds > 0:
            logger.debug(f"Egress {path.label}: waiting {wait_seconds:.2f}s for spacing")
            await self._clock.sleep(wait_seconds)

        logger.debug(f"Dispatching on egress {path.label}")
        return await task(path)

    def stats(self) -> Dict[str, Any]:
        return {
            "size": self.size(),
            "min_delay_seconds": self.min_delay_seconds,
            "paths": [path.to_dict() for path in self._paths],
        }


# ============================================================================
# PROXY SOURCE
# ============================================================================

def parse_proxy_list(text: str) -> Tuple[List[ProxyEndpoint], List[int]]:
    """
    Parse a newline-delimited proxy list.

    Lines are trimmed and blank lines ignored. Each remaining line is
    validated on its own; malformed lines are skipped.

    Returns:
        (endpoints, rejected line numbers)
    """
    endpoints: List[ProxyEndpoint] = []
    rejected: List[int] = []

    for line_number, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line:
            continue
        endpoint = ProxyEndpoint.parse_line(line)
        if endpoint is None:
            rejected.append(line_number)
            continue
        endpoints.append(endpoint)

    return endpoints, rejected


async def fetch_proxy_list(
    url: str,
    timeout_seconds: float,
    http_client: Optional[httpx.AsyncClient] = None,
) -> str:
    """Download the proxy source. Raises httpx errors on failure or non-2xx."""
    if http_client is not None:
        response = await http_client.get(url, timeout=timeout_seconds)
    else:
        async with httpx.AsyncClient(timeout=timeout_seconds) as client:
            response = await client.get(url)
    response.raise_for_status()
    return response.text


async def create_request_pool(
    config: CodeforcesDefaults,
    clock: Clock,
    http_client: Optional[httpx.AsyncClient] = None,
) -> RequestPool:
    """
    Build the process-wide pool.

    No proxy source, a failed fetch, or a list without any valid entry
    all degrade to a single direct path.
    """
    if not config.proxy_fetch_url:
        logger.info("No proxy source configured; using direct egress")
        return RequestPool.direct(config.request_delay_seconds, clock)

    try:
        body = await fetch_proxy_list(
            config.proxy_fetch_url,
            config.proxy_fetch_timeout_seconds,
            http_client=http_client,
        )
    except httpx.HTTPError as e:
        logger.warning(f"Proxy fetch failed; continuing without proxies: {e}")
        return RequestPool.direct(config.request_delay_seconds, clock)

    endpoints, rejected = parse_proxy_list(body)
    for line_number in rejected:
        logger.warning(f"Skipping invalid proxy entry on line {line_number}")

    pool = RequestPool(endpoints, config.request_delay_seconds, clock)
    logger.info(
        f"Request pool initialized: {len(endpoints)} proxies, "
        f"{len(rejected)} skipped, {pool.size()} egress paths"
    )
    return pool


__all__ = [
    "EgressPath",
    "RequestPool",
    "parse_proxy_list",
    "fetch_proxy_list",
    "create_request_pool",
    "DIRECT_LABEL",
]
