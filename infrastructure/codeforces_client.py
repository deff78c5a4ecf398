# ============================================================================
# CODEFORCES API CLIENT
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Infrastructure - Async HTTP client for the Codeforces API
# PURPOSE: Method + params in, decoded result or classified failure out
# CREATED: 15 SEP 2026
# ============================================================================
"""
Codeforces API Client

Builds GET {base_url}/{method}?{params}, runs it on an egress path from
the request pool, and decodes the {status, result|comment} envelope.

Failure mapping:
    httpx.TimeoutException          -> TransportError("Timeout after Ns")
    other httpx.HTTPError           -> TransportError("Connection error: ...")
    non-2xx status                  -> TransportError("HTTP <code>")
    body not JSON / bad envelope    -> DecodeError
    status FAILED                   -> UpstreamError(comment)

call() returns an ApiResult and never raises for these. request()
unwraps and raises. Neither retries unless asked (retries=n), in which
case retryable failures are re-scheduled (next path in rotation) after
a linear backoff of request_delay * attempt.

One httpx.AsyncClient is kept per egress path; proxies are set on the
client, so each proxied path has its own connection pool.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional, Union

import httpx
from pydantic import ValidationError

from core.clock import Clock
from core.config import CodeforcesDefaults
from core.errors import (
    ApiResult,
    CodeforcesApiError,
    DecodeError,
    ServiceError,
    TransportError,
    UpstreamError,
)
from core.logging import log_context
from core.models import ApiEnvelope
from infrastructure.request_pool import EgressPath, RequestPool

logger = logging.getLogger(__name__)

ParamValue = Union[str, int, float, bool]
ClientFactory = Callable[[EgressPath], httpx.AsyncClient]


def encode_params(params: Optional[Mapping[str, ParamValue]]) -> Dict[str, str]:
    """Stringify query parameters (booleans as true/false), dropping None."""
    query: Dict[str, str] = {}
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            query[key] = "true" if value else "false"
        else:
            query[key] = str(value)
    return query


def default_client_factory(path: EgressPath) -> httpx.AsyncClient:
    return httpx.AsyncClient(proxy=path.proxy_url)


class CodeforcesClient:
    """Async client for the Codeforces JSON API."""

    def __init__(
        self,
        scheduler: RequestPool,
        config: CodeforcesDefaults,
        clock: Clock,
        client_factory: Optional[ClientFactory] = None,
    ):
        self._scheduler = scheduler
        self._config = config
        self._clock = clock
        self._client_factory = client_factory or default_client_factory
        self._clients: Dict[int, httpx.AsyncClient] = {}

        self.last_error: Optional[ServiceError] = None
        self.last_success_at: Optional[datetime] = None

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _http_for(self, path: EgressPath) -> httpx.AsyncClient:
        client = self._clients.get(path.index)
        if client is None:
            client = self._client_factory(path)
            self._clients[path.index] = client
        return client

    def url_for(self, method: str) -> str:
        return f"{self._config.base_url.rstrip('/')}/{method}"

    async def _attempt(
        self,
        path: EgressPath,
        method: str,
        query: Dict[str, str],
        timeout: float,
    ) -> Any:
        """One HTTP call on one egress path. Raises CodeforcesApiError subclasses."""
        with log_context(egress=path.label):
            try:
                response = await self._http_for(path).get(
                    self.url_for(method),
                    params=query,
                    timeout=timeout,
                )
            except httpx.TimeoutException as e:
                raise TransportError(f"Timeout after {timeout:g}s") from e
            except httpx.HTTPError as e:
                raise TransportError(f"Connection error: {e}") from e

            if not response.is_success:
                raise TransportError.from_status(response.status_code)

            try:
                body = response.json()
            except ValueError as e:
                raise DecodeError("Response body is not valid JSON") from e

            try:
                envelope = ApiEnvelope.model_validate(body)
            except ValidationError as e:
                raise DecodeError(f"Malformed response envelope ({e.error_count()} errors)") from e

            if not envelope.is_ok:
                raise UpstreamError(envelope.comment)

            return envelope.result

    # ------------------------------------------------------------------
    # PUBLIC API
    # ------------------------------------------------------------------

    async def call(
        self,
        method: str,
        params: Optional[Mapping[str, ParamValue]] = None,
        retries: int = 0,
    ) -> ApiResult[Any]:
        """
        Call an API method.

        Returns:
            ApiResult with the envelope's result, or the classified failure
        """
        query = encode_params(params)
        timeout = self._config.timeout_for(method)
        attempt = 0

        with log_context(method=method):
            while True:
                try:
                    value = await self._scheduler.schedule(
                        lambda path: self._attempt(path, method, query, timeout)
                    )
                except CodeforcesApiError as error:
                    if error.retryable and attempt < retries:
                        attempt += 1
                        wait_seconds = self._config.request_delay_seconds * attempt
                        logger.warning(
                            f"Codeforces {method} failed ({error.message}); "
                            f"retry {attempt}/{retries} in {wait_seconds:g}s"
                        )
                        await self._clock.sleep(wait_seconds)
                        continue

                    self.last_error = ServiceError.from_exception(
                        error,
                        self._clock.now(),
                        method=method,
                        kind=error.kind.value,
                    )
                    logger.warning(f"Codeforces {method} failed: [{error.kind.value}] {error.message}")
                    return ApiResult.failure(error)

                self.last_success_at = self._clock.now()
                self.last_error = None
                return ApiResult.success(value)

    async def request(
        self,
        method: str,
        params: Optional[Mapping[str, ParamValue]] = None,
        retries: int = 0,
    ) -> Any:
        """Call an API method and return its result, raising on failure."""
        result = await self.call(method, params, retries=retries)
        return result.unwrap()

    # ------------------------------------------------------------------
    # DIAGNOSTICS / LIFECYCLE
    # ------------------------------------------------------------------

    @property
    def is_degraded(self) -> bool:
        """True when the most recent outcome was a failure."""
        return self.last_error is not None

    def diagnostics(self) -> Dict[str, Any]:
        return {
            "base_url": self._config.base_url,
            "egress_paths": self._scheduler.size(),
            "last_success_at": self.last_success_at.isoformat() if self.last_success_at else None,
            "last_error": self.last_error.to_dict() if self.last_error else None,
        }

    async def aclose(self) -> None:
        """Close every per-path HTTP client."""
        clients = list(self._clients.values())
        self._clients.clear()
        for client in clients:
            await client.aclose()


__all__ = [
    "CodeforcesClient",
    "ClientFactory",
    "default_client_factory",
    "encode_params",
]
