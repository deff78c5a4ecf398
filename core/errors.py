# ============================================================================
# ERROR TAXONOMY
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Core - Typed failures and discriminated results
# PURPOSE: Classify upstream failures so callers choose fallback explicitly
# CREATED: 14 SEP 2026
# ============================================================================
"""
Error Taxonomy

Upstream failures are one of three kinds:
- TransportError: timeout, connection error, non-2xx HTTP status
- UpstreamError: envelope status FAILED (comment kept verbatim)
- DecodeError: body is not JSON or the envelope/result has the wrong shape

ApiResult wraps either a value or one of these errors. The client's
call() returns an ApiResult and never raises for classified failures;
request() unwraps it and raises.

Lock contention is NOT an error (see services.instance_lock_service).
Storage faults surface as StorageError.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, Optional, TypeVar

from core.contracts import ErrorKind

T = TypeVar("T")

UNKNOWN_UPSTREAM_COMMENT = "Unknown Codeforces error"


class CodeforcesApiError(Exception):
    """Base class for classified upstream failures."""

    kind: ErrorKind = ErrorKind.TRANSPORT

    def __init__(self, message: str, retryable: bool = True):
        self.message = message
        self.retryable = retryable
        super().__init__(message)


class TransportError(CodeforcesApiError):
    """
    Network-level failure: timeout, connection error, non-2xx status.

    4xx responses other than 429 are not worth retrying.
    """

    kind = ErrorKind.TRANSPORT

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        retryable: Optional[bool] = None,
    ):
        self.status_code = status_code
        if retryable is None:
            retryable = not (
                status_code is not None
                and 400 <= status_code < 500
                and status_code != 429
            )
        super().__init__(message, retryable=retryable)

    @classmethod
    def from_status(cls, status_code: int) -> "TransportError":
        return cls(f"HTTP {status_code}", status_code=status_code)


class UpstreamError(CodeforcesApiError):
    """Envelope status FAILED. str(error) is the comment verbatim."""

    kind = ErrorKind.UPSTREAM

    def __init__(self, comment: Optional[str]):
        self.comment = comment or UNKNOWN_UPSTREAM_COMMENT
        # Not auto-retried; callers match on the comment text
        super().__init__(self.comment, retryable=False)

    @property
    def is_rate_limited(self) -> bool:
        """True when the comment is a call-limit notice."""
        return "limit exceeded" in self.comment.lower()


class DecodeError(CodeforcesApiError):
    """Response body or envelope could not be decoded."""

    kind = ErrorKind.DECODE

    def __init__(self, message: str):
        super().__init__(message, retryable=True)


class StorageError(Exception):
    """Raised by repositories when the database rejects an operation."""

    def __init__(self, operation: str, cause: Exception):
        self.operation = operation
        self.cause = cause
        super().__init__(f"Storage error during {operation}: {cause}")


# ============================================================================
# DISCRIMINATED RESULT
# ============================================================================

@dataclass(frozen=True)
class ApiResult(Generic[T]):
    """
    Ok(value) | TransportError | UpstreamError | DecodeError.

    Usage:
        result = await client.call("user.rating", {"handle": "tourist"})
        if result.ok:
            use(result.value)
        elif result.kind == ErrorKind.UPSTREAM:
            show(result.error.comment)
    """

    value: Optional[T] = None
    error: Optional[CodeforcesApiError] = None

    @classmethod
    def success(cls, value: T) -> "ApiResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: CodeforcesApiError) -> "ApiResult[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> Optional[ErrorKind]:
        """Error kind, or None on success."""
        return None if self.error is None else self.error.kind

    @property
    def error_message(self) -> Optional[str]:
        return None if self.error is None else self.error.message

    def unwrap(self) -> T:
        """Return the value or raise the classified error."""
        if self.error is not None:
            raise self.error
        return self.value


# ============================================================================
# SERVICE ERROR RECORD
# ============================================================================

@dataclass(frozen=True)
class ServiceError:
    """Most recent failure seen by a service (for health/observability)."""

    message: str
    timestamp: datetime
    details: dict = field(default_factory=dict)

    @classmethod
    def from_exception(cls, error: BaseException, timestamp: datetime, **details: Any) -> "ServiceError":
        message = str(error) or type(error).__name__
        return cls(message=message, timestamp=timestamp, details=details)

    def to_dict(self) -> dict:
        result = {"message": self.message, "timestamp": self.timestamp.isoformat()}
        if self.details:
            result.update(self.details)
        return result


__all__ = [
    "CodeforcesApiError",
    "TransportError",
    "UpstreamError",
    "DecodeError",
    "StorageError",
    "ApiResult",
    "ServiceError",
    "UNKNOWN_UPSTREAM_COMMENT",
]
