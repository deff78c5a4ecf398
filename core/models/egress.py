# ============================================================================
# EGRESS MODELS
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Core model - Proxy endpoints
# PURPOSE: Validated proxy definitions parsed from the proxy source
# LAST_REVIEWED: 15 SEP 2026
# EXPORTS: ProxyEndpoint
# DEPENDENCIES: pydantic
# ============================================================================
"""
Egress Models

A ProxyEndpoint is one line of the proxy source:
    host:port
    host:port:user:pass

Malformed lines are rejected individually (parse_line returns None),
so one bad line never aborts the whole list.
"""

from typing import Optional
from urllib.parse import quote

from pydantic import BaseModel, Field, ValidationError


class ProxyEndpoint(BaseModel):
    """An HTTP proxy the request pool may route through."""

    host: str = Field(..., min_length=1, max_length=255)
    port: int = Field(..., ge=1, le=65535)
    username: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, max_length=255)

    model_config = {"frozen": True}

    @property
    def label(self) -> str:
        """Credential-free identifier for logs."""
        return f"{self.host}:{self.port}"

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.password)

    @property
    def url(self) -> str:
        """Proxy URL with credentials embedded (basic auth)."""
        if self.has_credentials:
            user = quote(self.username, safe="")
            password = quote(self.password, safe="")
            return f"http://{user}:{password}@{self.host}:{self.port}"
        return f"http://{self.host}:{self.port}"

    @classmethod
    def parse_line(cls, line: str) -> Optional["ProxyEndpoint"]:
        """
        Parse one proxy source line.

        Returns None for anything other than 2 or 4 colon-separated
        fields with a non-empty host and a numeric port in range.
        """
        parts = [part.strip() for part in line.strip().split(":")]
        if len(parts) not in (2, 4):
            return None

        host, port = parts[0], parts[1]
        if not host or not port.isdigit():
            return None

        username = password = None
        if len(parts) == 4:
            username, password = parts[2] or None, parts[3] or None

        try:
            return cls(host=host, port=int(port), username=username, password=password)
        except ValidationError:
            return None


__all__ = ["ProxyEndpoint"]
