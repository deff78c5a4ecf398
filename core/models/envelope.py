# ============================================================================
# API ENVELOPE MODEL
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Core model - Upstream response wrapper
# PURPOSE: Validate the {status, result|comment} envelope
# LAST_REVIEWED: 15 SEP 2026
# EXPORTS: ApiEnvelope
# DEPENDENCIES: pydantic
# ============================================================================
"""
API Envelope Model

Every Codeforces API response has the shape:
    {"status": "OK", "result": ...}
    {"status": "FAILED", "comment": "..."}

An OK envelope without a result key is malformed.
"""

from typing import Any, Optional

from pydantic import BaseModel, model_validator

from core.contracts import EnvelopeStatus


class ApiEnvelope(BaseModel):
    """Decoded upstream response wrapper."""

    status: EnvelopeStatus
    result: Any = None
    comment: Optional[str] = None

    model_config = {"extra": "ignore"}

    @model_validator(mode="before")
    @classmethod
    def _require_result_when_ok(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("status") == EnvelopeStatus.OK.value:
            if "result" not in data:
                raise ValueError("OK envelope is missing 'result'")
        return data

    @property
    def is_ok(self) -> bool:
        return self.status == EnvelopeStatus.OK


__all__ = ["ApiEnvelope"]
