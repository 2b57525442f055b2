"""Pydantic schemas for API request/response validation.

The reply endpoint accepts the inbound event contract
(``src.orchestrator.models.InboundEvent``) as its body; this module
defines the response side.
"""

from typing import Literal

from pydantic import BaseModel, Field

from src.orchestrator.models import ReplyResult

ReplyStatusLiteral = Literal[
    "sent",
    "failed",
    "pending_manual_send",
    "human_handoff_required",
    "skipped",
    "error",
]


class ReplyResponse(BaseModel):
    """Response schema for one reply pipeline execution."""

    success: bool
    status: ReplyStatusLiteral
    reason: str | None = None
    message: str | None = None
    sent: bool = False
    handoff: bool = False
    matched_phrases: list[str] = Field(default_factory=list)
    model: str | None = None
    processing_time_ms: int = 0
    knowledge_used: list[str] = Field(default_factory=list)
    error_code: str | None = None
    error: str | None = None

    @classmethod
    def from_result(cls, result: ReplyResult) -> "ReplyResponse":
        return cls(**result.to_dict())


class HealthResponse(BaseModel):
    """Response schema for the liveness probe."""

    status: str = "ok"


class ErrorResponse(BaseModel):
    """Response schema for coded ReplyAgent errors."""

    error_code: str
    message: str
    remediation: str | None = None
    details: dict | None = None
