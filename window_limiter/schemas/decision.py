"""Pydantic schemas for the decision endpoint."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from window_limiter.services.decision import Decision


class CheckRequest(BaseModel):
    """Identity to count a trial for.

    ``key`` is validated by the key codec only: booleans and floats are
    rejected (400), never coerced to integers.
    """

    key: Any = Field(
        ...,
        description=(
            "Single token or ordered list of tokens; each must match "
            "^[a-z0-9._-]+$ (case-insensitive)."
        ),
        examples=["alice", ["alice", "login"]],
    )


class DecisionResponse(BaseModel):
    """Outcome of one trial against the service limiter."""

    limit: int = Field(..., description="Maximum number of trials per window.")
    remaining: int = Field(
        ..., description="limit - count; negative once the limit is exceeded."
    )
    reset_ms: int = Field(
        ..., description="Milliseconds until the window closes (after any throttle wait)."
    )
    uses_delay: bool = Field(
        ..., description="Whether the limiter throttles instead of rejecting."
    )
    allowed: bool = Field(..., description="Whether the caller may proceed.")
    retry_after_seconds: int = Field(
        ..., description="Seconds until the window resets, rounded up."
    )

    @classmethod
    def from_decision(cls, decision: Decision) -> "DecisionResponse":
        return cls(
            limit=decision.limit,
            remaining=decision.remaining,
            reset_ms=decision.reset,
            uses_delay=decision.uses_delay,
            allowed=decision.allowed,
            retry_after_seconds=decision.retry_after_seconds,
        )
