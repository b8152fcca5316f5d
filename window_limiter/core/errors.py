"""Limiter exception types.

This module defines the errors raised across the codec, store adapters and
services, enabling consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional; each error populates the subset that applies.
    """

    code: str
    message: str
    hint: str
    field: str
    position: int
    value_type: str
    key: str
    operation: str
    backend: str
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for limiter failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ConfigurationError(AppError):
    """Raised when limiter or store configuration is invalid."""


class InvalidKeyError(AppError):
    """Raised when a caller-supplied identity cannot be turned into a key."""


class StoreOperationError(AppError):
    """Raised when a counter store primitive fails."""


class WindowVanishedError(AppError):
    """Raised when a window key disappears between the trial and lifetime steps."""
