"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional so each error only carries what is relevant to it.
    """

    code: str
    message: str
    hint: str
    reason: str
    signal_id: str
    collection: str
    limit: int
    remaining: int
    reset_at: int
    retry_after: int
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

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


class ValidationAppError(AppError):
    """Raised when a submission or request body is malformed."""


class RateLimitAppError(AppError):
    """Raised when a client exceeds its submission budget."""

    @property
    def retry_after(self) -> int:
        return int((self.details or {}).get("retry_after", 1))


class AuthenticationAppError(AppError):
    """Raised when admin authentication fails."""


class NotFoundAppError(AppError):
    """Raised when a signal id is not present in the pending queue."""


class PersistenceAppError(AppError):
    """Raised when a collection could not be written to durable storage."""
