"""Rate limiting dependency for the public submission endpoint.

This module wires the rate limiting adapter into the HTTP layer.

Rate limiting strategy:
- Sliding window per client identity (default 5 submissions / 10 minutes).
- Identity is the first entry of X-Forwarded-For when present and trusted,
  otherwise the socket peer address, otherwise a shared "unknown" bucket.

Trust boundary: X-Forwarded-For is client-controlled unless a reverse proxy
overwrites it. Deployments not behind such a proxy should set
APP_TRUST_FORWARDED_FOR=false.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Annotated

from fastapi import Header, Request

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from app.core.config import settings
from app.core.errors import RateLimitAppError

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"

_limiter: AbstractRateLimiter | None = None
_limiter_config: tuple[int, int] | None = None


def get_rate_limiter() -> AbstractRateLimiter:
    """Return a process-wide rate limiter instance.

    The instance is cached in-module to preserve state across requests.
    If configuration changes (primarily in tests), the limiter is rebuilt.
    """

    global _limiter, _limiter_config

    config = (
        settings.app.rate_limit_requests,
        settings.app.rate_limit_window_seconds,
    )

    if _limiter is None or _limiter_config != config:
        _limiter = InMemorySlidingWindowRateLimiter(
            limit=settings.app.rate_limit_requests,
            window_seconds=settings.app.rate_limit_window_seconds,
        )
        _limiter_config = config

    return _limiter


def resolve_client_identity(
    forwarded_for: str | None,
    peer_host: str | None,
    *,
    trust_forwarded: bool = True,
) -> str:
    """Derive the rate limit identity for a request.

    Args:
        forwarded_for: Raw X-Forwarded-For header value, if any.
        peer_host: Address of the direct connection, if known.
        trust_forwarded: Whether the forwarded header may be used at all.

    Returns:
        The client address, or ``"unknown"`` when none is available.

    Examples:
        >>> resolve_client_identity("203.0.113.7, 10.0.0.1", "10.0.0.2")
        '203.0.113.7'
        >>> resolve_client_identity(None, "10.0.0.2")
        '10.0.0.2'
        >>> resolve_client_identity(None, None)
        'unknown'
    """

    if trust_forwarded and forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    if peer_host:
        return peer_host
    return UNKNOWN_CLIENT


def _hash_identity(identity: str) -> str:
    """Hash the client identity for logging without exposing addresses."""
    return hashlib.sha256(identity.encode()).hexdigest()[:16]


async def enforce_submission_rate_limit(
    request: Request,
    x_forwarded_for: Annotated[str | None, Header(alias="X-Forwarded-For")] = None,
) -> None:
    """FastAPI dependency enforcing the submission rate limit.

    Consumes one unit from the requester's budget. When the budget for the
    trailing window is exhausted, raises RateLimitAppError (HTTP 429 with a
    Retry-After header).
    """

    if not settings.app.rate_limit_enabled:
        return

    identity = resolve_client_identity(
        x_forwarded_for,
        request.client.host if request.client else None,
        trust_forwarded=settings.app.trust_forwarded_for,
    )
    limiter = get_rate_limiter()
    result = limiter.consume(identity)

    if result.allowed:
        logger.info(
            "rate_limit.allowed",
            extra={
                "client_hash": _hash_identity(identity),
                "limit": result.limit,
                "remaining": result.remaining,
                "window_s": settings.app.rate_limit_window_seconds,
            },
        )
        return

    retry_after = result.retry_after_seconds or 1
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "client_hash": _hash_identity(identity),
            "shared_bucket": identity == UNKNOWN_CLIENT,
            "limit": result.limit,
            "window_s": settings.app.rate_limit_window_seconds,
            "retry_after_s": retry_after,
        },
    )

    raise RateLimitAppError(
        code="rate_limited",
        message="Too many submissions. Try again later.",
        details={
            "retry_after": retry_after,
            "limit": result.limit,
            "remaining": result.remaining,
            "reset_at": result.reset_at,
        },
    )
