"""Tests for client identity resolution and the submission rate limit dependency."""

from unittest.mock import MagicMock, patch

import pytest

from app.core.errors import RateLimitAppError
from app.core.rate_limit import (
    UNKNOWN_CLIENT,
    enforce_submission_rate_limit,
    get_rate_limiter,
    resolve_client_identity,
)


def _request(host: str | None) -> MagicMock:
    request = MagicMock()
    if host is None:
        request.client = None
    else:
        request.client.host = host
    return request


class TestResolveClientIdentity:
    def test_uses_first_forwarded_entry(self) -> None:
        assert resolve_client_identity(" 203.0.113.7 , 10.0.0.1", "10.0.0.2") == "203.0.113.7"

    def test_falls_back_to_peer_address(self) -> None:
        assert resolve_client_identity(None, "10.0.0.2") == "10.0.0.2"

    def test_blank_forwarded_header_falls_back(self) -> None:
        assert resolve_client_identity(" , 10.0.0.1", "10.0.0.2") == "10.0.0.2"

    def test_unknown_bucket_when_nothing_available(self) -> None:
        assert resolve_client_identity(None, None) == UNKNOWN_CLIENT

    def test_forwarded_header_ignored_when_untrusted(self) -> None:
        identity = resolve_client_identity("203.0.113.7", "10.0.0.2", trust_forwarded=False)
        assert identity == "10.0.0.2"


class TestEnforceSubmissionRateLimit:
    @pytest.mark.asyncio
    async def test_sixth_submission_raises_with_retry_hint(self) -> None:
        request = _request("198.51.100.1")

        for _ in range(5):
            await enforce_submission_rate_limit(request, x_forwarded_for=None)

        with pytest.raises(RateLimitAppError) as exc_info:
            await enforce_submission_rate_limit(request, x_forwarded_for=None)

        assert exc_info.value.code == "rate_limited"
        assert exc_info.value.retry_after >= 1

    @pytest.mark.asyncio
    async def test_clients_without_address_share_a_bucket(self) -> None:
        for _ in range(5):
            await enforce_submission_rate_limit(_request(None), x_forwarded_for=None)

        with pytest.raises(RateLimitAppError):
            await enforce_submission_rate_limit(_request(None), x_forwarded_for=None)

    @pytest.mark.asyncio
    async def test_forwarded_clients_are_counted_separately(self) -> None:
        request = _request("10.0.0.1")
        for _ in range(5):
            await enforce_submission_rate_limit(request, x_forwarded_for="203.0.113.1")

        # Same proxy, different original client
        await enforce_submission_rate_limit(request, x_forwarded_for="203.0.113.2")

    @pytest.mark.asyncio
    @patch("app.core.rate_limit.settings")
    async def test_disabled_limit_never_raises(self, mock_settings) -> None:
        mock_settings.app.rate_limit_enabled = False
        request = _request("198.51.100.9")

        for _ in range(20):
            await enforce_submission_rate_limit(request, x_forwarded_for=None)

    def test_limiter_is_cached_between_calls(self) -> None:
        assert get_rate_limiter() is get_rate_limiter()
