"""Unit tests for the in-memory sliding-window rate limiter."""

from unittest.mock import Mock

import pytest

from app.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter


def test_allows_up_to_limit_in_window() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemorySlidingWindowRateLimiter(limit=5, window_seconds=600, clock=clock)

    for expected_remaining in (4, 3, 2, 1, 0):
        result = limiter.consume("k")
        assert result.allowed is True
        assert result.remaining == expected_remaining
        assert result.retry_after_seconds is None


def test_sixth_attempt_in_window_is_blocked() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemorySlidingWindowRateLimiter(limit=5, window_seconds=600, clock=clock)

    for step in range(5):
        clock.return_value = 1000.0 + step * 10
        assert limiter.consume("k").allowed is True

    clock.return_value = 1100.0
    blocked = limiter.consume("k")
    assert blocked.allowed is False
    assert blocked.remaining == 0
    # Oldest accepted attempt (t=1000) ages out at t=1600
    assert blocked.retry_after_seconds == 500
    assert blocked.reset_at == 1600


def test_window_slides_past_oldest_attempt() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemorySlidingWindowRateLimiter(limit=2, window_seconds=60, clock=clock)

    assert limiter.consume("k").allowed is True
    clock.return_value = 1030.0
    assert limiter.consume("k").allowed is True
    assert limiter.consume("k").allowed is False

    # First attempt has aged out, second is still inside the window
    clock.return_value = 1060.5
    assert limiter.consume("k").allowed is True
    assert limiter.consume("k").allowed is False


def test_rejected_attempts_do_not_extend_the_window() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemorySlidingWindowRateLimiter(limit=1, window_seconds=10, clock=clock)

    assert limiter.consume("k").allowed is True
    clock.return_value = 1005.0
    assert limiter.consume("k").allowed is False

    clock.return_value = 1010.0
    assert limiter.consume("k").allowed is True


def test_retry_after_is_at_least_one_second() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemorySlidingWindowRateLimiter(limit=1, window_seconds=10, clock=clock)

    assert limiter.consume("k").allowed is True
    clock.return_value = 1009.95
    blocked = limiter.consume("k")
    assert blocked.allowed is False
    assert blocked.retry_after_seconds == 1


def test_isolated_by_key() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemorySlidingWindowRateLimiter(limit=1, window_seconds=60, clock=clock)

    assert limiter.consume("k1").allowed is True
    assert limiter.consume("k1").allowed is False

    assert limiter.consume("k2").allowed is True


def test_reset_clears_all_keys() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemorySlidingWindowRateLimiter(limit=1, window_seconds=60, clock=clock)

    limiter.consume("k1")
    limiter.consume("k2")
    assert limiter.tracked_keys() == 2

    limiter.reset()
    assert limiter.tracked_keys() == 0
    assert limiter.consume("k1").allowed is True


@pytest.mark.parametrize(
    "kwargs",
    [
        {"limit": 0, "window_seconds": 60},
        {"limit": 1, "window_seconds": 0},
    ],
)
def test_invalid_constructor_args(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        InMemorySlidingWindowRateLimiter(**kwargs)


def test_empty_key_rejected() -> None:
    limiter = InMemorySlidingWindowRateLimiter(limit=1, window_seconds=60)

    with pytest.raises(ValueError):
        limiter.consume("")
