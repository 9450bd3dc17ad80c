"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
Environment variables are set before any app import so the global settings
object is built with test values.
"""

import base64
import os
import tempfile

# CRITICAL: Set these before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("APP_ADMIN_USERNAME", "admin")
os.environ.setdefault("APP_ADMIN_PASSWORD", "test-secret-123")
os.environ.setdefault("APP_DATA_DIR", tempfile.mkdtemp(prefix="signal-board-tests-"))
os.environ.setdefault("APP_RATE_LIMIT_REQUESTS", "5")
os.environ.setdefault("APP_RATE_LIMIT_WINDOW_SECONDS", "600")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402

from app.core import rate_limit  # noqa: E402
from app.core.config import settings  # noqa: E402


def _basic_auth_header(username: str, password: str) -> dict[str, str]:
    token = base64.b64encode(f"{username}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


@pytest.fixture(autouse=True)
def isolated_data_dir(tmp_path, monkeypatch):
    """Point storage at a fresh directory for every test."""
    data_dir = tmp_path / "data"
    monkeypatch.setattr(settings.app, "data_dir", data_dir)
    return data_dir


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """Start every test with an empty submission budget history."""
    rate_limit.get_rate_limiter().reset()
    yield
    rate_limit.get_rate_limiter().reset()


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return _basic_auth_header(settings.app.admin_username, settings.app.admin_password)


@pytest.fixture
def make_auth_header():
    """Build a Basic Authorization header for arbitrary credentials."""
    return _basic_auth_header

