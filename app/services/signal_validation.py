"""Minimal shape checks for incoming signal submissions.

Only ``title`` and ``startTime`` are checked. Every other field (location,
coordinates, contact, note, topic, custom keys) passes through untouched.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class ValidationResult:
    ok: bool
    reason: str | None = None


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp string, accepting a trailing ``Z``.

    Returns:
        The parsed datetime, or None if the value is not a valid timestamp.
    """

    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def validate_signal(payload: Any) -> ValidationResult:
    """Check that a payload can be admitted to the pending queue.

    Args:
        payload: Decoded JSON request body.

    Returns:
        ValidationResult with ``ok`` set, or a human-readable ``reason``.
    """

    if not isinstance(payload, dict):
        return ValidationResult(False, "Payload must be a JSON object")

    title = payload.get("title")
    if not isinstance(title, str) or not title.strip():
        return ValidationResult(False, "title is required")

    if "startTime" not in payload or payload.get("startTime") in (None, ""):
        return ValidationResult(False, "startTime is required")

    if parse_timestamp(payload["startTime"]) is None:
        return ValidationResult(False, "startTime must be a valid ISO-8601 timestamp")

    return ValidationResult(True)
