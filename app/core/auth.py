"""Admin authentication (HTTP Basic).

Moderation endpoints require an ``Authorization: Basic <base64(user:pass)>``
header matching the configured admin credentials.

Design principles:
- Uniform rejection: every failure mode (missing header, wrong scheme, bad
  base64, missing colon, wrong identity, wrong secret, admin not configured)
  surfaces as the same 401 with the same message.
- Constant-time comparison for both identity and secret, always evaluated
  together so timing does not reveal which of them matched.
- Failure reasons are logged server-side only.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import logging
from typing import Annotated

from fastapi import Header

from app.core.config import settings
from app.core.errors import AuthenticationAppError

logger = logging.getLogger(__name__)

AUTH_SCHEME = "basic"
AUTH_FAILED_MESSAGE = "Authentication required"


def constant_time_equals(provided: str, expected: str) -> bool:
    """Compare two strings without short-circuiting on the first mismatch.

    Both values are compared as UTF-8 bytes via ``hmac.compare_digest``.
    Only the lengths of the inputs can influence timing.
    """

    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def parse_basic_credentials(header_value: str | None) -> tuple[str, str] | None:
    """Decode a Basic ``Authorization`` header into ``(identity, secret)``.

    The decoded payload is split on the first colon, so secrets may contain
    colons.

    Returns:
        The credential pair, or None if the header is absent or malformed.

    Examples:
        >>> parse_basic_credentials("Basic YWRtaW46czNjcjN0")
        ('admin', 's3cr3t')
        >>> parse_basic_credentials("Bearer abc") is None
        True
    """

    if not header_value:
        return None

    scheme, _, encoded = header_value.strip().partition(" ")
    if scheme.lower() != AUTH_SCHEME or not encoded.strip():
        return None

    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None

    identity, sep, secret = decoded.partition(":")
    if not sep:
        return None
    return identity, secret


def _failure_reason(header_value: str | None) -> str:
    if not header_value:
        return "missing_header"
    if header_value.strip().partition(" ")[0].lower() != AUTH_SCHEME:
        return "wrong_scheme"
    return "malformed_credentials"


def authenticate(header_value: str | None) -> bool:
    """Check an ``Authorization`` header against the configured admin.

    Args:
        header_value: Raw header value (may be None).

    Returns:
        True only if both identity and secret match the configured values.
    """

    expected_user = settings.app.admin_username
    expected_secret = settings.app.admin_password

    if not expected_secret:
        logger.error(
            "auth.admin_not_configured",
            extra={"hint": "Set APP_ADMIN_PASSWORD to enable moderation endpoints"},
        )
        return False

    credentials = parse_basic_credentials(header_value)
    if credentials is None:
        logger.warning("auth.failed", extra={"reason": _failure_reason(header_value)})
        return False

    identity, secret = credentials
    identity_ok = constant_time_equals(identity, expected_user)
    secret_ok = constant_time_equals(secret, expected_secret)
    if identity_ok and secret_ok:
        return True

    logger.warning("auth.failed", extra={"reason": "invalid_credentials"})
    return False


async def require_admin(
    authorization: Annotated[str | None, Header(alias="Authorization")] = None,
) -> None:
    """FastAPI dependency guarding moderation endpoints.

    Usage:
        @router.post("/admin/approve", dependencies=[Depends(require_admin)])

    Raises:
        AuthenticationAppError: Rendered as 401 with a WWW-Authenticate header.
    """

    if authenticate(authorization):
        logger.info("auth.success")
        return

    raise AuthenticationAppError(
        code="authentication_required",
        message=AUTH_FAILED_MESSAGE,
    )
