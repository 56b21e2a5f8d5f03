"""Security utilities for the PKCE flow.

Provides cryptographically secure random strings for ``state``/``nonce`` and
the callback ``state`` comparison.
"""

from __future__ import annotations

import secrets
import string
from urllib.parse import urlparse

from authlogic.client.models.errors import StateValidationError

ALPHANUMERIC = string.ascii_letters + string.digits


def generate_random_string(length: int = 32) -> str:
    """Generate a uniform random alphanumeric string.

    Args:
        length: Number of characters

    Returns:
        String matching ``[A-Za-z0-9]{length}``
    """
    if length < 1:
        raise ValueError("length must be positive")
    return "".join(secrets.choice(ALPHANUMERIC) for _ in range(length))


def validate_state(expected: str, actual: str) -> None:
    """Validate state parameter matches expected value.

    Args:
        expected: State parameter from original authorization request
        actual: State parameter from callback URL

    Raises:
        StateValidationError: If state parameters don't match
    """
    if not secrets.compare_digest(expected.encode(), actual.encode()):
        raise StateValidationError("State parameter mismatch - possible CSRF attack")


def is_secure_endpoint(uri: str) -> bool:
    """Check a URI is HTTPS, or HTTP on localhost.

    Args:
        uri: URI to check

    Returns:
        True if the URI may carry authorization codes
    """
    try:
        parsed = urlparse(uri)
    except ValueError:
        return False
    return parsed.scheme == "https" or (
        parsed.scheme == "http" and parsed.hostname in ("localhost", "127.0.0.1")
    )
