"""PKCE (Proof Key for Code Exchange) generation.

Implements RFC 7636 S256 parameter generation to prevent authorization code
interception attacks.
"""

from __future__ import annotations

import base64
import hashlib
import secrets
from collections.abc import Callable

from authlogic.client.models.errors import PKCEError
from authlogic.client.models.security import Pkce

MIN_BUFFER_LENGTH = 32


def base64url_encode(data: bytes) -> str:
    """Encode bytes as URL-safe base64 without ``=`` padding (RFC 4648 §5)."""
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


class PkceGenerator:
    """Creates a fresh verifier/challenge pair per authorization attempt.

    The verifier is the base64url encoding of a random buffer; the challenge
    is derived from it with the S256 method:
    ``BASE64URL-ENCODE(SHA256(ASCII(code_verifier)))``.

    Args:
        random_bytes: Source of random bytes. Defaults to
            ``secrets.token_bytes``; substitute only in tests.
        length: Size of the random buffer in bytes (32 gives a 43
            character verifier).
    """

    def __init__(
        self,
        random_bytes: Callable[[int], bytes] = secrets.token_bytes,
        length: int = MIN_BUFFER_LENGTH,
    ):
        if length < MIN_BUFFER_LENGTH:
            raise ValueError(
                f"PKCE buffer must be at least {MIN_BUFFER_LENGTH} bytes, got {length}"
            )
        self._random_bytes = random_bytes
        self._length = length

    def create(self) -> Pkce:
        """Generate a new PKCE pair.

        Raises:
            PKCEError: If the random source fails or returns a short buffer
        """
        try:
            buffer = self._random_bytes(self._length)
        except Exception as e:
            raise PKCEError(f"Random source failed: {e}") from e

        if len(buffer) < self._length:
            raise PKCEError(
                f"Random source returned {len(buffer)} bytes, "
                f"expected {self._length}"
            )

        verifier = base64url_encode(buffer)
        try:
            return Pkce(verifier=verifier, challenge=self.derive_challenge(verifier))
        except ValueError as e:
            raise PKCEError(f"Failed to generate PKCE parameters: {e}") from e

    @staticmethod
    def derive_challenge(verifier: str) -> str:
        """Derive the S256 code challenge for a verifier.

        Args:
            verifier: The code verifier to hash

        Returns:
            Base64url-encoded SHA256 hash of the code verifier
        """
        digest = hashlib.sha256(verifier.encode("ascii")).digest()
        return base64url_encode(digest)
