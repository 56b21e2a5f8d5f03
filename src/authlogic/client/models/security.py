"""Security-related models for the PKCE flow.

Contains the PKCE verifier/challenge pair bound to each authorization attempt.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Pkce:
    """PKCE (Proof Key for Code Exchange) pair for one authorization attempt.

    Immutable. The challenge is sent with the authorization request; the
    verifier is only revealed to the token endpoint during code exchange
    (RFC 7636).
    """

    verifier: str = field()
    challenge: str = field()

    def __post_init__(self) -> None:
        """Validate PKCE parameters meet RFC 7636 requirements."""
        if not (43 <= len(self.verifier) <= 128):
            raise ValueError("verifier must be 43-128 characters")
        if not (43 <= len(self.challenge) <= 128):
            raise ValueError("challenge must be 43-128 characters")
