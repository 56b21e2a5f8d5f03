"""Token exchange and authentication models.

Contains the token endpoint request/response and the persisted
``Authentication`` produced by a successful exchange.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field


class Authentication(BaseModel):
    """A completed login.

    Serialised with camelCase keys:
    ``{accessToken, expiresIn, idToken, refreshToken}``. Replaced wholesale,
    never mutated.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    access_token: str = Field(alias="accessToken")
    expires_in: int | None = Field(default=None, alias="expiresIn")  # Seconds
    id_token: str | None = Field(default=None, alias="idToken")
    refresh_token: str | None = Field(default=None, alias="refreshToken")


@dataclass(frozen=True)
class TokenRequest:
    """Authorization code exchange request (RFC 6749 Section 4.1.3).

    Public client: no client secret, the PKCE verifier proves possession.
    """

    token_endpoint: str
    code: str
    code_verifier: str  # RFC 7636 PKCE
    grant_type: str = "authorization_code"

    def to_form_data(self) -> dict[str, str]:
        """Convert to form data for application/x-www-form-urlencoded request.

        Returns:
            Dictionary suitable for httpx data parameter
        """
        return {
            "grant_type": self.grant_type,
            "code": self.code,
            "code_verifier": self.code_verifier,
        }


class TokenResponse(BaseModel):
    """Token endpoint response (RFC 6749 Section 5).

    Covers both successful responses (Section 5.1) and error responses
    (Section 5.2).
    """

    # Success response fields (RFC 6749 Section 5.1)
    access_token: str | None = None
    token_type: str = "Bearer"
    expires_in: int | None = None
    id_token: str | None = None  # OpenID Connect
    refresh_token: str | None = None
    scope: str | None = None

    # Error response fields (RFC 6749 Section 5.2)
    error: str | None = None
    error_description: str | None = None
    error_uri: str | None = None

    def is_success(self) -> bool:
        """Check if token response indicates success."""
        return self.error is None and self.access_token is not None

    def is_error(self) -> bool:
        """Check if token response indicates an error."""
        return self.error is not None

    def to_authentication(self) -> Authentication:
        """Convert a successful token response to an Authentication.

        Raises:
            ValueError: If response is not successful
        """
        if not self.is_success():
            raise ValueError("Cannot convert error response to Authentication")

        return Authentication(
            access_token=self.access_token,
            expires_in=self.expires_in,
            id_token=self.id_token,
            refresh_token=self.refresh_token,
        )
