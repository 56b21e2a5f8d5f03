"""Authorization flow models.

Contains the caller-supplied flow parameters, the flow state persisted across
the redirect round-trip, and the authorization request/callback models.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from urllib.parse import quote, urlencode, urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

from authlogic.client.models.security import Pkce
from authlogic.client.services.security import is_secure_endpoint


class FlowStage(str, Enum):
    """Where a page load sits in the authorization round-trip.

    Derived from the two storage slots and the current query string; never
    stored itself.
    """

    AUTHENTICATED = "authenticated"
    PENDING_REDIRECT = "pending_redirect"
    AWAITING_PROVIDER_RETURN = "awaiting_provider_return"
    RETURNED_WITH_CODE = "returned_with_code"
    RETURNED_WITH_ERROR = "returned_with_error"


class FlowParams(BaseModel):
    """Authorization server and client configuration for a controller."""

    model_config = ConfigDict(frozen=True)

    issuer: str
    client_id: str = Field(min_length=1)
    scope: str

    # Reject callbacks that return a code without echoing state
    require_state: bool = False

    state_length: int = Field(default=32, ge=8)
    nonce_length: int = Field(default=32, ge=8)

    @field_validator("issuer")
    @classmethod
    def validate_issuer(cls, v: str) -> str:
        """Validate the issuer uses HTTPS or localhost."""
        if not (is_secure_endpoint(v) and urlparse(v).netloc):
            raise ValueError(f"Issuer must use HTTPS or localhost: {v}")
        return v.rstrip("/")

    @property
    def authorization_endpoint(self) -> str:
        return f"{self.issuer}/authorize"

    @property
    def token_endpoint(self) -> str:
        return f"{self.issuer}/oauth/token"


class FlowState(BaseModel):
    """One in-flight authorization attempt, persisted across navigation.

    Serialised with camelCase keys: ``{thisUri, nonce, state, pkce}``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    this_uri: str = Field(alias="thisUri")
    nonce: str
    state: str
    pkce: Pkce


@dataclass(frozen=True)
class AuthorizationRequest:
    """Authorization request parameters for the PKCE flow."""

    authorization_endpoint: str
    client_id: str
    redirect_uri: str
    state: str
    nonce: str
    scope: str
    code_challenge: str
    code_challenge_method: str = "S256"

    def build_authorization_url(self) -> str:
        """Build the complete authorization URL.

        Values are percent-encoded with no safe characters, so ``/``, ``:``
        and spaces in the redirect URI and scope are always escaped.
        """
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "state": self.state,
            "nonce": self.nonce,
            "response_type": "code",
            "scope": self.scope,
            "code_challenge": self.code_challenge,
            "code_challenge_method": self.code_challenge_method,
        }

        return f"{self.authorization_endpoint}?{urlencode(params, quote_via=quote)}"


@dataclass(frozen=True)
class AuthorizationResponse:
    code: str | None = None
    state: str | None = None
    error: str | None = None
    error_description: str | None = None
    error_uri: str | None = None

    def is_success(self) -> bool:
        return self.error is None and self.code is not None

    def is_error(self) -> bool:
        return self.error is not None
