"""Exception hierarchy for the OAuth 2.0 PKCE client.

Every failure surfaced by ``AuthFlowController.secure()`` is one of these
types, so callers can render their own UI for each failure mode.
"""

from __future__ import annotations


class OAuth2Error(Exception):
    """Base exception for all OAuth related errors."""

    pass


class OAuthProviderError(OAuth2Error):
    """Raised when the authorization server reports ``error``.

    Used for both the redirect-return leg and the token endpoint response.
    """

    def __init__(
        self,
        category: str,
        description: str | None = None,
        error_uri: str | None = None,
    ):
        self.category = category
        self.description = description or ""
        self.error_uri = error_uri
        super().__init__(f"[{self.category}] {self.description}")


class MissingFlowStateError(OAuth2Error):
    """Raised when a callback carries a code but no flow state is persisted.

    Happens when the callback URL is reloaded after the flow completed, or
    opened in a different browsing session.
    """

    pass


class TransportError(OAuth2Error):
    """Raised when the token endpoint cannot be reached or answers garbage.

    The original exception is kept as ``cause`` and as ``__cause__``.
    """

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(str(cause))


class MalformedResponseError(OAuth2Error):
    """Raised when a token response cannot be interpreted."""

    pass


class PKCEError(OAuth2Error):
    """Raised when PKCE parameter generation fails."""

    pass


class CorruptedStorageError(OAuth2Error):
    """Raised when a persisted record cannot be parsed."""

    pass


class AuthorizationCallbackError(OAuth2Error):
    """Raised when authorization server callback data is malformed or invalid.

    This indicates the authorization server sent an invalid callback URL,
    not that our callback handling code failed.
    """

    pass


class StateValidationError(AuthorizationCallbackError):
    """Raised when OAuth state parameter validation fails.

    This indicates either a missing state parameter or a state mismatch,
    which could indicate a CSRF attack or authorization server issue.
    """

    pass
