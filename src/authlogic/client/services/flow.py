"""Authorization flow service.

Creates the per-attempt flow state, builds the authorization URL the user
agent is sent to, and parses the query string the provider redirects back
with.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from urllib.parse import parse_qs

from authlogic.client.models.errors import StateValidationError
from authlogic.client.models.flow import (
    AuthorizationRequest,
    AuthorizationResponse,
    FlowParams,
    FlowState,
)
from authlogic.client.primitives.pkce import PkceGenerator
from authlogic.client.services.security import (
    generate_random_string,
    is_secure_endpoint,
    validate_state,
)

logger = logging.getLogger(__name__)


class OAuth2FlowManager:
    """Builds and interprets the two legs of the redirect round-trip.

    Handles:
    - PKCE pair, state and nonce generation for a new attempt
    - Authorization URL construction (S256 challenge method)
    - Callback query parsing
    - State comparison against the persisted attempt (CSRF protection)

    Args:
        params: Authorization server and client configuration
        pkce_generator: Source of PKCE pairs
        random_string: Source of alphanumeric strings for state and nonce
    """

    def __init__(
        self,
        params: FlowParams,
        pkce_generator: PkceGenerator | None = None,
        random_string: Callable[[int], str] = generate_random_string,
    ):
        self.params = params
        self._pkce_generator = pkce_generator or PkceGenerator()
        self._random_string = random_string

    def create_flow_state(self, this_uri: str) -> FlowState:
        """Generate a fresh flow state for an attempt started on ``this_uri``.

        Raises:
            PKCEError: If the PKCE pair cannot be generated
        """
        if not is_secure_endpoint(this_uri):
            logger.warning(
                f"Redirect URI {this_uri} is neither HTTPS nor localhost; "
                "authorization servers will usually reject it"
            )

        return FlowState(
            this_uri=this_uri,
            nonce=self._random_string(self.params.nonce_length),
            state=self._random_string(self.params.state_length),
            pkce=self._pkce_generator.create(),
        )

    def build_authorization_url(self, flow_state: FlowState) -> str:
        """Build the URL the user agent is redirected to."""
        request = AuthorizationRequest(
            authorization_endpoint=self.params.authorization_endpoint,
            client_id=self.params.client_id,
            redirect_uri=flow_state.this_uri,
            state=flow_state.state,
            nonce=flow_state.nonce,
            scope=self.params.scope,
            code_challenge=flow_state.pkce.challenge,
        )
        return request.build_authorization_url()

    def parse_callback_query(self, query: str) -> AuthorizationResponse:
        """Parse the query string of the current page.

        Empty values count as absent; for repeated keys the first value wins.

        Args:
            query: Query string, with or without the leading ``?``

        Returns:
            AuthorizationResponse: Parsed callback parameters
        """
        query_params = parse_qs(query.lstrip("?"))

        def get_single_param(key: str) -> str | None:
            values = query_params.get(key, [])
            return values[0] if values else None

        return AuthorizationResponse(
            code=get_single_param("code"),
            state=get_single_param("state"),
            error=get_single_param("error"),
            error_description=get_single_param("error_description"),
            error_uri=get_single_param("error_uri"),
        )

    def validate_callback_state(
        self, flow_state: FlowState, response: AuthorizationResponse
    ) -> None:
        """Compare the returned ``state`` with the persisted attempt.

        A callback without ``state`` passes unless ``require_state`` is set.

        Raises:
            StateValidationError: If state is missing (when required) or
                doesn't match
        """
        if response.state is None:
            if self.params.require_state:
                raise StateValidationError(
                    "Authorization server callback missing required state parameter"
                )
            logger.warning("Authorization callback carried no state parameter")
            return

        validate_state(flow_state.state, response.state)
