"""Authorization Code + PKCE state machine for redirect-based hosts.

The host page calls ``AuthFlowController.secure()`` once per page load. All
in-memory state is lost when the user agent is sent to the authorization
server, so each call rebuilds its position in the flow from the persisted
store and the current query string:

1. Authenticated: a stored authentication exists, load it and stop.
2. Returned with error: the provider redirected back with ``error``.
3. Returned with code: exchange the code using the stored PKCE verifier.
4. Pending redirect / awaiting provider return: start a new attempt and
   redirect to the authorization endpoint.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from authlogic.client.models.errors import (
    MissingFlowStateError,
    OAuthProviderError,
)
from authlogic.client.models.flow import AuthorizationResponse, FlowParams, FlowStage
from authlogic.client.models.tokens import Authentication, TokenRequest
from authlogic.client.primitives.navigation import Navigator, query_from_url
from authlogic.client.primitives.pkce import PkceGenerator
from authlogic.client.primitives.storage import KeyValueStore
from authlogic.client.services.flow import OAuth2FlowManager
from authlogic.client.services.security import generate_random_string
from authlogic.client.services.storage import FlowStorage
from authlogic.client.services.tokens import OAuth2TokenManager

logger = logging.getLogger(__name__)


class AuthFlowController:
    """Drives one page's part of the Authorization Code + PKCE flow.

    Not reentrant: callers must await ``secure()`` before calling it again.

    Args:
        params: Authorization server and client configuration
        store: Session storage that survives navigation
        navigator: Redirect and address-rewrite primitives
        pkce_generator: Source of PKCE pairs
        random_string: Source of alphanumeric state/nonce strings
        query_reader: Returns the current query string. Defaults to the
            query of ``navigator.current_url()``.
        token_manager: Token endpoint client
    """

    def __init__(
        self,
        params: FlowParams,
        store: KeyValueStore,
        navigator: Navigator,
        *,
        pkce_generator: PkceGenerator | None = None,
        random_string: Callable[[int], str] = generate_random_string,
        query_reader: Callable[[], str] | None = None,
        token_manager: OAuth2TokenManager | None = None,
    ):
        self.params = params
        self._navigator = navigator
        self._storage = FlowStorage(store)
        self._flow_manager = OAuth2FlowManager(params, pkce_generator, random_string)
        self._query_reader = query_reader or (
            lambda: query_from_url(navigator.current_url())
        )
        self._token_manager = token_manager or OAuth2TokenManager()
        self._authentication: Authentication | None = None

    @property
    def authentication(self) -> Authentication | None:
        """The authentication loaded or obtained by the last ``secure()``."""
        return self._authentication

    async def secure(self) -> None:
        """Make sure this page is authenticated, redirecting if it is not.

        Returns normally when authenticated, or after issuing the redirect
        to the authorization server (the host is expected to leave the page).

        Raises:
            OAuthProviderError: If the provider reported an error, on the
                callback URL or from the token endpoint
            MissingFlowStateError: If a code came back without a stored flow
            StateValidationError: If the returned state doesn't match
            TransportError: If the token endpoint could not be reached
            MalformedResponseError: If the token response is unusable
        """
        # In-memory copy mirrors storage
        self._authentication = None

        stored = await self._storage.load_authentication()
        if stored is not None:
            logger.debug(f"Stage {FlowStage.AUTHENTICATED.value}: using stored tokens")
            self._authentication = stored
            return

        response = self._flow_manager.parse_callback_query(self._query_reader())
        stage = await self._derive_stage(response)
        logger.debug(f"Stage {stage.value}")

        if stage is FlowStage.RETURNED_WITH_ERROR:
            logger.warning(
                f"Authorization server returned {response.error}: "
                f"{response.error_description}"
            )
            raise OAuthProviderError(
                response.error, response.error_description, response.error_uri
            )
        if stage is FlowStage.RETURNED_WITH_CODE:
            await self._exchange_code(response)
            return

        await self._redirect(abandoned=stage is FlowStage.AWAITING_PROVIDER_RETURN)

    async def sign_out(self) -> None:
        """Forget the stored authentication.

        The next ``secure()`` starts a new flow.
        """
        await self._storage.clear_authentication()
        self._authentication = None
        logger.info("Cleared stored authentication")

    async def close(self) -> None:
        """Close the token endpoint client."""
        await self._token_manager.close()

    async def _derive_stage(self, response: AuthorizationResponse) -> FlowStage:
        if response.is_error():
            return FlowStage.RETURNED_WITH_ERROR
        if response.code is not None:
            return FlowStage.RETURNED_WITH_CODE
        if await self._storage.has_flow_state():
            return FlowStage.AWAITING_PROVIDER_RETURN
        return FlowStage.PENDING_REDIRECT

    async def _exchange_code(self, response: AuthorizationResponse) -> None:
        flow_state = await self._storage.load_flow_state()
        if flow_state is None:
            raise MissingFlowStateError(
                "Authorization code received but no flow state is stored"
            )

        self._flow_manager.validate_callback_state(flow_state, response)

        token_response = await self._token_manager.exchange_code_for_token(
            TokenRequest(
                token_endpoint=self.params.token_endpoint,
                code=response.code,
                code_verifier=flow_state.pkce.verifier,
            )
        )

        if token_response.is_error():
            raise OAuthProviderError(
                token_response.error,
                token_response.error_description,
                token_response.error_uri,
            )

        authentication = token_response.to_authentication()
        await self._storage.save_authentication(authentication)
        await self._storage.clear_flow_state()
        self._authentication = authentication

        self._navigator.replace_url(flow_state.this_uri)
        logger.info(f"Authenticated with {self.params.issuer}")

    async def _redirect(self, abandoned: bool) -> None:
        if abandoned:
            logger.warning("Replacing abandoned authorization attempt")

        flow_state = self._flow_manager.create_flow_state(self._navigator.current_url())
        await self._storage.save_flow_state(flow_state)

        logger.info(
            f"Redirecting to {self.params.authorization_endpoint} "
            f"for client {self.params.client_id}"
        )
        self._navigator.navigate(self._flow_manager.build_authorization_url(flow_state))
