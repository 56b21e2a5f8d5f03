"""Token endpoint client.

Implements the RFC 6749 authorization code exchange with the PKCE
``code_verifier`` (RFC 7636) for a public client.
"""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from authlogic.client.models.errors import MalformedResponseError, TransportError
from authlogic.client.models.tokens import TokenRequest, TokenResponse

logger = logging.getLogger(__name__)


class OAuth2TokenManager:
    """Exchanges authorization codes at the token endpoint.

    Uses application/x-www-form-urlencoded encoding as required by RFC 6749
    and never retries: every failure is terminal for the current attempt.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize token manager.

        Args:
            timeout: HTTP request timeout in seconds
            http_client: Client to post with. Built from ``timeout`` when
                omitted. Closed by ``close()`` either way.
        """
        self.timeout = timeout
        if http_client is None:
            http_client = httpx.AsyncClient(timeout=timeout)
        self._http_client = http_client

    async def exchange_code_for_token(
        self, token_request: TokenRequest
    ) -> TokenResponse:
        """Exchange authorization code for tokens.

        Args:
            token_request: Token exchange request parameters

        Returns:
            TokenResponse: Token response (success or error)

        Raises:
            TransportError: If the endpoint cannot be reached, or answers
                with a non-2xx status and no JSON body
            MalformedResponseError: If a 2xx body is not a usable token
                response
        """
        logger.debug(f"Exchanging authorization code at {token_request.token_endpoint}")

        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }

        try:
            response = await self._http_client.post(
                token_request.token_endpoint,
                data=token_request.to_form_data(),
                headers=headers,
            )
        except httpx.HTTPError as e:
            logger.warning(f"Token endpoint unreachable: {e}")
            raise TransportError(e) from e

        return self._parse_token_response(response)

    def _parse_token_response(self, response: httpx.Response) -> TokenResponse:
        """Parse token endpoint response into TokenResponse.

        Error bodies (RFC 6749 Section 5.2) are returned, not raised; the
        caller decides how to surface them.
        """
        status = response.status_code
        successful = 200 <= status < 300

        try:
            response_data = response.json()
        except ValueError as e:
            if successful:
                raise MalformedResponseError(
                    f"Token response is not valid JSON: {e}"
                ) from e
            raise TransportError(
                httpx.HTTPStatusError(
                    f"Token endpoint returned {status} without a JSON body",
                    request=response.request,
                    response=response,
                )
            ) from e

        if not isinstance(response_data, dict):
            raise MalformedResponseError(
                f"Token response must be a JSON object, got {type(response_data).__name__}"
            )

        try:
            token_response = TokenResponse(**response_data)
        except ValidationError as e:
            raise MalformedResponseError(f"Invalid token response format: {e}") from e

        if token_response.is_error():
            logger.warning(
                f"Token exchange failed with {status}: "
                f"{token_response.error} - {token_response.error_description}"
            )
            return token_response

        if not successful:
            raise TransportError(
                httpx.HTTPStatusError(
                    f"Token endpoint returned {status} without an OAuth error",
                    request=response.request,
                    response=response,
                )
            )

        if not token_response.is_success():
            raise MalformedResponseError("Token response missing required access_token")

        logger.info("Token exchange successful")
        return token_response

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._http_client.aclose()
