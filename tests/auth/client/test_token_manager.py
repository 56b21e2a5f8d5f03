"""Tests for the authorization code exchange.

High-impact tests covering the token endpoint interaction:
- Form encoding and request contents
- Success and OAuth error responses
- Transport failures and malformed bodies
"""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from authlogic.client.models.errors import MalformedResponseError, TransportError
from authlogic.client.models.tokens import Authentication, TokenRequest
from authlogic.client.services.tokens import OAuth2TokenManager


class TestTokenExchange:
    """Test authorization code to token exchange."""

    def setup_method(self):
        # Arrange
        self.token_manager = OAuth2TokenManager(http_client=AsyncMock())
        self.token_request = TokenRequest(
            token_endpoint="https://auth.example.com/oauth/token",
            code="auth-code-123",
            code_verifier="dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk",
        )

    def _respond(self, status_code: int, body: dict) -> None:
        mock_response = MagicMock()
        mock_response.status_code = status_code
        mock_response.json.return_value = body
        self.token_manager._http_client.post.return_value = mock_response

    async def test_successful_exchange_with_all_fields(self):
        """Test successful token exchange with complete response."""
        # Arrange
        self._respond(
            200,
            {
                "access_token": "access-token-xyz",
                "token_type": "Bearer",
                "expires_in": 3600,
                "id_token": "id-token-abc",
                "refresh_token": "refresh-token-abc",
            },
        )

        # Act
        token_response = await self.token_manager.exchange_code_for_token(
            self.token_request
        )

        # Assert
        assert token_response.is_success()
        assert token_response.to_authentication() == Authentication(
            access_token="access-token-xyz",
            expires_in=3600,
            id_token="id-token-abc",
            refresh_token="refresh-token-abc",
        )

    async def test_request_is_form_encoded_without_client_secret(self):
        """Test the POST carries exactly the PKCE grant parameters."""
        # Arrange
        self._respond(200, {"access_token": "token-xyz"})

        # Act
        await self.token_manager.exchange_code_for_token(self.token_request)

        # Assert
        self.token_manager._http_client.post.assert_awaited_once()
        call_args = self.token_manager._http_client.post.call_args

        assert call_args[0][0] == "https://auth.example.com/oauth/token"
        assert call_args[1]["data"] == {
            "grant_type": "authorization_code",
            "code": "auth-code-123",
            "code_verifier": "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk",
        }
        headers = call_args[1]["headers"]
        assert headers["Content-Type"] == "application/x-www-form-urlencoded"
        assert headers["Accept"] == "application/json"
        assert "json" not in call_args[1]

    async def test_invalid_grant_error_is_returned(self):
        """Test OAuth error bodies come back as error responses."""
        # Arrange
        self._respond(
            400,
            {"error": "invalid_grant", "error_description": "Code has expired"},
        )

        # Act
        token_response = await self.token_manager.exchange_code_for_token(
            self.token_request
        )

        # Assert
        assert token_response.is_error()
        assert token_response.error == "invalid_grant"
        assert token_response.error_description == "Code has expired"
        assert token_response.access_token is None

    async def test_error_body_with_200_status_is_returned(self):
        # Arrange
        self._respond(200, {"error": "invalid_request"})

        # Act
        token_response = await self.token_manager.exchange_code_for_token(
            self.token_request
        )

        # Assert
        assert token_response.is_error()


class TestTokenExchangeFailures:
    """Test failures that must not produce an Authentication."""

    def setup_method(self):
        # Arrange
        self.token_manager = OAuth2TokenManager(http_client=AsyncMock())
        self.token_request = TokenRequest(
            token_endpoint="https://auth.example.com/oauth/token",
            code="auth-code-123",
            code_verifier="dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk",
        )

    async def test_network_error_is_chained(self):
        # Arrange
        error = httpx.ConnectError("Host cannot be reached")
        self.token_manager._http_client.post.side_effect = error

        # Act & Assert
        with pytest.raises(TransportError) as exc_info:
            await self.token_manager.exchange_code_for_token(self.token_request)

        assert exc_info.value.cause is error
        assert exc_info.value.__cause__ is error
        assert str(exc_info.value) == "Host cannot be reached"

    async def test_non_json_error_status_is_transport_error(self):
        # Arrange
        mock_response = MagicMock()
        mock_response.status_code = 502
        mock_response.json.side_effect = ValueError("Expecting value")
        self.token_manager._http_client.post.return_value = mock_response

        # Act & Assert
        with pytest.raises(TransportError) as exc_info:
            await self.token_manager.exchange_code_for_token(self.token_request)

        assert isinstance(exc_info.value.cause, httpx.HTTPStatusError)
        assert "502" in str(exc_info.value)

    async def test_non_json_success_is_malformed(self):
        # Arrange
        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_response.json.side_effect = ValueError("Expecting value")
        self.token_manager._http_client.post.return_value = mock_response

        # Act & Assert
        with pytest.raises(MalformedResponseError, match="not valid JSON"):
            await self.token_manager.exchange_code_for_token(self.token_request)

    async def test_missing_access_token_is_malformed(self):
        # Arrange
        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_response.json.return_value = {"token_type": "Bearer"}
        self.token_manager._http_client.post.return_value = mock_response

        # Act & Assert
        with pytest.raises(MalformedResponseError) as exc_info:
            await self.token_manager.exchange_code_for_token(self.token_request)

        assert "missing required access_token" in str(exc_info.value)

    async def test_non_object_body_is_malformed(self):
        # Arrange
        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_response.json.return_value = ["access_token"]
        self.token_manager._http_client.post.return_value = mock_response

        # Act & Assert
        with pytest.raises(MalformedResponseError, match="JSON object"):
            await self.token_manager.exchange_code_for_token(self.token_request)

    async def test_wrongly_typed_field_is_malformed(self):
        # Arrange
        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_response.json.return_value = {
            "access_token": "token-xyz",
            "expires_in": "soon",
        }
        self.token_manager._http_client.post.return_value = mock_response

        # Act & Assert
        with pytest.raises(MalformedResponseError):
            await self.token_manager.exchange_code_for_token(self.token_request)

    async def test_json_error_status_without_oauth_error_is_transport_error(self):
        # Arrange
        mock_response = MagicMock()
        mock_response.status_code = 500
        mock_response.json.return_value = {"message": "internal"}
        self.token_manager._http_client.post.return_value = mock_response

        # Act & Assert
        with pytest.raises(TransportError):
            await self.token_manager.exchange_code_for_token(self.token_request)


class TestClose:
    async def test_close_closes_http_client(self):
        # Arrange
        token_manager = OAuth2TokenManager(http_client=AsyncMock())

        # Act
        await token_manager.close()

        # Assert
        token_manager._http_client.aclose.assert_awaited_once()

    async def test_builds_own_client_when_none_given(self):
        # Arrange
        token_manager = OAuth2TokenManager(timeout=5.0)

        # Act
        await token_manager.close()

        # Assert
        assert isinstance(token_manager._http_client, httpx.AsyncClient)
        assert token_manager._http_client.timeout == httpx.Timeout(5.0)
        assert token_manager._http_client.is_closed
