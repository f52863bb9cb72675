"""Tests for the authorization-code token exchange."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import httpx
import pytest

from overdrip.auth.exchange import GOOGLE_TOKEN_URL, TokenExchanger
from overdrip.exceptions import ExchangeProtocolError, ExchangeTransportError
from overdrip.models import ClientCredentials, TokenSet


def _mock_httpx_post(
    token_response: object = None,
    status_code: int = 200,
    text: str | None = None,
) -> MagicMock:
    """Create a mock for httpx.post that returns a token response."""
    if token_response is None:
        token_response = {"access_token": "a", "refresh_token": "b", "expires_in": 3600}

    mock_response = MagicMock(spec=httpx.Response)
    mock_response.status_code = status_code
    mock_response.json.return_value = token_response
    mock_response.text = text if text is not None else json.dumps(token_response)

    if status_code >= 400:
        mock_response.raise_for_status.side_effect = httpx.HTTPStatusError(
            message=f"HTTP {status_code}",
            request=MagicMock(),
            response=mock_response,
        )
    else:
        mock_response.raise_for_status.return_value = None

    return mock_response


class TestTokenExchanger:
    def test_successful_exchange(self, client: ClientCredentials) -> None:
        mock_resp = _mock_httpx_post()

        with patch("overdrip.auth.exchange.httpx.post", return_value=mock_resp) as mock_post:
            tokens = TokenExchanger(client).exchange("the-code", "the-verifier")

        assert tokens == TokenSet(access_token="a", refresh_token="b", expires_in=3600)

        mock_post.assert_called_once()
        call = mock_post.call_args
        assert call.args[0] == GOOGLE_TOKEN_URL
        assert call.kwargs["data"] == {
            "code": "the-code",
            "client_id": "test-client-id",
            "client_secret": "test-client-secret",
            "code_verifier": "the-verifier",
            "redirect_uri": "http://localhost:8080/callback",
            "grant_type": "authorization_code",
        }
        assert call.kwargs["headers"]["Accept"] == "application/json"

    def test_extra_response_fields_are_ignored(self, client: ClientCredentials) -> None:
        mock_resp = _mock_httpx_post(
            {
                "access_token": "a",
                "refresh_token": "b",
                "expires_in": 3599,
                "id_token": "jwt",
                "scope": "openid email profile",
                "token_type": "Bearer",
            }
        )
        with patch("overdrip.auth.exchange.httpx.post", return_value=mock_resp):
            tokens = TokenExchanger(client).exchange("code", "verifier")

        assert tokens.expires_in == 3599
        assert tokens.model_dump() == {"access_token": "a", "refresh_token": "b", "expires_in": 3599}

    def test_custom_redirect_uri(self, client: ClientCredentials) -> None:
        mock_resp = _mock_httpx_post()
        exchanger = TokenExchanger(client, redirect_uri="http://127.0.0.1:9999/callback")

        with patch("overdrip.auth.exchange.httpx.post", return_value=mock_resp) as mock_post:
            exchanger.exchange("code", "verifier")

        assert mock_post.call_args.kwargs["data"]["redirect_uri"] == "http://127.0.0.1:9999/callback"

    def test_http_400_raises_protocol_error(self, client: ClientCredentials) -> None:
        error_body = {"error": "invalid_grant", "error_description": "Bad Request"}
        mock_resp = _mock_httpx_post(error_body, status_code=400)

        with patch("overdrip.auth.exchange.httpx.post", return_value=mock_resp):
            with pytest.raises(ExchangeProtocolError, match="400") as exc_info:
                TokenExchanger(client).exchange("code", "verifier")

        assert exc_info.value.status_code == 400
        assert "invalid_grant" in exc_info.value.body
        assert exc_info.value.phase == "exchange"

    def test_missing_refresh_token_raises_protocol_error(
        self, client: ClientCredentials
    ) -> None:
        mock_resp = _mock_httpx_post({"access_token": "a", "expires_in": 3600})

        with patch("overdrip.auth.exchange.httpx.post", return_value=mock_resp):
            with pytest.raises(ExchangeProtocolError, match="refresh_token") as exc_info:
                TokenExchanger(client).exchange("code", "verifier")

        assert exc_info.value.status_code == 200

    def test_non_json_body_raises_protocol_error(self, client: ClientCredentials) -> None:
        mock_resp = _mock_httpx_post(text="<html>oops</html>")
        mock_resp.json.side_effect = json.JSONDecodeError("Expecting value", "<html>", 0)

        with patch("overdrip.auth.exchange.httpx.post", return_value=mock_resp):
            with pytest.raises(ExchangeProtocolError) as exc_info:
                TokenExchanger(client).exchange("code", "verifier")

        assert exc_info.value.body == "<html>oops</html>"

    def test_transport_error(self, client: ClientCredentials) -> None:
        with patch(
            "overdrip.auth.exchange.httpx.post",
            side_effect=httpx.ConnectError("connection refused"),
        ):
            with pytest.raises(ExchangeTransportError, match="connection refused") as exc_info:
                TokenExchanger(client).exchange("code", "verifier")

        assert exc_info.value.exit_code == 6

    def test_single_attempt_only(self, client: ClientCredentials) -> None:
        with patch(
            "overdrip.auth.exchange.httpx.post",
            side_effect=httpx.ReadTimeout("timed out"),
        ) as mock_post:
            with pytest.raises(ExchangeTransportError):
                TokenExchanger(client).exchange("code", "verifier")

        assert mock_post.call_count == 1

    def test_negative_lifetime_raises_protocol_error(self, client: ClientCredentials) -> None:
        mock_resp = _mock_httpx_post({"access_token": "a", "refresh_token": "b", "expires_in": -5})

        with patch("overdrip.auth.exchange.httpx.post", return_value=mock_resp):
            with pytest.raises(ExchangeProtocolError, match="expires_in"):
                TokenExchanger(client).exchange("code", "verifier")
