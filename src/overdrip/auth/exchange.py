"""Authorization-code-for-token exchange against the Google token endpoint."""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from overdrip.auth.callback import build_redirect_uri
from overdrip.exceptions import ExchangeProtocolError, ExchangeTransportError
from overdrip.models import ClientCredentials, TokenSet

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"

_SECRET_FIELDS = ("access_token", "refresh_token", "id_token")


class TokenExchanger:
    """Trade an authorization code and its PKCE verifier for a :class:`TokenSet`.

    A single POST is made per call; failures are not retried.

    Args:
        client: The OAuth client identity.
        token_url: Token endpoint URL.
        redirect_uri: Must equal the ``redirect_uri`` sent in the
            authorization request.
        timeout: Request timeout in seconds.
    """

    def __init__(
        self,
        client: ClientCredentials,
        token_url: str = GOOGLE_TOKEN_URL,
        redirect_uri: str | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.client = client
        self.token_url = token_url
        self.redirect_uri = redirect_uri or build_redirect_uri()
        self.timeout = timeout

    def exchange(self, code: str, verifier: str) -> TokenSet:
        """Exchange *code* for tokens, proving possession with *verifier*.

        Args:
            code: The authorization code delivered to the callback.
            verifier: The PKCE verifier whose challenge was sent in the
                authorization request.

        Returns:
            The validated :class:`~overdrip.models.TokenSet`.

        Raises:
            ExchangeTransportError: The endpoint could not be reached.
            ExchangeProtocolError: The endpoint answered with a non-success
                status, or with a body that is not a valid token response.
        """
        data = {
            "code": code,
            "client_id": self.client.client_id,
            "client_secret": self.client.client_secret,
            "code_verifier": verifier,
            "redirect_uri": self.redirect_uri,
            "grant_type": "authorization_code",
        }
        logger.debug("Requesting tokens from %s", self.token_url)

        try:
            response = httpx.post(
                self.token_url,
                data=data,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ExchangeProtocolError(
                f"Token exchange failed with status {exc.response.status_code}: "
                f"{exc.response.text}",
                status_code=exc.response.status_code,
                body=exc.response.text,
            ) from exc
        except httpx.HTTPError as exc:
            raise ExchangeTransportError(f"Token exchange failed: {exc}") from exc

        try:
            payload = response.json()
            tokens = TokenSet.model_validate(payload)
        except (ValueError, ValidationError) as exc:
            raise ExchangeProtocolError(
                f"Token endpoint returned an unusable response: {exc}",
                status_code=response.status_code,
                body=response.text,
            ) from exc

        logger.debug("Token response: %s", _redact(payload))
        return tokens


def _redact(payload: dict) -> dict:
    return {k: ("***" if k in _SECRET_FIELDS else v) for k, v in payload.items()}
