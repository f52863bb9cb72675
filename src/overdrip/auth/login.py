"""Interactive OAuth2 Authorization Code + PKCE login.

:class:`LoginFlow` runs the whole sequence against Google:

1. Generate a PKCE pair (:func:`~overdrip.auth.pkce.generate_pkce`).
2. Start the loopback :class:`~overdrip.auth.callback.CallbackListener`.
   Binding happens here, so a busy port is reported before any URL is shown.
3. Build the authorization URL and hand it to the *presenter* (print it,
   open a browser, ...).
4. Wait for the authorization code.
5. Exchange the code together with the verifier from step 1.
6. Save the tokens through the :class:`~overdrip.auth.token_store.TokenStore`.

Every step stops the flow on its first error. Calling :meth:`LoginFlow.login`
again starts over with a new PKCE pair, URL and listener.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional
from urllib.parse import quote, urlencode

from overdrip.auth.callback import CALLBACK_HOST, CALLBACK_PORT, CallbackListener
from overdrip.auth.exchange import TokenExchanger
from overdrip.auth.pkce import CHALLENGE_METHOD, generate_pkce
from overdrip.auth.token_store import TokenStore
from overdrip.exceptions import TokenPersistenceError
from overdrip.models import ClientCredentials, TokenSet

logger = logging.getLogger(__name__)

GOOGLE_AUTHORIZATION_URL = "https://accounts.google.com/o/oauth2/v2/auth"
SCOPES = ("openid", "email", "profile")

Presenter = Callable[[str], None]


def build_authorization_url(
    client_id: str,
    code_challenge: str,
    redirect_uri: str,
    authorization_url: str = GOOGLE_AUTHORIZATION_URL,
) -> str:
    """Build the URL the user opens to grant access.

    Spaces in the scope list are encoded as ``%20`` and the redirect URI is
    left readable, e.g.::

        https://accounts.google.com/o/oauth2/v2/auth?client_id=ID
            &redirect_uri=http://localhost:8080/callback&response_type=code
            &scope=openid%20email%20profile&code_challenge=C
            &code_challenge_method=S256
    """
    params = {
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "response_type": "code",
        "scope": " ".join(SCOPES),
        "code_challenge": code_challenge,
        "code_challenge_method": CHALLENGE_METHOD,
    }
    return f"{authorization_url}?{urlencode(params, safe=':/', quote_via=quote)}"


def _print_url(url: str) -> None:
    print(f"Login at: {url}", flush=True)


class LoginFlow:
    """Sequence PKCE, callback, exchange and storage into one login.

    Args:
        client: The OAuth client identity.
        store: Where the resulting tokens are saved.
        exchanger: Token exchanger to use. Defaults to a
            :class:`~overdrip.auth.exchange.TokenExchanger` for *client*
            using the listener's redirect URI.
        host: Callback listener interface.
        port: Callback listener port.
        timeout: Seconds to wait for the callback; ``None`` waits forever.
        presenter: Called with the authorization URL once the listener is
            ready. Defaults to printing it to stdout.
    """

    def __init__(
        self,
        client: ClientCredentials,
        store: TokenStore,
        exchanger: Optional[TokenExchanger] = None,
        host: str = CALLBACK_HOST,
        port: int = CALLBACK_PORT,
        timeout: Optional[float] = None,
        presenter: Optional[Presenter] = None,
    ) -> None:
        self.client = client
        self.store = store
        self.exchanger = exchanger
        self.host = host
        self.port = port
        self.timeout = timeout
        self.presenter = presenter or _print_url

    def login(self) -> TokenSet:
        """Run one complete login attempt.

        Returns:
            The tokens that were saved.

        Raises:
            LoginError: The first failure, from whichever phase it occurred in.
        """
        pkce = generate_pkce()

        listener = CallbackListener(self.host, self.port, timeout=self.timeout)
        listener.start()
        try:
            url = build_authorization_url(
                self.client.client_id, pkce.challenge, listener.redirect_uri
            )
            self.presenter(url)
            code = listener.await_authorization_code()
        finally:
            listener.stop()
        logger.debug("Authorization code received")

        exchanger = self.exchanger or TokenExchanger(
            self.client, redirect_uri=listener.redirect_uri
        )
        tokens = exchanger.exchange(code, pkce.verifier)

        try:
            self.store.save(tokens)
        except TokenPersistenceError as exc:
            raise TokenPersistenceError(
                f"Authentication succeeded, but the tokens could not be saved: {exc}"
            ) from exc
        return tokens
