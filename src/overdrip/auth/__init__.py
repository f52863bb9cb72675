"""OAuth2 login for overdrip.

The main entry points are:

- :class:`LoginFlow` -- runs the interactive Authorization Code + PKCE login.
- :func:`generate_pkce` / :class:`PkceChallenge` -- PKCE pair generation.
- :class:`CallbackListener` -- the one-shot loopback redirect listener.
- :class:`TokenExchanger` -- trades the authorization code for tokens.
- :class:`TokenStore` -- storage interface, with :class:`FileTokenStore`
  and :class:`MemoryTokenStore` implementations.

Typical usage::

    from overdrip.auth import FileTokenStore, LoginFlow

    flow = LoginFlow(client, FileTokenStore(path))
    flow.login()
"""

from overdrip.auth.callback import CallbackListener
from overdrip.auth.exchange import TokenExchanger
from overdrip.auth.login import LoginFlow, build_authorization_url
from overdrip.auth.pkce import PkceChallenge, generate_pkce
from overdrip.auth.token_store import FileTokenStore, MemoryTokenStore, TokenStore

__all__ = [
    "CallbackListener",
    "FileTokenStore",
    "LoginFlow",
    "MemoryTokenStore",
    "PkceChallenge",
    "TokenExchanger",
    "TokenStore",
    "build_authorization_url",
    "generate_pkce",
]
