"""Canonical Pydantic models shared across all overdrip modules.

The models fall into two groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`MonitorConfig`, :class:`ServerConfig`, :class:`AuthSettings`
    and the top-level :class:`OverdripConfig`.

**Credential models** -- produced and consumed by the login flow:
    :class:`ClientCredentials` (the OAuth client identity) and
    :class:`TokenSet` (what the token endpoint hands back).

All models use Pydantic v2. Credential models are frozen so that a value
created at the start of a login attempt cannot be altered later on.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Configuration ---


class MonitorConfig(BaseModel):
    """Settings for the monitoring loop started by ``overdrip run``."""

    interval: int = Field(default=60, ge=1, description="Seconds between checks")
    threshold: float = Field(default=0.8, ge=0.0, le=1.0, description="Trigger level")


class ServerConfig(BaseModel):
    """Settings for the device-side server.

    Not used by ``overdrip login``: the callback listener always binds
    ``localhost:8080``, the redirect URI registered with Google.
    """

    port: int = Field(
        default=8080,
        ge=1,
        le=65535,
        description="Device-side server port; does not move the login callback listener",
    )


class AuthSettings(BaseModel):
    """Login-related settings.

    The OAuth client identity is not stored in the file itself; instead the
    ``*_source`` fields describe where to read it from, using the same
    descriptors as :func:`~overdrip.config.resolve_credential`
    (``env:VAR``, ``file:/path``, ``prompt``).

    Example::

        AuthSettings(
            client_id_source="env:OVERDRIP_OAUTH_CLIENT_ID",
            client_secret_source="file:~/.secrets/overdrip",
            login_timeout=300,
        )
    """

    client_id_source: str = Field(
        default="env:OVERDRIP_OAUTH_CLIENT_ID",
        description="Where to read the OAuth client id from",
    )
    client_secret_source: str = Field(
        default="env:OVERDRIP_OAUTH_CLIENT_SECRET",
        description="Where to read the OAuth client secret from",
    )
    login_timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Seconds to wait for the browser callback (None = forever)",
    )
    token_file: Optional[str] = Field(
        default=None,
        description="Override for the token file path",
    )
    open_browser: bool = Field(
        default=True,
        description="Open the authorization URL in the default browser",
    )


class OverdripConfig(BaseModel):
    """Top-level configuration file contents."""

    monitor: MonitorConfig = Field(default_factory=MonitorConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    auth: AuthSettings = Field(default_factory=AuthSettings)


# --- Credentials ---


class ClientCredentials(BaseModel):
    """The OAuth client identity registered with the provider.

    Resolved once at startup and passed to the
    :class:`~overdrip.auth.exchange.TokenExchanger`.
    """

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(min_length=1)
    client_secret: str = Field(min_length=1, repr=False)


class TokenSet(BaseModel):
    """Tokens returned by a successful authorization-code exchange.

    Extra fields sent by the provider (``id_token``, ``scope``,
    ``token_type``) are ignored; only the three fields below are persisted.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    access_token: str = Field(min_length=1, repr=False)
    refresh_token: str = Field(min_length=1, repr=False)
    expires_in: int = Field(ge=0, description="Access token lifetime in seconds")
