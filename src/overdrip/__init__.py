"""overdrip -- command-line client for the Overdrip service.

The interesting part of the package is :mod:`overdrip.auth`, which signs the
user in with Google using the OAuth2 Authorization Code flow with PKCE and a
temporary loopback listener, and stores the resulting tokens on disk.

Modules:
    app: Typer application and CLI entry point.
    auth: PKCE, callback listener, token exchange, token storage, login flow.
    models: Pydantic models for configuration and credentials.
    config: XDG-aware configuration and credential source resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting with Rich support.
"""

__version__ = "0.1.0"
