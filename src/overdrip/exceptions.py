"""Exception hierarchy for overdrip.

All exceptions inherit from :class:`OverdripError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`overdrip.exit_codes`.
The top-level error handler in :func:`overdrip.app.main` catches
``OverdripError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Every failure of the login flow derives from :class:`LoginError` and names
the phase it happened in, so the user can tell whether authentication
itself failed or only the final save did.

Subclass hierarchy::

    OverdripError (exit 1)
    +-- ConfigError                  (exit 1)
    +-- LoginError                   (exit 3)
        +-- EntropyError             phase "pkce"
        +-- ListenerBindError        phase "callback"
        +-- CallbackChannelClosed    phase "callback"
        +-- ListenerTaskFailed       phase "callback"
        +-- CallbackTimeoutError     phase "callback"
        +-- AuthorizationDeniedError phase "callback"
        +-- ExchangeTransportError   phase "exchange" (exit 6)
        +-- ExchangeProtocolError    phase "exchange"
        +-- TokenPersistenceError    phase "persist"
"""

from __future__ import annotations

from overdrip.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
)


class OverdripError(Exception):
    """Base exception for all overdrip errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`overdrip.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(OverdripError):
    """Raised for configuration problems (invalid JSON, bad credential sources)."""

    exit_code = EXIT_GENERIC_FAILURE


class LoginError(OverdripError):
    """Base class for failures of the interactive login flow.

    Attributes:
        phase: The login phase that failed -- ``"pkce"``, ``"callback"``,
            ``"exchange"`` or ``"persist"``.
    """

    exit_code = EXIT_AUTH_FAILURE
    phase: str = "login"


class EntropyError(LoginError):
    """Raised when the operating system cannot supply secure random bytes."""

    phase = "pkce"


class ListenerBindError(LoginError):
    """Raised when the local callback listener cannot bind its address."""

    phase = "callback"


class CallbackChannelClosed(LoginError):
    """Raised when the listener stopped before delivering an authorization code."""

    phase = "callback"


class ListenerTaskFailed(LoginError):
    """Raised when the listener's worker thread died with an exception.

    The original exception is available as ``__cause__``.
    """

    phase = "callback"


class CallbackTimeoutError(LoginError):
    """Raised when no callback arrived within the configured login timeout."""

    phase = "callback"


class AuthorizationDeniedError(LoginError):
    """Raised when the provider redirected back with an ``error`` parameter."""

    phase = "callback"

    def __init__(self, error: str, description: str | None = None):
        message = f"Authorization was denied by the provider: {error}"
        if description:
            message += f" - {description}"
        super().__init__(message)
        self.error = error
        self.description = description


class ExchangeTransportError(LoginError):
    """Raised on network-level failures talking to the token endpoint."""

    exit_code = EXIT_CONNECTION_ERROR
    phase = "exchange"


class ExchangeProtocolError(LoginError):
    """Raised when the token endpoint answers with an error or an unusable body.

    Args:
        message: Human-readable description.
        status_code: HTTP status returned by the token endpoint.
        body: Raw response body, kept for diagnostics.
    """

    phase = "exchange"

    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class TokenPersistenceError(LoginError):
    """Raised when tokens cannot be written to, read from, or removed from storage."""

    phase = "persist"
