"""Auth commands -- sign in to and out of the Overdrip service.

Typical workflow::

    overdrip login           # browser-based Google sign-in
    overdrip status          # check that tokens are stored
    overdrip logout          # forget the stored tokens
"""

from __future__ import annotations

import threading
import webbrowser
from typing import Optional

import typer

from overdrip.auth import FileTokenStore, LoginFlow
from overdrip.auth.login import Presenter
from overdrip.commands import active_config
from overdrip.config import resolve_client_credentials, token_path
from overdrip.exceptions import OverdripError
from overdrip.exit_codes import EXIT_AUTH_FAILURE
from overdrip.output import debug, info, print_data, report_error, success, suggest


def _make_presenter(open_browser: bool) -> Presenter:
    def present(url: str) -> None:
        print_data(f"Login at: {url}")
        if open_browser:
            # webbrowser.open can block on some platforms; keep it off the
            # main thread so the callback wait starts immediately.
            threading.Thread(target=webbrowser.open, args=(url,), daemon=True).start()
        info("Waiting for the browser to complete sign-in...")

    return present


def login_command(
    ctx: typer.Context,
    no_browser: bool = typer.Option(
        False, "--no-browser", help="Only print the URL; do not open a browser."
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        min=1,
        help="Give up if sign-in is not completed within this many seconds.",
    ),
) -> None:
    """Sign in with Google and store the resulting tokens.

    Starts a temporary listener on ``http://localhost:8080/callback``,
    prints (and by default opens) the Google authorization URL, waits for
    the redirect, exchanges the code for tokens, and saves them with
    owner-only permissions.

    Raises:
        typer.Exit: With the failing error's exit code (3 for login
            failures, 6 when the token endpoint is unreachable).

    Example::

        overdrip login
        overdrip login --no-browser --timeout 300
    """
    try:
        config = active_config(ctx)
        client = resolve_client_credentials(config.auth)
        store = FileTokenStore(token_path(config.auth))
        flow = LoginFlow(
            client,
            store,
            timeout=timeout if timeout is not None else config.auth.login_timeout,
            presenter=_make_presenter(config.auth.open_browser and not no_browser),
        )
        flow.login()
    except OverdripError as exc:
        report_error(exc)
        raise typer.Exit(code=exc.exit_code) from None

    success("Login successful.")
    debug(f"Tokens saved to {store.path}")


def logout_command(ctx: typer.Context) -> None:
    """Remove the stored tokens.

    Succeeds even when no tokens are stored.

    Example::

        overdrip logout
    """
    try:
        config = active_config(ctx)
        store = FileTokenStore(token_path(config.auth))
        had_tokens = store.path.is_file()
        store.clear()
    except OverdripError as exc:
        report_error(exc)
        raise typer.Exit(code=exc.exit_code) from None

    if had_tokens:
        success("Logged out.")
    else:
        info("Not logged in.")


def status_command(ctx: typer.Context) -> None:
    """Report whether tokens are stored. Never prints the tokens themselves.

    Raises:
        typer.Exit: With code 3 when no tokens are stored.

    Example::

        overdrip status
    """
    try:
        config = active_config(ctx)
        store = FileTokenStore(token_path(config.auth))
        tokens = store.load()
    except OverdripError as exc:
        report_error(exc)
        raise typer.Exit(code=exc.exit_code) from None

    if tokens is None:
        info("Not logged in.")
        suggest("Sign in: overdrip login")
        raise typer.Exit(code=EXIT_AUTH_FAILURE)

    success("Logged in.")
    info(f"Token file: {store.path}")
    info(f"Access token lifetime at issue: {tokens.expires_in}s")
