"""Typer application and CLI entry point for overdrip.

This module wires together the top-level Typer application and registers
the built-in commands (``login``, ``logout``, ``status``, ``run`` and the
``config`` group).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs a signal handler, invokes the Typer app,
and turns uncaught :class:`~overdrip.exceptions.OverdripError` instances
into a one-line message and exit code. Any other exception is written to a
crash log under the data directory.

See Also:
    :mod:`overdrip.config`: Config file location and loading.
    :mod:`overdrip.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer

from overdrip import __version__
from overdrip.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INTERRUPTED


app = typer.Typer(
    name="overdrip",
    help="Overdrip command-line client.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"overdrip {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to the configuration file (env: OVERDRIP_CONFIG).",
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~overdrip.output.OutputManager` and
    logging from CLI flags, and stores the resolved config path in the Typer
    context so that sub-commands can read it via ``ctx.obj``.
    """
    from overdrip.config import resolve_config_path
    from overdrip.output import OutputManager, configure_logging, debug, set_output

    set_output(OutputManager(no_color=no_color, quiet=quiet, verbose=verbose))
    configure_logging(verbose)

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = resolve_config_path(config)
    debug(f"using config path: '{ctx.obj['config_path']}'")


@app.command("run")
def run_command(ctx: typer.Context) -> None:
    """Run the Overdrip service."""
    from overdrip.commands import active_config
    from overdrip.exceptions import OverdripError
    from overdrip.output import debug, print_data, report_error

    try:
        config = active_config(ctx)
    except OverdripError as exc:
        report_error(exc)
        raise typer.Exit(code=exc.exit_code) from None

    debug(f"config {config.model_dump(mode='json')}")
    print_data("Overdrip is running!")


# ------------------------------------------------------------------ #
# Built-in commands
# ------------------------------------------------------------------ #

from overdrip.commands.auth import login_command, logout_command, status_command  # noqa: E402
from overdrip.commands.config import config_app  # noqa: E402

app.command("login")(login_command)
app.command("logout")(logout_command)
app.command("status")(status_command)
app.add_typer(config_app, name="config", help="Configuration management.")


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from overdrip.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``overdrip`` console script.

    Unhandled :class:`~overdrip.exceptions.OverdripError` instances
    cause a clean exit with the error's ``exit_code``. All other exceptions
    produce a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)
    except Exception as exc:
        from overdrip.exceptions import OverdripError
        from overdrip.output import error, report_error

        if isinstance(exc, OverdripError):
            report_error(exc)
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
