"""Config commands -- view and edit the configuration file.

Provides the ``overdrip config`` sub-command group. The file location is
chosen by the root ``--config`` option, then ``OVERDRIP_CONFIG``, then
``~/.config/overdrip/config.json``.
"""

from __future__ import annotations

import os
import shlex
import subprocess

import typer

from overdrip.commands import active_config, active_config_path
from overdrip.config import load_config, save_config
from overdrip.exceptions import OverdripError
from overdrip.models import OverdripConfig
from overdrip.output import error, info, print_data, print_json, report_error, warning


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Show the effective configuration as JSON.

    Defaults are shown when no config file exists yet.

    Example::

        overdrip config show
    """
    try:
        config = active_config(ctx)
    except OverdripError as exc:
        report_error(exc)
        raise typer.Exit(code=exc.exit_code) from None

    info(f"Config file: {active_config_path(ctx)}")
    print_json(config.model_dump(mode="json"))


@config_app.command("path")
def config_path(ctx: typer.Context) -> None:
    """Print the path of the configuration file."""
    print_data(str(active_config_path(ctx)))


def _editor() -> str:
    editor = os.environ.get("EDITOR") or os.environ.get("VISUAL")
    if not editor:
        warning("Unable to determine editor, defaulting to 'nano'")
        editor = "nano"
    return editor


@config_app.command("edit")
def config_edit(ctx: typer.Context) -> None:
    """Open the configuration file in ``$EDITOR`` (or ``$VISUAL``).

    A file with default values is written first if none exists. The
    edited file is validated afterwards and a warning printed if it no
    longer loads.

    Raises:
        typer.Exit: With code 1 if the editor cannot be started.

    Example::

        EDITOR=vim overdrip config edit
    """
    path = active_config_path(ctx)
    if not path.is_file():
        try:
            save_config(OverdripConfig(), path)
        except OverdripError as exc:
            report_error(exc)
            raise typer.Exit(code=exc.exit_code) from None
        info(f"Created {path} with default settings.")

    command = shlex.split(_editor()) + [str(path)]
    try:
        subprocess.run(command, check=False)
    except OSError as exc:
        error(f"Failed to open editor '{command[0]}': {exc}")
        raise typer.Exit(code=1) from None

    try:
        load_config(path)
    except OverdripError as exc:
        warning(str(exc))
