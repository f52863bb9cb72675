"""Built-in CLI sub-commands for overdrip.

* :mod:`~overdrip.commands.auth` -- ``login``, ``logout`` and ``status``.
* :mod:`~overdrip.commands.config` -- show, edit and locate the config file.

``login``/``logout``/``status`` are plain callbacks registered directly on
the root app; ``config`` is a :class:`typer.Typer` sub-application.
"""

from __future__ import annotations

from pathlib import Path

import typer

from overdrip.config import load_config, resolve_config_path
from overdrip.models import OverdripConfig


def active_config_path(ctx: typer.Context) -> Path:
    """Return the config path chosen by the root callback."""
    path = ctx.obj.get("config_path") if ctx.obj else None
    return path if path is not None else resolve_config_path()


def active_config(ctx: typer.Context) -> OverdripConfig:
    """Load the config file chosen by the root callback.

    Raises:
        ConfigError: If the file exists but is invalid.
    """
    return load_config(active_config_path(ctx))
