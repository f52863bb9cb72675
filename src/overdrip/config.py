"""Configuration management with XDG paths, atomic writes, and credential sources.

This module handles all persistent configuration for overdrip:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.overdrip/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Config file** -- A single :class:`~overdrip.models.OverdripConfig`
  JSON file. Its location can be overridden with ``--config`` or the
  ``OVERDRIP_CONFIG`` environment variable. See :func:`load_config`,
  :func:`save_config`.
* **Credential resolution** -- :func:`resolve_credential` reads secrets
  from env vars, files, or interactive prompts, and
  :func:`resolve_client_credentials` builds the OAuth client identity
  from them.

All file writes use an atomic temp-file-then-rename strategy
(:func:`atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from overdrip.exceptions import ConfigError
from overdrip.models import AuthSettings, ClientCredentials, OverdripConfig

_APP_NAME = "overdrip"
_CONFIG_FILENAME = "config.json"
_TOKEN_FILENAME = "tokens.json"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/overdrip/`` (default ``~/.config/overdrip/``).
    On macOS/Windows: ``~/.overdrip/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_CONFIG_HOME", (".config",))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs, credentials), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/overdrip/`` (default ``~/.local/share/overdrip/``).
    On macOS/Windows: ``~/.overdrip/data/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_DATA_HOME", (".local", "share"))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


def default_config_path() -> Path:
    """Return the default config file location (``<config_dir>/config.json``)."""
    return get_config_dir() / _CONFIG_FILENAME


def default_token_path() -> Path:
    """Return the default token file location (``<data_dir>/credentials/tokens.json``)."""
    return get_data_dir() / "credentials" / _TOKEN_FILENAME


def token_path(settings: AuthSettings) -> Path:
    """Return the token file path for *settings*, honouring ``token_file``."""
    if settings.token_file:
        return Path(settings.token_file).expanduser()
    return default_token_path()


# --- Atomic file writes ---


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    On success the temp file is renamed over *path*; on any failure the temp
    file is cleaned up.

    Args:
        path: Destination file.
        data: Text to write.
        mode: Optional permission bits applied to the temp file *before*
            any content is written (e.g. ``0o600`` for secrets).
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        if mode is not None:
            os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any error (including KeyboardInterrupt).
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Config file ---


def resolve_config_path(cli_path: Optional[Path] = None) -> Path:
    """Resolve the config file path.

    Precedence (high to low):
        1. ``--config`` CLI flag
        2. ``OVERDRIP_CONFIG`` environment variable
        3. ``<config_dir>/config.json``
    """
    if cli_path is not None:
        return cli_path.expanduser()
    env_path = os.environ.get("OVERDRIP_CONFIG")
    if env_path:
        return Path(env_path).expanduser()
    return default_config_path()


def load_config(path: Path) -> OverdripConfig:
    """Load the configuration from *path*.

    Returns:
        The deserialised :class:`~overdrip.models.OverdripConfig`. If the
        file does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    if not path.is_file():
        return OverdripConfig()
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
        return OverdripConfig.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Cannot read config at {path}: {exc}") from exc


def save_config(config: OverdripConfig, path: Path) -> None:
    """Persist the configuration atomically to *path*.

    Raises:
        ConfigError: If the file cannot be written.
    """
    data = config.model_dump(mode="json")
    try:
        atomic_write(path, json.dumps(data, indent=2) + "\n")
    except OSError as exc:
        raise ConfigError(f"Cannot write config to {path}: {exc}") from exc


# --- Credential source resolution ---


def resolve_credential(source: str) -> str:
    """Resolve a credential from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - ``"prompt"`` -- prompts user interactively (requires a TTY)

    Args:
        source: The source descriptor string.

    Returns:
        The resolved credential string.

    Raises:
        ConfigError: If the source can't be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if not value:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            value = path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc
        if not value:
            raise ConfigError(f"Credential file is empty: {path} (source: {source})")
        return value

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError(
                "Cannot prompt for credentials: stdin is not a TTY (source: prompt)"
            )
        value = getpass.getpass("Enter credential: ")
        if not value:
            raise ConfigError("No credential entered (source: prompt)")
        return value

    raise ConfigError(f"Unknown credential source format: {source}")


def resolve_client_credentials(settings: AuthSettings) -> ClientCredentials:
    """Build the OAuth client identity from the configured sources.

    Raises:
        ConfigError: If either source cannot be resolved.
    """
    return ClientCredentials(
        client_id=resolve_credential(settings.client_id_source),
        client_secret=resolve_credential(settings.client_secret_source),
    )
