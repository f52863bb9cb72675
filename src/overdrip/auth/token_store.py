"""Persistent storage for the tokens obtained by ``overdrip login``.

:class:`TokenStore` is the interface the login flow depends on. Two
implementations ship with overdrip:

- :class:`FileTokenStore` -- a JSON file (by default
  ``~/.local/share/overdrip/credentials/tokens.json``) written atomically via
  :func:`~overdrip.config.atomic_write` with ``0o600`` permissions, so
  the tokens are never readable by group or others, even momentarily.
- :class:`MemoryTokenStore` -- keeps tokens in process memory; used by
  tests and by callers that handle persistence themselves.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from overdrip.config import atomic_write
from overdrip.exceptions import TokenPersistenceError
from overdrip.models import TokenSet

logger = logging.getLogger(__name__)

TOKEN_FILE_MODE = 0o600


class TokenStore(ABC):
    """Capability interface for saving, loading and erasing a :class:`TokenSet`."""

    @abstractmethod
    def save(self, tokens: TokenSet) -> None:
        """Replace whatever is stored with *tokens*.

        Raises:
            TokenPersistenceError: If the tokens cannot be stored.
        """
        ...

    @abstractmethod
    def load(self) -> Optional[TokenSet]:
        """Return the stored tokens, or ``None`` if nothing is stored.

        Raises:
            TokenPersistenceError: If stored data exists but cannot be read.
        """
        ...

    @abstractmethod
    def clear(self) -> None:
        """Erase the stored tokens. A no-op when nothing is stored."""
        ...


class FileTokenStore(TokenStore):
    """Store tokens as a JSON object in a single owner-only file.

    Example::

        store = FileTokenStore(Path("~/.local/share/overdrip/credentials/tokens.json"))
        store.save(tokens)
        assert store.load() == tokens
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        """The filesystem path of the token file."""
        return self._path

    def save(self, tokens: TokenSet) -> None:
        text = json.dumps(tokens.model_dump(mode="json"), indent=2) + "\n"
        try:
            atomic_write(self._path, text, mode=TOKEN_FILE_MODE)
        except OSError as exc:
            raise TokenPersistenceError(
                f"Failed to write auth tokens to {self._path}: {exc}"
            ) from exc
        logger.debug("Saved tokens to %s", self._path)

    def load(self) -> Optional[TokenSet]:
        if not self._path.is_file():
            return None
        try:
            text = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise TokenPersistenceError(
                f"Failed to read auth tokens from {self._path}: {exc}"
            ) from exc
        try:
            return TokenSet.model_validate(json.loads(text))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise TokenPersistenceError(
                f"Failed to parse auth tokens from {self._path}: {exc}"
            ) from exc

    def clear(self) -> None:
        try:
            self._path.unlink(missing_ok=True)
        except OSError as exc:
            raise TokenPersistenceError(
                f"Failed to remove auth token file {self._path}: {exc}"
            ) from exc


class MemoryTokenStore(TokenStore):
    """Keep tokens in memory for the lifetime of the object."""

    def __init__(self, tokens: Optional[TokenSet] = None) -> None:
        self._tokens = tokens

    def save(self, tokens: TokenSet) -> None:
        self._tokens = tokens

    def load(self) -> Optional[TokenSet]:
        return self._tokens

    def clear(self) -> None:
        self._tokens = None
