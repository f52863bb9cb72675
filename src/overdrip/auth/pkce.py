"""PKCE (Proof Key for Code Exchange) verifier/challenge generation.

Implements the ``S256`` method of :rfc:`7636`: the verifier is 32 bytes from
the operating system's secure random source, base64url-encoded without
padding (43 characters), and the challenge is the unpadded base64url
encoding of the SHA-256 digest of the verifier.
"""

from __future__ import annotations

import base64
import hashlib
import secrets

from pydantic import BaseModel, ConfigDict, Field

from overdrip.exceptions import EntropyError

VERIFIER_BYTES = 32
CHALLENGE_METHOD = "S256"


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


class PkceChallenge(BaseModel):
    """A verifier and the challenge derived from it.

    The pair is created together and never modified; the verifier stays in
    memory for the duration of one login attempt and is sent only to the
    token endpoint.
    """

    model_config = ConfigDict(frozen=True)

    verifier: str = Field(repr=False)
    challenge: str

    @classmethod
    def from_verifier(cls, verifier: str) -> PkceChallenge:
        """Build the pair for an existing *verifier*."""
        digest = hashlib.sha256(verifier.encode("ascii")).digest()
        return cls(verifier=verifier, challenge=_b64url(digest))


def generate_pkce() -> PkceChallenge:
    """Generate a fresh PKCE pair from 32 cryptographically random bytes.

    Returns:
        A new :class:`PkceChallenge`.

    Raises:
        EntropyError: If the OS random source is unavailable.
    """
    try:
        raw = secrets.token_bytes(VERIFIER_BYTES)
    except (OSError, NotImplementedError) as exc:
        raise EntropyError(f"Secure random source unavailable: {exc}") from exc
    return PkceChallenge.from_verifier(_b64url(raw))
