"""
Master Secret: process-wide secret holder with lazy validation.

The secret is read once (usually from ``ENCRYPTION_KEY``) and validated only
when a cryptographic operation first needs it, so processes that never
encrypt can run without it configured.

Security Note:
    Never log the secret. Only log the name of the variable it came from.
"""
import os
import re
import secrets
from typing import Optional

from ..conf import ENCRYPTION_KEY_ENV, MASTER_SECRET_SIZE
from ..exceptions import ConfigurationError


_HEX_SECRET = re.compile(r"[0-9a-fA-F]{%d}" % (MASTER_SECRET_SIZE * 2))


class MasterSecret:
    """Immutable holder for the hex-encoded master secret."""

    __slots__ = ("_raw", "_source")

    def __init__(self, raw: Optional[str], source: str = ENCRYPTION_KEY_ENV) -> None:
        self._raw = raw
        self._source = source

    @classmethod
    def from_env(cls, env_var: str = ENCRYPTION_KEY_ENV) -> "MasterSecret":
        """Read the secret from the environment without validating it."""
        return cls(os.environ.get(env_var), source=env_var)

    @property
    def source(self) -> str:
        return self._source

    def is_valid(self) -> bool:
        """True if the secret is set and hex-decodes to exactly 32 bytes."""
        return self._raw is not None and bool(_HEX_SECRET.fullmatch(self._raw))

    def key_material(self) -> bytes:
        """Return the raw 32-byte secret.

        Raises:
            ConfigurationError: If the secret is missing or malformed.
        """
        if not self._raw:
            raise ConfigurationError(
                f"{self._source} is not set. "
                f"Set {self._source}=<{MASTER_SECRET_SIZE * 2} hex characters>"
            )
        if not _HEX_SECRET.fullmatch(self._raw):
            raise ConfigurationError(
                f"{self._source} must be {MASTER_SECRET_SIZE * 2} hex characters "
                f"({MASTER_SECRET_SIZE} bytes)"
            )
        return bytes.fromhex(self._raw)

    def __repr__(self) -> str:
        return f"MasterSecret(source={self._source!r}, value=[REDACTED])"

    __str__ = __repr__


def generate_master_secret() -> str:
    """Generate a random 32-byte master secret and return it hex-encoded.

    This is a utility for operators provisioning a new deployment.
    """
    return secrets.token_hex(MASTER_SECRET_SIZE)
