"""
Key Derivation: per-tenant AES-256 keys from the master secret.

    HKDF-SHA256(ikm=master_secret, salt=HKDF_SALT, info="<prefix>:<tenant_id>")

Keys are recomputed on every call and never stored, so any process holding
the same master secret recovers the same tenant key.
"""
from typing import Union

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from ..conf import GLOBAL_CONTEXT, HKDF_INFO_PREFIX, HKDF_SALT, KEY_LENGTH
from ..exceptions import InvalidArgumentError
from .secret import MasterSecret


class _GlobalScope:
    """Sentinel selecting the fixed, non-tenant derivation context."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "GLOBAL_SCOPE"


GLOBAL_SCOPE = _GlobalScope()

Scope = Union[str, _GlobalScope]


def validate_tenant_id(tenant_id: Scope) -> Scope:
    """Return ``tenant_id`` unchanged if it is usable as a derivation scope.

    Raises:
        InvalidArgumentError: If tenant_id is not a non-empty string
            (or ``GLOBAL_SCOPE``).
    """
    if tenant_id is GLOBAL_SCOPE:
        return tenant_id
    if not isinstance(tenant_id, str) or not tenant_id:
        raise InvalidArgumentError("tenant_id must be a non-empty string")
    return tenant_id


class KeyDeriver:
    """Derives 32-byte keys for a tenant (or the global scope)."""

    def __init__(
        self,
        secret: MasterSecret,
        salt: bytes = HKDF_SALT,
        info_prefix: str = HKDF_INFO_PREFIX,
        global_context: str = GLOBAL_CONTEXT,
    ):
        self._secret = secret
        self._salt = salt
        self._info_prefix = info_prefix
        self._global_context = global_context

    def context_for(self, tenant_id: Scope) -> bytes:
        """HKDF info parameter for a scope."""
        validate_tenant_id(tenant_id)
        if tenant_id is GLOBAL_SCOPE:
            return self._global_context.encode("utf-8")
        return f"{self._info_prefix}:{tenant_id}".encode("utf-8")

    def derive_key(self, tenant_id: Scope) -> bytes:
        """Derive the 32-byte key for ``tenant_id``.

        Args:
            tenant_id: Non-empty tenant identifier, or ``GLOBAL_SCOPE``.

        Returns:
            32-byte derived key.

        Raises:
            InvalidArgumentError: If tenant_id is empty or not a string.
            ConfigurationError: If the master secret is missing or malformed.
        """
        info = self.context_for(tenant_id)
        hkdf = HKDF(
            algorithm=hashes.SHA256(),
            length=KEY_LENGTH,
            salt=self._salt,
            info=info,
        )
        return hkdf.derive(self._secret.key_material())
