"""Tenant Vault.

Per-tenant field encryption for multi-tenant databases.
"""
from .version import __version__
from .exceptions import (
    FieldEncryptionError,
    ConfigurationError,
    InvalidArgumentError,
    DecryptionError,
    MalformedEnvelopeError,
    MalformedMarkerError,
    FieldDecryptionError,
)
from .crypto import (
    GLOBAL_SCOPE,
    EncryptionConfig,
    EncryptionResult,
    FieldEncryptor,
    FieldPolicy,
    MasterSecret,
    TenantCipher,
    generate_master_secret,
    looks_encrypted,
)

__all__ = [
    "__version__",
    "FieldEncryptionError",
    "ConfigurationError",
    "InvalidArgumentError",
    "DecryptionError",
    "MalformedEnvelopeError",
    "MalformedMarkerError",
    "FieldDecryptionError",
    "GLOBAL_SCOPE",
    "EncryptionConfig",
    "EncryptionResult",
    "FieldEncryptor",
    "FieldPolicy",
    "MasterSecret",
    "TenantCipher",
    "generate_master_secret",
    "looks_encrypted",
]
