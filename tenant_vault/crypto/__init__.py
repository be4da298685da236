"""Field encryption engine: tenant-isolated encryption of record fields.

Each tenant gets its own AES-256 key, derived on demand with HKDF from one
master secret. Values are stored as ``hex(nonce):hex(tag):hex(ciphertext)``.

Security Note (Threat Model):
    Anyone holding the master secret can derive every tenant key. The secret
    must come from deployment configuration and never be logged. Detection
    of already-encrypted values is a shape heuristic, not a security check:
    a plaintext crafted to look like an envelope will be treated as one.
"""

from .secret import MasterSecret, generate_master_secret
from .config import EncryptionConfig
from .kdf import GLOBAL_SCOPE, KeyDeriver
from .envelope import Envelope, encode_envelope, decode_envelope
from .cipher import FieldCipher
from .classifier import looks_encrypted
from .fields import BatchFieldOperator, EncryptionResult, FieldPolicy
from .engine import FieldEncryptor, TenantCipher, UnboundTenantCipher

__all__ = [
    "MasterSecret",
    "generate_master_secret",
    "EncryptionConfig",
    "GLOBAL_SCOPE",
    "KeyDeriver",
    "Envelope",
    "encode_envelope",
    "decode_envelope",
    "FieldCipher",
    "looks_encrypted",
    "BatchFieldOperator",
    "EncryptionResult",
    "FieldPolicy",
    "FieldEncryptor",
    "TenantCipher",
    "UnboundTenantCipher",
]
