"""
Field Cipher: encrypt/decrypt one value under a tenant's derived key.

AES-256-GCM with a random nonce per call; the result is an envelope token
(see :mod:`tenant_vault.crypto.envelope`). Decrypting with another tenant's
key fails tag verification.

Security Note:
    Never log plaintext, ciphertext or key material. Tenant ids are fine.
"""
import os
import logging
from typing import Any, Optional

import orjson
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..conf import NONCE_SIZE, TAG_SIZE
from ..exceptions import (
    ConfigurationError,
    DecryptionError,
    InvalidArgumentError,
)
from .envelope import Envelope, encode_envelope
from .kdf import KeyDeriver, Scope

logger = logging.getLogger("tenant_vault.crypto")


def to_plaintext(value: Any) -> Optional[str]:
    """Normalize a field value to the text that gets encrypted.

    Returns None for "nothing" (None, empty or whitespace-only strings).
    Non-string values are serialized as JSON.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value if value.strip() else None
    try:
        return orjson.dumps(value).decode("utf-8")
    except TypeError as err:
        raise InvalidArgumentError(
            f"Cannot encrypt value of type {type(value).__name__}"
        ) from err


class FieldCipher:
    """Authenticated encryption of single field values."""

    def __init__(self, deriver: KeyDeriver, nonce_size: int = NONCE_SIZE):
        self._deriver = deriver
        self._nonce_size = nonce_size

    @property
    def nonce_size(self) -> int:
        return self._nonce_size

    def encrypt_value(self, plaintext: Any, tenant_id: Scope) -> Optional[str]:
        """Encrypt ``plaintext`` for ``tenant_id``.

        Args:
            plaintext: Value to encrypt. Non-strings are JSON-serialized.
            tenant_id: Tenant identifier or ``GLOBAL_SCOPE``.

        Returns:
            Envelope token, or None when there is nothing to encrypt.

        Raises:
            InvalidArgumentError: Empty tenant id or unserializable value.
            ConfigurationError: Master secret missing or malformed.
        """
        text = to_plaintext(plaintext)
        if text is None:
            return None
        key = self._deriver.derive_key(tenant_id)
        nonce = os.urandom(self._nonce_size)
        sealed = AESGCM(key).encrypt(nonce, text.encode("utf-8"), None)
        # AESGCM appends the tag to the ciphertext
        return encode_envelope(nonce, sealed[-TAG_SIZE:], sealed[:-TAG_SIZE])

    def decrypt_value(self, token: Optional[str], tenant_id: Scope) -> Optional[str]:
        """Decrypt an envelope token for ``tenant_id``.

        Returns:
            Plaintext string, or None when token is None or empty.

        Raises:
            MalformedEnvelopeError: Token is not three hex segments.
            DecryptionError: Tag verification failed (tampered data or
                wrong tenant), invalid nonce, or key derivation failed.
            InvalidArgumentError: Empty tenant id.
            ConfigurationError: Master secret missing or malformed.
        """
        if token is None or token == "":
            return None
        envelope = Envelope.decode(token)
        try:
            key = self._deriver.derive_key(tenant_id)
        except (ConfigurationError, InvalidArgumentError):
            raise
        except Exception as err:
            raise DecryptionError("Unable to derive tenant key") from err
        if len(envelope.tag) != TAG_SIZE:
            raise DecryptionError("Decryption failed")
        try:
            data = AESGCM(key).decrypt(
                envelope.nonce, envelope.ciphertext + envelope.tag, None
            )
            return data.decode("utf-8")
        except (InvalidTag, ValueError) as err:
            # Generic message: do not hint whether nonce, tag or key was wrong
            logger.warning("Decryption failed for tenant=%s", tenant_id)
            raise DecryptionError("Decryption failed") from err
