"""Tenant Vault constants.

Names of environment variables and the fixed derivation inputs shared by the
encryption engine. Changing any derivation constant makes every stored
envelope unreadable.
"""

# Environment
ENCRYPTION_KEY_ENV = "ENCRYPTION_KEY"
NONCE_SIZE_ENV = "FIELD_ENCRYPTION_NONCE_SIZE"
MARKER_FIELD_ENV = "FIELD_ENCRYPTION_MARKER"

# Master secret: 32 bytes, hex-encoded
MASTER_SECRET_SIZE = 32

# Key derivation (HKDF-SHA256)
KEY_LENGTH = 32  # AES-256
HKDF_SALT = b"tenant-vault/field-encryption/v1"
HKDF_INFO_PREFIX = "tenant-vault-org-key"
GLOBAL_CONTEXT = "tenant-vault-global-key"

# Envelope
ENVELOPE_DELIMITER = ":"
NONCE_SIZE = 12  # 96-bit nonce for new envelopes
LEGACY_NONCE_SIZE = 16  # written by earlier clients, still readable
ACCEPTED_NONCE_SIZES = (NONCE_SIZE, LEGACY_NONCE_SIZE)
TAG_SIZE = 16  # GCM tag

# Records
MARKER_FIELD = "_encrypted"
