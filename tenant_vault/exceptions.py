"""
Exception classes for field encryption.

``MalformedEnvelopeError`` and ``FieldDecryptionError`` both derive from
``DecryptionError`` so callers can catch every read failure at once, while
still telling corrupt tokens apart from authentication failures.
"""
from typing import Any, Optional


class FieldEncryptionError(Exception):
    """Base exception for all field encryption operations."""


class ConfigurationError(FieldEncryptionError):
    """Master secret missing or malformed, or invalid engine settings."""


class InvalidArgumentError(FieldEncryptionError, ValueError):
    """Empty tenant id, unsupported value or other caller misuse."""


class DecryptionError(FieldEncryptionError):
    """Authentication failed (tampered data or wrong tenant key)."""


class MalformedEnvelopeError(DecryptionError):
    """Token does not parse into three hex segments."""


class MalformedMarkerError(FieldEncryptionError):
    """The reserved marker field is not a JSON array of field names."""


class FieldDecryptionError(DecryptionError):
    """One or more fields of a record failed to decrypt.

    Attributes:
        failures: Mapping of field name to the error raised for it.
        data: Copy of the record with every other field processed; failed
            fields keep their stored value. For a record array, the list of
            such copies.
    """

    def __init__(
        self,
        failures: dict[str, DecryptionError],
        data: Optional[Any] = None,
    ) -> None:
        self.failures = failures
        self.data = data
        names = ", ".join(sorted(failures))
        super().__init__(f"Failed to decrypt field(s): {names}")
