"""
Engine Configuration: validated settings for the field encryption engine.

Only non-secret settings live here. The master secret itself is held by
:class:`~tenant_vault.crypto.secret.MasterSecret` and validated lazily.

Optional environment overrides:
    FIELD_ENCRYPTION_NONCE_SIZE = 12 | 16
    FIELD_ENCRYPTION_MARKER = <marker field name>
"""
import os
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from ..conf import (
    ACCEPTED_NONCE_SIZES,
    ENCRYPTION_KEY_ENV,
    GLOBAL_CONTEXT,
    HKDF_INFO_PREFIX,
    HKDF_SALT,
    MARKER_FIELD,
    MARKER_FIELD_ENV,
    NONCE_SIZE,
    NONCE_SIZE_ENV,
)
from ..exceptions import ConfigurationError


class EncryptionConfig(BaseModel):
    """Validated engine settings."""

    env_var: str = Field(default=ENCRYPTION_KEY_ENV, min_length=1)
    hkdf_salt: bytes = Field(default=HKDF_SALT, min_length=1)
    info_prefix: str = Field(default=HKDF_INFO_PREFIX, min_length=1)
    global_context: str = Field(default=GLOBAL_CONTEXT, min_length=1)
    nonce_size: int = Field(default=NONCE_SIZE)
    marker_field: str = Field(default=MARKER_FIELD, min_length=1)

    model_config = {"frozen": True}

    @field_validator("nonce_size")
    @classmethod
    def validate_nonce_size(cls, v: int) -> int:
        """Only nonce sizes the classifier recognises may be written."""
        if v not in ACCEPTED_NONCE_SIZES:
            raise ValueError(
                f"Unsupported nonce size: {v} (expected one of {ACCEPTED_NONCE_SIZES})"
            )
        return v

    @field_validator("info_prefix")
    @classmethod
    def validate_info_prefix(cls, v: str) -> str:
        if ":" in v:
            raise ValueError("info_prefix cannot contain ':'")
        return v

    @model_validator(mode="after")
    def validate_scopes_disjoint(self) -> "EncryptionConfig":
        """Global context must never equal a tenant derivation context."""
        if self.global_context.startswith(f"{self.info_prefix}:"):
            raise ValueError(
                "global_context must not start with the tenant info prefix"
            )
        return self

    @classmethod
    def create(cls, **settings: Any) -> "EncryptionConfig":
        """Build a config, reporting validation problems as ConfigurationError."""
        try:
            return cls(**settings)
        except ValidationError as err:
            raise ConfigurationError(f"Invalid encryption settings: {err}") from err

    @classmethod
    def from_env(cls) -> "EncryptionConfig":
        """Create EncryptionConfig applying overrides found in the environment.

        Returns:
            Populated EncryptionConfig instance.
        """
        settings: dict[str, Any] = {}
        nonce_size = os.environ.get(NONCE_SIZE_ENV)
        if nonce_size is not None:
            settings["nonce_size"] = nonce_size
        marker = os.environ.get(MARKER_FIELD_ENV)
        if marker is not None:
            settings["marker_field"] = marker
        return cls.create(**settings)
