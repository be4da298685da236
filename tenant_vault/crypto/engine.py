"""
FieldEncryptor: the engine facade.

Wires the master secret, key derivation, field cipher and batch operator
together by constructor injection, so several engines (for example with
different secrets in tests) can live side by side.
"""
import logging
from collections.abc import Mapping
from typing import Any, Optional

from ..exceptions import FieldEncryptionError, InvalidArgumentError
from .cipher import FieldCipher
from .classifier import looks_encrypted
from .config import EncryptionConfig
from .fields import BatchFieldOperator, EncryptionResult, FieldList
from .kdf import GLOBAL_SCOPE, KeyDeriver, Scope, validate_tenant_id
from .secret import MasterSecret

logger = logging.getLogger("tenant_vault.crypto")

_SELF_TEST_PROBE = "tenant-vault-self-test"


class FieldEncryptor:
    """Tenant-isolated field encryption."""

    def __init__(self, secret: MasterSecret, config: Optional[EncryptionConfig] = None):
        self._config = config or EncryptionConfig()
        self._secret = secret
        self._deriver = KeyDeriver(
            secret,
            salt=self._config.hkdf_salt,
            info_prefix=self._config.info_prefix,
            global_context=self._config.global_context,
        )
        self._cipher = FieldCipher(self._deriver, nonce_size=self._config.nonce_size)
        self._operator = BatchFieldOperator(
            self._cipher, marker_field=self._config.marker_field,
        )

    @classmethod
    def from_env(cls, config: Optional[EncryptionConfig] = None) -> "FieldEncryptor":
        """Build an engine reading the master secret from the environment.

        The secret is not validated until the first cryptographic call.
        """
        config = config or EncryptionConfig.from_env()
        return cls(MasterSecret.from_env(config.env_var), config)

    @property
    def config(self) -> EncryptionConfig:
        return self._config

    @property
    def marker_field(self) -> str:
        return self._config.marker_field

    def is_configured(self) -> bool:
        """True if the master secret is present and well-formed."""
        return self._secret.is_valid()

    # ------------------------------------------------------------------
    # Single values
    # ------------------------------------------------------------------

    def derive_key(self, tenant_id: Scope) -> bytes:
        return self._deriver.derive_key(tenant_id)

    def encrypt_value(self, plaintext: Any, tenant_id: Scope) -> Optional[str]:
        return self._cipher.encrypt_value(plaintext, tenant_id)

    def decrypt_value(self, token: Optional[str], tenant_id: Scope) -> Optional[str]:
        return self._cipher.decrypt_value(token, tenant_id)

    @staticmethod
    def looks_encrypted(value: Any) -> bool:
        return looks_encrypted(value)

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def encrypt_fields(
        self,
        record: Optional[Mapping[str, Any]],
        fields: Optional[FieldList],
        tenant_id: Scope,
    ) -> EncryptionResult:
        return self._operator.encrypt_fields(record, fields, tenant_id)

    def decrypt_fields(
        self,
        record: Optional[Mapping[str, Any]],
        fields: Optional[FieldList],
        tenant_id: Scope,
    ) -> Optional[dict[str, Any]]:
        return self._operator.decrypt_fields(record, fields, tenant_id)

    def decrypt_object_array(
        self, records: Any, fields: Optional[FieldList], tenant_id: Scope,
    ) -> Any:
        return self._operator.decrypt_object_array(records, fields, tenant_id)

    def marker_fields(self, record: Mapping[str, Any]) -> list[str]:
        return self._operator.marker_fields(record)

    # ------------------------------------------------------------------
    # Scopes
    # ------------------------------------------------------------------

    def for_tenant(self, tenant_id: str) -> "TenantCipher":
        """Return a helper with ``tenant_id`` bound to every operation."""
        return TenantCipher(self, tenant_id)

    def global_scope(self) -> "TenantCipher":
        """Return a helper bound to the non-tenant (global) scope."""
        return TenantCipher(self, GLOBAL_SCOPE)

    def self_test(self, tenant_id: Scope) -> bool:
        """Round-trip a probe value for ``tenant_id``.

        Returns:
            True if encryption and decryption work, False otherwise.
        """
        try:
            token = self.encrypt_value(_SELF_TEST_PROBE, tenant_id)
            return self.decrypt_value(token, tenant_id) == _SELF_TEST_PROBE
        except FieldEncryptionError as err:
            logger.error(
                "Field encryption self-test failed for tenant=%s: %s", tenant_id, err,
            )
            return False


class TenantCipher:
    """Field encryption with the tenant already chosen.

    Typically created once per request from the authenticated user's
    organization.
    """

    def __init__(self, encryptor: FieldEncryptor, tenant_id: Scope):
        self._encryptor = encryptor
        self._tenant_id = validate_tenant_id(tenant_id)

    def __repr__(self) -> str:
        return f"<TenantCipher tenant={self._tenant_id!r}>"

    @property
    def tenant_id(self) -> Scope:
        return self._tenant_id

    def encrypt_value(self, plaintext: Any) -> Optional[str]:
        return self._encryptor.encrypt_value(plaintext, self._tenant_id)

    def decrypt_value(self, token: Optional[str]) -> Optional[str]:
        return self._encryptor.decrypt_value(token, self._tenant_id)

    def encrypt_fields(
        self, record: Optional[Mapping[str, Any]], fields: Optional[FieldList],
    ) -> EncryptionResult:
        return self._encryptor.encrypt_fields(record, fields, self._tenant_id)

    def decrypt_fields(
        self, record: Optional[Mapping[str, Any]], fields: Optional[FieldList] = None,
    ) -> Optional[dict[str, Any]]:
        return self._encryptor.decrypt_fields(record, fields, self._tenant_id)

    def decrypt_object_array(self, records: Any, fields: Optional[FieldList]) -> Any:
        return self._encryptor.decrypt_object_array(records, fields, self._tenant_id)

    def looks_encrypted(self, value: Any) -> bool:
        return looks_encrypted(value)


class UnboundTenantCipher:
    """Stand-in used when no tenant is known (e.g. anonymous requests).

    Every cryptographic operation raises ``InvalidArgumentError``.
    """

    tenant_id = None

    def __repr__(self) -> str:
        return "<UnboundTenantCipher>"

    def _fail(self, *args, **kwargs):
        raise InvalidArgumentError(
            "Field encryption requires an organization (user must be logged in)"
        )

    encrypt_value = decrypt_value = _fail
    encrypt_fields = decrypt_fields = decrypt_object_array = _fail

    def looks_encrypted(self, value: Any) -> bool:
        return looks_encrypted(value)
