"""
Batch Field Operator: apply the field cipher to named fields of records.

Records are plain mappings. Every operation works on a shallow copy and
never mutates the caller's record.

Which fields are sensitive is caller policy. Callers declare it once per
entity with :class:`FieldPolicy`, or pass any iterable of field names.
Names missing from a record are ignored.
"""
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import orjson
from pydantic import BaseModel

from ..conf import MARKER_FIELD
from ..exceptions import (
    DecryptionError,
    FieldDecryptionError,
    InvalidArgumentError,
    MalformedMarkerError,
)
from .cipher import FieldCipher
from .classifier import looks_encrypted
from .kdf import Scope

logger = logging.getLogger("tenant_vault.crypto")


@dataclass(frozen=True)
class FieldPolicy:
    """Sensitive fields of one entity."""

    entity: str
    fields: tuple[str, ...]

    def __iter__(self):
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    @classmethod
    def for_model(cls, model: type[BaseModel], *names: str) -> "FieldPolicy":
        """Declare sensitive fields checked against a pydantic model.

        Each name may be a model field name or its alias (records loaded
        from the database usually carry the aliased column names).

        Raises:
            InvalidArgumentError: If a name is not a field of ``model``.
        """
        known: set[str] = set()
        for name, info in model.model_fields.items():
            known.add(name)
            if info.alias:
                known.add(info.alias)
        unknown = [n for n in names if n not in known]
        if unknown:
            raise InvalidArgumentError(
                f"{model.__name__} has no field(s): {', '.join(unknown)}"
            )
        return cls(entity=model.__name__, fields=tuple(names))


FieldList = Union[FieldPolicy, Iterable[str]]


def field_names(fields: Optional[FieldList]) -> list[str]:
    """Normalize a field declaration to an ordered list of unique names."""
    if fields is None:
        return []
    if isinstance(fields, (str, bytes)):
        raise InvalidArgumentError(
            "fields must be a list of field names, not a single string"
        )
    return list(dict.fromkeys(fields))


@dataclass
class EncryptionResult:
    """Outcome of :meth:`BatchFieldOperator.encrypt_fields`."""

    data: Optional[dict[str, Any]]
    encrypted: list[str] = field(default_factory=list)

    def with_marker(self, marker_field: str = MARKER_FIELD) -> Optional[dict[str, Any]]:
        """Return ``data`` with the encrypted field list embedded as JSON.

        A stale marker is dropped when nothing ended up encrypted.
        """
        if self.data is None:
            return None
        record = dict(self.data)
        if self.encrypted:
            record[marker_field] = orjson.dumps(self.encrypted).decode("utf-8")
        else:
            record.pop(marker_field, None)
        return record


def _copy_record(record: Any) -> dict[str, Any]:
    if not isinstance(record, Mapping):
        raise InvalidArgumentError(
            f"record must be a mapping, got {type(record).__name__}"
        )
    return dict(record)


class BatchFieldOperator:
    """Encrypts and decrypts the sensitive fields of records."""

    def __init__(self, cipher: FieldCipher, marker_field: str = MARKER_FIELD):
        self._cipher = cipher
        self._marker_field = marker_field

    @property
    def marker_field(self) -> str:
        return self._marker_field

    def encrypt_fields(
        self,
        record: Optional[Mapping[str, Any]],
        fields: Optional[FieldList],
        tenant_id: Scope,
    ) -> EncryptionResult:
        """Encrypt the named fields of ``record``.

        Values that already look encrypted are kept as they are and still
        reported, so running this twice never double-encrypts. Empty values
        stay as they are and are not reported.

        Returns:
            EncryptionResult with the record copy and the encrypted names.
        """
        if record is None:
            return EncryptionResult(data=None, encrypted=[])
        result = _copy_record(record)
        encrypted: list[str] = []
        for name in field_names(fields):
            if name not in result:
                continue
            value = result[name]
            if looks_encrypted(value):
                encrypted.append(name)
                continue
            token = self._cipher.encrypt_value(value, tenant_id)
            if token is None:
                continue
            result[name] = token
            encrypted.append(name)
        logger.debug(
            "Encrypted field(s) %s for tenant=%s", encrypted, tenant_id,
        )
        return EncryptionResult(data=result, encrypted=encrypted)

    def marker_fields(self, record: Mapping[str, Any]) -> list[str]:
        """Read the field list stored in the reserved marker field.

        Raises:
            MalformedMarkerError: If the marker is not a JSON array of strings.
        """
        raw = record.get(self._marker_field)
        if raw is None or raw == "":
            return []
        if isinstance(raw, (str, bytes)):
            try:
                raw = orjson.loads(raw)
            except orjson.JSONDecodeError as err:
                raise MalformedMarkerError(
                    f"{self._marker_field} is not valid JSON"
                ) from err
        if not isinstance(raw, list) or not all(isinstance(n, str) for n in raw):
            raise MalformedMarkerError(
                f"{self._marker_field} must be a JSON array of field names"
            )
        return raw

    def decrypt_fields(
        self,
        record: Optional[Mapping[str, Any]],
        fields: Optional[FieldList],
        tenant_id: Scope,
    ) -> Optional[dict[str, Any]]:
        """Decrypt the named fields of ``record``.

        With ``fields=None`` the field list comes from the marker field.
        The marker is always removed from the output. Values that do not
        look encrypted (legacy plaintext) pass through unchanged.

        Raises:
            FieldDecryptionError: If any encrypted-looking field failed to
                decrypt. Raised after every other field was processed;
                ``err.data`` holds that partial copy.
        """
        if record is None:
            return None
        result = _copy_record(record)
        names = self.marker_fields(record) if fields is None else field_names(fields)
        result.pop(self._marker_field, None)

        failures: dict[str, DecryptionError] = {}
        for name in names:
            value = result.get(name)
            if not looks_encrypted(value):
                continue
            try:
                result[name] = self._cipher.decrypt_value(value, tenant_id)
            except DecryptionError as err:
                failures[name] = err
        if failures:
            logger.warning(
                "Failed to decrypt field(s) %s for tenant=%s",
                sorted(failures), tenant_id,
            )
            raise FieldDecryptionError(failures, data=result)
        return result

    def decrypt_object_array(
        self,
        records: Any,
        fields: Optional[FieldList],
        tenant_id: Scope,
    ) -> Any:
        """Decrypt every record of a list or tuple.

        Anything else (None, a string, a single mapping) is returned as is.

        Raises:
            FieldDecryptionError: After every record was processed, if any
                field failed. ``failures`` is keyed ``"<index>.<field>"`` and
                ``err.data`` holds the whole list, each failed record as its
                partial copy.
        """
        if not isinstance(records, (list, tuple)):
            return records
        results: list[Any] = []
        failures: dict[str, DecryptionError] = {}
        for index, record in enumerate(records):
            try:
                results.append(self.decrypt_fields(record, fields, tenant_id))
            except FieldDecryptionError as err:
                results.append(err.data)
                for name, error in err.failures.items():
                    failures[f"{index}.{name}"] = error
        if failures:
            raise FieldDecryptionError(failures, data=results)
        return results
