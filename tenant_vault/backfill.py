"""
Legacy Backfill: encrypt plaintext fields left over from before encryption.

Pages through one tenant's rows and encrypts the sensitive fields that are
not encrypted yet, adding them to the ``_encrypted`` marker alongside
(names the marker already lists are kept). Each batch
runs in its own transaction. The operation is idempotent: values that
already look encrypted are left alone and rows with nothing to do are
skipped.

Security Note:
    Plaintext exists in memory only while its row is processed.
    Never log plaintext or ciphertext values.
"""
import re
import logging
from typing import Any

from .crypto.engine import FieldEncryptor
from .crypto.fields import EncryptionResult, FieldList, field_names
from .exceptions import ConfigurationError, FieldEncryptionError, InvalidArgumentError

logger = logging.getLogger("tenant_vault.backfill")

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]{0,62}")


def quote_identifier(name: str) -> str:
    """Double-quote a table or column name after checking it is plain."""
    if not isinstance(name, str) or not _IDENTIFIER.fullmatch(name):
        raise InvalidArgumentError(f"Invalid SQL identifier: {name!r}")
    return f'"{name}"'


def _build_statements(
    table: str, names: list[str], id_column: str, tenant_column: str, marker: str,
) -> tuple[str, str]:
    tbl = quote_identifier(table)
    id_col = quote_identifier(id_column)
    columns = [quote_identifier(n) for n in names]
    marker_col = quote_identifier(marker)
    select = (
        f"SELECT {id_col}, {', '.join(columns)}, {marker_col} "
        f"FROM {tbl} WHERE {quote_identifier(tenant_column)} = $1 "
        f"ORDER BY {id_col} LIMIT $2 OFFSET $3"
    )
    assignments = [f"{col} = ${i}" for i, col in enumerate(columns + [marker_col], 1)]
    update = (
        f"UPDATE {tbl} SET {', '.join(assignments)} "
        f"WHERE {id_col} = ${len(assignments) + 1}"
    )
    return select, update


async def encrypt_legacy_rows(
    db_pool: Any,
    table: str,
    fields: FieldList,
    tenant_id: str,
    encryptor: FieldEncryptor,
    *,
    id_column: str = "id",
    tenant_column: str = "organization_id",
    batch_size: int = 100,
) -> dict:
    """Encrypt every not-yet-encrypted sensitive field of a tenant's rows.

    Args:
        db_pool: asyncpg-compatible connection pool.
        table: Table holding the records.
        fields: Sensitive field (column) names or a FieldPolicy.
        tenant_id: Tenant whose rows are processed and whose key is used.
        encryptor: Field encryption engine.
        id_column: Primary key column, used for ordering and updates.
        tenant_column: Column holding the tenant id.
        batch_size: Number of rows to process per batch/transaction.

    Returns:
        Stats dict with keys: total, encrypted, skipped, errors.

    Raises:
        InvalidArgumentError: Empty tenant id, no fields, or a bad identifier.
        ConfigurationError: Master secret missing or malformed.
    """
    names = field_names(fields)
    if not names:
        raise InvalidArgumentError("At least one field is required")
    if batch_size < 1:
        raise InvalidArgumentError("batch_size must be positive")
    cipher = encryptor.for_tenant(tenant_id)
    marker = encryptor.marker_field
    select_sql, update_sql = _build_statements(
        table, names, id_column, tenant_column, marker,
    )

    stats = {"total": 0, "encrypted": 0, "skipped": 0, "errors": 0}
    offset = 0

    logger.info(
        "Starting field encryption backfill of %s for tenant=%s (batch_size=%d)",
        table, tenant_id, batch_size,
    )

    while True:
        async with db_pool.acquire() as conn:
            rows = await conn.fetch(select_sql, tenant_id, batch_size, offset)

        if not rows:
            break

        batch_num = (offset // batch_size) + 1
        logger.info("Processing batch %d (%d rows)", batch_num, len(rows))

        async with db_pool.acquire() as conn:
            tx = conn.transaction()
            await tx.start()
            try:
                for row in rows:
                    stats["total"] += 1
                    record = dict(row)
                    row_id = record[id_column]
                    try:
                        result = cipher.encrypt_fields(record, names)
                        stored = encryptor.marker_fields(record)
                        # fields listed by earlier runs stay in the marker
                        listed = list(dict.fromkeys(stored + result.encrypted))
                        unchanged = all(
                            result.data.get(n) == record.get(n) for n in names
                        )
                        if unchanged and listed == stored:
                            stats["skipped"] += 1
                            continue
                        updated = EncryptionResult(result.data, listed).with_marker(marker)
                        await conn.execute(
                            update_sql,
                            *[updated.get(n) for n in names],
                            updated.get(marker),
                            row_id,
                        )
                        stats["encrypted"] += 1
                    except ConfigurationError:
                        raise
                    except FieldEncryptionError as err:
                        logger.error(
                            "Error encrypting %s id=%s: %s", table, row_id, err,
                        )
                        stats["errors"] += 1

                await tx.commit()
            except Exception:
                await tx.rollback()
                raise

        offset += len(rows)

    logger.info("Field encryption backfill complete: %s", stats)
    return stats
