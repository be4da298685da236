"""
Tests for the legacy plaintext backfill.
"""
import orjson
import pytest

from tenant_vault.backfill import encrypt_legacy_rows, quote_identifier
from tenant_vault.crypto import looks_encrypted
from tenant_vault.exceptions import ConfigurationError, InvalidArgumentError

ORG_A = "org_a"


class FakeTransaction:
    def __init__(self, db):
        self._db = db

    async def start(self):
        self._db.transactions.append("start")

    async def commit(self):
        self._db.transactions.append("commit")

    async def rollback(self):
        self._db.transactions.append("rollback")


class FakeConnection:
    def __init__(self, db):
        self._db = db

    async def fetch(self, sql, tenant_id, limit, offset):
        self._db.queries.append(sql)
        rows = [r for r in self._db.rows if r["organization_id"] == tenant_id]
        return [dict(r) for r in rows[offset:offset + limit]]

    async def execute(self, sql, *args):
        self._db.updates.append((sql, args))
        row_id = args[-1]
        row = next(r for r in self._db.rows if r["id"] == row_id)
        for name, value in zip(self._db.columns, args[:-1]):
            row[name] = value

    def transaction(self):
        return FakeTransaction(self._db)


class FakeAcquire:
    def __init__(self, db):
        self._db = db

    async def __aenter__(self):
        return FakeConnection(self._db)

    async def __aexit__(self, *exc):
        return False


class FakePool:
    """Minimal asyncpg-style pool over an in-memory table."""

    def __init__(self, rows, columns):
        self.rows = rows
        self.columns = columns
        self.queries = []
        self.updates = []
        self.transactions = []

    def acquire(self):
        return FakeAcquire(self)


@pytest.fixture
def pool(encryptor):
    rows = [
        {"id": 1, "organization_id": ORG_A, "medicalHistory": "高血壓", "notes": None, "_encrypted": None},
        {"id": 2, "organization_id": ORG_A, "medicalHistory": None, "notes": "  ", "_encrypted": None},
        {"id": 3, "organization_id": ORG_A, "medicalHistory": "糖尿病", "notes": "follow up", "_encrypted": None},
        {"id": 4, "organization_id": "org_b", "medicalHistory": "other", "notes": None, "_encrypted": None},
    ]
    return FakePool(rows, ["medicalHistory", "notes", "_encrypted"])


class TestEncryptLegacyRows:

    @pytest.mark.asyncio
    async def test_encrypts_plaintext_rows(self, pool, encryptor):
        stats = await encrypt_legacy_rows(
            pool, "patients", ["medicalHistory", "notes"], ORG_A, encryptor, batch_size=2,
        )

        assert stats == {"total": 3, "encrypted": 2, "skipped": 1, "errors": 0}
        first, second, third, other = pool.rows
        assert looks_encrypted(first["medicalHistory"])
        assert orjson.loads(first["_encrypted"]) == ["medicalHistory"]
        assert second["medicalHistory"] is None
        assert second["_encrypted"] is None
        assert orjson.loads(third["_encrypted"]) == ["medicalHistory", "notes"]
        assert other["medicalHistory"] == "other"
        assert encryptor.decrypt_fields(third, None, ORG_A)["notes"] == "follow up"
        assert pool.transactions == ["start", "commit", "start", "commit"]

    @pytest.mark.asyncio
    async def test_second_run_is_a_no_op(self, pool, encryptor):
        fields = ["medicalHistory", "notes"]
        await encrypt_legacy_rows(pool, "patients", fields, ORG_A, encryptor)
        snapshot = [dict(r) for r in pool.rows]
        pool.updates.clear()

        stats = await encrypt_legacy_rows(pool, "patients", fields, ORG_A, encryptor)

        assert stats == {"total": 3, "encrypted": 0, "skipped": 3, "errors": 0}
        assert pool.updates == []
        assert pool.rows == snapshot

    @pytest.mark.asyncio
    async def test_existing_marker_is_extended(self, encryptor):
        history = encryptor.encrypt_value("高血壓", ORG_A)
        rows = [
            {"id": 1, "organization_id": ORG_A, "medicalHistory": history,
             "allergies": "青黴素", "_encrypted": '["medicalHistory"]'},
            {"id": 2, "organization_id": ORG_A, "medicalHistory": history,
             "allergies": None, "_encrypted": '["medicalHistory"]'},
        ]
        pool = FakePool(rows, ["allergies", "_encrypted"])

        stats = await encrypt_legacy_rows(pool, "patients", ["allergies"], ORG_A, encryptor)

        assert stats == {"total": 2, "encrypted": 1, "skipped": 1, "errors": 0}
        first, second = pool.rows
        assert orjson.loads(first["_encrypted"]) == ["medicalHistory", "allergies"]
        assert second["_encrypted"] == '["medicalHistory"]'
        assert encryptor.decrypt_fields(first, None, ORG_A)["medicalHistory"] == "高血壓"
        assert encryptor.decrypt_fields(first, None, ORG_A)["allergies"] == "青黴素"
        assert encryptor.decrypt_fields(second, None, ORG_A)["medicalHistory"] == "高血壓"

    @pytest.mark.asyncio
    async def test_malformed_marker_counts_as_error(self, encryptor):
        rows = [{"id": 1, "organization_id": ORG_A, "notes": "n", "_encrypted": "not json"}]
        pool = FakePool(rows, ["notes", "_encrypted"])
        stats = await encrypt_legacy_rows(pool, "patients", ["notes"], ORG_A, encryptor)
        assert stats["errors"] == 1
        assert pool.rows[0]["notes"] == "n"

    @pytest.mark.asyncio
    async def test_sql_uses_quoted_identifiers(self, pool, encryptor):
        await encrypt_legacy_rows(pool, "patients", ["medicalHistory"], ORG_A, encryptor)
        assert pool.queries[0] == (
            'SELECT "id", "medicalHistory", "_encrypted" FROM "patients" '
            'WHERE "organization_id" = $1 ORDER BY "id" LIMIT $2 OFFSET $3'
        )
        sql, args = pool.updates[0]
        assert sql == 'UPDATE "patients" SET "medicalHistory" = $1, "_encrypted" = $2 WHERE "id" = $3'
        assert args[-1] == 1

    @pytest.mark.asyncio
    async def test_unserializable_value_counts_as_error(self, encryptor):
        rows = [{"id": 1, "organization_id": ORG_A, "notes": object(), "_encrypted": None}]
        pool = FakePool(rows, ["notes", "_encrypted"])
        stats = await encrypt_legacy_rows(pool, "patients", ["notes"], ORG_A, encryptor)
        assert stats["errors"] == 1
        assert pool.transactions == ["start", "commit"]

    @pytest.mark.asyncio
    async def test_missing_secret_aborts(self, pool, unconfigured_encryptor):
        with pytest.raises(ConfigurationError):
            await encrypt_legacy_rows(
                pool, "patients", ["medicalHistory"], ORG_A, unconfigured_encryptor,
            )
        assert pool.transactions == ["start", "rollback"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kwargs", [
        {"table": "patients; DROP TABLE x"},
        {"fields": []},
        {"fields": ["bad name"]},
        {"tenant_id": ""},
        {"batch_size": 0},
    ])
    async def test_invalid_arguments(self, pool, encryptor, kwargs):
        params = {
            "table": "patients",
            "fields": ["medicalHistory"],
            "tenant_id": ORG_A,
            "batch_size": 10,
        }
        params.update(kwargs)
        with pytest.raises(InvalidArgumentError):
            await encrypt_legacy_rows(
                pool, params["table"], params["fields"], params["tenant_id"],
                encryptor, batch_size=params["batch_size"],
            )
        assert pool.queries == []


def test_quote_identifier():
    assert quote_identifier("medicalHistory") == '"medicalHistory"'
    with pytest.raises(InvalidArgumentError):
        quote_identifier('x"y')
