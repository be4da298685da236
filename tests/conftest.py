"""
Pytest configuration and fixtures for field encryption tests.
"""
import pytest

from tenant_vault.crypto import EncryptionConfig, FieldEncryptor, MasterSecret

SECRET = "8080364f7d10c3496ba98167a531ffc5535cf49e72656d86d7a2452f9e271e0c"
OTHER_SECRET = "0f1e2d3c4b5a69788796a5b4c3d2e1f00112233445566778899aabbccddeeff0"

ORG_A = "org_a"
ORG_B = "org_b"


@pytest.fixture
def secret() -> MasterSecret:
    return MasterSecret(SECRET)


@pytest.fixture
def encryptor(secret) -> FieldEncryptor:
    """Engine with a valid master secret and default settings."""
    return FieldEncryptor(secret)


@pytest.fixture
def other_encryptor() -> FieldEncryptor:
    """Engine with a different master secret."""
    return FieldEncryptor(MasterSecret(OTHER_SECRET))


@pytest.fixture
def unconfigured_encryptor() -> FieldEncryptor:
    """Engine whose master secret is missing."""
    return FieldEncryptor(MasterSecret(None), EncryptionConfig())


@pytest.fixture
def clean_env(monkeypatch):
    """Remove encryption-related variables from the environment."""
    for name in (
        "ENCRYPTION_KEY",
        "FIELD_ENCRYPTION_NONCE_SIZE",
        "FIELD_ENCRYPTION_MARKER",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
