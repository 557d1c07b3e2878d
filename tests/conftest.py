import base64

import pytest

from meitre_mcp.config import reset_settings
from meitre_mcp.storage.crypto import TokenCipher
from meitre_mcp.storage.database import DatabaseManager
from meitre_mcp.storage.token_cache import TokenCache

TEST_KEY = base64.b64encode(b"k" * 32).decode()
OTHER_KEY = base64.b64encode(b"z" * 32).decode()


@pytest.fixture(autouse=True)
def _set_test_env(monkeypatch: pytest.MonkeyPatch, tmp_path):
    """Ensure required env vars are set and settings are rebuilt for every test."""
    monkeypatch.setenv("ENCRYPTION_KEY", TEST_KEY)
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
async def db():
    """In-memory SQLite database with schema applied."""
    manager = DatabaseManager(":memory:")
    await manager.initialize()
    yield manager
    await manager.close()


@pytest.fixture
def cipher() -> TokenCipher:
    return TokenCipher(TEST_KEY)


@pytest.fixture
def token_cache(db, cipher) -> TokenCache:
    return TokenCache(db, cipher)
