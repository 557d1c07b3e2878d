"""Tests for the setup CLI (meitre_mcp.setup)."""

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import aiosqlite

from meitre_mcp.config import DEFAULT_DATA_DIR, Settings
from meitre_mcp.setup import _client_config, _run_setup, main
from meitre_mcp.storage.crypto import TokenCipher
from tests.conftest import TEST_KEY


class TestClientConfig:
    def test_passes_account_through_headers(self):
        config = _client_config("http://localhost:8000/mcp")
        server = config["mcpServers"]["meitre"]
        assert server["url"] == "http://localhost:8000/mcp"
        assert set(server["headers"]) == {"username", "password", "restaurant"}


class TestRunSetup:
    async def test_creates_token_store(self, tmp_path):
        data_dir = tmp_path / "data"

        with patch("builtins.print"):
            await _run_setup(data_dir)

        db_path = data_dir / "tokens.db"
        assert db_path.exists()
        async with aiosqlite.connect(str(db_path)) as conn:
            cursor = await conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name='tokens'"
            )
            assert await cursor.fetchone() is not None

    async def test_returns_usable_key(self, tmp_path):
        with patch("builtins.print"):
            key = await _run_setup(tmp_path / "data")

        cipher = TokenCipher(key)
        assert cipher.decrypt(cipher.encrypt("tok")) == "tok"

    async def test_prints_env_and_client_config(self, tmp_path, capsys):
        with patch("meitre_mcp.setup.generate_key", return_value=TEST_KEY):
            await _run_setup(tmp_path / "data", url="http://mcp.test/mcp")

        out = capsys.readouterr().out
        assert f"ENCRYPTION_KEY={TEST_KEY}" in out
        assert "DATA_DIR=" in out
        config = json.loads(out[out.index("{"): out.rindex("}") + 1])
        assert config["mcpServers"]["meitre"]["url"] == "http://mcp.test/mcp"

    async def test_rerun_keeps_existing_store(self, tmp_path):
        data_dir = tmp_path / "data"
        with patch("builtins.print"):
            await _run_setup(data_dir)
            await _run_setup(data_dir)
        assert (data_dir / "tokens.db").exists()


class TestMain:
    def test_main_calls_run_setup(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
        mock_run = AsyncMock()
        with patch("meitre_mcp.setup._run_setup", mock_run):
            main()
        mock_run.assert_awaited_once()
        assert mock_run.call_args[0][0] == Path(str(tmp_path / "data"))

    def test_main_defaults_to_data_dir(self, monkeypatch):
        monkeypatch.delenv("DATA_DIR", raising=False)
        mock_run = AsyncMock()
        with patch("meitre_mcp.setup._run_setup", mock_run):
            main()
        assert mock_run.call_args[0][0] == DEFAULT_DATA_DIR

    def test_default_matches_server_data_dir(self, monkeypatch):
        monkeypatch.delenv("DATA_DIR", raising=False)
        mock_run = AsyncMock()
        with patch("meitre_mcp.setup._run_setup", mock_run):
            main()
        assert mock_run.call_args[0][0] == Settings(_env_file=None).db_path.parent
