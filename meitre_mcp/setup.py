"""Setup CLI: ``python -m meitre_mcp.setup``

Generates the token encryption key, creates the SQLite token store and
prints the environment and MCP client configuration to use with it.
"""

import asyncio
import json
import os
from pathlib import Path

from meitre_mcp.config import DEFAULT_DATA_DIR
from meitre_mcp.storage.crypto import generate_key
from meitre_mcp.storage.database import DatabaseManager


async def _create_token_store(db_path: Path) -> None:
    async with DatabaseManager(db_path):
        pass


def _client_config(url: str) -> dict:
    """MCP client entry passing the Meitre account through headers."""
    return {
        "mcpServers": {
            "meitre": {
                "url": url,
                "headers": {
                    "username": "<meitre-username>",
                    "password": "<meitre-password>",
                    "restaurant": "<optional restaurant subdomain>",
                },
            }
        }
    }


async def _run_setup(data_dir: Path, url: str = "http://localhost:8000/mcp") -> str:
    """Core async setup logic. Returns the generated key."""
    print()
    print("Meitre MCP - Setup")
    print("=" * 40)
    print()

    encryption_key = generate_key()

    data_dir.mkdir(parents=True, exist_ok=True)
    db_path = data_dir / "tokens.db"
    await _create_token_store(db_path)
    print("Token store created at", db_path)
    print()

    print("Add this to your .env (keep it secret, rotating it drops cached tokens):")
    print()
    print(f"ENCRYPTION_KEY={encryption_key}")
    print(f"DATA_DIR={data_dir.resolve()}")
    print()

    print("Add this to your MCP client config:")
    print()
    print(json.dumps(_client_config(url), indent=2))
    print()
    return encryption_key


def main() -> None:
    """Entry point for ``python -m meitre_mcp.setup``."""
    data_dir = Path(os.environ.get("DATA_DIR", DEFAULT_DATA_DIR))
    asyncio.run(_run_setup(data_dir))


if __name__ == "__main__":  # pragma: no cover
    main()
