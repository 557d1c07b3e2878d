"""Encrypted bearer-token cache keyed by account identity."""

import logging
import time

from meitre_mcp.storage.crypto import DecryptionError, TokenCipher
from meitre_mcp.storage.database import DatabaseManager

logger = logging.getLogger(__name__)


class TokenCache:
    """Read/write encrypted upstream tokens in the ``tokens`` table.

    Entries have no TTL: they live until overwritten by a fresh login or
    deleted after the upstream rejects them.

    Args:
        db: An initialized DatabaseManager.
        cipher: Cipher holding the server's master key.
    """

    def __init__(self, db: DatabaseManager, cipher: TokenCipher) -> None:
        self.db = db
        self._cipher = cipher

    async def get(self, cache_key: str) -> str | None:
        """Return the decrypted token for *cache_key*, or ``None`` if missing.

        A row that fails to decrypt is reported as a miss.
        """
        row = await self.db.fetch_one(
            "SELECT token FROM tokens WHERE cache_key = ?", (cache_key,),
        )
        if row is None:
            return None
        try:
            return self._cipher.decrypt(row["token"])
        except DecryptionError:
            logger.warning("Failed to decrypt cached token for %s", cache_key)
            return None

    async def set(self, cache_key: str, token: str) -> None:
        """Encrypt and store *token* under *cache_key* (upsert)."""
        encrypted = self._cipher.encrypt(token)
        await self.db.execute(
            "INSERT INTO tokens (cache_key, token, created_at) VALUES (?, ?, ?) "
            "ON CONFLICT(cache_key) DO UPDATE SET "
            "token = excluded.token, created_at = excluded.created_at",
            (cache_key, encrypted, int(time.time())),
        )

    async def delete(self, cache_key: str) -> None:
        """Remove the entry for *cache_key*; a missing key is not an error."""
        await self.db.execute("DELETE FROM tokens WHERE cache_key = ?", (cache_key,))
