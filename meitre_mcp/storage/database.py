import logging
from pathlib import Path

import aiosqlite

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Async SQLite connection holder.

    All SQL in the application goes through this class or the stores
    built on top of it (see ``TokenCache``).
    """

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = str(db_path)
        self.connection: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        """Open connection, enable WAL mode, execute schema."""
        self.connection = await aiosqlite.connect(self.db_path)
        self.connection.row_factory = aiosqlite.Row
        schema_path = Path(__file__).parent / "schema.sql"
        schema_sql = schema_path.read_text()
        await self.connection.executescript(schema_sql)
        await self.connection.execute("PRAGMA journal_mode=WAL")
        await self.connection.commit()
        logger.info("Database initialized at %s", self.db_path)

    async def close(self) -> None:
        """Close the database connection."""
        if self.connection:
            await self.connection.close()
            self.connection = None

    async def __aenter__(self) -> "DatabaseManager":
        await self.initialize()
        return self

    async def __aexit__(
        self, exc_type: type | None, exc_val: Exception | None, exc_tb: object
    ) -> None:
        await self.close()

    async def execute(self, sql: str, params: tuple = ()) -> aiosqlite.Cursor:
        """Execute a single SQL statement and commit."""
        assert self.connection is not None
        cursor = await self.connection.execute(sql, params)
        await self.connection.commit()
        return cursor

    async def fetch_one(self, sql: str, params: tuple = ()) -> dict | None:
        """Execute a query and return a single row as a dict, or None."""
        assert self.connection is not None
        cursor = await self.connection.execute(sql, params)
        row = await cursor.fetchone()
        if row is None:
            return None
        return dict(row)
