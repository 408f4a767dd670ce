import aiosqlite
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator
import logging

from core.errors import Internal

logger = logging.getLogger(__name__)


def utcnow_iso() -> str:
    """Current UTC time as an ISO-8601 string, the format of every timestamp column."""
    return datetime.now(timezone.utc).isoformat()


class Database:
    def __init__(self, path: str):
        self.path = path

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Open a fresh connection per call. Storage errors escaping the block
        are surfaced as Internal.
        """
        try:
            conn = await aiosqlite.connect(self.path)
        except aiosqlite.Error as e:
            logger.error(f"Cannot open database {self.path}: {e}")
            raise Internal("Storage unavailable") from e

        try:
            await conn.execute("PRAGMA journal_mode=WAL;")
            await conn.execute("PRAGMA foreign_keys=ON;")
            conn.row_factory = aiosqlite.Row
            yield conn
        except aiosqlite.Error as e:
            logger.error(f"Storage failure: {e}")
            raise Internal("Storage failure") from e
        finally:
            await conn.close()

    async def init_tables(self) -> None:
        """Initialize user and annotation tables."""
        db_dir = os.path.dirname(self.path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

        async with self.connect() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    username TEXT NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            await conn.execute("""
                CREATE TABLE IF NOT EXISTS ratings (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    item_id TEXT NOT NULL,
                    value INTEGER NOT NULL CHECK (value BETWEEN 1 AND 5),
                    revision INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
                    UNIQUE(user_id, item_id)
                )
            """)

            await conn.execute("""
                CREATE TABLE IF NOT EXISTS comments (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    item_id TEXT NOT NULL,
                    text TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT,
                    FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
                )
            """)

            await conn.execute("CREATE INDEX IF NOT EXISTS idx_ratings_item ON ratings(item_id)")
            await conn.execute("CREATE INDEX IF NOT EXISTS idx_comments_item ON comments(item_id, created_at)")

            await conn.commit()
            logger.info("Database tables initialized")
