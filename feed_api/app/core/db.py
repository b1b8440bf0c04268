"""
SQLite database integration and simple migration system.

This module provides the ``Database`` handle used by the repositories.
Every operation opens its own ``aiosqlite`` connection through
``Database.connect`` so that storage I/O never blocks the event loop and
no connection is shared between concurrent requests.

Schema changes are applied by ``Database.init`` at application startup.
Applied versions are recorded in the ``migrations`` table and new
migrations are executed in order.  To change the schema, append a new
``(version, sql)`` entry to ``MIGRATIONS``.
"""

import logging
import os
import sqlite3
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, List, Tuple

import aiosqlite

from .errors import StorageFailure


logger = logging.getLogger(__name__)

# SQLite stores INTEGER as a signed 64-bit value; larger Python ints
# cannot be bound as parameters.
SQLITE_MAX_INTEGER = 2**63 - 1
SQLITE_MIN_INTEGER = -(2**63)


def fits_integer(value: int) -> bool:
    """Return whether ``value`` can be bound as an SQLite INTEGER."""
    return SQLITE_MIN_INTEGER <= value <= SQLITE_MAX_INTEGER


MIGRATIONS: List[Tuple[int, str]] = [
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            identifier TEXT NOT NULL UNIQUE,
            name TEXT NOT NULL,
            password TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'I am new!',
            created_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS posts (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            owner_id INTEGER NOT NULL,
            title TEXT NOT NULL,
            content TEXT NOT NULL,
            image_url TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            FOREIGN KEY(owner_id) REFERENCES users(id)
        );
        """,
    ),
    (
        2,
        """
        CREATE INDEX IF NOT EXISTS idx_posts_created ON posts (created_at, id);
        CREATE INDEX IF NOT EXISTS idx_posts_owner ON posts (owner_id);
        """,
    ),
]


def resolve_database_path(database_url: str) -> str:
    """Compute the path to the SQLite database file.

    ``:memory:`` and absolute paths are returned unchanged; relative
    paths are resolved against the project root.
    """
    if database_url == ":memory:" or os.path.isabs(database_url):
        return database_url
    base_dir = Path(__file__).resolve().parent.parent.parent.parent
    return str((base_dir / database_url).resolve())


class Database:
    """Connection factory for one SQLite file."""

    def __init__(self, database_url: str) -> None:
        self.path = resolve_database_path(database_url)

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield a connection and close it on exit.

        Rows are returned as ``sqlite3.Row`` objects keyed by column name
        and foreign key enforcement is enabled.  Driver errors escape as
        ``StorageFailure`` with the original error chained.
        """
        try:
            conn = await aiosqlite.connect(self.path)
        except (aiosqlite.Error, sqlite3.Error, OSError) as exc:
            raise StorageFailure() from exc
        try:
            conn.row_factory = sqlite3.Row
            await conn.execute("PRAGMA foreign_keys = ON")
            yield conn
        except (aiosqlite.Error, sqlite3.Error) as exc:
            raise StorageFailure() from exc
        finally:
            await conn.close()

    async def init(self) -> None:
        """Create the database file if needed and apply pending migrations."""
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        async with self.connect() as conn:
            await conn.execute(
                "CREATE TABLE IF NOT EXISTS migrations (version INTEGER PRIMARY KEY, applied_at TEXT DEFAULT CURRENT_TIMESTAMP)"
            )
            async with conn.execute("SELECT COALESCE(MAX(version), 0) AS version FROM migrations") as cursor:
                row = await cursor.fetchone()
            current = row["version"]
            for version, sql in MIGRATIONS:
                if version <= current:
                    continue
                logger.info("Applying migration %s to %s", version, self.path)
                await conn.executescript(sql)
                await conn.execute("INSERT INTO migrations (version) VALUES (?)", (version,))
            await conn.commit()
