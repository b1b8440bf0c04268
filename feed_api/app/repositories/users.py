"""Credential storage."""

import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from ..core.db import Database, fits_integer
from ..core.errors import ValidationFailed, Violation


@dataclass(frozen=True)
class UserRecord:
    id: int
    identifier: str
    name: str
    password_hash: str
    status: str
    created_at: str


def _to_record(row) -> UserRecord:
    return UserRecord(
        id=row["id"],
        identifier=row["identifier"],
        name=row["name"],
        password_hash=row["password"],
        status=row["status"],
        created_at=row["created_at"],
    )


class UserRepository:
    """Users and their salted password hashes."""

    _columns = "id, identifier, name, password, status, created_at"

    def __init__(self, db: Database) -> None:
        self.db = db

    async def add(self, identifier: str, name: str, password_hash: str) -> UserRecord:
        """Insert a new user.

        Raises ``ValidationFailed`` when ``identifier`` is already taken.
        """
        created_at = datetime.now(timezone.utc).isoformat()
        async with self.db.connect() as conn:
            try:
                cursor = await conn.execute(
                    "INSERT INTO users (identifier, name, password, created_at) VALUES (?, ?, ?, ?)",
                    (identifier, name, password_hash, created_at),
                )
            except sqlite3.IntegrityError:
                raise ValidationFailed([Violation("identifier", "Identifier is already registered")])
            await conn.commit()
            user_id = cursor.lastrowid
        return UserRecord(
            id=user_id,
            identifier=identifier,
            name=name,
            password_hash=password_hash,
            status="I am new!",
            created_at=created_at,
        )

    async def get(self, user_id: int) -> Optional[UserRecord]:
        if not fits_integer(user_id):
            return None
        async with self.db.connect() as conn:
            async with conn.execute(f"SELECT {self._columns} FROM users WHERE id = ?", (user_id,)) as cursor:
                row = await cursor.fetchone()
        return _to_record(row) if row else None

    async def get_by_identifier(self, identifier: str) -> Optional[UserRecord]:
        async with self.db.connect() as conn:
            async with conn.execute(
                f"SELECT {self._columns} FROM users WHERE identifier = ?", (identifier,)
            ) as cursor:
                row = await cursor.fetchone()
        return _to_record(row) if row else None

    async def set_status(self, user_id: int, status: str) -> bool:
        if not fits_integer(user_id):
            return False
        async with self.db.connect() as conn:
            cursor = await conn.execute("UPDATE users SET status = ? WHERE id = ?", (status, user_id))
            await conn.commit()
            return cursor.rowcount > 0

    async def set_password_hash(self, user_id: int, password_hash: str) -> bool:
        """Replace the stored hash (secret rotation)."""
        if not fits_integer(user_id):
            return False
        async with self.db.connect() as conn:
            cursor = await conn.execute("UPDATE users SET password = ? WHERE id = ?", (password_hash, user_id))
            await conn.commit()
            return cursor.rowcount > 0
