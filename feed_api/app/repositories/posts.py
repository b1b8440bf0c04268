"""Post storage and the paginated read path."""

import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..core.db import Database, fits_integer
from ..core.errors import NotFound
from .users import UserRecord, _to_record as _to_user


@dataclass(frozen=True)
class PostRecord:
    id: int
    owner_id: int
    title: str
    content: str
    image_url: Optional[str]
    created_at: str
    updated_at: str


def _to_record(row) -> PostRecord:
    return PostRecord(
        id=row["id"],
        owner_id=row["owner_id"],
        title=row["title"],
        content=row["content"],
        image_url=row["image_url"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class PostRepository:
    """CRUD access to posts.

    ``owner_id`` is set once by ``add`` and no method changes it.  Ids
    outside SQLite's integer range cannot exist, so lookups on them
    return ``None`` without touching the database.
    """

    _columns = "id, owner_id, title, content, image_url, created_at, updated_at"
    _mutable = {"title", "content", "image_url"}

    def __init__(self, db: Database) -> None:
        self.db = db

    async def add(self, owner_id: int, title: str, content: str, image_url: Optional[str] = None) -> PostRecord:
        """Insert a post.  Raises ``NotFound`` when ``owner_id`` has no account."""
        if not fits_integer(owner_id):
            raise NotFound("User not found")
        created_at = _now()
        async with self.db.connect() as conn:
            try:
                cursor = await conn.execute(
                    "INSERT INTO posts (owner_id, title, content, image_url, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (owner_id, title, content, image_url, created_at, created_at),
                )
            except sqlite3.IntegrityError:
                raise NotFound("User not found")
            await conn.commit()
            post_id = cursor.lastrowid
        return PostRecord(
            id=post_id,
            owner_id=owner_id,
            title=title,
            content=content,
            image_url=image_url,
            created_at=created_at,
            updated_at=created_at,
        )

    async def get(self, post_id: int) -> Optional[PostRecord]:
        if not fits_integer(post_id):
            return None
        async with self.db.connect() as conn:
            async with conn.execute(f"SELECT {self._columns} FROM posts WHERE id = ?", (post_id,)) as cursor:
                row = await cursor.fetchone()
        return _to_record(row) if row else None

    async def update(self, post_id: int, changes: Dict[str, Any]) -> Optional[PostRecord]:
        """Apply ``changes`` and return the stored record, or ``None`` if absent."""
        unknown = set(changes) - self._mutable
        if unknown:
            raise ValueError(f"Fields cannot be updated: {sorted(unknown)}")
        if not fits_integer(post_id):
            return None
        fields = dict(changes, updated_at=_now())
        assignments = ", ".join(f"{name} = ?" for name in fields)
        async with self.db.connect() as conn:
            cursor = await conn.execute(
                f"UPDATE posts SET {assignments} WHERE id = ?",
                (*fields.values(), post_id),
            )
            await conn.commit()
            if cursor.rowcount == 0:
                return None
            async with conn.execute(f"SELECT {self._columns} FROM posts WHERE id = ?", (post_id,)) as cur:
                row = await cur.fetchone()
        return _to_record(row) if row else None

    async def delete(self, post_id: int) -> bool:
        if not fits_integer(post_id):
            return False
        async with self.db.connect() as conn:
            cursor = await conn.execute("DELETE FROM posts WHERE id = ?", (post_id,))
            await conn.commit()
            return cursor.rowcount > 0

    async def list_window(self, offset: int, limit: int) -> List[PostRecord]:
        """Return up to ``limit`` posts from ``offset`` in creation order.

        Ties on ``created_at`` are broken by ``id`` so repeated calls over
        an unchanged table return identical windows.
        """
        if not (fits_integer(offset) and fits_integer(limit)):
            return []
        async with self.db.connect() as conn:
            async with conn.execute(
                f"SELECT {self._columns} FROM posts ORDER BY created_at ASC, id ASC LIMIT ? OFFSET ?",
                (limit, offset),
            ) as cursor:
                rows = await cursor.fetchall()
        return [_to_record(row) for row in rows]

    async def count(self) -> int:
        async with self.db.connect() as conn:
            async with conn.execute("SELECT COUNT(*) AS count FROM posts") as cursor:
                row = await cursor.fetchone()
        return row["count"]

    async def get_owner(self, post: PostRecord) -> Optional[UserRecord]:
        """Resolve ``post.owner_id`` to its user record."""
        async with self.db.connect() as conn:
            async with conn.execute(
                "SELECT id, identifier, name, password, status, created_at FROM users WHERE id = ?",
                (post.owner_id,),
            ) as cursor:
                row = await cursor.fetchone()
        return _to_user(row) if row else None
