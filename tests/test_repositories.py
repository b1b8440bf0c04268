"""
Tests for the SQLite repositories and the pagination layer.
"""

import math
from unittest.mock import patch

import aiosqlite
import pytest

from feed_api.app.core.db import Database
from feed_api.app.core.errors import NotFound, StorageFailure, ValidationFailed
from feed_api.app.services.pagination import PaginationService, page_window


async def make_owner(users, identifier="u1"):
    return await users.add(identifier, "Owner", "pbkdf2_sha256$1$00$00")


@pytest.mark.asyncio
async def test_init_is_idempotent(db):
    await db.init()

    async with db.connect() as conn:
        async with conn.execute("SELECT version FROM migrations ORDER BY version") as cursor:
            versions = [row["version"] for row in await cursor.fetchall()]
    assert versions == [1, 2]


@pytest.mark.asyncio
async def test_duplicate_identifier_is_a_validation_failure(users):
    await make_owner(users)

    with pytest.raises(ValidationFailed) as exc_info:
        await make_owner(users)

    assert exc_info.value.violations[0].field == "identifier"


@pytest.mark.asyncio
async def test_user_status_and_secret_rotation(users):
    user = await make_owner(users)
    assert user.status == "I am new!"

    assert await users.set_status(user.id, "busy") is True
    assert await users.set_password_hash(user.id, "pbkdf2_sha256$2$11$22") is True

    stored = await users.get(user.id)
    assert stored.status == "busy"
    assert stored.password_hash == "pbkdf2_sha256$2$11$22"
    assert await users.set_status(999, "ghost") is False


@pytest.mark.asyncio
async def test_post_crud_keeps_owner(users, posts):
    owner = await make_owner(users)
    post = await posts.add(owner.id, "hello", "world!")

    updated = await posts.update(post.id, {"title": "hello again"})

    assert updated.owner_id == owner.id
    assert updated.title == "hello again"
    assert updated.content == "world!"
    assert updated.created_at == post.created_at
    assert await posts.delete(post.id) is True
    assert await posts.get(post.id) is None
    assert await posts.delete(post.id) is False
    assert await posts.update(post.id, {"title": "gone!"}) is None


@pytest.mark.asyncio
async def test_owner_cannot_be_changed_through_update(users, posts):
    owner = await make_owner(users)
    post = await posts.add(owner.id, "hello", "world!")

    with pytest.raises(ValueError):
        await posts.update(post.id, {"owner_id": 99})


@pytest.mark.asyncio
async def test_get_owner_is_an_explicit_lookup(users, posts):
    owner = await make_owner(users)
    post = await posts.add(owner.id, "hello", "world!")

    resolved = await posts.get_owner(post)

    assert resolved.id == owner.id
    assert resolved.name == "Owner"


@pytest.mark.asyncio
async def test_driver_errors_become_storage_failures(tmp_path):
    db = Database(str(tmp_path / "broken.db"))
    with patch("feed_api.app.core.db.aiosqlite.connect", side_effect=aiosqlite.OperationalError("disk I/O error")):
        with pytest.raises(StorageFailure):
            await db.init()


@pytest.mark.asyncio
async def test_missing_table_is_a_storage_failure(tmp_path, posts):
    bare = Database(str(tmp_path / "empty.db"))
    posts.db = bare

    with pytest.raises(StorageFailure):
        await posts.count()


@pytest.mark.parametrize(
    "page, size, expected",
    [(1, 10, (0, 10)), (3, 10, (20, 10)), (0, 5, (0, 5)), (-4, 5, (0, 5))],
)
def test_page_window(page, size, expected):
    assert page_window(page, size) == expected


@pytest.mark.asyncio
async def test_pages_concatenate_to_the_whole_collection(users, posts):
    owner = await make_owner(users)
    created = [await posts.add(owner.id, f"title {i}", f"content {i}") for i in range(7)]
    pagination = PaginationService(posts, default_page_size=3)

    seen = []
    for page in range(1, math.ceil(len(created) / 3) + 1):
        result = await pagination.list(page, 3)
        assert result.total_count == 7
        seen.extend(item.id for item in result.items)

    assert seen == [post.id for post in created]
    assert len(set(seen)) == len(seen)
    assert (await pagination.list(4, 3)).items == []


@pytest.mark.asyncio
async def test_listing_is_deterministic_when_timestamps_tie(users, posts):
    owner = await make_owner(users)
    with patch("feed_api.app.repositories.posts._now", return_value="2026-01-01T00:00:00+00:00"):
        for i in range(4):
            await posts.add(owner.id, f"title {i}", f"content {i}")
    pagination = PaginationService(posts)

    first = [p.id for p in (await pagination.list(1, 10)).items]
    second = [p.id for p in (await pagination.list(1, 10)).items]

    assert first == second == sorted(first)


@pytest.mark.asyncio
async def test_page_below_one_reads_first_page(users, posts):
    owner = await make_owner(users)
    for i in range(3):
        await posts.add(owner.id, f"title {i}", f"content {i}")
    pagination = PaginationService(posts, default_page_size=2)

    first = await pagination.list(1, 2)
    for page in (0, -1, None):
        assert (await pagination.list(page, 2)).items == first.items


@pytest.mark.parametrize("requested, expected", [(None, 4), (0, 4), (-3, 4), (7, 7), (500, 20)])
def test_page_size_is_clamped(requested, expected):
    pagination = PaginationService(None, default_page_size=4, max_page_size=20)

    assert pagination.clamp_page_size(requested) == expected


@pytest.mark.asyncio
async def test_ids_outside_integer_range_match_nothing(users, posts):
    owner = await make_owner(users)
    await posts.add(owner.id, "hello", "world!")
    huge = 2**63

    assert await posts.get(huge) is None
    assert await posts.update(huge, {"title": "never"}) is None
    assert await posts.delete(huge) is False
    assert await posts.list_window(huge, 10) == []
    assert await users.get(huge) is None
    assert await users.set_status(-(2**63) - 1, "ghost") is False
    assert await posts.count() == 1


@pytest.mark.asyncio
async def test_post_for_missing_owner_is_not_found(posts):
    for owner_id in (404, 2**64):
        with pytest.raises(NotFound):
            await posts.add(owner_id, "hello", "world!")

    assert await posts.count() == 0
