"""
Shared pytest fixtures for Feed API tests.

Every test gets its own SQLite file and upload directory under
``tmp_path``, so tests never share state.  Password hashing uses a low
iteration count to keep the suite fast.
"""

from typing import Tuple

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from feed_api.app.core.config import Settings
from feed_api.app.core.db import Database
from feed_api.app.main import create_app
from feed_api.app.realtime.hub import NotificationHub
from feed_api.app.repositories import PostRepository, UserRepository
from feed_api.app.services.file_storage import FileStorage


TEST_SECRET = "test-signing-secret"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        secret_key=TEST_SECRET,
        database_url=str(tmp_path / "feed.db"),
        upload_dir=str(tmp_path / "images"),
        password_hash_iterations=1_000,
        default_page_size=2,
        max_page_size=50,
        log_level="WARNING",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    # Entering the context runs the startup handlers: migrations and the
    # hub's broadcast loop.
    with TestClient(app) as test_client:
        yield test_client


@pytest_asyncio.fixture
async def db(tmp_path) -> Database:
    database = Database(str(tmp_path / "repo.db"))
    await database.init()
    return database


@pytest.fixture
def users(db) -> UserRepository:
    return UserRepository(db)


@pytest.fixture
def posts(db) -> PostRepository:
    return PostRepository(db)


@pytest.fixture
def storage(tmp_path) -> FileStorage:
    file_storage = FileStorage(str(tmp_path / "uploads"))
    file_storage.ensure_root()
    return file_storage


@pytest.fixture
def hub() -> NotificationHub:
    return NotificationHub(queue_size=10)


def signup_and_login(client: TestClient, identifier: str, secret: str = "pw12345", name: str = "Test User") -> Tuple[str, int]:
    """Register ``identifier`` and return ``(token, subject_id)``."""
    resp = client.post(
        "/api/v1/auth/signup",
        json={"identifier": identifier, "secret": secret, "name": name},
    )
    assert resp.status_code == 201, resp.text
    resp = client.post("/api/v1/auth/login", json={"identifier": identifier, "secret": secret})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    return body["token"], body["subjectId"]


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
