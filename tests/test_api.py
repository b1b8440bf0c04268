"""
End-to-end tests of the HTTP API through FastAPI's TestClient.
"""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from conftest import TEST_SECRET, bearer, signup_and_login
from feed_api.app.core.security import TokenIssuer


POSTS = "/api/v1/posts"


def create_post(client, token, title="hello", content="world!"):
    resp = client.post(POSTS, json={"title": title, "content": content}, headers=bearer(token))
    assert resp.status_code == 201, resp.text
    return resp.json()["resource"]


def test_login_then_create_and_delete_missing(client):
    token, subject_id = signup_and_login(client, "u1", secret="pw12345")
    assert TokenIssuer(TEST_SECRET).validate(token) == subject_id

    resp = client.post(POSTS, json={"title": "hello", "content": "world!"}, headers=bearer(token))
    assert resp.status_code == 201
    body = resp.json()
    assert body["resource"]["ownerId"] == subject_id
    assert body["resource"]["title"] == "hello"
    assert body["resource"]["imageUrl"] is None

    resp = client.delete(f"{POSTS}/9999", headers=bearer(token))
    assert resp.status_code == 404
    assert resp.json()["kind"] == "NotFound"


def test_login_with_wrong_secret_is_unauthenticated(client):
    signup_and_login(client, "u1")

    for identifier, secret in [("u1", "wrong-secret"), ("nobody", "pw12345")]:
        resp = client.post("/api/v1/auth/login", json={"identifier": identifier, "secret": secret})
        assert resp.status_code == 401
        assert resp.json() == {"kind": "Unauthenticated", "message": "Invalid credentials"}


def test_multiple_logins_give_independent_valid_tokens(client):
    first, _ = signup_and_login(client, "u1")
    resp = client.post("/api/v1/auth/login", json={"identifier": "u1", "secret": "pw12345"})
    second = resp.json()["token"]

    for token in (first, second):
        assert client.get(POSTS, headers=bearer(token)).status_code == 200


def test_signup_validation(client):
    signup_and_login(client, "u1")

    resp = client.post("/api/v1/auth/signup", json={"identifier": "u1", "secret": "pw12345", "name": "Again"})
    assert resp.status_code == 422
    assert resp.json()["violations"][0]["field"] == "identifier"

    resp = client.post("/api/v1/auth/signup", json={"identifier": "u2", "secret": "123", "name": ""})
    assert resp.status_code == 422
    body = resp.json()
    assert body["kind"] == "ValidationFailed"
    assert {v["field"] for v in body["violations"]} == {"secret", "name"}


@pytest.mark.parametrize(
    "headers",
    [{}, {"Authorization": "Bearer"}, {"Authorization": "Basic dTE6cHcxMjM0NQ=="}, {"Authorization": "Bearer not.a.token"}],
)
def test_protected_routes_require_a_valid_bearer(client, headers):
    resp = client.get(POSTS, headers=headers)

    assert resp.status_code == 401
    assert resp.json()["kind"] == "Unauthenticated"
    assert resp.headers["www-authenticate"] == "Bearer"


def test_expired_token_is_rejected(client, app):
    _, subject_id = signup_and_login(client, "u1")
    expired = app.state.token_issuer.issue(subject_id, ttl=0)

    resp = client.get(POSTS, headers=bearer(expired))

    assert resp.status_code == 401
    assert resp.json()["kind"] == "Unauthenticated"


def test_token_from_another_secret_is_rejected(client):
    _, subject_id = signup_and_login(client, "u1")
    foreign = TokenIssuer("some-other-secret").issue(subject_id)

    assert client.get(POSTS, headers=bearer(foreign)).status_code == 401


def test_gate_trusts_token_subject_without_lookup(client, app):
    # A token for a subject that has no account still passes the gate.
    token = app.state.token_issuer.issue(777)

    assert client.get(POSTS, headers=bearer(token)).status_code == 200


def test_create_validation_failure_leaves_collection_unchanged(client):
    token, _ = signup_and_login(client, "u1")
    create_post(client, token)

    resp = client.post(POSTS, json={"title": "hey", "content": ""}, headers=bearer(token))

    assert resp.status_code == 422
    body = resp.json()
    assert body["kind"] == "ValidationFailed"
    assert {v["field"] for v in body["violations"]} == {"title", "content"}
    assert client.get(POSTS, headers=bearer(token)).json()["totalCount"] == 1


@pytest.mark.parametrize("raw", [b"not json", b"[1, 2]"])
def test_non_object_body_is_a_validation_failure(client, raw):
    token, _ = signup_and_login(client, "u1")

    resp = client.post(POSTS, content=raw, headers={**bearer(token), "Content-Type": "application/json"})

    assert resp.status_code == 422
    assert resp.json()["violations"][0]["field"] == "body"


def test_list_pages_are_disjoint_and_complete(client):
    token, _ = signup_and_login(client, "u1")
    ids = [create_post(client, token, title=f"post {i}")["id"] for i in range(5)]

    seen = []
    for page in (1, 2, 3):
        body = client.get(POSTS, params={"page": page, "pageSize": 2}, headers=bearer(token)).json()
        assert body["totalCount"] == 5
        seen.extend(item["id"] for item in body["items"])

    assert seen == ids
    default_page = client.get(POSTS, params={"page": 0}, headers=bearer(token)).json()
    assert [item["id"] for item in default_page["items"]] == ids[:2]


def test_get_single_post_includes_owner(client):
    token, subject_id = signup_and_login(client, "u1", name="First User")
    post = create_post(client, token)

    body = client.get(f"{POSTS}/{post['id']}", headers=bearer(token)).json()

    assert body["resource"]["id"] == post["id"]
    assert body["owner"] == {"id": subject_id, "name": "First User"}
    assert client.get(f"{POSTS}/9999", headers=bearer(token)).status_code == 404


def test_update_requires_ownership(client):
    owner_token, _ = signup_and_login(client, "u1")
    other_token, _ = signup_and_login(client, "u2")
    post = create_post(client, owner_token)
    changes = {"title": "changed title", "content": "changed content"}

    resp = client.put(f"{POSTS}/{post['id']}", json=changes, headers=bearer(other_token))
    assert resp.status_code == 403
    assert resp.json()["kind"] == "Forbidden"

    resp = client.put(f"{POSTS}/{post['id']}", json=changes, headers=bearer(owner_token))
    assert resp.status_code == 200
    assert resp.json()["resource"]["title"] == "changed title"

    assert client.put(f"{POSTS}/9999", json=changes, headers=bearer(owner_token)).status_code == 404
    assert client.put(f"{POSTS}/{post['id']}", json={"title": "x"}, headers=bearer(owner_token)).status_code == 422


def test_delete_requires_ownership(client):
    owner_token, _ = signup_and_login(client, "u1")
    other_token, _ = signup_and_login(client, "u2")
    post = create_post(client, owner_token)

    assert client.delete(f"{POSTS}/{post['id']}", headers=bearer(other_token)).status_code == 403
    resp = client.delete(f"{POSTS}/{post['id']}", headers=bearer(owner_token))
    assert resp.status_code == 204
    assert resp.content == b""
    assert client.delete(f"{POSTS}/{post['id']}", headers=bearer(owner_token)).status_code == 404


def test_multipart_upload_is_stored_and_served(client, settings):
    token, _ = signup_and_login(client, "u1")

    resp = client.post(
        POSTS,
        data={"title": "with image", "content": "see attached"},
        files={"image": ("cat.png", b"\x89PNG image bytes", "image/png")},
        headers=bearer(token),
    )

    assert resp.status_code == 201, resp.text
    image_url = resp.json()["resource"]["imageUrl"]
    assert image_url.startswith("images/") and image_url.endswith("cat.png")
    assert (Path(settings.upload_dir) / image_url.split("/", 1)[1]).exists()
    served = client.get(f"/{image_url}")
    assert served.status_code == 200
    assert served.content == b"\x89PNG image bytes"


def test_multipart_rejects_non_images(client, settings):
    token, _ = signup_and_login(client, "u1")

    resp = client.post(
        POSTS,
        data={"title": "with image", "content": "see attached"},
        files={"image": ("run.sh", b"#!/bin/sh", "text/x-shellscript")},
        headers=bearer(token),
    )

    assert resp.status_code == 422
    assert [v["field"] for v in resp.json()["violations"]] == ["image"]
    assert list(Path(settings.upload_dir).iterdir()) == []


def test_user_status_round_trip(client):
    token, _ = signup_and_login(client, "u1")

    assert client.get("/api/v1/auth/status", headers=bearer(token)).json() == {"status": "I am new!"}
    resp = client.put("/api/v1/auth/status", json={"status": "  shipping  "}, headers=bearer(token))
    assert resp.json() == {"message": "Status updated", "status": "shipping"}
    assert client.get("/api/v1/auth/status", headers=bearer(token)).json() == {"status": "shipping"}


def test_status_of_unknown_subject_is_not_found(client, app):
    token = app.state.token_issuer.issue(777)

    resp = client.get("/api/v1/auth/status", headers=bearer(token))

    assert resp.status_code == 404
    assert resp.json()["kind"] == "NotFound"


def test_health_reports_connections(client):
    assert client.get("/api/v1/health").json() == {"status": "ok", "connections": 0}


def test_unexpected_errors_are_generic_500s(app):
    @app.get("/api/v1/boom")
    async def boom():
        raise RuntimeError("sqlite internals: table posts is locked")

    with TestClient(app, raise_server_exceptions=False) as client:
        resp = client.get("/api/v1/boom")

    assert resp.status_code == 500
    assert resp.json() == {"kind": "StorageFailure", "message": "An internal error occurred"}
    assert "locked" not in resp.text


def test_storage_failures_hide_detail(client, app):
    token, _ = signup_and_login(client, "u1")
    app.state.post_service.posts.db.path = "/nonexistent-dir/feed.db"

    resp = client.post(POSTS, json={"title": "hello", "content": "world!"}, headers=bearer(token))

    assert resp.status_code == 500
    assert resp.json() == {"kind": "StorageFailure", "message": "An internal error occurred"}


HUGE_ID = 10**20


def test_ids_beyond_integer_range_are_not_found(client):
    token, _ = signup_and_login(client, "u1")
    changes = {"title": "changed title", "content": "changed content"}

    for resp in (
        client.get(f"{POSTS}/{HUGE_ID}", headers=bearer(token)),
        client.put(f"{POSTS}/{HUGE_ID}", json=changes, headers=bearer(token)),
        client.delete(f"{POSTS}/{HUGE_ID}", headers=bearer(token)),
    ):
        assert resp.status_code == 404
        assert resp.json()["kind"] == "NotFound"


def test_page_far_past_the_end_is_empty(client):
    token, _ = signup_and_login(client, "u1")
    create_post(client, token)

    resp = client.get(POSTS, params={"page": 10**19, "pageSize": 50}, headers=bearer(token))

    assert resp.status_code == 200
    assert resp.json() == {"items": [], "totalCount": 1}


def test_write_by_subject_without_account_is_not_found(client, app):
    token = app.state.token_issuer.issue(777)

    resp = client.post(POSTS, json={"title": "hello", "content": "world!"}, headers=bearer(token))

    assert resp.status_code == 404
    assert resp.json() == {"kind": "NotFound", "message": "User not found"}


def test_subject_beyond_integer_range_has_no_status(client, app):
    token = app.state.token_issuer.issue(HUGE_ID)

    assert client.get("/api/v1/auth/status", headers=bearer(token)).status_code == 404
    assert client.post(POSTS, json={"title": "hello", "content": "world!"}, headers=bearer(token)).status_code == 404
