"""
End-to-end redirect flow against the real app and a temporary SQLite file.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from inkwell.adapters.sqlite.repos import SQLitePostRepo
from inkwell.api.deps import get_rules, get_settings, reset_redirect_cache
from inkwell.api.main import app
from inkwell.domain.entities import Post

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def _reset_cached_deps() -> None:
    get_settings.cache_clear()
    get_rules.cache_clear()
    reset_redirect_cache()


@pytest.fixture
def client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[TestClient]:
    monkeypatch.setenv("INKWELL_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("INKWELL_RULES_PATH", str(PROJECT_ROOT / "rules.yaml"))
    _reset_cached_deps()

    with TestClient(app) as test_client:
        yield test_client

    _reset_cached_deps()


@pytest.fixture
def author(client: TestClient) -> UUID:
    uid = uuid4()
    conn = sqlite3.connect(get_settings().db_path)
    conn.execute(
        "INSERT INTO users (id, email, display_name, created_at) VALUES (?,?,?,?)",
        (str(uid), "author@example.com", "Author", datetime.now(UTC).isoformat()),
    )
    conn.commit()
    conn.close()
    return uid


@pytest.fixture
def post_repo(client: TestClient) -> SQLitePostRepo:
    return SQLitePostRepo(get_settings().db_path)


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok", "service": "api"}


def test_redirect_lifecycle(client: TestClient, author: UUID, post_repo: SQLitePostRepo) -> None:
    headers = {"X-User-Id": str(author)}
    old = post_repo.save(Post(slug="old", title="Old", status="published", author_id=author))
    new = post_repo.save(Post(slug="new", title="New", status="published", author_id=author))

    # Create a redirect old -> new
    response = client.post(
        "/api/redirects",
        json={"sourcePostId": str(old.id), "redirectType": "post", "targetPostId": str(new.id)},
        headers=headers,
    )
    assert response.status_code == 201
    redirect_id = response.json()["redirect"]["id"]

    # Reads carry the redirect
    data = client.get(f"/api/posts/{old.id}").json()
    assert data["redirect"]["target"] == {"postId": str(new.id), "slug": "new", "title": "New"}

    # A second redirect for the same source is refused
    response = client.post(
        "/api/redirects",
        json={
            "sourcePostId": str(old.id),
            "redirectType": "url",
            "targetUrl": "https://example.com",
        },
        headers=headers,
    )
    assert response.status_code == 400

    # The reverse redirect would close a cycle
    response = client.post(
        "/api/redirects",
        json={"sourcePostId": str(new.id), "redirectType": "post", "targetPostId": str(old.id)},
        headers=headers,
    )
    assert response.status_code == 400

    # The target can't be deleted while the redirect points at it
    assert client.delete(f"/api/posts/{new.id}", headers=headers).status_code == 409

    # Forcing the delete leaves a broken redirect (served from a fresh lookup)
    assert client.delete(f"/api/posts/{new.id}?force=true", headers=headers).status_code == 204
    resolved = client.get(f"/api/posts/{old.id}/redirect").json()
    assert resolved["httpStatus"] == 410
    assert resolved["target"]["error"] == "Target post has been deleted"

    # Point it at an external URL instead
    response = client.put(
        f"/api/redirects/{redirect_id}",
        json={"redirectType": "url", "targetUrl": "https://example.com/moved"},
        headers=headers,
    )
    assert response.status_code == 200
    resolved = client.get(f"/api/posts/{old.id}/redirect").json()
    assert resolved == {
        "type": "url",
        "httpStatus": 301,
        "target": {"url": "https://example.com/moved"},
    }

    # Listing and removal
    listing = client.get("/api/redirects", headers=headers).json()
    assert listing["pagination"]["total"] == 1
    assert client.delete(f"/api/redirects/{redirect_id}", headers=headers).status_code == 200
    assert client.get(f"/api/posts/{old.id}/redirect").json() is None


def test_other_users_cannot_see_redirects(
    client: TestClient, author: UUID, post_repo: SQLitePostRepo
) -> None:
    post = post_repo.save(Post(slug="mine", title="Mine", author_id=author))
    response = client.post(
        "/api/redirects",
        json={
            "sourcePostId": str(post.id),
            "redirectType": "url",
            "targetUrl": "https://example.com",
        },
        headers={"X-User-Id": str(author)},
    )
    redirect_id = response.json()["redirect"]["id"]
    stranger = {"X-User-Id": str(uuid4())}

    assert client.get(f"/api/redirects/{redirect_id}", headers=stranger).status_code == 404
    assert client.delete(f"/api/redirects/{redirect_id}", headers=stranger).status_code == 404
    assert client.get("/api/redirects", headers=stranger).json()["redirects"] == []
    assert client.delete(f"/api/posts/{post.id}?force=true", headers=stranger).status_code == 403
    assert post_repo.get_by_id(post.id) is not None
