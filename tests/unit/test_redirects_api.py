"""
Tests for the redirects API routes.
"""

from __future__ import annotations

from uuid import UUID, uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from inkwell.api.deps import (
    get_clock,
    get_post_repo,
    get_redirect_cache,
    get_redirect_repo,
    get_rules,
)
from inkwell.api.routes import posts as posts_routes
from inkwell.api.routes import redirects as redirects_routes
from inkwell.rules.models import Rules


def make_client(store, posts, clock) -> TestClient:
    app = FastAPI()
    app.include_router(redirects_routes.router, prefix="/api/redirects")
    app.include_router(posts_routes.router, prefix="/api/posts")

    app.dependency_overrides[get_redirect_repo] = lambda: store
    app.dependency_overrides[get_post_repo] = lambda: posts
    app.dependency_overrides[get_rules] = lambda: Rules()
    app.dependency_overrides[get_redirect_cache] = lambda: None
    app.dependency_overrides[get_clock] = lambda: clock

    return TestClient(app)


@pytest.fixture
def client(store, posts, clock) -> TestClient:
    """Test client with in-memory stores."""
    return make_client(store, posts, clock)


@pytest.fixture
def owner() -> UUID:
    return uuid4()


@pytest.fixture
def headers(owner: UUID) -> dict[str, str]:
    return {"X-User-Id": str(owner)}


# --- Create ---


class TestCreateRedirect:
    def test_create_post_redirect(self, client, posts, owner, headers) -> None:
        source = posts.add(author_id=owner)
        target = posts.add()

        response = client.post(
            "/api/redirects",
            json={
                "sourcePostId": str(source.id),
                "redirectType": "post",
                "targetPostId": str(target.id),
            },
            headers=headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["warnings"] == []
        assert data["redirect"]["sourcePostId"] == str(source.id)
        assert data["redirect"]["targetPostId"] == str(target.id)
        assert data["redirect"]["httpStatusCode"] == 301
        assert data["redirect"]["createdBy"] == str(owner)

    def test_create_url_redirect_warns_on_http(self, client, posts, owner, headers) -> None:
        source = posts.add(author_id=owner)

        response = client.post(
            "/api/redirects",
            json={
                "sourcePostId": str(source.id),
                "redirectType": "url",
                "targetUrl": "http://example.com",
                "httpStatusCode": 302,
                "notes": "Moved to partner site",
            },
            headers=headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["redirect"]["httpStatusCode"] == 302
        assert data["redirect"]["notes"] == "Moved to partner site"
        assert len(data["warnings"]) == 1

    def test_requires_user(self, client, posts) -> None:
        response = client.post(
            "/api/redirects",
            json={
                "sourcePostId": str(uuid4()),
                "redirectType": "url",
                "targetUrl": "https://x.com",
            },
        )
        assert response.status_code == 401

    def test_rejects_malformed_user(self, client) -> None:
        response = client.post(
            "/api/redirects",
            json={
                "sourcePostId": str(uuid4()),
                "redirectType": "url",
                "targetUrl": "https://x.com",
            },
            headers={"X-User-Id": "not-a-uuid"},
        )
        assert response.status_code == 401

    def test_both_targets_rejected(self, client, headers) -> None:
        response = client.post(
            "/api/redirects",
            json={
                "sourcePostId": str(uuid4()),
                "redirectType": "url",
                "targetUrl": "https://example.com",
                "targetPostId": str(uuid4()),
            },
            headers=headers,
        )
        assert response.status_code == 422

    def test_unsupported_status_code(self, client, headers) -> None:
        response = client.post(
            "/api/redirects",
            json={
                "sourcePostId": str(uuid4()),
                "redirectType": "url",
                "targetUrl": "https://example.com",
                "httpStatusCode": 303,
            },
            headers=headers,
        )
        assert response.status_code == 422

    def test_self_redirect(self, client, posts, owner, headers) -> None:
        post = posts.add(author_id=owner)

        response = client.post(
            "/api/redirects",
            json={
                "sourcePostId": str(post.id),
                "redirectType": "post",
                "targetPostId": str(post.id),
            },
            headers=headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"]["errors"] == ["Cannot redirect a post to itself"]

    def test_cycle_rejected(self, client, store, posts, owner, headers) -> None:
        a, b = posts.add(author_id=owner), posts.add()
        store.add(b.id, target_post_id=a.id)

        response = client.post(
            "/api/redirects",
            json={"sourcePostId": str(a.id), "redirectType": "post", "targetPostId": str(b.id)},
            headers=headers,
        )

        assert response.status_code == 400
        assert "Circular redirect detected" in response.json()["detail"]["errors"][0]

    def test_someone_elses_post(self, client, posts, headers) -> None:
        source = posts.add()

        response = client.post(
            "/api/redirects",
            json={
                "sourcePostId": str(source.id),
                "redirectType": "url",
                "targetUrl": "https://example.com",
            },
            headers=headers,
        )

        assert response.status_code == 403

    def test_missing_source_post(self, client, headers) -> None:
        response = client.post(
            "/api/redirects",
            json={
                "sourcePostId": str(uuid4()),
                "redirectType": "url",
                "targetUrl": "https://example.com",
            },
            headers=headers,
        )
        assert response.status_code == 404

    def test_store_down(self, failing_store, posts, clock, owner, headers) -> None:
        client = make_client(failing_store, posts, clock)
        source = posts.add(author_id=owner)

        response = client.post(
            "/api/redirects",
            json={
                "sourcePostId": str(source.id),
                "redirectType": "url",
                "targetUrl": "https://example.com",
            },
            headers=headers,
        )

        assert response.status_code == 503


# --- List / Validate ---


class TestListRedirects:
    def test_paginated_list(self, client, store, owner, headers) -> None:
        for i in range(3):
            store.add(uuid4(), target_url=f"https://example.com/{i}", created_by=owner)
        store.add(uuid4(), target_url="https://example.com/other", created_by=uuid4())

        response = client.get("/api/redirects?page=1&limit=2", headers=headers)

        assert response.status_code == 200
        data = response.json()
        assert len(data["redirects"]) == 2
        assert data["pagination"] == {
            "page": 1,
            "limit": 2,
            "total": 3,
            "totalPages": 2,
            "hasNextPage": True,
            "hasPrevPage": False,
        }

    def test_filter_by_type(self, client, store, owner, headers) -> None:
        store.add(uuid4(), target_url="https://example.com", created_by=owner)
        store.add(uuid4(), target_post_id=uuid4(), created_by=owner)

        response = client.get("/api/redirects?type=url", headers=headers)

        assert [r["redirectType"] for r in response.json()["redirects"]] == ["url"]

    def test_items_carry_post_summaries(self, client, store, posts, owner, headers) -> None:
        target = posts.add(slug="new-home", title="New Home", status="draft")
        # Source post deleted after the redirect was created
        store.add(uuid4(), target_post_id=target.id, created_by=owner)

        item = client.get("/api/redirects", headers=headers).json()["redirects"][0]

        assert item["sourcePost"] is None
        assert item["targetPost"] == {
            "id": str(target.id),
            "title": "New Home",
            "slug": "new-home",
            "status": "draft",
        }

    def test_limit_bounds(self, client, headers) -> None:
        assert client.get("/api/redirects?limit=101", headers=headers).status_code == 422


class TestValidateEndpoint:
    def test_valid(self, client, headers) -> None:
        response = client.get(
            "/api/redirects/validate",
            params={
                "sourcePostId": str(uuid4()),
                "redirectType": "url",
                "targetUrl": "https://example.com",
            },
            headers=headers,
        )

        assert response.status_code == 200
        assert response.json() == {"valid": True, "errors": [], "warnings": []}

    def test_invalid(self, client, headers) -> None:
        response = client.get(
            "/api/redirects/validate",
            params={"sourcePostId": str(uuid4()), "redirectType": "url", "targetUrl": "ftp://x"},
            headers=headers,
        )

        assert response.json()["valid"] is False

    def test_existing_redirect_excluded(self, client, store, owner, headers) -> None:
        source = uuid4()
        existing = store.add(source, target_url="https://old.com", created_by=owner)

        response = client.get(
            "/api/redirects/validate",
            params={
                "sourcePostId": str(source),
                "redirectType": "url",
                "targetUrl": "https://new.com",
                "existingRedirectId": str(existing.id),
            },
            headers=headers,
        )

        assert response.json()["valid"] is True

    def test_store_down(self, failing_store, posts, clock, headers) -> None:
        client = make_client(failing_store, posts, clock)

        response = client.get(
            "/api/redirects/validate",
            params={
                "sourcePostId": str(uuid4()),
                "redirectType": "url",
                "targetUrl": "https://example.com",
            },
            headers=headers,
        )

        assert response.status_code == 503


# --- Get / Update / Delete ---


class TestSingleRedirect:
    def test_get(self, client, store, owner, headers) -> None:
        existing = store.add(uuid4(), target_url="https://example.com", created_by=owner)

        response = client.get(f"/api/redirects/{existing.id}", headers=headers)

        assert response.status_code == 200
        assert response.json()["targetUrl"] == "https://example.com"

    def test_get_other_users_redirect(self, client, store, headers) -> None:
        existing = store.add(uuid4(), target_url="https://example.com", created_by=uuid4())

        response = client.get(f"/api/redirects/{existing.id}", headers=headers)

        assert response.status_code == 404

    def test_update(self, client, store, owner, headers) -> None:
        existing = store.add(uuid4(), target_url="https://old.com", created_by=owner)

        response = client.put(
            f"/api/redirects/{existing.id}",
            json={"targetUrl": "https://new.com", "httpStatusCode": 308},
            headers=headers,
        )

        assert response.status_code == 200
        data = response.json()["redirect"]
        assert data["targetUrl"] == "https://new.com"
        assert data["httpStatusCode"] == 308

    def test_update_rejects_immutable_fields(self, client, store, owner, headers) -> None:
        existing = store.add(uuid4(), target_url="https://old.com", created_by=owner)

        response = client.put(
            f"/api/redirects/{existing.id}",
            json={"sourcePostId": str(uuid4())},
            headers=headers,
        )

        assert response.status_code == 422

    def test_update_requires_changes(self, client, store, owner, headers) -> None:
        existing = store.add(uuid4(), target_url="https://old.com", created_by=owner)

        response = client.put(f"/api/redirects/{existing.id}", json={}, headers=headers)

        assert response.status_code == 400

    def test_update_validation_error(self, client, store, owner, headers) -> None:
        existing = store.add(uuid4(), target_url="https://old.com", created_by=owner)

        response = client.put(
            f"/api/redirects/{existing.id}",
            json={"targetUrl": "ftp://files.example.com"},
            headers=headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"]["errors"] == ["Only HTTP and HTTPS URLs are allowed"]

    def test_delete(self, client, store, owner, headers) -> None:
        existing = store.add(uuid4(), target_url="https://old.com", created_by=owner)

        response = client.delete(f"/api/redirects/{existing.id}", headers=headers)

        assert response.status_code == 200
        assert response.json() == {"message": "Redirect deleted successfully"}
        assert store.find_by_id(existing.id) is None

    def test_delete_missing(self, client, headers) -> None:
        response = client.delete(f"/api/redirects/{uuid4()}", headers=headers)
        assert response.status_code == 404
