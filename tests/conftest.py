import sqlite3
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any
from uuid import UUID, uuid4

import pytest

from inkwell.adapters.sqlite.migrator import SQLiteMigrator
from inkwell.components.redirects import RedirectConflictError, TransientStoreError
from inkwell.domain.entities import Post, PostProjection, PostRedirect, PostStatus, RedirectType

PROJECT_ROOT = Path(__file__).resolve().parents[1]
MIGRATIONS_DIR = str(PROJECT_ROOT / "migrations")


# --- In-memory ports ---


class FakeClock:
    """Deterministic TimePort."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2025, 1, 1, 12, 0, tzinfo=UTC)

    def now_utc(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


class InMemoryRedirectStore:
    """In-memory RedirectStorePort with the same uniqueness rule as the table."""

    def __init__(self) -> None:
        self._redirects: dict[UUID, PostRedirect] = {}
        self.find_by_source_calls = 0

    def find_by_source(self, post_id: UUID) -> PostRedirect | None:
        self.find_by_source_calls += 1
        for redirect in self._redirects.values():
            if redirect.source_post_id == post_id:
                return redirect
        return None

    def find_by_target(self, post_id: UUID) -> list[PostRedirect]:
        return [
            r
            for r in self._redirects.values()
            if r.redirect_type == "post" and r.target_post_id == post_id
        ]

    def find_by_id(self, redirect_id: UUID) -> PostRedirect | None:
        return self._redirects.get(redirect_id)

    def create(self, redirect: PostRedirect) -> PostRedirect:
        if any(r.source_post_id == redirect.source_post_id for r in self._redirects.values()):
            raise RedirectConflictError()
        self._redirects[redirect.id] = redirect
        return redirect

    def update(self, redirect_id: UUID, changes: dict[str, Any]) -> PostRedirect:
        updated = self._redirects[redirect_id].model_copy(update=changes)
        self._redirects[redirect_id] = updated
        return updated

    def delete(self, redirect_id: UUID) -> None:
        self._redirects.pop(redirect_id, None)

    def list_by_owner(
        self,
        user_id: UUID,
        *,
        redirect_type: RedirectType | None = None,
        search: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[PostRedirect], int]:
        rows = [r for r in self._redirects.values() if r.created_by == user_id]
        if redirect_type is not None:
            rows = [r for r in rows if r.redirect_type == redirect_type]
        if search:
            needle = search.lower()
            rows = [
                r
                for r in rows
                if needle in (r.target_url or "").lower() or needle in (r.notes or "").lower()
            ]
        rows.sort(key=lambda r: r.created_at, reverse=True)
        return rows[offset : offset + limit], len(rows)

    def list_all(self) -> list[PostRedirect]:
        return list(self._redirects.values())

    # Test helper: bypasses validation
    def add(
        self,
        source_post_id: UUID,
        *,
        target_post_id: UUID | None = None,
        target_url: str | None = None,
        created_by: UUID | None = None,
        http_status_code: int = 301,
        notes: str | None = None,
    ) -> PostRedirect:
        redirect = PostRedirect(
            source_post_id=source_post_id,
            redirect_type="post" if target_post_id is not None else "url",
            target_post_id=target_post_id,
            target_url=target_url,
            created_by=created_by or uuid4(),
            http_status_code=http_status_code,
            notes=notes,
        )
        self._redirects[redirect.id] = redirect
        return redirect


class InMemoryPosts:
    """Serves both PostLookupPort and PostRepoPort."""

    def __init__(self) -> None:
        self._posts: dict[UUID, Post] = {}

    def add(
        self,
        *,
        status: PostStatus = "published",
        author_id: UUID | None = None,
        slug: str | None = None,
        title: str = "A post",
    ) -> Post:
        post_id = uuid4()
        post = Post(
            id=post_id,
            slug=slug or f"post-{post_id.hex[:8]}",
            title=title,
            content="Body",
            status=status,
            author_id=author_id or uuid4(),
        )
        self._posts[post.id] = post
        return post

    def fetch_post(self, post_id: UUID) -> PostProjection | None:
        post = self._posts.get(post_id)
        if post is None:
            return None
        return PostProjection(
            id=post.id,
            slug=post.slug,
            title=post.title,
            status=post.status,
            author_id=post.author_id,
        )

    def get_by_id(self, post_id: UUID) -> Post | None:
        return self._posts.get(post_id)

    def delete(self, post_id: UUID) -> None:
        self._posts.pop(post_id, None)


class FailingRedirectStore:
    """Every call fails as if the database were unreachable."""

    def __init__(self) -> None:
        self.calls = 0

    def _fail(self, *args: Any, **kwargs: Any) -> Any:
        self.calls += 1
        raise TransientStoreError("database is locked")

    find_by_source = _fail
    find_by_target = _fail
    find_by_id = _fail
    create = _fail
    update = _fail
    delete = _fail
    list_by_owner = _fail
    list_all = _fail


# --- Fixtures ---


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryRedirectStore:
    """Fresh in-memory redirect store for each test."""
    return InMemoryRedirectStore()


@pytest.fixture
def posts() -> InMemoryPosts:
    return InMemoryPosts()


@pytest.fixture
def failing_store() -> FailingRedirectStore:
    return FailingRedirectStore()


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    """Temporary SQLite database with all migrations applied."""
    path = str(tmp_path / "inkwell.db")
    SQLiteMigrator(path, MIGRATIONS_DIR).run_migrations()
    return path


@pytest.fixture
def user_id(db_path: str) -> UUID:
    """A user row in the migrated database."""
    uid = uuid4()
    conn = sqlite3.connect(db_path)
    conn.execute(
        "INSERT INTO users (id, email, display_name, created_at) VALUES (?,?,?,?)",
        (str(uid), f"{uid.hex[:8]}@example.com", "Test User", datetime.now(UTC).isoformat()),
    )
    conn.commit()
    conn.close()
    return uid
