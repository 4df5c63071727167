import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any
from uuid import UUID

from inkwell.components.redirects.models import (
    RedirectConflictError,
    RedirectNotFoundError,
    RedirectValidationError,
    TransientStoreError,
)
from inkwell.domain.entities import Post, PostProjection, PostRedirect, RedirectType

logger = logging.getLogger(__name__)


# Helper to convert sqlite rows to dicts
def dict_factory(cursor: sqlite3.Cursor, row: Any) -> dict[str, Any]:
    d = {}
    for idx, col in enumerate(cursor.description):
        d[col[0]] = row[idx]
    return d


def _to_db(value: Any) -> Any:
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _parse_uuid(value: str | None) -> UUID | None:
    return UUID(value) if value else None


class SQLiteRepoBase:
    """Per-operation connections; sqlite errors surface as TransientStoreError."""

    def __init__(self, db_path: str, timeout: float = 5.0):
        self.db_path = db_path
        self.timeout = timeout

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        except sqlite3.Error as e:
            raise TransientStoreError(f"Could not open database: {e}") from e

        conn.row_factory = dict_factory
        try:
            conn.execute("PRAGMA foreign_keys = ON;")
            yield conn
            conn.commit()
        except sqlite3.IntegrityError:
            conn.rollback()
            raise
        except sqlite3.Error as e:
            conn.rollback()
            logger.debug("SQLite failure on %s: %s", self.db_path, e)
            raise TransientStoreError(f"Database error: {e}") from e
        finally:
            conn.close()


# -----------------------------------------------------------------------------
# Posts
# -----------------------------------------------------------------------------


class SQLitePostRepo(SQLiteRepoBase):
    """Posts table; also serves the redirects component's PostLookupPort."""

    def save(self, post: Post) -> Post:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO posts (
                    id, slug, title, content, excerpt, status,
                    author_id, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    slug=excluded.slug,
                    title=excluded.title,
                    content=excluded.content,
                    excerpt=excluded.excerpt,
                    status=excluded.status,
                    updated_at=excluded.updated_at
                """,
                (
                    str(post.id),
                    post.slug,
                    post.title,
                    post.content,
                    post.excerpt,
                    post.status,
                    str(post.author_id),
                    post.created_at.isoformat(),
                    post.updated_at.isoformat(),
                ),
            )
        return post

    def get_by_id(self, post_id: UUID) -> Post | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM posts WHERE id = ?", (str(post_id),)).fetchone()
        if not row:
            return None
        return Post(
            id=UUID(row["id"]),
            slug=row["slug"],
            title=row["title"],
            content=row["content"],
            excerpt=row["excerpt"],
            status=row["status"],
            author_id=UUID(row["author_id"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def fetch_post(self, post_id: UUID) -> PostProjection | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT id, slug, title, status, author_id FROM posts WHERE id = ?",
                (str(post_id),),
            ).fetchone()
        if not row:
            return None
        return PostProjection(
            id=UUID(row["id"]),
            slug=row["slug"],
            title=row["title"],
            status=row["status"],
            author_id=_parse_uuid(row["author_id"]),
        )

    def delete(self, post_id: UUID) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM posts WHERE id = ?", (str(post_id),))


# -----------------------------------------------------------------------------
# Post redirects
# -----------------------------------------------------------------------------

_UPDATABLE_COLUMNS = frozenset(
    {"redirect_type", "target_post_id", "target_url", "http_status_code", "notes", "updated_at"}
)


class SQLiteRedirectRepo(SQLiteRepoBase):
    """SQLite implementation of RedirectStorePort."""

    def find_by_source(self, post_id: UUID) -> PostRedirect | None:
        return self._get_one(
            "SELECT * FROM post_redirects WHERE source_post_id = ?", (str(post_id),)
        )

    def find_by_target(self, post_id: UUID) -> list[PostRedirect]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM post_redirects "
                "WHERE target_post_id = ? AND redirect_type = 'post' "
                "ORDER BY created_at",
                (str(post_id),),
            ).fetchall()
        return [self._map_row(r) for r in rows]

    def find_by_id(self, redirect_id: UUID) -> PostRedirect | None:
        return self._get_one("SELECT * FROM post_redirects WHERE id = ?", (str(redirect_id),))

    def create(self, redirect: PostRedirect) -> PostRedirect:
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO post_redirects (
                        id, source_post_id, redirect_type, target_post_id, target_url,
                        http_status_code, created_by, created_at, updated_at, notes
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        str(redirect.id),
                        str(redirect.source_post_id),
                        redirect.redirect_type,
                        _to_db(redirect.target_post_id),
                        redirect.target_url,
                        redirect.http_status_code,
                        str(redirect.created_by),
                        redirect.created_at.isoformat(),
                        redirect.updated_at.isoformat(),
                        redirect.notes,
                    ),
                )
        except sqlite3.IntegrityError as e:
            raise self._integrity_error(e) from e
        return redirect

    def update(self, redirect_id: UUID, changes: dict[str, Any]) -> PostRedirect:
        columns = sorted(changes)
        unknown = set(columns) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update columns: {', '.join(sorted(unknown))}")

        assignments = ", ".join(f"{col} = ?" for col in columns)
        params = [_to_db(changes[col]) for col in columns] + [str(redirect_id)]

        try:
            with self._connect() as conn:
                cursor = conn.execute(
                    f"UPDATE post_redirects SET {assignments} WHERE id = ?", params
                )
                if cursor.rowcount == 0:
                    raise RedirectNotFoundError("Redirect not found")
                row = conn.execute(
                    "SELECT * FROM post_redirects WHERE id = ?", (str(redirect_id),)
                ).fetchone()
        except sqlite3.IntegrityError as e:
            raise self._integrity_error(e) from e
        return self._map_row(row)

    def delete(self, redirect_id: UUID) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM post_redirects WHERE id = ?", (str(redirect_id),))

    def list_by_owner(
        self,
        user_id: UUID,
        *,
        redirect_type: RedirectType | None = None,
        search: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[PostRedirect], int]:
        where = ["created_by = ?"]
        params: list[Any] = [str(user_id)]
        if redirect_type is not None:
            where.append("redirect_type = ?")
            params.append(redirect_type)
        if search:
            where.append("(target_url LIKE ? OR notes LIKE ?)")
            params.extend([f"%{search}%", f"%{search}%"])
        clause = " AND ".join(where)

        with self._connect() as conn:
            total = conn.execute(
                f"SELECT COUNT(*) AS n FROM post_redirects WHERE {clause}", params
            ).fetchone()["n"]
            rows = conn.execute(
                f"SELECT * FROM post_redirects WHERE {clause} "
                "ORDER BY created_at DESC LIMIT ? OFFSET ?",
                [*params, limit, offset],
            ).fetchall()
        return [self._map_row(r) for r in rows], total

    def list_all(self) -> list[PostRedirect]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM post_redirects ORDER BY created_at").fetchall()
        return [self._map_row(r) for r in rows]

    def _get_one(self, query: str, params: tuple[Any, ...]) -> PostRedirect | None:
        with self._connect() as conn:
            row = conn.execute(query, params).fetchone()
        return self._map_row(row) if row else None

    def _integrity_error(self, e: sqlite3.IntegrityError) -> Exception:
        if "post_redirects.source_post_id" in str(e):
            return RedirectConflictError()
        return RedirectValidationError([f"Redirect violates a storage constraint: {e}"])

    def _map_row(self, row: dict[str, Any]) -> PostRedirect:
        return PostRedirect(
            id=UUID(row["id"]),
            source_post_id=UUID(row["source_post_id"]),
            redirect_type=row["redirect_type"],
            target_post_id=_parse_uuid(row["target_post_id"]),
            target_url=row["target_url"],
            http_status_code=row["http_status_code"],
            created_by=UUID(row["created_by"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            notes=row["notes"],
        )
