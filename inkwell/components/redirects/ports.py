"""
Redirects component port definitions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from inkwell.domain.entities import PostProjection, PostRedirect, RedirectType


class RedirectStorePort(Protocol):
    """Persistence interface for redirects.

    Implementations raise TransientStoreError for backend failures and
    RedirectConflictError when a create loses the source uniqueness race.
    """

    def find_by_source(self, post_id: UUID) -> PostRedirect | None:
        """Get the redirect whose source is the given post."""
        ...

    def find_by_target(self, post_id: UUID) -> list[PostRedirect]:
        """Get post-type redirects pointing at the given post."""
        ...

    def find_by_id(self, redirect_id: UUID) -> PostRedirect | None:
        """Get redirect by ID."""
        ...

    def create(self, redirect: PostRedirect) -> PostRedirect:
        """Insert a new redirect."""
        ...

    def update(self, redirect_id: UUID, changes: dict[str, Any]) -> PostRedirect:
        """Apply changes to an existing redirect and return it."""
        ...

    def delete(self, redirect_id: UUID) -> None:
        """Delete redirect."""
        ...

    def list_by_owner(
        self,
        user_id: UUID,
        *,
        redirect_type: RedirectType | None = None,
        search: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[PostRedirect], int]:
        """List a page of the user's redirects, newest first, with the total count."""
        ...

    def list_all(self) -> list[PostRedirect]:
        """List all redirects."""
        ...


class PostLookupPort(Protocol):
    """Read-only access to posts."""

    def fetch_post(self, post_id: UUID) -> PostProjection | None:
        """Get the {id, slug, title, status} projection of a post."""
        ...


class CacheInvalidatorPort(Protocol):
    """Hook called after writes that change a resolution."""

    def invalidate_redirect(self, source_post_id: UUID) -> None:
        """A redirect for this source was created, updated or deleted."""
        ...

    def invalidate_target(self, post_id: UUID) -> None:
        """This post changed (e.g. was deleted); decisions pointing at it are stale."""
        ...


class TimePort(Protocol):
    """Time provider interface."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...
