"""
Posts component port definitions.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from inkwell.components.redirects import RedirectDecision, ValidationResult
from inkwell.domain.entities import Post


class PostRepoPort(Protocol):
    """Repository interface for posts."""

    def get_by_id(self, post_id: UUID) -> Post | None:
        """Get post by ID."""
        ...

    def delete(self, post_id: UUID) -> None:
        """Delete post row."""
        ...


class RedirectResolverPort(Protocol):
    """Redirect resolution as used on the post read path."""

    def resolve(self, source_post_id: UUID) -> RedirectDecision | None:
        """Redirect decision for a post, None when not redirected."""
        ...


class DeletionGuardPort(Protocol):
    """Pre-delete check consulted before removing a post row."""

    def can_delete_post(self, post_id: UUID) -> ValidationResult:
        """Whether the post may be deleted."""
        ...
